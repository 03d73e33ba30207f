"""Bulk import of exam-result spreadsheets.

The import reads the first sheet of an ``.xlsx`` export, works out which test
it belongs to, finds the header row, maps the header text onto the canonical
result columns and then reconciles every data row against the store:

- students are keyed by roll number (StuID) and merged, never duplicated;
- results are keyed by (student, test); numbers are replaced on re-import,
  question annotations entered by hand are kept.

Rows are processed in order, one commit per row. A bad row is reported as
``Row <n>: <reason>`` and skipped; only the errors in ``utils.import_errors``
abort the whole import, and they do so before any row is written.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from db_utils import insert_or_get
from models.exam_model import DEFAULT_MAX_MARKS, RESULT_SUBJECTS, Exam, ExamResult
from models.student_model import PROFILE_FIELDS, Student, db
from utils.cell_grid import CellGrid
from utils.import_errors import (
    EmptySheetError,
    MissingColumnsError,
    MissingTestMetadataError,
    TestNotFoundError,
)
from utils.topic_status import schedule_topic_status_refresh

logger = logging.getLogger(__name__)

CANONICAL_COLUMNS = [
    "StuID", "Name", "Batch",
    "Phy-R", "Phy-W", "Phy-U", "Phy-T",
    "Chem-R", "Chem-W", "Chem-U", "Chem-T",
    "Math-R", "Math-W", "Math-U", "Math-T",
    "Total-R", "Total-W", "Total-U", "Total-S", "%age", "Rank",
]

# Column prefix in the sheet for each result subject
SUBJECT_COLUMN_PREFIXES = {
    "physics": "Phy",
    "chemistry": "Chem",
    "maths": "Math",
}

# Test metadata block: values in column I, optional labels in column H, rows 1-6
METADATA_VALUE_COLUMN = 9
METADATA_LABEL_COLUMN = 8
METADATA_ROWS = range(1, 7)

DEFAULT_HEADER_ROW = 8
HEADER_SCAN_ROWS = range(1, 21)
HEADER_LABELS = ("stuid", "student id", "roll number")
HEADER_MIN_CANONICAL_MATCHES = 5

RESULT_COLUMN_MARKERS = ("phy", "chem", "math", "total")
RESULT_COLUMN_NAMES = ("%age", "rank")

STUDENT_FIELD_SYNONYMS = {
    "parentname": "parent_name",
    "parent name": "parent_name",
    "parent": "parent_name",
    "parentoccupation": "parent_occupation",
    "parent occupation": "parent_occupation",
    "occupation": "parent_occupation",
    "address": "address",
    "contact": "contact_number",
    "contactnumber": "contact_number",
    "contact number": "contact_number",
    "phone": "contact_number",
    "mobile": "contact_number",
    "email": "email",
    "e-mail": "email",
    "remark": "general_remark",
    "remarks": "general_remark",
    "generalremark": "general_remark",
    "general remark": "general_remark",
    "note": "general_remark",
    "notes": "general_remark",
}

INVALID_TEXT = ("undefined", "null")

_LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)")
_YEAR_FIRST = re.compile(r"^\d{4}[-/.]")


# ============================================================
# Cell value helpers
# ============================================================
def cell_text(value):
    """Trimmed text of a cell; integral floats lose their ``.0`` so roll numbers stay stable."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def parse_number(value):
    """Leading numeric part of a cell as float, 0 when there is none."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if math.isnan(value) else float(value)
    match = _LEADING_NUMBER.match(str(value))
    return float(match.group(0)) if match else 0.0


def parse_rank(value):
    return int(parse_number(value))


def parse_max_marks(value):
    marks = int(parse_number(value))
    return marks or DEFAULT_MAX_MARKS


def parse_test_date(value):
    """Parse a test date cell (day-first for text); unparsable values fall back to today."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = cell_text(value)
    if text:
        parsed = pd.to_datetime(text, dayfirst=not _YEAR_FIRST.match(text), errors="coerce")
        if not pd.isna(parsed):
            return parsed.date()
        logger.warning(f"[EXCEL IMPORT] Could not parse test date '{text}', using today")
    return date.today()


# ============================================================
# 1. Test metadata
# ============================================================
def _classify_label(label):
    if "date" in label:
        return "test_date"
    if "mark" in label or "max" in label:
        return "max_marks"
    if "name" in label or "test" in label:
        return "test_name"
    return None


def extract_test_metadata(grid):
    """Read test name / date / max marks from cells I1-I6 (labels inline or in H1-H6).

    Returns ``{"test_name", "test_date", "max_marks"}``; name and date are
    ``None`` when not found, max marks defaults to 300.
    """
    found = {}

    # Pass 1: "Label: value" strings in column I, positional fallback for rows 1 and 2
    for row in METADATA_ROWS:
        raw = grid.cell_at(row, METADATA_VALUE_COLUMN)
        if isinstance(raw, (datetime, date)):
            found["test_date"] = raw
            continue
        value = cell_text(raw)
        if not value:
            continue
        kind = None
        if ":" in value:
            label, _, data = value.partition(":")
            data = data.strip()
            kind = _classify_label(label.strip().lower())
        if kind == "max_marks":
            found["max_marks"] = parse_max_marks(data or value)
        elif kind:
            found[kind] = data or value
        elif row == 1 and "test_name" not in found:
            found["test_name"] = value
        elif row == 2 and "test_date" not in found:
            found["test_date"] = value

    # Pass 2: explicit labels in column H win over anything parsed above
    for row in METADATA_ROWS:
        label = cell_text(grid.cell_at(row, METADATA_LABEL_COLUMN)).lower()
        raw = grid.cell_at(row, METADATA_VALUE_COLUMN)
        if not label or raw is None:
            continue
        kind = _classify_label(label)
        if kind == "test_name":
            found["test_name"] = cell_text(raw)
        elif kind == "test_date":
            found["test_date"] = raw
        elif kind == "max_marks":
            found["max_marks"] = parse_max_marks(raw)

    test_date = found.get("test_date")
    return {
        "test_name": found.get("test_name") or None,
        "test_date": parse_test_date(test_date) if test_date not in (None, "") else None,
        "max_marks": found.get("max_marks", DEFAULT_MAX_MARKS),
    }


def find_or_create_exam(name, test_date, max_marks=DEFAULT_MAX_MARKS):
    """Return the exam with this name and date, creating it if needed. ``(exam, created)``."""
    exam = Exam.query.filter_by(name=name, date=test_date).first()
    if exam:
        logger.info(f"[EXCEL IMPORT] Using existing test: {name} ({test_date.isoformat()})")
        return exam, False

    exam = Exam(name=name, date=test_date, max_marks=max_marks or DEFAULT_MAX_MARKS)
    db.session.add(exam)
    db.session.commit()
    logger.info(f"[EXCEL IMPORT] Created new test: {name} ({test_date.isoformat()})")
    return exam, True


# ============================================================
# 2. Header row
# ============================================================
def locate_header_row(grid):
    """Return the 1-based header row.

    A literal roll-number label in column A of rows 1-20 wins. Otherwise row 8
    is used. The canonical-name count on row 8 is only logged, to tell a
    confirmed header from a blind default; it never changes the result.
    """
    for row in HEADER_SCAN_ROWS:
        if cell_text(grid.cell_at(row, 1)).lower() in HEADER_LABELS:
            logger.info(f"[EXCEL IMPORT] Header row {row} found by roll-number label")
            return row

    canonical = {c.lower() for c in CANONICAL_COLUMNS}
    matches = sum(
        1 for value in grid.row_values(DEFAULT_HEADER_ROW)
        if cell_text(value).lower() in canonical
    )
    if matches >= HEADER_MIN_CANONICAL_MATCHES:
        logger.info(f"[EXCEL IMPORT] Header row {DEFAULT_HEADER_ROW} confirmed by {matches} canonical columns")
    else:
        logger.info(f"[EXCEL IMPORT] No header detected, defaulting to row {DEFAULT_HEADER_ROW}")
    return DEFAULT_HEADER_ROW


def read_header(grid, header_row):
    """``{column index: header text}`` for the non-empty cells of the header row."""
    header = {}
    for col, value in enumerate(grid.row_values(header_row), start=1):
        text = cell_text(value)
        if text:
            header[col] = text
    return header


def read_data_rows(grid, header_row, header):
    """Rows below the header down to the sheet's last row, as ``{header text: value}``.

    Rows with no value under any header are left out.
    """
    rows = []
    for row in range(header_row + 1, grid.max_row + 1):
        values = {}
        for col, name in header.items():
            value = grid.cell_at(row, col)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            values[name] = value
        if values:
            rows.append(values)
    return rows


# ============================================================
# 3. Column mapping
# ============================================================
class ColumnMap:
    """Canonical column -> actual header text, plus the optional profile columns."""

    def __init__(self, field_map, profile_columns):
        self.field_map = field_map
        self.profile_columns = profile_columns

    def value(self, row, canonical):
        return row.get(self.field_map.get(canonical, canonical))

    def text(self, row, canonical):
        return cell_text(self.value(row, canonical))

    def number(self, row, canonical):
        return parse_number(self.value(row, canonical))


def _is_result_column(lowered):
    return lowered in RESULT_COLUMN_NAMES or any(marker in lowered for marker in RESULT_COLUMN_MARKERS)


def map_columns(discovered):
    """Match discovered headers to ``CANONICAL_COLUMNS``; raise ``MissingColumnsError`` on gaps."""
    discovered = [d.strip() for d in discovered if d and d.strip()]

    field_map = {}
    missing = []
    for canonical in CANONICAL_COLUMNS:
        if canonical in discovered:
            field_map[canonical] = canonical
            continue
        actual = next((d for d in discovered if d.lower() == canonical.lower()), None)
        if actual is None:
            missing.append(canonical)
            field_map[canonical] = canonical
        else:
            field_map[canonical] = actual

    if missing:
        logger.error(f"[EXCEL IMPORT] Missing required columns: {missing}")
        raise MissingColumnsError(missing, discovered)

    consumed = set(field_map.values())
    profile_columns = {}
    for column in discovered:
        if column in consumed:
            continue
        lowered = column.lower()
        if _is_result_column(lowered):
            continue
        mapped = STUDENT_FIELD_SYNONYMS.get(lowered)
        if mapped:
            profile_columns[column] = mapped

    if profile_columns:
        logger.info(f"[EXCEL IMPORT] Student profile columns: {profile_columns}")
    return ColumnMap(field_map, profile_columns)


# ============================================================
# 4. Row outcomes and summary
# ============================================================
@dataclass
class RowImported:
    row_number: int
    student_id: int
    student_created: bool
    student_updated: bool
    result_created: bool


@dataclass
class RowSkipped:
    row_number: int
    reason: str

    @property
    def message(self):
        return f"Row {self.row_number}: {self.reason}"


@dataclass
class ImportSummary:
    processed: int = 0
    skipped: int = 0
    errors: list = field(default_factory=list)
    students_created: int = 0
    students_updated: int = 0
    test_results_created: int = 0
    test_results_updated: int = 0
    test: dict = None

    def record(self, outcome):
        if isinstance(outcome, RowSkipped):
            self.skipped += 1
            self.errors.append(outcome.message)
            return
        self.processed += 1
        if outcome.student_created:
            self.students_created += 1
        elif outcome.student_updated:
            self.students_updated += 1
        if outcome.result_created:
            self.test_results_created += 1
        else:
            self.test_results_updated += 1

    def to_dict(self):
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "students_created": self.students_created,
            "students_updated": self.students_updated,
            "test_results_created": self.test_results_created,
            "test_results_updated": self.test_results_updated,
            "test": self.test,
        }


# ============================================================
# 5. Row validation
# ============================================================
def _is_missing(text):
    return not text or text.lower() in INVALID_TEXT


def validate_row(row, columns, row_number):
    """Return the student data for a row, or a ``RowSkipped`` when StuID or Name is unusable."""
    roll_number = columns.text(row, "StuID")
    name = columns.text(row, "Name")

    if _is_missing(roll_number):
        return RowSkipped(row_number, "StuID is missing or invalid")
    if _is_missing(name):
        return RowSkipped(row_number, f"Name is missing for StuID {roll_number}")

    student_data = {
        "roll_number": roll_number,
        "name": name,
        "batch": columns.text(row, "Batch"),
    }
    for column, mapped in columns.profile_columns.items():
        value = cell_text(row.get(column))
        if value and mapped not in student_data:
            student_data[mapped] = value
    return student_data


# ============================================================
# 6. Student reconciliation
# ============================================================
def find_student_by_roll(roll_number):
    return Student.query.filter_by(roll_number=roll_number).first()


def merge_student(student, student_data):
    """Apply non-empty, changed values; the general remark is appended, never replaced.

    Returns True when anything changed. Does not commit.
    """
    updated = False
    for attr in ("name", "batch") + PROFILE_FIELDS:
        value = student_data.get(attr)
        if value and getattr(student, attr) != value:
            setattr(student, attr, value)
            updated = True
    if student.append_remark(student_data.get("general_remark")):
        updated = True
    return updated


def reconcile_student(student_data):
    """Create or merge the student for this roll number. Returns ``(student, created, updated)``."""
    roll_number = student_data["roll_number"]
    student = find_student_by_roll(roll_number)

    if student is None:
        candidate = Student(
            roll_number=roll_number,
            name=student_data["name"],
            batch=student_data.get("batch") or "Unknown",
            general_remark=student_data.get("general_remark", ""),
            source_type="excel",
            **{attr: student_data.get(attr, "") for attr in PROFILE_FIELDS},
        )
        student, created = insert_or_get(Student, {"roll_number": roll_number}, candidate)
        if created:
            logger.info(f"[EXCEL IMPORT] Created new student: {student.name} (Roll: {roll_number})")
            return student, True, False
        logger.info(f"[EXCEL IMPORT] Student with Roll {roll_number} was created concurrently, updating it")

    updated = merge_student(student, student_data)
    if updated:
        db.session.commit()
        logger.info(f"[EXCEL IMPORT] Updated existing student: {student.name} (Roll: {roll_number})")
    return student, False, updated


# ============================================================
# 7. Result reconciliation
# ============================================================
def apply_scores(result, row, columns):
    """Overwrite totals and per-subject numbers from a sheet row. Annotation lists are left alone."""
    result.total_correct = columns.number(row, "Total-R")
    result.total_wrong = columns.number(row, "Total-W")
    result.total_unattempted = columns.number(row, "Total-U")
    result.total_score = columns.number(row, "Total-S")
    result.percentage = columns.number(row, "%age")
    result.rank = parse_rank(columns.value(row, "Rank"))

    for subject, prefix in SUBJECT_COLUMN_PREFIXES.items():
        result.set_subject_scores(
            subject,
            right=columns.number(row, f"{prefix}-R"),
            wrong=columns.number(row, f"{prefix}-W"),
            unattempted=columns.number(row, f"{prefix}-U"),
            score=columns.number(row, f"{prefix}-T"),
        )
        for kind in ("unattempted", "negative"):
            if getattr(result, f"{subject}_{kind}_questions") is None:
                result.set_annotations(subject, kind, [])


def reconcile_result(student_id, exam_id, row, columns):
    """Create or update the result for ``(student_id, exam_id)``. Returns ``(result, created)``."""
    result = ExamResult.query.filter_by(student_id=student_id, exam_id=exam_id).first()

    if result is None:
        candidate = ExamResult(student_id=student_id, exam_id=exam_id, remarks="")
        for subject in RESULT_SUBJECTS:
            candidate.set_annotations(subject, "unattempted", [])
            candidate.set_annotations(subject, "negative", [])
        apply_scores(candidate, row, columns)
        result, created = insert_or_get(
            ExamResult, {"student_id": student_id, "exam_id": exam_id}, candidate
        )
        if created:
            return result, True

    apply_scores(result, row, columns)
    db.session.commit()
    return result, False


# ============================================================
# 8. Pipeline
# ============================================================
def resolve_exam(grid, exam_id=None):
    """Check the exam for this import without writing anything.

    Returns ``(exam, metadata)``: the stored exam when ``exam_id`` is given,
    otherwise ``None`` and the metadata read from the sheet.
    """
    if exam_id is not None:
        exam = db.session.get(Exam, exam_id)
        if exam is None:
            raise TestNotFoundError(exam_id)
        return exam, None

    metadata = extract_test_metadata(grid)
    logger.info(f"[EXCEL IMPORT] Test info from Excel: {metadata}")
    if not metadata["test_name"]:
        raise MissingTestMetadataError()
    return None, metadata


def process_row(row, columns, exam, row_number):
    """Validate and reconcile one data row; every failure comes back as ``RowSkipped``."""
    student_data = validate_row(row, columns, row_number)
    if isinstance(student_data, RowSkipped):
        return student_data

    try:
        student, student_created, student_updated = reconcile_student(student_data)
        _, result_created = reconcile_result(student.id, exam.id, row, columns)
    except Exception as e:
        db.session.rollback()
        logger.exception(f"[EXCEL IMPORT] Row {row_number} failed: {e}")
        return RowSkipped(row_number, str(e))

    return RowImported(
        row_number=row_number,
        student_id=student.id,
        student_created=student_created,
        student_updated=student_updated,
        result_created=result_created,
    )


def import_results_grid(grid, exam_id=None):
    """Run the full import over an in-memory grid and return an ``ImportSummary``."""
    # All fatal checks run before the first write
    exam, metadata = resolve_exam(grid, exam_id)

    header_row = locate_header_row(grid)
    header = read_header(grid, header_row)
    rows = read_data_rows(grid, header_row, header)
    if not rows:
        raise EmptySheetError()
    columns = map_columns(list(header.values()))

    if exam is None:
        exam, _ = find_or_create_exam(
            metadata["test_name"],
            metadata["test_date"] or date.today(),
            metadata["max_marks"],
        )
    logger.info(f"[EXCEL IMPORT] Processing {len(rows)} data rows for test {exam.name} (header row {header_row})")

    summary = ImportSummary(test=exam.to_dict())
    touched_students = set()
    for index, row in enumerate(rows):
        row_number = header_row + 1 + index + 1
        outcome = process_row(row, columns, exam, row_number)
        summary.record(outcome)
        if isinstance(outcome, RowImported):
            touched_students.add(outcome.student_id)

    logger.info(
        f"[EXCEL IMPORT] Done: processed={summary.processed} skipped={summary.skipped} "
        f"students_created={summary.students_created} students_updated={summary.students_updated} "
        f"results_created={summary.test_results_created} results_updated={summary.test_results_updated}"
    )

    schedule_topic_status_refresh(touched_students)
    return summary


def import_results_workbook(path, exam_id=None):
    """Import the first sheet of the workbook at ``path``. See ``import_results_grid``."""
    logger.info(f"[EXCEL IMPORT] Starting - file={path}, test_id={exam_id}")
    grid = CellGrid.from_file(path)
    return import_results_grid(grid, exam_id=exam_id)
