from datetime import date

import pytest

from models.exam_model import Exam, ExamResult
from models.student_model import Student, db
from utils.cell_grid import CellGrid
from utils.excel_import import CANONICAL_COLUMNS, import_results_grid, import_results_workbook
from utils.import_errors import EmptySheetError, MissingColumnsError, TestNotFoundError

from conftest import result_row, sheet_rows

METADATA = [(None, "Test Name: Mock JEE 3"), (None, "15/03/2024")]


def grid_of(**kwargs):
    kwargs.setdefault("metadata", METADATA)
    return CellGrid.from_rows(sheet_rows(**kwargs))


def test_import_creates_exam_students_and_results(app):
    grid = grid_of(rows=[result_row("101", "Asha"), result_row("102", "Ravi", rank=2)])

    summary = import_results_grid(grid).to_dict()

    assert summary["processed"] == 2
    assert summary["skipped"] == 0
    assert summary["errors"] == []
    assert summary["students_created"] == 2
    assert summary["test_results_created"] == 2
    assert summary["test"]["name"] == "Mock JEE 3"
    assert summary["test"]["date"] == "2024-03-15"
    assert summary["test"]["max_marks"] == 300
    assert Exam.query.count() == 1
    assert ExamResult.query.count() == 2


def test_reimport_is_idempotent(app):
    rows = [result_row("101", "Asha"), result_row("102", "Ravi", rank=2)]
    import_results_grid(grid_of(rows=rows))

    second = import_results_grid(grid_of(rows=rows)).to_dict()

    assert second["processed"] == 2
    assert second["students_created"] == 0
    assert second["students_updated"] == 0
    assert second["test_results_created"] == 0
    assert second["test_results_updated"] == 2
    assert Student.query.count() == 2
    assert ExamResult.query.count() == 2
    assert Exam.query.count() == 1


def test_bad_rows_are_reported_with_sheet_row_numbers(app):
    grid = grid_of(rows=[
        result_row("101", "Asha"),
        result_row("102", "Ravi"),
        result_row(None, "Nobody"),
        result_row("104", None),
    ])

    summary = import_results_grid(grid).to_dict()

    assert summary["processed"] == 2
    assert summary["skipped"] == 2
    assert summary["errors"] == [
        "Row 12: StuID is missing or invalid",
        "Row 13: Name is missing for StuID 104",
    ]


def test_import_into_existing_exam_by_id(app):
    exam = Exam(name="Chosen", date=date(2024, 1, 1))
    db.session.add(exam)
    db.session.commit()

    summary = import_results_grid(grid_of(metadata=[], rows=[result_row("101", "Asha")]), exam_id=exam.id)

    assert summary.test["id"] == exam.id
    assert Exam.query.count() == 1
    assert ExamResult.query.one().exam_id == exam.id


def test_unknown_exam_id_aborts_before_writing(app):
    with pytest.raises(TestNotFoundError):
        import_results_grid(grid_of(rows=[result_row("101", "Asha")]), exam_id=42)
    assert Student.query.count() == 0


def test_missing_columns_abort_before_writing(app):
    header = [c for c in CANONICAL_COLUMNS if c != "Rank"]
    with pytest.raises(MissingColumnsError):
        import_results_grid(grid_of(header=header, rows=[result_row("101", "Asha")[:-1]]))
    assert Exam.query.count() == 0
    assert Student.query.count() == 0


def test_sheet_without_data_rows_is_rejected(app):
    with pytest.raises(EmptySheetError) as exc:
        import_results_grid(grid_of(rows=[]))
    assert exc.value.message == "Excel file is empty or no data rows found after header"
    assert Exam.query.count() == 0


def test_profile_columns_and_remarks_flow_into_students(app):
    header = CANONICAL_COLUMNS + ["Parent Name", "Remarks"]
    import_results_grid(grid_of(header=header, rows=[result_row("101", "Asha", extra=("Mr. K", "Weak in optics"))]))
    import_results_grid(grid_of(header=header, rows=[result_row("101", "Asha", extra=("Mr. K", "Improving"))]))

    student = Student.query.filter_by(roll_number="101").one()
    assert student.parent_name == "Mr. K"
    assert student.general_remark == "Weak in optics\nImproving"


def test_header_found_by_label_above_row_8(app):
    grid = grid_of(metadata=[(None, "Unit Test")], header_row=5, rows=[result_row("101", "Asha")])

    summary = import_results_grid(grid)

    assert summary.processed == 1
    assert Student.query.one().roll_number == "101"


def test_import_results_workbook_reads_xlsx(app, make_workbook):
    path = make_workbook(metadata=METADATA, rows=[result_row(101, "Asha"), result_row(102, "Ravi")])

    summary = import_results_workbook(path)

    assert summary.processed == 2
    assert {s.roll_number for s in Student.query.all()} == {"101", "102"}
