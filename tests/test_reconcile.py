from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

import utils.excel_import as excel_import
from db_utils import insert_or_get
from models.exam_model import Exam, ExamResult
from models.student_model import Student, db
from utils.excel_import import (
    CANONICAL_COLUMNS,
    RowSkipped,
    map_columns,
    reconcile_result,
    reconcile_student,
    validate_row,
)

from conftest import result_row


@pytest.fixture
def columns():
    return map_columns(CANONICAL_COLUMNS + ["Email", "Remarks"])


def as_row(values, header=None):
    header = header or CANONICAL_COLUMNS + ["Email", "Remarks"]
    return {h: v for h, v in zip(header, values) if v is not None}


# -------------------------
# Remarks
# -------------------------
def test_append_remark_adds_new_line():
    student = Student(general_remark="A")
    assert student.append_remark("B") is True
    assert student.general_remark == "A\nB"


def test_append_remark_on_empty_sets_value():
    student = Student(general_remark="")
    assert student.append_remark("  B ") is True
    assert student.general_remark == "B"


def test_append_remark_ignores_blank_and_repeats():
    student = Student(general_remark="A\nB")
    assert student.append_remark("") is False
    assert student.append_remark("B") is False
    assert student.general_remark == "A\nB"


# -------------------------
# Row validation
# -------------------------
def test_validate_row_rejects_missing_or_placeholder_roll(columns):
    for roll in (None, "undefined", "null"):
        outcome = validate_row(as_row(result_row(roll, "Asha")), columns, 12)
        assert isinstance(outcome, RowSkipped)
        assert outcome.message == "Row 12: StuID is missing or invalid"


def test_validate_row_rejects_missing_name(columns):
    outcome = validate_row(as_row(result_row("101", "")), columns, 9)
    assert outcome.message == "Row 9: Name is missing for StuID 101"


def test_validate_row_collects_profile_fields(columns):
    data = validate_row(as_row(result_row(101.0, "Asha", extra=("asha@example.com", "Needs practice"))), columns, 9)
    assert data == {
        "roll_number": "101",
        "name": "Asha",
        "batch": "JEE-A",
        "email": "asha@example.com",
        "general_remark": "Needs practice",
    }


# -------------------------
# Students
# -------------------------
def test_reconcile_student_creates_then_merges(app):
    student, created, updated = reconcile_student({"roll_number": "101", "name": "Asha", "batch": "", "general_remark": "A"})
    assert created and not updated
    assert student.batch == "Unknown"
    assert student.source_type == "excel"

    student, created, updated = reconcile_student({
        "roll_number": "101", "name": "Asha K", "batch": "JEE-B", "general_remark": "B",
    })
    assert not created and updated
    assert student.name == "Asha K"
    assert student.batch == "JEE-B"
    assert student.general_remark == "A\nB"
    assert Student.query.count() == 1


def test_reconcile_student_keeps_values_for_blank_cells(app):
    reconcile_student({"roll_number": "101", "name": "Asha", "batch": "JEE-A", "email": "a@x.com"})

    student, created, updated = reconcile_student({"roll_number": "101", "name": "Asha", "batch": ""})

    assert not created and not updated
    assert student.batch == "JEE-A"
    assert student.email == "a@x.com"


def test_reconcile_student_recovers_from_concurrent_insert(app, monkeypatch):
    db.session.add(Student(roll_number="101", name="Asha", batch="JEE-A"))
    db.session.commit()
    # Simulate the lookup racing another writer: it sees no student, the insert then collides
    monkeypatch.setattr(excel_import, "find_student_by_roll", lambda roll_number: None)

    student, created, updated = reconcile_student({"roll_number": "101", "name": "Asha R", "batch": "JEE-A"})

    assert created is False
    assert updated is True
    assert student.name == "Asha R"
    assert Student.query.count() == 1


def test_insert_or_get_reraises_unrelated_conflicts(app):
    db.session.add(Student(roll_number="101", name="Asha", batch="JEE-A"))
    db.session.commit()

    with pytest.raises(IntegrityError):
        insert_or_get(Student, {"roll_number": "999"}, Student(roll_number="101", name="Copy", batch="X"))


# -------------------------
# Results
# -------------------------
def test_reconcile_result_replaces_numbers_and_keeps_annotations(app, columns):
    student = Student(roll_number="101", name="Asha", batch="JEE-A")
    exam = Exam(name="Mock", date=date(2024, 3, 15))
    db.session.add_all([student, exam])
    db.session.commit()

    result, created = reconcile_result(student.id, exam.id, as_row(result_row("101", "Asha", score=120)), columns)
    assert created
    assert result.total_score == 120
    assert result.chemistry_negative_questions == []

    result.set_annotations("chemistry", "negative", [{"question_number": 5, "subtopic": "Alkenes"}])
    result.set_annotations("maths", "unattempted", [{"question_number": 61, "subtopic": "Integration"}])
    result.remarks = "checked"
    db.session.commit()

    new_numbers = {"physics": (14, 3, 13), "chemistry": (9, 6, 15), "maths": (20, 1, 9)}
    row = result_row("101", "Asha", score=150, rank=2, subjects=new_numbers)
    result, created = reconcile_result(student.id, exam.id, as_row(row), columns)

    assert not created
    for subject, (right, wrong, unattempted) in new_numbers.items():
        assert result.subject_dict(subject)["right"] == right
        assert result.subject_dict(subject)["wrong"] == wrong
        assert result.subject_dict(subject)["unattempted"] == unattempted
        assert result.subject_dict(subject)["score"] == 50
    assert (result.total_correct, result.total_wrong, result.total_unattempted) == (43, 10, 37)
    assert result.total_score == 150
    assert result.percentage == 50
    assert result.rank == 2
    assert result.chemistry_negative_questions == [{"question_number": 5, "subtopic": "Alkenes"}]
    assert result.maths_unattempted_questions == [{"question_number": 61, "subtopic": "Integration"}]
    assert result.physics_negative_questions == []
    assert result.remarks == "checked"
    assert ExamResult.query.count() == 1
