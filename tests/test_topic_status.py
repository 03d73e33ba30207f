from datetime import date

import pytest

from models.exam_model import Exam, ExamResult
from models.student_model import Student, db
from models.syllabus_model import Syllabus
from models.topic_status_model import StudentTopicStatus
from utils.syllabus_seed import ensure_default_syllabus
from utils.topic_status import (
    build_subtopic_lookup,
    recompute_topic_status,
    schedule_topic_status_refresh,
)


@pytest.fixture
def student_with_result(app):
    ensure_default_syllabus()
    student = Student(roll_number="101", name="Asha", batch="JEE-A")
    exam = Exam(name="Mock", date=date(2024, 3, 15))
    db.session.add_all([student, exam])
    db.session.commit()
    result = ExamResult(student_id=student.id, exam_id=exam.id)
    result.set_annotations("chemistry", "negative", [
        {"question_number": 5, "subtopic": "Alkenes"},
        {"question_number": 9, "subtopic": " Alkenes "},
        {"question_number": 12, "subtopic": "SN1/SN2"},
    ])
    result.set_annotations("physics", "unattempted", [
        {"question_number": 3, "subtopic": "Heat Transfer"},
        {"question_number": 4, "subtopic": "Not In Syllabus"},
    ])
    db.session.add(result)
    db.session.commit()
    return student, result


def counts_for(student_id):
    return {
        (r.subject, r.topic_name, r.subtopic_name): (r.negative_count, r.unattempted_count)
        for r in StudentTopicStatus.query.filter_by(student_id=student_id).all()
    }


def test_lookup_keeps_first_topic_for_repeated_subtopic(app):
    syllabi = [Syllabus(subject="Chemistry", topics=[
        {"name": "Physical Chemistry", "subtopics": ["Thermodynamics"]},
        {"name": "Inorganic", "subtopics": ["Thermodynamics"]},
    ])]
    lookup = build_subtopic_lookup(syllabi)
    assert lookup[("Chemistry", "Thermodynamics")] == ("Physical Chemistry", "Thermodynamics")


def test_recompute_counts_annotations_per_subtopic(student_with_result):
    student, _ = student_with_result

    recompute_topic_status(student.id)

    assert counts_for(student.id) == {
        ("Chemistry", "Organic Chemistry", "Alkenes"): (2, 0),
        ("Chemistry", "Organic Chemistry", "SN1/SN2"): (1, 0),
        ("Physics", "Thermodynamics", "Heat Transfer"): (0, 1),
    }


def test_recompute_converges_after_annotation_removed(student_with_result):
    student, result = student_with_result
    recompute_topic_status(student.id)

    result.set_annotations("chemistry", "negative", [
        {"question_number": 5, "subtopic": "Alkenes"},
        {"question_number": 12, "subtopic": "SN1/SN2"},
    ])
    db.session.commit()
    recompute_topic_status(student.id)
    after = counts_for(student.id)
    recompute_topic_status(student.id)

    assert after[("Chemistry", "Organic Chemistry", "Alkenes")] == (1, 0)
    assert after[("Chemistry", "Organic Chemistry", "SN1/SN2")] == (1, 0)
    assert after[("Physics", "Thermodynamics", "Heat Transfer")] == (0, 1)
    assert counts_for(student.id) == after


def test_recompute_zeroes_rows_with_no_annotations_left(student_with_result):
    student, result = student_with_result
    row = StudentTopicStatus(student_id=student.id, subject="Mathematics", topic_name="Calculus",
                             subtopic_name="Integration", status="Bad", negative_count=7, unattempted_count=2)
    db.session.add(row)
    db.session.commit()

    recompute_topic_status(student.id)

    kept = StudentTopicStatus.query.filter_by(student_id=student.id, subtopic_name="Integration").one()
    assert (kept.negative_count, kept.unattempted_count) == (0, 0)
    assert kept.status == "Bad"


def test_schedule_runs_inline_in_sync_mode(student_with_result):
    student, _ = student_with_result

    assert schedule_topic_status_refresh([student.id]) is None
    assert counts_for(student.id)[("Chemistry", "Organic Chemistry", "Alkenes")] == (2, 0)


def test_schedule_detached_returns_thread(student_with_result):
    student, _ = student_with_result

    thread = schedule_topic_status_refresh([student.id], wait=False)
    thread.join(timeout=10)

    assert not thread.is_alive()
    db.session.expire_all()
    assert counts_for(student.id)[("Chemistry", "Organic Chemistry", "SN1/SN2")] == (1, 0)


def test_schedule_with_no_students_does_nothing(app):
    assert schedule_topic_status_refresh([]) is None
    assert schedule_topic_status_refresh([None]) is None
