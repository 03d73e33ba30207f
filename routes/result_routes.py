from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError
import logging

from models.student_model import db, Student
from models.exam_model import Exam, ExamResult, RESULT_SUBJECTS
from utils.topic_status import schedule_topic_status_refresh

logger = logging.getLogger(__name__)

result_routes = Blueprint("result_routes", __name__, url_prefix="/api/results")

TOTAL_FIELDS = ("total_correct", "total_wrong", "total_unattempted", "total_score", "percentage")
SUBJECT_NUMBER_FIELDS = ("right", "wrong", "unattempted", "score")


def _clean_annotations(entries):
    """Validate a list of ``{"question_number", "subtopic"}`` entries."""
    if not isinstance(entries, list):
        raise ValueError("Question lists must be arrays")
    cleaned = []
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("question_number") is None:
            raise ValueError("Each question needs a question_number")
        cleaned.append({
            "question_number": int(entry["question_number"]),
            "subtopic": str(entry.get("subtopic") or "").strip(),
        })
    return cleaned


def _apply_payload(result, data):
    """Copy totals, per-subject numbers, question lists and remarks present in ``data``."""
    totals = data.get("totals") or {}
    for f in TOTAL_FIELDS:
        if totals.get(f) is not None:
            setattr(result, f, float(totals[f]))
    if totals.get("rank") is not None:
        result.rank = int(totals["rank"])

    for subject in RESULT_SUBJECTS:
        block = data.get(subject)
        if not isinstance(block, dict):
            continue
        for f in SUBJECT_NUMBER_FIELDS:
            if block.get(f) is not None:
                setattr(result, f"{subject}_{f}", float(block[f]))
        if "unattempted_questions" in block:
            result.set_annotations(subject, "unattempted", _clean_annotations(block["unattempted_questions"]))
        if "negative_questions" in block:
            result.set_annotations(subject, "negative", _clean_annotations(block["negative_questions"]))

    if data.get("remarks") is not None:
        result.remarks = str(data["remarks"])


@result_routes.route("/student/<int:student_id>", methods=["GET"])
def student_results(student_id):
    db.get_or_404(Student, student_id, description="Student not found")
    rows = (
        db.session.query(ExamResult, Exam)
        .join(Exam, Exam.id == ExamResult.exam_id)
        .filter(ExamResult.student_id == student_id)
        .order_by(Exam.date.desc(), Exam.id.desc())
        .all()
    )
    results = []
    for result, exam in rows:
        item = result.to_dict()
        item["test"] = exam.to_dict()
        results.append(item)
    return jsonify(results)


@result_routes.route("/<int:result_id>", methods=["GET"])
def get_result(result_id):
    result = db.get_or_404(ExamResult, result_id, description="Result not found")
    item = result.to_dict()
    item["student"] = {
        "id": result.student.id,
        "roll_number": result.student.roll_number,
        "name": result.student.name,
        "batch": result.student.batch,
    }
    item["test"] = result.exam.to_dict()
    return jsonify(item)


@result_routes.route("", methods=["POST"])
def create_result():
    """Enter a result by hand."""
    data = request.get_json(silent=True) or {}
    try:
        student_id = int(data.get("student_id"))
        exam_id = int(data.get("exam_id"))
    except (TypeError, ValueError):
        return jsonify({"success": False, "message": "student_id and exam_id are required"}), 400
    if db.session.get(Student, student_id) is None or db.session.get(Exam, exam_id) is None:
        return jsonify({"success": False, "message": "Student or test not found"}), 404

    result = ExamResult(student_id=student_id, exam_id=exam_id, remarks="")
    for subject in RESULT_SUBJECTS:
        result.set_annotations(subject, "unattempted", [])
        result.set_annotations(subject, "negative", [])
    try:
        _apply_payload(result, data)
    except (TypeError, ValueError) as e:
        return jsonify({"success": False, "message": str(e)}), 400

    db.session.add(result)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "message": "Test result already exists for this student and test"}), 400

    schedule_topic_status_refresh([student_id])
    return jsonify(result.to_dict()), 201


@result_routes.route("/<int:result_id>", methods=["PUT"])
def update_result(result_id):
    """Edit numbers, question annotations (with subtopics) and remarks of a result."""
    result = db.get_or_404(ExamResult, result_id, description="Result not found")
    data = request.get_json(silent=True) or {}
    try:
        _apply_payload(result, data)
    except (TypeError, ValueError) as e:
        db.session.rollback()
        return jsonify({"success": False, "message": str(e)}), 400
    db.session.commit()

    schedule_topic_status_refresh([result.student_id])
    return jsonify(result.to_dict())
