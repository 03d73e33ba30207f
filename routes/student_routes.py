from flask import Blueprint, request, jsonify
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
import logging

from models.student_model import db, Student, PROFILE_FIELDS
from models.exam_model import ExamResult
from models.topic_status_model import StudentTopicStatus
from models.visit_model import Visit

logger = logging.getLogger(__name__)

student_routes = Blueprint("student_routes", __name__, url_prefix="/api/students")

EDITABLE_FIELDS = ("roll_number", "name", "batch", "general_remark") + PROFILE_FIELDS


def _related_counts(student_ids):
    return {
        "test_results": ExamResult.query.filter(ExamResult.student_id.in_(student_ids)).count(),
        "topic_statuses": StudentTopicStatus.query.filter(StudentTopicStatus.student_id.in_(student_ids)).count(),
        "visits": Visit.query.filter(Visit.student_id.in_(student_ids)).count(),
    }


def _delete_students(students):
    """Delete students together with their results, topic statuses and visits."""
    ids = [s.id for s in students]
    if not ids:
        return {"students": 0, "test_results": 0, "topic_statuses": 0, "visits": 0}
    counts = _related_counts(ids)
    for student in students:
        db.session.delete(student)
    db.session.commit()
    counts["students"] = len(ids)
    logger.info(f"[STUDENTS] Deleted {counts}")
    return counts


@student_routes.route("", methods=["GET"])
def list_students():
    """Search by name/roll/batch/email, filter by ``source_type`` and paginate."""
    try:
        page = max(1, int(request.args.get("page", 1)))
    except ValueError:
        page = 1
    try:
        limit = max(1, int(request.args.get("limit", 20)))
    except ValueError:
        limit = 20

    query = Student.query
    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            Student.name.ilike(like),
            Student.roll_number.ilike(like),
            Student.batch.ilike(like),
            Student.email.ilike(like),
        ))

    source_type = request.args.get("source_type")
    if source_type in ("excel", "manual"):
        query = query.filter(Student.source_type == source_type)

    total = query.count()
    students = query.order_by(Student.roll_number.asc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify({
        "students": [s.to_dict() for s in students],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
    })


@student_routes.route("/<int:student_id>", methods=["GET"])
def get_student(student_id):
    student = db.get_or_404(Student, student_id, description="Student not found")
    return jsonify(student.to_dict())


@student_routes.route("", methods=["POST"])
def create_student():
    data = request.get_json(silent=True) or {}
    values = {f: (str(data.get(f) or "")).strip() for f in EDITABLE_FIELDS}
    if not values["roll_number"] or not values["name"] or not values["batch"]:
        return jsonify({"success": False, "message": "Roll number, name and batch are required"}), 400

    source_type = data.get("source_type") if data.get("source_type") in ("excel", "manual") else "manual"
    student = Student(source_type=source_type, **values)
    db.session.add(student)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "message": "Roll number already exists"}), 400
    logger.info(f"[STUDENTS] Created student {student.roll_number} ({source_type})")
    return jsonify(student.to_dict()), 201


@student_routes.route("/<int:student_id>", methods=["PUT"])
def update_student(student_id):
    student = db.get_or_404(Student, student_id, description="Student not found")
    data = request.get_json(silent=True) or {}
    for f in EDITABLE_FIELDS:
        if f in data and data[f] is not None:
            setattr(student, f, str(data[f]).strip())
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "message": "Roll number already exists"}), 400
    return jsonify(student.to_dict())


@student_routes.route("/<int:student_id>", methods=["DELETE"])
def delete_student(student_id):
    student = db.get_or_404(Student, student_id, description="Student not found")
    deleted = _delete_students([student])
    return jsonify({"success": True, "message": "Student and all related data deleted successfully", "deleted": deleted})


@student_routes.route("/batch/<path:batch_name>", methods=["DELETE"])
def delete_batch(batch_name):
    students = Student.query.filter_by(batch=batch_name).all()
    if not students:
        return jsonify({"success": False, "message": f"No students found in batch {batch_name}"}), 404
    deleted = _delete_students(students)
    return jsonify({"success": True, "message": f"Batch {batch_name} deleted", "deleted": deleted})


@student_routes.route("/batch-delete", methods=["POST"])
def batch_delete_students():
    data = request.get_json(silent=True) or {}
    student_ids = data.get("student_ids")
    if not isinstance(student_ids, list) or not student_ids:
        return jsonify({"success": False, "message": "student_ids array is required"}), 400
    try:
        student_ids = {int(s) for s in student_ids}
    except (TypeError, ValueError):
        return jsonify({"success": False, "message": "Some student IDs are invalid"}), 400

    students = Student.query.filter(Student.id.in_(student_ids)).all()
    if len(students) != len(student_ids):
        return jsonify({"success": False, "message": "Some student IDs are invalid"}), 400
    deleted = _delete_students(students)
    return jsonify({
        "success": True,
        "message": f"Successfully deleted {deleted['students']} student(s) and all related data",
        "deleted_count": deleted["students"],
        "deleted": deleted,
    })


@student_routes.route("", methods=["DELETE"])
def delete_all_students():
    deleted = _delete_students(Student.query.all())
    return jsonify({"success": True, "message": "All students and related data deleted successfully", "deleted": deleted})
