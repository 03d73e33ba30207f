from flask import Blueprint, request, jsonify
from datetime import datetime, date
import logging

from models.student_model import db, Student
from models.visit_model import Visit, DEFAULT_VISIT_TIME

logger = logging.getLogger(__name__)

visit_routes = Blueprint("visit_routes", __name__, url_prefix="/api/visits")

TEXT_FIELDS = ("assignment", "remarks")
FLAG_FIELDS = ("notified_24h", "notified_6h")


def _apply_visit_fields(visit, data):
    """Copy the fields present in ``data`` onto ``visit``; return an error message or None."""
    if "visit_date" in data:
        try:
            visit.visit_date = datetime.strptime(str(data["visit_date"]), "%Y-%m-%d").date()
        except ValueError:
            return "Visit date must be YYYY-MM-DD"
    if "visit_time" in data:
        try:
            parsed = datetime.strptime(str(data["visit_time"] or "").strip(), "%H:%M")
        except ValueError:
            return "Visit time must be HH:MM"
        visit.visit_time = parsed.strftime("%H:%M")
    for f in TEXT_FIELDS:
        if f in data:
            setattr(visit, f, str(data[f] or "").strip())
    for f in FLAG_FIELDS:
        if f in data:
            setattr(visit, f, bool(data[f]))
    return None


@visit_routes.route("/student/<int:student_id>", methods=["GET"])
def student_visits(student_id):
    """Visits of one student, newest first."""
    visits = (
        Visit.query.filter_by(student_id=student_id)
        .order_by(Visit.visit_date.desc(), Visit.visit_time.desc())
        .all()
    )
    return jsonify([v.to_dict() for v in visits])


@visit_routes.route("/<int:visit_id>", methods=["GET"])
def get_visit(visit_id):
    visit = db.get_or_404(Visit, visit_id, description="Visit not found")
    payload = visit.to_dict()
    payload["student"] = {
        "id": visit.student.id,
        "roll_number": visit.student.roll_number,
        "name": visit.student.name,
        "batch": visit.student.batch,
    }
    return jsonify(payload)


@visit_routes.route("", methods=["POST"])
def create_visit():
    data = request.get_json(silent=True) or {}
    try:
        student_id = int(data.get("student_id"))
    except (TypeError, ValueError):
        return jsonify({"success": False, "message": "student_id is required"}), 400
    if db.session.get(Student, student_id) is None:
        return jsonify({"success": False, "message": "Student not found"}), 400

    visit = Visit(
        student_id=student_id, visit_date=date.today(), visit_time=DEFAULT_VISIT_TIME,
        assignment="", remarks="", notified_24h=False, notified_6h=False,
    )
    error = _apply_visit_fields(visit, data)
    if error:
        return jsonify({"success": False, "message": error}), 400

    db.session.add(visit)
    db.session.commit()
    logger.info(f"[VISITS] Scheduled visit {visit.id} for student {student_id} on {visit.visit_date} {visit.visit_time}")
    return jsonify(visit.to_dict()), 201


@visit_routes.route("/<int:visit_id>", methods=["PUT"])
def update_visit(visit_id):
    visit = db.get_or_404(Visit, visit_id, description="Visit not found")
    data = request.get_json(silent=True) or {}
    error = _apply_visit_fields(visit, data)
    if error:
        db.session.rollback()
        return jsonify({"success": False, "message": error}), 400
    db.session.commit()
    return jsonify(visit.to_dict())


@visit_routes.route("/<int:visit_id>", methods=["DELETE"])
def delete_visit(visit_id):
    visit = db.get_or_404(Visit, visit_id, description="Visit not found")
    db.session.delete(visit)
    db.session.commit()
    logger.info(f"[VISITS] Deleted visit {visit_id}")
    return jsonify({"success": True, "message": "Visit deleted successfully"})
