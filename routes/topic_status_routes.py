from flask import Blueprint, request, jsonify
import logging

from models.student_model import db, Student
from models.syllabus_model import Syllabus
from models.topic_status_model import StudentTopicStatus, STATUS_VALUES
from utils.topic_status import refresh_topic_status

logger = logging.getLogger(__name__)

topic_status_routes = Blueprint("topic_status_routes", __name__, url_prefix="/api/topic-status")

MAX_BULK_STUDENTS = 200
FLAG_FIELDS = ("theory_completed", "solving_completed")


def _get_or_create_status(student_id, subject, topic_name, subtopic_name):
    row = StudentTopicStatus.query.filter_by(
        student_id=student_id, subject=subject, topic_name=topic_name, subtopic_name=subtopic_name,
    ).first()
    if row is None:
        row = StudentTopicStatus(
            student_id=student_id, subject=subject, topic_name=topic_name, subtopic_name=subtopic_name,
            negative_count=0, unattempted_count=0, theory_completed=False, solving_completed=False,
        )
        db.session.add(row)
    return row


@topic_status_routes.route("/student/<int:student_id>", methods=["GET"])
def student_topic_status(student_id):
    """All backlog rows of one student, with counts rebuilt first."""
    db.get_or_404(Student, student_id, description="Student not found")
    refresh_topic_status(student_id)
    rows = (
        StudentTopicStatus.query.filter_by(student_id=student_id)
        .order_by(StudentTopicStatus.subject, StudentTopicStatus.topic_name, StudentTopicStatus.subtopic_name)
        .all()
    )
    return jsonify({"success": True, "data": [r.to_dict() for r in rows]})


@topic_status_routes.route("/students/bulk", methods=["POST"])
def bulk_topic_status():
    data = request.get_json(silent=True) or {}
    student_ids = data.get("student_ids")
    if not isinstance(student_ids, list) or not student_ids:
        return jsonify({"success": False, "message": "student_ids must be a non-empty array"}), 400
    try:
        student_ids = [int(s) for s in student_ids[:MAX_BULK_STUDENTS]]
    except (TypeError, ValueError):
        return jsonify({"success": False, "message": "student_ids must be integers"}), 400

    known_ids = {sid for (sid,) in db.session.query(Student.id).filter(Student.id.in_(student_ids))}
    for sid in sorted(known_ids):
        refresh_topic_status(sid)

    rows = StudentTopicStatus.query.filter(StudentTopicStatus.student_id.in_(student_ids)).all()
    grouped = {str(sid): [] for sid in student_ids}
    for row in rows:
        grouped[str(row.student_id)].append(row.to_dict())
    return jsonify({"success": True, "data": grouped})


@topic_status_routes.route("/student/<int:student_id>", methods=["POST"])
def update_topic_status(student_id):
    """
    Set status and completion flags on a topic or subtopic.

    Without ``subtopic_name`` the change is written to the topic row and
    copied to every subtopic of that topic. Only fields present in the body
    change; ``status`` may be null to clear it. Counts are never touched here.
    """
    db.get_or_404(Student, student_id, description="Student not found")
    data = request.get_json(silent=True) or {}
    subject = data.get("subject")
    topic_name = data.get("topic_name")
    if not subject or not topic_name:
        return jsonify({"success": False, "message": "Subject and topic name are required"}), 400

    syllabus = Syllabus.query.filter_by(subject=subject).first()
    if syllabus is None:
        return jsonify({"success": False, "message": "Subject not found in syllabus"}), 404
    topic = syllabus.find_topic(topic_name)
    if topic is None:
        return jsonify({"success": False, "message": "Topic not found in syllabus"}), 404

    subtopic_name = (data.get("subtopic_name") or "").strip()
    if subtopic_name:
        match = [s for s in topic.get("subtopics") or [] if s.lower() == subtopic_name.lower()]
        if not match:
            return jsonify({"success": False, "message": "Subtopic not found in topic"}), 400
        subtopic_name = match[0]

    changes = {}
    if "status" in data:
        if data["status"] is not None and data["status"] not in STATUS_VALUES:
            return jsonify({"success": False, "message": f"Status must be one of {', '.join(STATUS_VALUES)} or null"}), 400
        changes["status"] = data["status"]
    for f in FLAG_FIELDS:
        if f in data:
            changes[f] = bool(data[f])

    row = _get_or_create_status(student_id, subject, topic_name, subtopic_name)
    for f, value in changes.items():
        setattr(row, f, value)

    if not subtopic_name and changes:
        for subtopic in topic.get("subtopics") or []:
            sub_row = _get_or_create_status(student_id, subject, topic_name, subtopic)
            for f, value in changes.items():
                setattr(sub_row, f, value)

    db.session.commit()
    logger.info(f"[TOPIC STATUS] Student {student_id} {subject}/{topic_name}/{subtopic_name or '*'} -> {changes}")
    return jsonify({"success": True, "data": row.to_dict()})
