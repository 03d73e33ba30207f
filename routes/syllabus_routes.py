from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError
import logging

from models.student_model import db
from models.syllabus_model import Syllabus, SUBJECTS
from utils.syllabus_seed import ensure_default_syllabus, clear_syllabus

logger = logging.getLogger(__name__)

syllabus_routes = Blueprint("syllabus_routes", __name__, url_prefix="/api/syllabus")


def _clean_topics(topics):
    if not isinstance(topics, list):
        raise ValueError("topics must be an array")
    cleaned = []
    for topic in topics:
        name = str((topic or {}).get("name") or "").strip()
        if not name:
            raise ValueError("Topic name is required")
        subtopics = [str(s).strip() for s in (topic.get("subtopics") or []) if str(s).strip()]
        cleaned.append({"name": name, "subtopics": subtopics})
    return cleaned


def _error(message, status=400):
    return jsonify({"success": False, "message": message}), status


@syllabus_routes.route("", methods=["GET"])
def list_syllabus():
    ensure_default_syllabus()
    syllabi = Syllabus.query.order_by(Syllabus.order.asc(), Syllabus.id.asc()).all()
    return jsonify([s.to_dict() for s in syllabi])


@syllabus_routes.route("/subject/<subject>", methods=["GET"])
def get_subject(subject):
    syllabus = Syllabus.query.filter_by(subject=subject).first()
    if not syllabus:
        return _error("Subject not found", 404)
    return jsonify(syllabus.to_dict())


@syllabus_routes.route("", methods=["POST"])
def create_subject():
    data = request.get_json(silent=True) or {}
    subject = data.get("subject")
    if subject not in SUBJECTS or "topics" not in data:
        return _error("Subject and topics array are required")
    try:
        topics = _clean_topics(data["topics"])
    except ValueError as e:
        return _error(str(e))

    syllabus = Syllabus(subject=subject, topics=topics, order=int(data.get("order") or 0))
    db.session.add(syllabus)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return _error("Subject already exists")
    return jsonify(syllabus.to_dict()), 201


@syllabus_routes.route("/<int:syllabus_id>", methods=["PUT"])
def update_subject(syllabus_id):
    syllabus = db.get_or_404(Syllabus, syllabus_id, description="Syllabus not found")
    data = request.get_json(silent=True) or {}
    try:
        if data.get("subject"):
            if data["subject"] not in SUBJECTS:
                return _error("Unknown subject")
            syllabus.subject = data["subject"]
        if "topics" in data:
            syllabus.topics = _clean_topics(data["topics"])
        if data.get("order") is not None:
            syllabus.order = int(data["order"])
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return _error(str(e))
    except IntegrityError:
        db.session.rollback()
        return _error("Subject already exists")
    return jsonify(syllabus.to_dict())


@syllabus_routes.route("/<int:syllabus_id>/topics", methods=["POST"])
def add_topic(syllabus_id):
    syllabus = db.get_or_404(Syllabus, syllabus_id, description="Syllabus not found")
    data = request.get_json(silent=True) or {}
    name = str(data.get("name") or "").strip()
    if not name:
        return _error("Topic name is required")
    if any(t["name"].lower() == name.lower() for t in syllabus.topics or []):
        return _error("Topic already exists")

    subtopics = [str(s).strip() for s in (data.get("subtopics") or []) if str(s).strip()]
    syllabus.topics = list(syllabus.topics or []) + [{"name": name, "subtopics": subtopics}]
    db.session.commit()
    return jsonify(syllabus.to_dict())


@syllabus_routes.route("/<int:syllabus_id>/topics/<topic_name>/subtopics", methods=["POST"])
def add_subtopic(syllabus_id, topic_name):
    syllabus = db.get_or_404(Syllabus, syllabus_id, description="Syllabus not found")
    data = request.get_json(silent=True) or {}
    subtopic = str(data.get("subtopic") or "").strip()
    if not subtopic:
        return _error("Subtopic is required")
    topic = syllabus.find_topic(topic_name)
    if topic is None:
        return _error("Topic not found", 404)
    if subtopic in topic["subtopics"]:
        return _error("Subtopic already exists")

    syllabus.topics = [
        dict(t, subtopics=t["subtopics"] + [subtopic]) if t["name"] == topic_name else t
        for t in syllabus.topics
    ]
    db.session.commit()
    return jsonify(syllabus.to_dict())


@syllabus_routes.route("/<int:syllabus_id>/topics/<topic_name>/subtopics/<path:subtopic>", methods=["DELETE"])
def remove_subtopic(syllabus_id, topic_name, subtopic):
    syllabus = db.get_or_404(Syllabus, syllabus_id, description="Syllabus not found")
    if syllabus.find_topic(topic_name) is None:
        return _error("Topic not found", 404)
    syllabus.topics = [
        dict(t, subtopics=[s for s in t["subtopics"] if s != subtopic]) if t["name"] == topic_name else t
        for t in syllabus.topics
    ]
    db.session.commit()
    return jsonify(syllabus.to_dict())


@syllabus_routes.route("/<int:syllabus_id>/topics/<topic_name>", methods=["DELETE"])
def delete_topic(syllabus_id, topic_name):
    syllabus = db.get_or_404(Syllabus, syllabus_id, description="Syllabus not found")
    if syllabus.find_topic(topic_name) is None:
        return _error("Topic not found", 404)
    syllabus.topics = [t for t in syllabus.topics if t["name"] != topic_name]
    db.session.commit()
    return jsonify(syllabus.to_dict())


@syllabus_routes.route("", methods=["DELETE"])
def delete_all_subjects():
    deleted = clear_syllabus()
    return jsonify({"success": True, "message": "All syllabus data deleted successfully", "deleted_count": deleted})


@syllabus_routes.route("/<int:syllabus_id>", methods=["DELETE"])
def delete_subject(syllabus_id):
    syllabus = db.get_or_404(Syllabus, syllabus_id, description="Syllabus not found")
    db.session.delete(syllabus)
    db.session.commit()
    return jsonify({"success": True, "message": "Subject deleted successfully"})
