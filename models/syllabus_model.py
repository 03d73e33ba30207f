from models.student_model import db
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

SUBJECTS = ("Physics", "Chemistry", "Mathematics")


class Syllabus(db.Model):
    """One row per subject. ``topics`` is a list of ``{"name": str, "subtopics": [str]}``."""
    __tablename__ = "syllabus"

    id = db.Column(db.Integer, primary_key=True)
    subject = db.Column(db.String(20), unique=True, nullable=False)
    topics = db.Column(db.JSON, nullable=False, default=list)
    order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def find_topic(self, name):
        for topic in self.topics or []:
            if topic.get("name") == name:
                return topic
        return None

    def to_dict(self):
        return {
            "id": self.id,
            "subject": self.subject,
            "topics": self.topics or [],
            "order": self.order,
        }

    def __repr__(self):
        return f"<Syllabus {self.subject} topics={len(self.topics or [])}>"


class SyllabusState(db.Model):
    """
    Persisted seeding marker for the syllabus.
    Only one record should exist; once ``seeded`` is set the default
    syllabus is never inserted again, even after the data is cleared.
    """
    __tablename__ = "syllabus_state"

    id = db.Column(db.Integer, primary_key=True)
    seeded = db.Column(db.Boolean, nullable=False, default=False)
    cleared_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SyllabusState seeded={self.seeded} cleared_at={self.cleared_at}>"

    @staticmethod
    def get_state():
        """Fetch the single state record; create it if none exists."""
        rows = SyllabusState.query.order_by(SyllabusState.id.asc()).all()
        if not rows:
            state = SyllabusState(seeded=False)
            db.session.add(state)
            db.session.commit()
            return state

        if len(rows) > 1:
            keeper = rows[0]
            for extra in rows[1:]:
                db.session.delete(extra)
            db.session.commit()
            logger.info(f"[SyllabusState] Removed {len(rows) - 1} duplicate state rows, kept id={keeper.id}")
            return keeper

        return rows[0]
