from models.student_model import db
from datetime import datetime

STATUS_VALUES = ("Good", "Medium", "Bad")


class StudentTopicStatus(db.Model):
    """
    Backlog row for one (student, subject, topic, subtopic).

    ``negative_count`` and ``unattempted_count`` are derived from result
    annotations by ``utils.topic_status.recompute_topic_status`` and must not
    be edited by hand. ``status`` and the completion flags are set by users.
    An empty ``subtopic_name`` marks a topic-level row.
    """
    __tablename__ = "student_topic_status"
    __table_args__ = (
        db.UniqueConstraint(
            "student_id", "subject", "topic_name", "subtopic_name",
            name="uq_student_topic_status_key",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False, index=True)
    subject = db.Column(db.String(20), nullable=False)
    topic_name = db.Column(db.String(200), nullable=False)
    subtopic_name = db.Column(db.String(200), nullable=False, default="")

    status = db.Column(db.String(10), nullable=True)
    theory_completed = db.Column(db.Boolean, nullable=False, default=False)
    solving_completed = db.Column(db.Boolean, nullable=False, default=False)

    negative_count = db.Column(db.Integer, nullable=False, default=0)
    unattempted_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship("Student", back_populates="topic_statuses")

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "subject": self.subject,
            "topic_name": self.topic_name,
            "subtopic_name": self.subtopic_name,
            "status": self.status,
            "theory_completed": self.theory_completed,
            "solving_completed": self.solving_completed,
            "negative_count": self.negative_count,
            "unattempted_count": self.unattempted_count,
        }

    def __repr__(self):
        return (
            f"<StudentTopicStatus Student {self.student_id} {self.subject}/"
            f"{self.topic_name}/{self.subtopic_name} neg={self.negative_count} "
            f"unatt={self.unattempted_count}>"
        )
