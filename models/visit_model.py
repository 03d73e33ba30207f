from models.student_model import db
from datetime import datetime, date

DEFAULT_VISIT_TIME = "10:00"


class Visit(db.Model):
    """
    A scheduled parent/student visit.
    ``notified_24h`` / ``notified_6h`` record reminder delivery; nothing in
    this service sends reminders, so they only change through the API.
    """
    __tablename__ = "visits"
    __table_args__ = (
        db.Index("ix_visits_reminders", "visit_date", "notified_24h", "notified_6h"),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False, index=True)

    visit_date = db.Column(db.Date, nullable=False, default=date.today, index=True)
    visit_time = db.Column(db.String(5), nullable=False, default=DEFAULT_VISIT_TIME)  # "HH:MM"
    assignment = db.Column(db.Text, nullable=False, default="")
    remarks = db.Column(db.Text, nullable=False, default="")

    notified_24h = db.Column(db.Boolean, nullable=False, default=False)
    notified_6h = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship("Student", back_populates="visits")

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "visit_date": self.visit_date.isoformat() if self.visit_date else None,
            "visit_time": self.visit_time,
            "assignment": self.assignment,
            "remarks": self.remarks,
            "notified_24h": self.notified_24h,
            "notified_6h": self.notified_6h,
        }

    def __repr__(self):
        return f"<Visit Student {self.student_id} {self.visit_date} {self.visit_time}>"
