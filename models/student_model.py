from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()


# Profile fields an import may fill in or change on an existing student.
PROFILE_FIELDS = ("parent_name", "parent_occupation", "address", "contact_number", "email")


class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.Integer, primary_key=True)

    # ✅ Roll number (StuID) is the only external identity of a student
    roll_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    batch = db.Column(db.String(100), nullable=False)

    # Profile
    parent_name = db.Column(db.String(150), nullable=False, default="")
    parent_occupation = db.Column(db.String(150), nullable=False, default="")
    address = db.Column(db.Text, nullable=False, default="")
    contact_number = db.Column(db.String(50), nullable=False, default="")
    email = db.Column(db.String(150), nullable=False, default="")

    # Append-only, one remark per line
    general_remark = db.Column(db.Text, nullable=False, default="")

    # 'excel' for imported students, 'manual' for students created by hand
    source_type = db.Column(db.String(10), nullable=False, default="excel", index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    results = db.relationship("ExamResult", back_populates="student", cascade="all, delete-orphan")
    topic_statuses = db.relationship("StudentTopicStatus", back_populates="student", cascade="all, delete-orphan")
    visits = db.relationship("Visit", back_populates="student", cascade="all, delete-orphan")

    def append_remark(self, remark):
        """Append ``remark`` as a new line; return True if the stored remark changed."""
        remark = (remark or "").strip()
        if not remark:
            return False
        existing = self.general_remark or ""
        if not existing:
            self.general_remark = remark
            return True
        if remark in existing.split("\n"):
            return False
        self.general_remark = f"{existing}\n{remark}"
        return True

    def to_dict(self):
        return {
            "id": self.id,
            "roll_number": self.roll_number,
            "name": self.name,
            "batch": self.batch,
            "parent_name": self.parent_name,
            "parent_occupation": self.parent_occupation,
            "address": self.address,
            "contact_number": self.contact_number,
            "email": self.email,
            "general_remark": self.general_remark,
            "source_type": self.source_type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Student {self.roll_number} {self.name}>"
