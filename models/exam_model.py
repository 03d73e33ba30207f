from models.student_model import db   # ✅ Use the shared db instance
from datetime import datetime


# Result subject keys -> syllabus subject names
RESULT_SUBJECTS = {
    "physics": "Physics",
    "chemistry": "Chemistry",
    "maths": "Mathematics",
}

DEFAULT_MAX_MARKS = 300


class Exam(db.Model):
    """A single test sitting. ``(name, date)`` identifies tests created from spreadsheet metadata."""
    __tablename__ = "exams"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    max_marks = db.Column(db.Integer, nullable=False, default=DEFAULT_MAX_MARKS)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    results = db.relationship("ExamResult", back_populates="exam", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat() if self.date else None,
            "max_marks": self.max_marks,
        }

    def __repr__(self):
        return f"<Exam {self.name} {self.date}>"


class ExamResult(db.Model):
    __tablename__ = "exam_results"
    __table_args__ = (
        db.UniqueConstraint("student_id", "exam_id", name="uq_exam_results_student_exam"),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False, index=True)
    exam_id = db.Column(db.Integer, db.ForeignKey("exams.id"), nullable=False, index=True)

    # Totals
    total_correct = db.Column(db.Float, nullable=False, default=0)
    total_wrong = db.Column(db.Float, nullable=False, default=0)
    total_unattempted = db.Column(db.Float, nullable=False, default=0)
    total_score = db.Column(db.Float, nullable=False, default=0)
    percentage = db.Column(db.Float, nullable=False, default=0)
    rank = db.Column(db.Integer, nullable=False, default=0)

    # Physics
    physics_right = db.Column(db.Float, nullable=False, default=0)
    physics_wrong = db.Column(db.Float, nullable=False, default=0)
    physics_unattempted = db.Column(db.Float, nullable=False, default=0)
    physics_score = db.Column(db.Float, nullable=False, default=0)
    physics_unattempted_questions = db.Column(db.JSON, nullable=False, default=list)
    physics_negative_questions = db.Column(db.JSON, nullable=False, default=list)

    # Chemistry
    chemistry_right = db.Column(db.Float, nullable=False, default=0)
    chemistry_wrong = db.Column(db.Float, nullable=False, default=0)
    chemistry_unattempted = db.Column(db.Float, nullable=False, default=0)
    chemistry_score = db.Column(db.Float, nullable=False, default=0)
    chemistry_unattempted_questions = db.Column(db.JSON, nullable=False, default=list)
    chemistry_negative_questions = db.Column(db.JSON, nullable=False, default=list)

    # Maths
    maths_right = db.Column(db.Float, nullable=False, default=0)
    maths_wrong = db.Column(db.Float, nullable=False, default=0)
    maths_unattempted = db.Column(db.Float, nullable=False, default=0)
    maths_score = db.Column(db.Float, nullable=False, default=0)
    maths_unattempted_questions = db.Column(db.JSON, nullable=False, default=list)
    maths_negative_questions = db.Column(db.JSON, nullable=False, default=list)

    remarks = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship("Student", back_populates="results")
    exam = db.relationship("Exam", back_populates="results")

    # -------------------------
    # Per-subject access
    # -------------------------
    def annotations(self, subject, kind):
        """Return the annotation list for ``subject`` ('physics'...) and ``kind`` ('negative'/'unattempted')."""
        return getattr(self, f"{subject}_{kind}_questions") or []

    def set_annotations(self, subject, kind, entries):
        # Always assign a new list; in-place mutation of a JSON column is not tracked
        setattr(self, f"{subject}_{kind}_questions", list(entries or []))

    def set_subject_scores(self, subject, right, wrong, unattempted, score):
        setattr(self, f"{subject}_right", right)
        setattr(self, f"{subject}_wrong", wrong)
        setattr(self, f"{subject}_unattempted", unattempted)
        setattr(self, f"{subject}_score", score)

    def subject_dict(self, subject):
        return {
            "right": getattr(self, f"{subject}_right"),
            "wrong": getattr(self, f"{subject}_wrong"),
            "unattempted": getattr(self, f"{subject}_unattempted"),
            "score": getattr(self, f"{subject}_score"),
            "unattempted_questions": self.annotations(subject, "unattempted"),
            "negative_questions": self.annotations(subject, "negative"),
        }

    def to_dict(self):
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "exam_id": self.exam_id,
            "totals": {
                "total_correct": self.total_correct,
                "total_wrong": self.total_wrong,
                "total_unattempted": self.total_unattempted,
                "total_score": self.total_score,
                "percentage": self.percentage,
                "rank": self.rank,
            },
            "remarks": self.remarks,
        }
        for subject in RESULT_SUBJECTS:
            data[subject] = self.subject_dict(subject)
        return data

    def __repr__(self):
        return f"<ExamResult Student {self.student_id} Exam {self.exam_id} Score {self.total_score}>"
