"""Default syllabus, inserted once per database."""

import logging
from datetime import datetime

from models.student_model import db
from models.syllabus_model import Syllabus, SyllabusState

logger = logging.getLogger(__name__)

DEFAULT_SYLLABUS = [
    {
        "subject": "Physics",
        "topics": [
            {"name": "Mechanics", "subtopics": ["Laws of Motion", "Work & Energy", "Rotational Motion"]},
            {"name": "Thermodynamics", "subtopics": ["Heat Transfer", "Laws of Thermodynamics"]},
        ],
        "order": 0,
    },
    {
        "subject": "Chemistry",
        "topics": [
            {"name": "Organic Chemistry", "subtopics": ["SN1/SN2", "Alkanes", "Alkenes"]},
            {"name": "Physical Chemistry", "subtopics": ["Chemical Kinetics", "Thermodynamics"]},
        ],
        "order": 1,
    },
    {
        "subject": "Mathematics",
        "topics": [
            {"name": "Algebra", "subtopics": ["Quadratic Equations", "Inequalities"]},
            {"name": "Calculus", "subtopics": ["Differentiation", "Integration"]},
        ],
        "order": 2,
    },
]


def ensure_default_syllabus():
    """Insert the default syllabus if it was never seeded and the table is empty.

    Returns True when rows were inserted. Once seeded, clearing the syllabus
    does not bring the defaults back.
    """
    state = SyllabusState.get_state()
    if state.seeded:
        return False

    inserted = False
    if Syllabus.query.count() == 0:
        for entry in DEFAULT_SYLLABUS:
            db.session.add(Syllabus(
                subject=entry["subject"],
                topics=[dict(t, subtopics=list(t["subtopics"])) for t in entry["topics"]],
                order=entry["order"],
            ))
        inserted = True
        logger.info("[SYLLABUS] Default syllabus initialized")

    state.seeded = True
    db.session.commit()
    return inserted


def clear_syllabus():
    """Delete every subject and record the clear so the defaults stay out. Returns the count deleted."""
    state = SyllabusState.get_state()
    deleted = Syllabus.query.delete()
    state.seeded = True
    state.cleared_at = datetime.utcnow()
    db.session.commit()
    logger.info(f"[SYLLABUS] Cleared {deleted} subjects")
    return deleted
