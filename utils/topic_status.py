"""Subtopic error index (StudentTopicStatus counts).

The counts are a cache derived from the question annotations on a student's
results. They are rebuilt from scratch on every run instead of being
incremented, because annotations can be edited or removed at any time after
they were entered. Running the rebuild twice gives the same rows.
"""

import logging
import threading
from collections import defaultdict

from flask import current_app

from db_utils import safe_db_operation
from models.exam_model import RESULT_SUBJECTS, ExamResult
from models.student_model import db
from models.syllabus_model import Syllabus
from models.topic_status_model import StudentTopicStatus

logger = logging.getLogger(__name__)

ANNOTATION_KINDS = ("negative", "unattempted")


def build_subtopic_lookup(syllabi):
    """``(subject, subtopic) -> (topic name, subtopic name)`` over the whole syllabus.

    When a subject repeats a subtopic name under two topics, the first topic keeps it.
    """
    lookup = {}
    for syllabus in syllabi:
        for topic in syllabus.topics or []:
            for subtopic in topic.get("subtopics") or []:
                key = (syllabus.subject, subtopic.strip())
                if key not in lookup:
                    lookup[key] = (topic["name"], subtopic)
    return lookup


def tally_annotations(results, lookup):
    """Count annotation entries per ``(subject, topic, subtopic)``; unknown subtopics are ignored."""
    tally = defaultdict(lambda: {"negative": 0, "unattempted": 0})
    for result in results:
        for key, subject in RESULT_SUBJECTS.items():
            for kind in ANNOTATION_KINDS:
                for entry in result.annotations(key, kind):
                    if not isinstance(entry, dict):
                        continue
                    subtopic = str(entry.get("subtopic") or "").strip()
                    match = lookup.get((subject, subtopic))
                    if match is None:
                        continue
                    tally[(subject,) + match][kind] += 1
    return dict(tally)


@safe_db_operation("TOPIC STATUS")
def recompute_topic_status(student_id):
    """Rebuild every negative/unattempted count of one student. Returns the tally."""
    lookup = build_subtopic_lookup(Syllabus.query.order_by(Syllabus.order).all())
    results = ExamResult.query.filter_by(student_id=student_id).all()
    tally = tally_annotations(results, lookup)

    rows = StudentTopicStatus.query.filter_by(student_id=student_id).all()
    existing = {(r.subject, r.topic_name, r.subtopic_name): r for r in rows}

    # Reset, then write back only what the tally found
    for row in rows:
        row.negative_count = 0
        row.unattempted_count = 0

    for (subject, topic_name, subtopic_name), counts in tally.items():
        row = existing.get((subject, topic_name, subtopic_name))
        if row is None:
            row = StudentTopicStatus(
                student_id=student_id,
                subject=subject,
                topic_name=topic_name,
                subtopic_name=subtopic_name,
            )
            db.session.add(row)
        row.negative_count = counts["negative"]
        row.unattempted_count = counts["unattempted"]

    db.session.commit()
    logger.info(f"[TOPIC STATUS] Student {student_id}: {len(tally)} subtopics with counts from {len(results)} results")
    return tally


def refresh_topic_status(student_id):
    """Recompute one student's counts; log and swallow failures. Returns True on success."""
    try:
        recompute_topic_status(student_id)
        return True
    except Exception as e:
        logger.exception(f"[TOPIC STATUS] Recompute failed for student {student_id}: {e}")
        return False


def schedule_topic_status_refresh(student_ids, wait=None):
    """
    Recompute counts for ``student_ids`` after their results changed.

    With ``wait`` unset the app's ``TOPIC_STATUS_REFRESH`` setting decides:
    ``sync`` runs inline, ``detached`` (default) runs on a daemon thread
    that is returned to the caller. Failures never reach the caller.
    """
    ids = sorted({sid for sid in student_ids if sid is not None})
    if not ids:
        return None

    if wait is None:
        wait = current_app.config.get("TOPIC_STATUS_REFRESH", "detached") == "sync"

    if wait:
        for sid in ids:
            refresh_topic_status(sid)
        return None

    app = current_app._get_current_object()

    def run_refresh():
        with app.app_context():
            for sid in ids:
                refresh_topic_status(sid)

    t = threading.Thread(target=run_refresh, name="topic-status-refresh", daemon=True)
    t.start()
    logger.debug(f"[TOPIC STATUS] Detached refresh started for {len(ids)} students")
    return t
