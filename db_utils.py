"""
Session helpers shared by the import pipeline, the topic-status engine and the routes.
"""

import logging
from functools import wraps

from sqlalchemy.exc import IntegrityError, InternalError

from models.student_model import db

logger = logging.getLogger(__name__)


def safe_db_operation(operation_name="DB Operation"):
    """
    Decorator for SQLAlchemy database operations to handle transaction rollbacks.
    Ensures that if a transaction is aborted, it's properly rolled back before
    the error propagates.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except InternalError as e:
                if "InFailedSqlTransaction" in str(e):
                    logger.error(f"[{operation_name}] Transaction aborted, rolling back...")
                try:
                    db.session.rollback()
                except Exception as rollback_error:
                    logger.error(f"[{operation_name}] Rollback failed: {rollback_error}")
                raise
            except Exception as e:
                logger.error(f"[{operation_name}] Error: {e}")
                db.session.rollback()
                raise
        return wrapper
    return decorator


def insert_or_get(model, lookup, instance):
    """
    Insert ``instance`` and commit. If a unique constraint rejects it because
    another writer created the same row first, roll back and return that row.

    ``lookup`` holds the unique-key filter used for the re-read. Returns
    ``(row, created)``. The IntegrityError is re-raised when the re-read finds
    nothing, since the conflict was then not about this key.
    """
    try:
        db.session.add(instance)
        db.session.commit()
        return instance, True
    except IntegrityError:
        db.session.rollback()
        existing = model.query.filter_by(**lookup).first()
        if existing is None:
            raise
        logger.info(f"[DB] {model.__name__} {lookup} already exists (concurrent insert), using existing row")
        return existing, False
