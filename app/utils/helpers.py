"""Shared utility functions for services.

get_or_raise:      primary-key lookup raising NotFoundError
parse_date_input:  strict date parsing for request payloads
commit_or_raise:   commit translating SQLAlchemy failures into the exception taxonomy
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import ConflictError, NotFoundError, TransportError
from app.models import db

logger = logging.getLogger(__name__)


def get_or_raise(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    label = label or model.__name__
    obj = db.session.get(model, pk) if pk is not None else None
    if obj is None:
        raise NotFoundError(label, pk)
    return obj


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Supports: YYYY-MM-DD, DD.MM.YYYY, date objects. Empty → None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        try:
            return datetime.strptime(str(value), "%d.%m.%Y").date()
        except ValueError as exc:
            raise ValueError(
                "Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY."
            ) from exc


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(resource, resource_id=None, unique_field=None, unique_value=None):
    """Commit the current session; roll back and raise a typed error on failure.

    StaleDataError   → ConflictError (row changed by a concurrent commit)
    IntegrityError   → ConflictError (duplicate / constraint violation)
    OperationalError → TransportError (connection / lock issues)

    Anything else is rolled back and re-raised unchanged.
    """
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        logger.info("Concurrent update detected on %s id=%s", resource, resource_id)
        raise ConflictError(
            resource, "version", str(resource_id),
            message=f"{resource} id={resource_id} was modified concurrently; reload and retry",
        )
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        raise ConflictError(resource, unique_field or "unique", unique_value)
    except OperationalError as exc:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        raise TransportError("Database unavailable") from exc
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        raise
