"""
Draft payload validation and application.

A save payload is a full snapshot built by the Draft Manager. The server
accepts it replace-on-write: every key present overwrites the column, keys
that are absent are left alone. ``status`` is informational only; status
changes go through the lifecycle service.
"""

import os

from email_validator import EmailNotValidError, validate_email
from flask import current_app

from app.core.exceptions import ValidationError
from app.workflow.fields import (
    CURRENCIES,
    DEFAULT_MAX_FILES_PER_SLOT,
    EMAIL_FIELDS,
    ENTITY_TYPE_CODES,
    LEGAL_NATURE_CODES,
    LIST_FILE_SLOTS,
    SCALAR_FIELDS,
    SINGLE_FILE_SLOTS,
    STEP_COUNT,
    parse_credit_period,
)
from app.workflow.status_machine import APPLICATION_STATES

_CODES = {
    "legal_nature": LEGAL_NATURE_CODES,
    "entity_type": ENTITY_TYPE_CODES,
}


def _max_files():
    return current_app.config.get("MAX_FILES_PER_SLOT", DEFAULT_MAX_FILES_PER_SLOT)


def _file_name(value):
    """A stored reference is a bare file name: no directories."""
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    if os.path.basename(value) != value or value in (".", ".."):
        raise ValueError("must be a bare file name")
    return value


def clean_payload(payload):
    """Validate a save payload and return the column values to write.

    Raises:
        ValidationError with per-field details.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")

    errors = {}
    cleaned = {}

    status = payload.get("status")
    if status is not None and status not in APPLICATION_STATES:
        errors["status"] = f"must be one of {', '.join(APPLICATION_STATES)}"

    if "current_step" in payload:
        step = payload["current_step"]
        if isinstance(step, bool) or not isinstance(step, int) or not 0 <= step < STEP_COUNT:
            errors["current_step"] = f"must be an integer between 0 and {STEP_COUNT - 1}"
        else:
            cleaned["current_step"] = step

    for name in SCALAR_FIELDS:
        if name not in payload:
            continue
        value = payload[name]

        if name in _CODES:
            if value in (None, ""):
                cleaned[name] = None
            elif value in _CODES[name]:
                cleaned[name] = value
            else:
                errors[name] = f"unknown code '{value}'"
        elif name == "credit_period":
            parsed = parse_credit_period(value)
            if value not in (None, "") and parsed is None:
                errors[name] = "must contain a number of days"
            else:
                cleaned[name] = parsed
        elif name == "consent_to_processing":
            cleaned[name] = bool(value)
        elif name == "currency":
            if value in (None, ""):
                cleaned[name] = ""
            elif value in CURRENCIES:
                cleaned[name] = value
            else:
                errors[name] = f"must be one of {', '.join(CURRENCIES)}"
        elif name in EMAIL_FIELDS and value:
            try:
                cleaned[name] = validate_email(str(value), check_deliverability=False).normalized
            except EmailNotValidError as exc:
                errors[name] = str(exc)
        else:
            cleaned[name] = "" if value is None else str(value)

    for slot in SINGLE_FILE_SLOTS:
        if slot not in payload:
            continue
        try:
            cleaned[slot] = _file_name(payload[slot])
        except ValueError as exc:
            errors[slot] = str(exc)

    max_files = _max_files()
    for slot in LIST_FILE_SLOTS:
        if slot not in payload:
            continue
        values = payload[slot] or []
        if not isinstance(values, list):
            errors[slot] = "must be a list of file names"
            continue
        if len(values) > max_files:
            errors[slot] = f"at most {max_files} files allowed"
            continue
        try:
            cleaned[slot] = [name for name in (_file_name(v) for v in values) if name]
        except ValueError as exc:
            errors[slot] = str(exc)

    if errors:
        raise ValidationError("Invalid application payload", details=errors)
    return cleaned


def apply_payload(application, cleaned):
    """Write cleaned values onto the model."""
    for name, value in cleaned.items():
        setattr(application, name, value)
    return application
