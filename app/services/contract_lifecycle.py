"""
Contract Lifecycle Service.

Contracts are created for approved suppliers only and then follow the
contract status machine:

    draft --activate--> active --expire--> expired
                          |  \\--terminate--> terminated
                          \\------renew-----> renewed  <--renew-- expired

Transitions are logged to ApprovalHistoryEntry (entity_type="contract") and
committed together with their side effects and notifications.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import func

from app.auth import SYSTEM_ACTOR
from app.core.exceptions import ConflictError, NotFoundError, PolicyError, ValidationError
from app.models import db
from app.models.contract import CONTRACT_TYPES, Contract
from app.models.supplier import ApprovalHistoryEntry, SupplierApplication
from app.services.notification import NotificationService
from app.utils.helpers import commit_or_raise, get_or_raise, parse_date_input
from app.workflow.fields import CURRENCIES
from app.workflow.status_machine import (
    CONTRACT_COMMENT_REQUIRED,
    HISTORY_ACTIONS,
    require_contract_transition,
)

logger = logging.getLogger(__name__)

CONTRACT_MANAGER_ROLES = ("procurement", "legal", "super_admin")
EXPIRY_WARNING_DAYS = 30


def next_contract_number(year=None):
    """CTR-YYYY-NNNN, sequential within the year."""
    year = year or datetime.now(timezone.utc).year
    prefix = f"CTR-{year}-"
    last = (
        db.session.query(func.max(Contract.contract_number))
        .filter(Contract.contract_number.like(f"{prefix}%"))
        .scalar()
    )
    seq = int(last.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}{seq:04d}"


def _parse_contract_data(data):
    errors = {}
    title = (data.get("title") or "").strip()
    if not title:
        errors["title"] = "required"

    contract_type = data.get("contract_type") or "services"
    if contract_type not in CONTRACT_TYPES:
        errors["contract_type"] = f"must be one of {', '.join(CONTRACT_TYPES)}"

    currency = data.get("currency") or "KES"
    if currency not in CURRENCIES:
        errors["currency"] = f"must be one of {', '.join(CURRENCIES)}"

    value_amount = data.get("value_amount")
    if value_amount not in (None, ""):
        try:
            value_amount = Decimal(str(value_amount))
            if value_amount < 0:
                errors["value_amount"] = "must not be negative"
        except InvalidOperation:
            errors["value_amount"] = "must be a number"
    else:
        value_amount = None

    dates = {}
    for key in ("start_date", "end_date"):
        try:
            dates[key] = parse_date_input(data.get(key))
        except ValueError as exc:
            errors[key] = str(exc)
            continue
        if dates[key] is None:
            errors[key] = "required"
    if dates.get("start_date") and dates.get("end_date") and dates["end_date"] <= dates["start_date"]:
        errors["end_date"] = "must be after start_date"

    if errors:
        raise ValidationError("Invalid contract data", details=errors)

    return {
        "title": title,
        "description": data.get("description") or "",
        "contract_type": contract_type,
        "currency": currency,
        "value_amount": value_amount,
        "start_date": dates["start_date"],
        "end_date": dates["end_date"],
    }


def create_contract(actor, data):
    """Create a draft contract for an approved supplier."""
    if actor.role not in CONTRACT_MANAGER_ROLES:
        raise PolicyError("create_contract", None, "Not permitted to create contracts", role=actor.role)

    supplier = get_or_raise(SupplierApplication, data.get("supplier_id"), "SupplierApplication")
    if supplier.status != "approved":
        raise PolicyError(
            "create_contract", supplier.status, "Supplier must be approved before creating a contract",
        )
    if Contract.query.filter_by(supplier_id=supplier.id).first() is not None:
        raise ConflictError("Contract", "supplier_id", supplier.id)

    fields = _parse_contract_data(data)
    contract = Contract(
        contract_number=next_contract_number(),
        supplier_id=supplier.id,
        status="draft",
        created_by=actor.id,
        **fields,
    )
    db.session.add(contract)
    commit_or_raise("Contract", unique_field="contract_number", unique_value=contract.contract_number)
    logger.info("Contract %s created", contract.contract_number,
                extra={"event_type": "contract_created"})
    return contract


def get_for_actor(contract_id, actor):
    contract = get_or_raise(Contract, contract_id)
    if actor.role == "supplier" and contract.supplier.owner_id != actor.id:
        raise NotFoundError("Contract", contract_id)
    return contract


def attach_signed_document(contract_id, actor, filename):
    """Record the signed contract file name (bytes live in external storage)."""
    if actor.role not in CONTRACT_MANAGER_ROLES:
        raise PolicyError("upload_signed", None, "Not permitted to upload contracts", role=actor.role)
    contract = get_or_raise(Contract, contract_id)
    if contract.status != "draft":
        raise PolicyError("upload_signed", contract.status, "Signed document can only be attached to a draft")
    filename = (filename or "").strip()
    if not filename:
        raise ValidationError("A file name is required", details={"file": "required"})

    contract.signed_document_name = filename
    NotificationService.queue_for_role(
        "legal",
        title="Signed Contract Uploaded",
        message=f"Signed contract {contract.contract_number} is ready for activation",
        category="contract_uploaded",
        entity_type="contract",
        entity_id=contract.id,
    )
    commit_or_raise("Contract", contract.id)
    return contract


def transition_contract(contract_id, action, actor, *, comments=None, expected_status=None):
    """
    Execute a contract transition (activate | expire | terminate | renew).

    Returns: {"contract_id", "action", "previous_status", "new_status"}
    """
    contract = get_or_raise(Contract, contract_id)
    previous_status = contract.status

    if expected_status is not None and expected_status != previous_status:
        raise ConflictError("Contract", "status", previous_status, expected=expected_status)

    target = require_contract_transition(previous_status, action, actor.role)

    comments = (comments or "").strip() or None
    if action in CONTRACT_COMMENT_REQUIRED and not comments:
        raise PolicyError(action, previous_status, "comments are required")
    if action == "activate" and not contract.signed_document_name:
        raise ValidationError(
            "A signed contract document is required before activation",
            details={"signed_document": "required"},
        )

    now = datetime.now(timezone.utc)
    contract.status = target
    if action == "activate":
        contract.activated_at = now
        contract.activated_by = actor.id
    elif action == "terminate":
        contract.terminated_at = now
        contract.termination_reason = comments

    db.session.add(ApprovalHistoryEntry(
        entity_type="contract",
        entity_id=contract.id,
        action=HISTORY_ACTIONS[action],
        from_status=previous_status,
        to_status=target,
        actor_id=actor.id,
        actor_role=actor.role,
        comments=comments,
        timestamp=now,
    ))

    owner_id = contract.supplier.owner_id if contract.supplier else None
    if owner_id:
        NotificationService.queue(
            recipient=owner_id,
            title=f"Contract {contract.contract_number} {HISTORY_ACTIONS[action]}",
            message=comments or f"Your contract is now {target}.",
            category="contract_uploaded" if action == "activate" else "system",
            entity_type="contract",
            entity_id=contract.id,
        )

    commit_or_raise("Contract", contract.id)
    logger.info(
        "Contract transition %s: %s -> %s",
        action, previous_status, target,
        extra={"event_type": "contract_transition", "action": action, "actor_role": actor.role},
    )
    return {
        "contract_id": contract.id,
        "action": action,
        "previous_status": previous_status,
        "new_status": contract.status,
    }


def expiring_contracts(days=EXPIRY_WARNING_DAYS, today=None):
    """Active contracts whose end date falls within ``days``."""
    today = today or date.today()
    return (
        Contract.query
        .filter(Contract.status == "active")
        .filter(Contract.end_date >= today, Contract.end_date <= today + timedelta(days=days))
        .order_by(Contract.end_date.asc())
        .all()
    )


def expire_due_contracts(today=None):
    """Expire every active contract whose end date has passed. Returns the count."""
    today = today or date.today()
    due = (
        Contract.query
        .filter(Contract.status == "active", Contract.end_date < today)
        .all()
    )
    expired = 0
    for contract in due:
        try:
            transition_contract(contract.id, "expire", SYSTEM_ACTOR)
            expired += 1
        except ConflictError:
            logger.warning("Contract %s changed while expiring; skipped", contract.contract_number)
    return expired
