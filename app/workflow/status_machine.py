"""
Application & Contract status machines.

One closed table per aggregate. Every predicate the UI or the service layer
needs (can this role act? which actions are offered? which statuses belong
in a reviewer's task list?) is derived from the table, never hand-coded.

Table shape:
    {action: {from_status: {"roles": (...), "to": target}}}

``to == ROUTED`` means the target is chosen by the approval routing policy
at execution time (procurement approve → pending_legal or approved).

Usage:
    from app.workflow.status_machine import require_transition, is_actionable_by

    target = require_transition("pending_legal", "approve", "legal")   # "approved"
    is_actionable_by("pending_procurement", "procurement")             # True
"""

from app.core.exceptions import PolicyError

# ── Roles ────────────────────────────────────────────────────────────────────

OWNER_ROLE = "supplier"
SYSTEM_ROLE = "system"
ROLES = ("super_admin", "procurement", "legal", "management", "supplier")
REVIEWER_ROLES = ("procurement", "legal")

# ── Application states ───────────────────────────────────────────────────────

APPLICATION_STATES = (
    "draft",
    "submitted",
    "pending_procurement",
    "pending_legal",
    "more_info_required",
    "approved",
    "rejected",
)

EDITABLE_STATUSES = frozenset({"draft", "more_info_required"})
PENDING_STATUSES = frozenset({"submitted", "pending_procurement", "pending_legal"})
TERMINAL_STATUSES = frozenset({"rejected"})

ROUTED = "routed"

APPLICATION_TRANSITIONS = {
    "submit": {
        "draft": {"roles": (OWNER_ROLE,), "to": "pending_procurement"},
        "more_info_required": {"roles": (OWNER_ROLE,), "to": "pending_procurement"},
    },
    "approve": {
        "submitted": {"roles": ("procurement",), "to": ROUTED},
        "pending_procurement": {"roles": ("procurement",), "to": ROUTED},
        "more_info_required": {"roles": ("procurement",), "to": ROUTED},
        "pending_legal": {"roles": ("legal",), "to": "approved"},
    },
    "reject": {
        "pending_procurement": {"roles": ("procurement",), "to": "rejected"},
        "pending_legal": {"roles": ("legal",), "to": "rejected"},
    },
    "request_info": {
        "submitted": {"roles": ("procurement",), "to": "more_info_required"},
        "pending_procurement": {"roles": ("procurement",), "to": "more_info_required"},
        "pending_legal": {"roles": ("legal",), "to": "more_info_required"},
    },
    "assign_vendor_number": {
        "approved": {"roles": ("procurement",), "to": "approved"},
    },
}

# Actions that must carry a non-blank comment
APPLICATION_COMMENT_REQUIRED = frozenset({"reject", "request_info"})

# Transition action → action recorded in the approval history
HISTORY_ACTIONS = {
    "submit": "submitted",
    "approve": "approved",
    "reject": "rejected",
    "request_info": "requested_info",
    "assign_vendor_number": "assigned_vendor_number",
    "activate": "activated",
    "expire": "expired",
    "terminate": "terminated",
    "renew": "renewed",
}

# ── Contract states ──────────────────────────────────────────────────────────

CONTRACT_STATES = ("draft", "active", "expired", "terminated", "renewed")

CONTRACT_TRANSITIONS = {
    "activate": {
        "draft": {"roles": ("legal", "super_admin"), "to": "active"},
    },
    "expire": {
        "active": {"roles": ("legal", "super_admin", SYSTEM_ROLE), "to": "expired"},
    },
    "terminate": {
        "active": {"roles": ("legal", "super_admin"), "to": "terminated"},
    },
    "renew": {
        "active": {"roles": ("legal", "procurement"), "to": "renewed"},
        "expired": {"roles": ("legal", "procurement"), "to": "renewed"},
    },
}

CONTRACT_COMMENT_REQUIRED = frozenset({"terminate"})

# ── Profile update requests ──────────────────────────────────────────────────

PROFILE_UPDATE_STATES = ("pending", "approved", "rejected")

PROFILE_UPDATE_TRANSITIONS = {
    "approve": {
        "pending": {"roles": ("procurement",), "to": "approved"},
    },
    "reject": {
        "pending": {"roles": ("procurement",), "to": "rejected"},
    },
}

PROFILE_UPDATE_COMMENT_REQUIRED = frozenset({"reject"})

# Recorded in the supplier's approval history
PROFILE_UPDATE_HISTORY_ACTIONS = {
    "request": "profile_update_requested",
    "approve": "profile_update_approved",
    "reject": "profile_update_rejected",
}


# ── Table-driven checks ──────────────────────────────────────────────────────


def _validate(table: dict, status: str, action: str, role: str | None) -> dict:
    """
    Validate ``action`` by ``role`` from ``status`` against ``table``.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None,
         "role_denied": bool}
    """
    rules = table.get(action)
    if not rules:
        return {"valid": False, "from": status, "to": None,
                "reason": f"Unknown action: {action}", "role_denied": False}

    rule = rules.get(status)
    if rule is None:
        return {"valid": False, "from": status, "to": None,
                "reason": f"Cannot '{action}' from status '{status}'", "role_denied": False}

    if role is not None and role not in rule["roles"]:
        return {"valid": False, "from": status, "to": rule["to"],
                "reason": f"Role '{role}' may not '{action}' from status '{status}'",
                "role_denied": True}

    return {"valid": True, "from": status, "to": rule["to"], "reason": None, "role_denied": False}


def validate_transition(status: str, action: str, role: str | None = None,
                        *, vendor_number: str | None = None) -> dict:
    """Validate an application transition. ``role=None`` skips the role check."""
    result = _validate(APPLICATION_TRANSITIONS, status, action, role)
    if result["valid"] and action == "assign_vendor_number" and vendor_number:
        result.update(valid=False, reason="Vendor number already assigned")
    return result


def validate_contract_transition(status: str, action: str, role: str | None = None) -> dict:
    return _validate(CONTRACT_TRANSITIONS, status, action, role)


def require_transition(status: str, action: str, role: str | None = None,
                       *, vendor_number: str | None = None) -> str:
    """Return the target status or raise PolicyError."""
    result = validate_transition(status, action, role, vendor_number=vendor_number)
    if not result["valid"]:
        raise PolicyError(action, status, result["reason"],
                          role=role if result["role_denied"] else None)
    return result["to"]


def require_contract_transition(status: str, action: str, role: str | None = None) -> str:
    result = validate_contract_transition(status, action, role)
    if not result["valid"]:
        raise PolicyError(action, status, result["reason"],
                          role=role if result["role_denied"] else None)
    return result["to"]


def require_profile_update_transition(status: str, action: str, role: str | None = None) -> str:
    result = _validate(PROFILE_UPDATE_TRANSITIONS, status, action, role)
    if not result["valid"]:
        raise PolicyError(action, status, result["reason"],
                          role=role if result["role_denied"] else None)
    return result["to"]


# ── Predicates for the UI / task lists ───────────────────────────────────────


def available_actions(status: str, role: str, *, vendor_number: str | None = None) -> list[str]:
    """Actions ``role`` may perform on an application in ``status``."""
    return [
        action for action in APPLICATION_TRANSITIONS
        if validate_transition(status, action, role, vendor_number=vendor_number)["valid"]
    ]


def is_actionable_by(status: str, role: str, *, vendor_number: str | None = None) -> bool:
    return bool(available_actions(status, role, vendor_number=vendor_number))


def actionable_statuses(role: str) -> frozenset:
    """Statuses in which ``role`` has at least one permitted action.

    Drives the "my tasks" list. Vendor-number gating is applied by the
    caller, since it depends on the record rather than the status.
    """
    return frozenset(
        status
        for rules in APPLICATION_TRANSITIONS.values()
        for status, rule in rules.items()
        if role in rule["roles"]
    )


def contract_available_actions(status: str, role: str) -> list[str]:
    return [
        action for action in CONTRACT_TRANSITIONS
        if validate_contract_transition(status, action, role)["valid"]
    ]
