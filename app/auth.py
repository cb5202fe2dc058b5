"""
Supplier Onboarding Portal
Actor resolution & role guard.

Authentication itself (login, sessions, 2FA) is handled by the session
provider in front of this service. It forwards the authenticated identity
on every API request:

    X-User-Id    — opaque actor id
    X-User-Role  — super_admin | procurement | legal | management | supplier

Provides:
    - init_auth(app): before_request hook resolving ``g.actor``
    - require_role(*roles): decorator rejecting other roles with 403
    - current_actor(): the resolved Actor

Security model:
    - All /api/v1/* endpoints require an actor (except /api/v1/health)
    - Role checks for workflow transitions live in the status machine;
      ``require_role`` only guards whole endpoints
"""

import functools
import logging
from dataclasses import dataclass

from flask import g, request

from app.utils.errors import E, api_error
from app.workflow.status_machine import ROLES, SYSTEM_ROLE

logger = logging.getLogger(__name__)

_PUBLIC_PATHS = ("/api/v1/health",)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as forwarded by the session provider."""
    id: str
    role: str


SYSTEM_ACTOR = Actor(id="system", role=SYSTEM_ROLE)


def _actor_from_headers():
    actor_id = request.headers.get("X-User-Id", "").strip()
    role = request.headers.get("X-User-Role", "").strip().lower()
    if not actor_id or not role:
        return None, "X-User-Id and X-User-Role headers are required"
    if role not in ROLES:
        return None, f"Unknown role '{role}'"
    return Actor(id=actor_id, role=role), None


def current_actor():
    return getattr(g, "actor", None)


def require_role(*roles):
    """Decorator: allow only the listed roles on this endpoint."""
    def decorator(f):
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            actor = current_actor()
            if actor is None or actor.role not in roles:
                logger.warning(
                    "Role denied: %s on %s",
                    actor.role if actor else "anonymous", request.path,
                    extra={"event_type": "role_denied"},
                )
                return api_error(
                    E.FORBIDDEN,
                    f"This action requires one of the roles: {', '.join(roles)}",
                )
            return f(*args, **kwargs)
        return wrapper
    return decorator


def init_auth(app):
    """Register the before_request hook that resolves the actor."""

    @app.before_request
    def _resolve_actor():
        if not request.path.startswith("/api/"):
            return None
        if request.path in _PUBLIC_PATHS or request.method == "OPTIONS":
            return None
        actor, error = _actor_from_headers()
        if actor is None:
            return api_error(E.UNAUTHENTICATED, error)
        g.actor = actor
        return None

    app.logger.info("Actor middleware initialized")
