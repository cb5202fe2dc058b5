"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)


def actor_rate_limit_key():
    """Rate limit key: actor id when resolved, else remote IP."""
    actor = getattr(g, "actor", None)
    if actor is not None:
        return f"actor:{actor.id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per actor, falling back to remote IP):
        - Write-heavy endpoints:  60/minute  (drafts, approvals, contracts)
        - Read endpoints:         200/minute (notifications polling)

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("supplier", "approval", "contract"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("60/minute", key_func=actor_rate_limit_key)(bp)

    bp = app.blueprints.get("notification_bp")
    if bp:
        limiter.limit("200/minute", key_func=actor_rate_limit_key)(bp)

    app.logger.info("Rate limiter configured — write: 60/min, read: 200/min")
