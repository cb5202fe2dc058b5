"""
Supplier Onboarding Portal
Blueprint registry: exception → HTTP mapping.
"""

import logging

from flask import request

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PolicyError,
    TransportError,
    ValidationError,
)
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Map the exception taxonomy onto api_error responses for every blueprint."""

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.info("Not found: %s", error)
        return api_error(E.NOT_FOUND, f"{error.resource} not found",
                         details={"resource": error.resource})

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        code = E.CONFLICT_STATE if error.field in ("status", "version") else E.CONFLICT_DUPLICATE
        return api_error(code, str(error), details={
            "resource": error.resource,
            "field": error.field,
            "value": error.value,
            "expected": error.expected,
        })

    @app.errorhandler(PolicyError)
    def _handle_policy(error: PolicyError):
        code = E.POLICY_ROLE if error.is_role_denial else E.POLICY_TRANSITION
        return api_error(code, str(error), details={
            "action": error.action,
            "status": error.status,
            "reason": error.reason,
            "role": error.role,
        })

    @app.errorhandler(TransportError)
    def _handle_transport(error: TransportError):
        logger.error("Transport error on %s: %s", request.path, error)
        return api_error(E.DATABASE, "Service temporarily unavailable", status=503)
