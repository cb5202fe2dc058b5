"""
Approval routing policy.

Decides where a procurement approval lands:
    requires legal review → pending_legal
    otherwise             → approved

Modes (``LEGAL_REVIEW_MODE``):
    always   — every application goes through legal (default)
    never    — procurement approval is final
    by_type  — legal review only when the service type or legal nature is
               listed in LEGAL_REVIEW_SERVICE_TYPES / LEGAL_REVIEW_LEGAL_NATURES

The lifecycle service takes any callable ``policy(application) -> bool``;
tests inject their own.
"""

import logging

from flask import current_app

logger = logging.getLogger(__name__)

LEGAL_REVIEW_MODES = ("always", "never", "by_type")


class ApprovalRoutingPolicy:
    """Configured ``requires_legal_review`` predicate."""

    def __init__(self, mode="always", service_types=(), legal_natures=()):
        if mode not in LEGAL_REVIEW_MODES:
            raise ValueError(f"Unknown LEGAL_REVIEW_MODE '{mode}'. Use one of {LEGAL_REVIEW_MODES}")
        self.mode = mode
        self.service_types = {s.strip().lower() for s in service_types if s and s.strip()}
        self.legal_natures = {n.strip().lower() for n in legal_natures if n and n.strip()}

    @classmethod
    def from_config(cls, config):
        return cls(
            mode=config.get("LEGAL_REVIEW_MODE", "always"),
            service_types=config.get("LEGAL_REVIEW_SERVICE_TYPES", ()),
            legal_natures=config.get("LEGAL_REVIEW_LEGAL_NATURES", ()),
        )

    def __call__(self, application) -> bool:
        if self.mode == "always":
            return True
        if self.mode == "never":
            return False
        service_type = (application.service_type or "").strip().lower()
        legal_nature = (application.legal_nature or "").strip().lower()
        return service_type in self.service_types or legal_nature in self.legal_natures


def default_policy():
    """Policy built from the current app config."""
    return ApprovalRoutingPolicy.from_config(current_app.config)
