"""
ReviewPanel — reviewer-side actions against a persisted application.

Every action carries the status the reviewer last saw (``expected_status``)
and, on success, re-reads the record from the store; the panel never
predicts the next status itself. A ConflictError marks the panel stale and
blocks further actions until ``refresh()``.
"""

import logging

from app.core.exceptions import ConflictError, PolicyError, ValidationError
from app.workflow.status_machine import (
    APPLICATION_COMMENT_REQUIRED,
    available_actions,
    is_actionable_by,
)

logger = logging.getLogger(__name__)


class StaleRecordError(Exception):
    """Raised when acting on a panel whose record is known to be outdated."""


class ReviewPanel:
    """Role-scoped view of one application for a reviewer."""

    def __init__(self, store, application_id: str, role: str) -> None:
        self.store = store
        self.application_id = application_id
        self.role = role
        self.record: dict = {}
        self.stale = False
        self.refresh()

    def refresh(self) -> dict:
        self.record = self.store.get_by_id(self.application_id)
        self.stale = False
        return self.record

    # ── Read side ────────────────────────────────────────────────────────

    @property
    def status(self) -> str:
        return self.record.get("status")

    @property
    def vendor_number(self):
        return self.record.get("vendor_number")

    @property
    def approval_history(self) -> list:
        return list(self.record.get("approval_history") or [])

    def available_actions(self) -> list[str]:
        if self.stale:
            return []
        return available_actions(self.status, self.role, vendor_number=self.vendor_number)

    def is_actionable(self) -> bool:
        return not self.stale and is_actionable_by(
            self.status, self.role, vendor_number=self.vendor_number,
        )

    # ── Actions ──────────────────────────────────────────────────────────

    def _run(self, action: str, call, comments: str | None = None) -> dict:
        if self.stale:
            raise StaleRecordError(
                f"Application {self.application_id} changed since it was loaded; refresh first"
            )
        if action in APPLICATION_COMMENT_REQUIRED and not (comments or "").strip():
            raise PolicyError(action, self.status, "comments are required")
        try:
            call(self.status)
        except ConflictError:
            self.stale = True
            logger.info("Application %s is stale after conflicting %s", self.application_id, action)
            raise
        return self.refresh()

    def approve(self, comments: str | None = None) -> dict:
        return self._run(
            "approve",
            lambda expected: self.store.approve(self.application_id, comments, expected_status=expected),
        )

    def reject(self, comments: str) -> dict:
        return self._run(
            "reject",
            lambda expected: self.store.reject(self.application_id, comments, expected_status=expected),
            comments,
        )

    def request_info(self, comments: str) -> dict:
        return self._run(
            "request_info",
            lambda expected: self.store.request_info(self.application_id, comments, expected_status=expected),
            comments,
        )

    def assign_vendor_number(self, vendor_number: str) -> dict:
        vendor_number = (vendor_number or "").strip()
        if not vendor_number:
            raise ValidationError("vendor_number is required", details={"vendor_number": "required"})
        return self._run(
            "assign_vendor_number",
            lambda expected: self.store.assign_vendor_number(
                self.application_id, vendor_number, expected_status=expected,
            ),
        )
