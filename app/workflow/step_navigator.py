"""
Step Navigator — sequencing of the multi-page application form.

Steps: Basic Information → Entity Details → Declarations → Review Application.

Save-before-transition: ``advance`` and ``retreat`` persist the draft with the
*destination* step index first and only move ``current`` once the save
succeeded. The last step's advance is the submit transition; the status it
lands in is whatever the store reports, never a local guess.
"""

import logging

from email_validator import EmailNotValidError, validate_email

from app.core.exceptions import PolicyError, ValidationError
from app.workflow.fields import (
    EMAIL_FIELDS,
    STEP_REQUIRED_FIELDS,
    STEPS,
    step_fields,
)
from app.workflow.status_machine import OWNER_ROLE, validate_transition

logger = logging.getLogger(__name__)


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class StepNavigator:
    """Drives a DraftManager through the form steps."""

    def __init__(self, draft, steps=STEPS) -> None:
        self.draft = draft
        self.steps = tuple(steps)
        self.current = self.seed(draft.current_step)

    # ── Position ─────────────────────────────────────────────────────────

    def seed(self, step) -> int:
        """Resume position from a persisted ``current_step``; invalid → 0."""
        if isinstance(step, int) and not isinstance(step, bool) and 0 <= step < len(self.steps):
            return step
        if step not in (None, 0):
            logger.warning("Ignoring out-of-range current_step=%r", step)
        return 0

    def sync(self) -> int:
        """Re-seed after the draft was (re)loaded."""
        self.current = self.seed(self.draft.current_step)
        return self.current

    @property
    def current_name(self) -> str:
        return self.steps[self.current]

    @property
    def is_first(self) -> bool:
        return self.current == 0

    @property
    def is_terminal(self) -> bool:
        return self.current == len(self.steps) - 1

    # ── Completion checks ────────────────────────────────────────────────

    def missing_fields(self, step: int | None = None) -> dict:
        """Field → problem for everything blocking ``step`` (default: current)."""
        step = self.current if step is None else step
        problems = {}
        for name in STEP_REQUIRED_FIELDS.get(step, ()):
            value = self.draft.get(name)
            if name == "consent_to_processing":
                if value is not True:
                    problems[name] = "consent is required"
            elif _is_blank(value):
                problems[name] = "required"
        for name in EMAIL_FIELDS:
            if name not in step_fields(step) or name in problems:
                continue
            value = self.draft.get(name)
            if _is_blank(value):
                continue
            try:
                validate_email(value, check_deliverability=False)
            except EmailNotValidError as exc:
                problems[name] = str(exc)
        return problems

    def submission_problems(self) -> dict:
        """Everything blocking submission: every step's fields plus documents."""
        problems = {}
        for step in range(len(self.steps)):
            problems.update(self.missing_fields(step))
        if not self.draft.has_documents():
            problems["documents"] = "at least one document must be attached"
        return problems

    def can_advance(self) -> bool:
        """Pure predicate: may the user leave the current step forward?"""
        if self.is_terminal:
            return not self.submission_problems()
        return not self.missing_fields()

    # ── Navigation ───────────────────────────────────────────────────────

    def advance(self):
        """Move forward one step, or submit from the terminal step."""
        if self.is_terminal:
            return self.submit()

        problems = self.missing_fields()
        if problems:
            raise ValidationError(
                f"Step '{self.current_name}' is incomplete", details=problems,
            )

        target = self.current + 1
        if self.draft.is_editable:
            self.draft.save(target_step=target)
        self.current = target
        return self.current

    def retreat(self) -> int:
        if self.is_first:
            raise ValidationError("Already at the first step")
        target = self.current - 1
        if self.draft.is_editable:
            self.draft.save(target_step=target)
        self.current = target
        return self.current

    def submit(self) -> str:
        """Final validation, save, then ask the store to submit.

        Returns the status the store reports after submission.
        """
        if not self.is_terminal:
            raise ValidationError("Submission is only possible from the review step")

        check = validate_transition(self.draft.status, "submit", OWNER_ROLE)
        if not check["valid"]:
            raise PolicyError("submit", self.draft.status, check["reason"])

        problems = self.submission_problems()
        if problems:
            raise ValidationError("Application is incomplete", details=problems)

        self.draft.save(target_step=self.current)
        store = self.draft.store
        application_id = self.draft.application_id
        payload = self.draft.to_persistable_payload(
            target_status="pending_procurement", target_step=self.current,
        )
        result = store.submit(application_id, payload, expected_status=self.draft.status)

        record = store.get_by_id(application_id)
        self.draft.load(record)
        self.sync()
        logger.info("Application %s submitted, status=%s", application_id, self.draft.status)
        return result.get("status", self.draft.status)
