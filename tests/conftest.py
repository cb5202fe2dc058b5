"""
Shared pytest fixtures for the Supplier Onboarding Portal test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - actor_headers: builds X-User-Id / X-User-Role headers
    - store: in-memory ApplicationStore for workflow-core tests
    - make_application: ORM factory for a SupplierApplication in any status
"""

import copy
import itertools

import pytest

from app import create_app
from app.core.exceptions import ConflictError, NotFoundError
from app.models import db as _db
from app.workflow.status_machine import (
    HISTORY_ACTIONS,
    ROUTED,
    is_actionable_by,
    require_transition,
)
from app.workflow.store import ApplicationStore


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Actors ───────────────────────────────────────────────────────────────


def _headers(actor_id="sup-1", role="supplier"):
    return {"X-User-Id": actor_id, "X-User-Role": role}


@pytest.fixture()
def actor_headers():
    """Factory: actor_headers("proc-1", "procurement") → request headers."""
    return _headers


@pytest.fixture()
def supplier_headers():
    return _headers("sup-1", "supplier")


@pytest.fixture()
def procurement_headers():
    return _headers("proc-1", "procurement")


@pytest.fixture()
def legal_headers():
    return _headers("legal-1", "legal")


# ── ORM factories ────────────────────────────────────────────────────────


VALID_FIELDS = {
    "supplier_name": "Acme Supplies Ltd",
    "legal_nature": "company",
    "contact_full_name": "Jane Wanjiku",
    "contact_email": "jane@acme.co.ke",
    "company_email": "info@acme.co.ke",
    "currency": "KES",
    "credit_period": 30,
    "entity_type": "private_company",
    "service_type": "Logistics",
    "source_of_wealth": "Trading revenue",
    "declarant_full_name": "Jane Wanjiku",
    "consent_to_processing": True,
}


@pytest.fixture()
def make_application():
    """Factory: create a SupplierApplication row directly via the ORM."""
    from app.models.supplier import SupplierApplication

    def _make(status="draft", owner_id="sup-1", with_document=True, **overrides):
        fields = dict(VALID_FIELDS)
        if with_document:
            fields["certificate_of_incorporation"] = "incorporation.pdf"
        fields.update(overrides)
        application = SupplierApplication(owner_id=owner_id, status=status, current_step=3, **fields)
        _db.session.add(application)
        _db.session.commit()
        return application

    return _make


# ── In-memory ApplicationStore ───────────────────────────────────────────


class InMemoryStore(ApplicationStore):
    """ApplicationStore double keeping records in a dict.

    ``fail_on[method] = exc`` makes the next call to ``method`` raise ``exc``.
    Every call is appended to ``calls`` as ``(method, args)``.
    """

    def __init__(self, role="supplier", legal_review=True):
        self.role = role
        self.legal_review = legal_review
        self.records = {}
        self.calls = []
        self.fail_on = {}
        self._ids = itertools.count(1)
        self._doc_ids = itertools.count(1)

    def _maybe_fail(self, method):
        exc = self.fail_on.pop(method, None)
        if exc is not None:
            raise exc

    def _get(self, application_id):
        if application_id not in self.records:
            raise NotFoundError("SupplierApplication", application_id)
        return self.records[application_id]

    def _transition(self, application_id, action, expected_status, comments=None, **changes):
        record = self._get(application_id)
        if expected_status is not None and expected_status != record["status"]:
            raise ConflictError(
                "SupplierApplication", "status", record["status"], expected=expected_status,
            )
        previous = record["status"]
        target = require_transition(
            previous, action, self.role, vendor_number=record.get("vendor_number"),
        )
        if target == ROUTED:
            target = "pending_legal" if self.legal_review else "approved"
        record["status"] = target
        record.update(changes)
        record["approval_history"].append({
            "action": HISTORY_ACTIONS[action],
            "from_status": previous,
            "to_status": target,
            "actor_role": self.role,
            "comments": comments,
        })
        return {"application_id": application_id, "previous_status": previous,
                "new_status": target, "status": target}

    # drafts

    def create_draft(self, payload):
        self.calls.append(("create_draft", copy.deepcopy(payload)))
        self._maybe_fail("create_draft")
        application_id = f"app-{next(self._ids)}"
        record = copy.deepcopy(payload)
        record.update(id=application_id, status="draft", vendor_number=None,
                      rejection_reason=None, approval_history=[], documents=[])
        self.records[application_id] = record
        return copy.deepcopy(record)

    def update_draft(self, application_id, payload):
        self.calls.append(("update_draft", application_id, copy.deepcopy(payload)))
        self._maybe_fail("update_draft")
        record = self._get(application_id)
        status = record["status"]
        record.update(copy.deepcopy(payload))
        record["status"] = status
        return copy.deepcopy(record)

    def upload_document(self, application_id, slot, upload):
        self.calls.append(("upload_document", application_id, slot, upload.filename))
        self._maybe_fail("upload_document")
        record = self._get(application_id)
        doc = {"id": f"doc-{next(self._doc_ids)}", "slot": slot,
               "file_name": upload.filename, "file_size": upload.size}
        record["documents"].append(doc)
        return dict(doc)

    def delete_document(self, document_id):
        self.calls.append(("delete_document", document_id))
        self._maybe_fail("delete_document")
        for record in self.records.values():
            for doc in record["documents"]:
                if doc["id"] == document_id:
                    record["documents"].remove(doc)
                    return None
        raise NotFoundError("SupplierDocument", document_id)

    # reads

    def get_by_id(self, application_id):
        self.calls.append(("get_by_id", application_id))
        self._maybe_fail("get_by_id")
        return copy.deepcopy(self._get(application_id))

    def list_mine(self):
        return [copy.deepcopy(r) for r in self.records.values()]

    def list_tasks(self):
        return [
            copy.deepcopy(r) for r in self.records.values()
            if is_actionable_by(r["status"], self.role, vendor_number=r.get("vendor_number"))
        ]

    # transitions

    def submit(self, application_id, payload=None, expected_status=None):
        self.calls.append(("submit", application_id, expected_status))
        self._maybe_fail("submit")
        if payload:
            record = self._get(application_id)
            status = record["status"]
            record.update({k: v for k, v in payload.items() if k != "status"})
            record["status"] = status
        return self._transition(application_id, "submit", expected_status)

    def approve(self, application_id, comments=None, expected_status=None):
        self.calls.append(("approve", application_id, expected_status))
        self._maybe_fail("approve")
        return self._transition(application_id, "approve", expected_status, comments)

    def reject(self, application_id, comments, expected_status=None):
        self.calls.append(("reject", application_id, expected_status))
        self._maybe_fail("reject")
        return self._transition(application_id, "reject", expected_status, comments,
                                rejection_reason=comments)

    def request_info(self, application_id, comments, expected_status=None):
        self.calls.append(("request_info", application_id, expected_status))
        self._maybe_fail("request_info")
        return self._transition(application_id, "request_info", expected_status, comments)

    def assign_vendor_number(self, application_id, vendor_number, expected_status=None):
        self.calls.append(("assign_vendor_number", application_id, expected_status))
        self._maybe_fail("assign_vendor_number")
        return self._transition(application_id, "assign_vendor_number", expected_status,
                                vendor_number=vendor_number)

    # helpers for tests

    def method_calls(self, method):
        return [c for c in self.calls if c[0] == method]


@pytest.fixture()
def store():
    """Fresh in-memory ApplicationStore acting as a supplier."""
    return InMemoryStore()


@pytest.fixture()
def store_factory():
    """Factory for stores acting under another role."""
    return InMemoryStore
