"""
Supplier Onboarding API Gateway.

``ApplicationStore`` implementation over the portal's REST API. All outbound
calls from the workflow core go through this class.

Design:
  - Identity: the session provider's actor is forwarded as
    X-User-Id / X-User-Role on every call
  - No retries: saves and transitions are not idempotent on the server,
    so a failure is surfaced to the caller unchanged
  - Timeout: SUPPLIER_API_TIMEOUT (default 15 s)
  - Error mapping: HTTP status + error code → app.core.exceptions

Testability: pass a mock `session` to SupplierGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PolicyError,
    TransportError,
    ValidationError,
)
from app.workflow.file_refs import PendingUpload
from app.workflow.store import ApplicationStore

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 15
_API_PREFIX = "/api/v1"


class SupplierGateway(ApplicationStore):
    """REST-backed ApplicationStore.

    Usage:
        gateway = SupplierGateway("https://portal.example", actor_id="u-1", role="supplier")
        draft = DraftManager(gateway)
    """

    def __init__(
        self,
        base_url: str,
        *,
        actor_id: str,
        role: str,
        session: requests.Session | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.actor_id = actor_id
        self.role = role
        self.timeout = timeout
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session

    @classmethod
    def from_config(cls, config, *, actor_id: str, role: str, session=None) -> "SupplierGateway":
        return cls(
            config.get("SUPPLIER_API_URL", "http://localhost:5000"),
            actor_id=actor_id,
            role=role,
            session=session,
            timeout=int(config.get("SUPPLIER_API_TIMEOUT", _DEFAULT_TIMEOUT)),
        )

    # ── HTTP session ─────────────────────────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Core request dispatcher ───────────────────────────────────────────────

    def _headers(self) -> dict:
        return {
            "X-User-Id": self.actor_id,
            "X-User-Role": self.role,
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict | None = None,
        files: dict | None = None,
        data: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        """Execute one request and return the parsed JSON body.

        Raises the exception taxonomy; never retries.
        """
        url = f"{self.base_url}{_API_PREFIX}{path}"
        kwargs: dict[str, Any] = {"headers": self._headers(), "timeout": self.timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        if files:
            kwargs["files"] = files
        if data:
            kwargs["data"] = data
        if params:
            kwargs["params"] = params

        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.Timeout as exc:
            logger.warning("Supplier API timed out %s %s", method, path)
            raise TransportError(f"Request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            logger.warning("Supplier API network error %s %s: %s", method, path, exc)
            raise TransportError(str(exc)[:500]) from exc
        duration_ms = int((time.perf_counter() - t0) * 1000)

        logger.debug("Supplier API %s %s -> %s", method, path, resp.status_code,
                     extra={"duration_ms": duration_ms})
        return self._handle(resp)

    def _handle(self, resp) -> Any:
        body: dict = {}
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = {}

        if 200 <= resp.status_code < 300:
            return body

        if not isinstance(body, dict):
            body = {}
        message = body.get("error") or f"HTTP {resp.status_code}"
        code = body.get("code", "")
        details = body.get("details") or {}
        status = resp.status_code

        if status >= 500:
            raise TransportError(message, status_code=status)
        if status == 404:
            raise NotFoundError(details.get("resource", "SupplierApplication"), details.get("resource_id"))
        if status == 409:
            raise ConflictError(
                details.get("resource", "SupplierApplication"),
                details.get("field", "status"),
                details.get("value"),
                expected=details.get("expected"),
                message=message,
            )
        if code.startswith("POLICY_") or status in (401, 403):
            raise PolicyError(
                details.get("action", "request"),
                details.get("status"),
                details.get("reason", message),
                role=details.get("role") or (self.role if status in (401, 403) else None),
            )
        raise ValidationError(message, details=details)

    # ── ApplicationStore: drafts ──────────────────────────────────────────────

    def create_draft(self, payload: dict) -> dict:
        return self._request("POST", "/suppliers/drafts", json_body=payload)

    def update_draft(self, application_id: str, payload: dict) -> dict:
        return self._request("PUT", f"/suppliers/{application_id}/draft", json_body=payload)

    def upload_document(self, application_id: str, slot: str, upload: PendingUpload) -> dict:
        return self._request(
            "POST", f"/suppliers/{application_id}/documents",
            files={"file": (upload.filename, upload.content, upload.content_type)},
            data={"slot": slot},
        )

    def delete_document(self, document_id: str) -> None:
        self._request("DELETE", f"/suppliers/documents/{document_id}")

    # ── ApplicationStore: reads ───────────────────────────────────────────────

    def get_by_id(self, application_id: str) -> dict:
        return self._request("GET", f"/suppliers/{application_id}")

    def list_mine(self) -> list[dict]:
        return self._request("GET", "/suppliers/mine").get("items", [])

    def list_tasks(self) -> list[dict]:
        return self._request("GET", "/approvals/tasks").get("items", [])

    # ── ApplicationStore: transitions ─────────────────────────────────────────

    def submit(self, application_id: str, payload: dict | None = None,
               expected_status: str | None = None) -> dict:
        return self._request(
            "POST", f"/suppliers/{application_id}/submit",
            json_body={"application": payload, "expected_status": expected_status},
        )

    def _review(self, application_id: str, endpoint: str, body: dict) -> dict:
        return self._request("POST", f"/approvals/{application_id}/{endpoint}", json_body=body)

    def approve(self, application_id: str, comments: str | None = None,
                expected_status: str | None = None) -> dict:
        return self._review(application_id, "approve",
                            {"comments": comments, "expected_status": expected_status})

    def reject(self, application_id: str, comments: str,
               expected_status: str | None = None) -> dict:
        return self._review(application_id, "reject",
                            {"comments": comments, "expected_status": expected_status})

    def request_info(self, application_id: str, comments: str,
                     expected_status: str | None = None) -> dict:
        return self._review(application_id, "request-info",
                            {"comments": comments, "expected_status": expected_status})

    def assign_vendor_number(self, application_id: str, vendor_number: str,
                             expected_status: str | None = None) -> dict:
        return self._review(application_id, "assign-vendor-number",
                            {"vendor_number": vendor_number, "expected_status": expected_status})
