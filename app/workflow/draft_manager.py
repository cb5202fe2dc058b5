"""
Draft Manager — the in-memory supplier application aggregate.

Owns every form value across all steps, the file slots (via FileRef
reconciliation), the resume step and the server-side identity of the
draft. It is the only thing that builds save payloads.

Rules:
    - ``patch`` is pure assignment: no I/O, never raises. Unknown fields
      and over-cap list slots are recorded in ``warnings``.
    - ``to_persistable_payload`` is a full snapshot and is idempotent.
    - ``save`` leaves in-memory state untouched when the store raises.
    - One save at a time per instance (``SaveInProgressError``).

Usage:
    draft = DraftManager(store)
    draft.patch("supplier_name", "Acme")
    draft.patch("certificate_of_incorporation", PendingUpload("cert.pdf", data))
    draft.save()
"""

from __future__ import annotations

import copy
import logging

from app.core.exceptions import NotFoundError, ValidationError
from app.workflow import file_refs
from app.workflow.fields import (
    BOOLEAN_FIELDS,
    CODED_FIELDS,
    DEFAULT_MAX_FILES_PER_SLOT,
    FILE_SLOTS,
    INTEGER_FIELDS,
    LIST_FILE_SLOTS,
    SCALAR_FIELDS,
    SINGLE_FILE_SLOTS,
    STEP_COUNT,
    code_to_label,
    label_to_code,
    parse_credit_period,
)
from app.workflow.file_refs import CLEARED, UNTOUCHED, PendingUpload, PersistedReference
from app.workflow.status_machine import EDITABLE_STATUSES

logger = logging.getLogger(__name__)


class SaveInProgressError(Exception):
    """Raised when ``save`` is called while another save is still in flight."""


class DraftManager:
    """In-memory form state for one supplier application."""

    def __init__(self, store=None, *, max_files_per_slot: int = DEFAULT_MAX_FILES_PER_SLOT) -> None:
        self.store = store
        self.max_files_per_slot = max_files_per_slot

        self.application_id: str | None = None
        self.status = "draft"
        self.current_step = 0
        self.vendor_number: str | None = None
        self.rejection_reason: str | None = None
        self.approval_history: list[dict] = []
        self.documents: list[dict] = []

        self._values: dict = {name: None for name in SCALAR_FIELDS}
        self._files: dict = {slot: UNTOUCHED for slot in FILE_SLOTS}
        self._persisted: dict = {slot: None for slot in SINGLE_FILE_SLOTS}
        self._persisted.update({slot: [] for slot in LIST_FILE_SLOTS})

        self.warnings: list[str] = []
        self._saving = False
        # (slot, upload) pairs already sent during a save that later failed
        self._sent_uploads: dict[tuple, dict] = {}
        # Stored documents the user removed; deleted on the next save
        self._removed_documents: list[str] = []
        self._deleted_documents: set[str] = set()

    # ── Mutators ─────────────────────────────────────────────────────────

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning("Draft %s: %s", self.application_id or "<new>", message)

    def patch(self, field: str, value) -> None:
        """Assign a field value in memory."""
        if field in SCALAR_FIELDS:
            self._values[field] = value
            return
        if field in SINGLE_FILE_SLOTS:
            self._patch_single(field, value)
            return
        if field in LIST_FILE_SLOTS:
            self._patch_list(field, value)
            return
        self._warn(f"Ignored unknown field '{field}'")

    def _patch_single(self, slot: str, value) -> None:
        try:
            item = file_refs.coerce_item(value)
        except TypeError as exc:
            self._warn(f"{slot}: {exc}")
            return
        if item is None:
            # Empty values never clear a slot; use remove_file()
            return
        self._files[slot] = item

    def _patch_list(self, slot: str, value) -> None:
        if value is None:
            return
        if not isinstance(value, (list, tuple)):
            value = [value]
        items = []
        for raw in value:
            try:
                item = file_refs.coerce_item(raw)
            except TypeError as exc:
                self._warn(f"{slot}: {exc}")
                continue
            if item is not None:
                items.append(item)
        self._set_list(slot, items)

    def _set_list(self, slot: str, items: list) -> None:
        kept, discarded = file_refs.cap_items(items, self.max_files_per_slot, slot)
        if discarded:
            self._warn(
                f"{slot}: only {self.max_files_per_slot} files allowed, "
                f"discarded {len(discarded)}"
            )
        self._files[slot] = kept

    def add_files(self, slot: str, uploads) -> None:
        """Append uploads to a list slot, keeping what is already there."""
        if slot not in LIST_FILE_SLOTS:
            self._warn(f"Ignored add_files on non-list slot '{slot}'")
            return
        self._patch_list(slot, self._list_items(slot) + list(uploads))

    def remove_file(self, slot: str, index: int | None = None) -> None:
        """Explicitly clear a slot, or drop one item of a list slot.

        Documents already stored for the removed files are deleted on the
        next ``save``.
        """
        if slot in SINGLE_FILE_SLOTS:
            current = self._files[slot]
            removed = self._persisted[slot] if current is UNTOUCHED else current
            self._files[slot] = CLEARED
            self._queue_document_removal(slot, [removed])
            return
        if slot not in LIST_FILE_SLOTS:
            raise ValidationError(f"Unknown file slot '{slot}'", details={slot: "unknown"})
        items = self._list_items(slot)
        if index is None:
            self._files[slot] = CLEARED
            self._queue_document_removal(slot, items)
            return
        if not 0 <= index < len(items):
            raise ValidationError(
                f"{slot} has no file at position {index}", details={slot: "index out of range"},
            )
        removed = items.pop(index)
        self._files[slot] = items
        self._queue_document_removal(slot, [removed])

    def _queue_document_removal(self, slot: str, removed: list) -> None:
        for item in removed:
            if isinstance(item, PendingUpload):
                # Only stored if an earlier save failed after uploading it
                doc = self._sent_uploads.pop((slot, item), None)
                if doc and doc.get("id"):
                    self._removed_documents.append(doc["id"])
            elif isinstance(item, PersistedReference):
                for doc in self.documents:
                    doc_id = doc.get("id")
                    if (
                        doc_id
                        and doc.get("slot") == slot
                        and doc_id not in self._removed_documents
                        and item.name in (doc.get("file_name"), doc.get("original_name"))
                    ):
                        self._removed_documents.append(doc_id)
                        break

    def _list_items(self, slot: str) -> list:
        current = self._files[slot]
        if current is UNTOUCHED:
            return list(self._persisted[slot])
        if current is CLEARED:
            return []
        return list(current)

    # ── Read side ────────────────────────────────────────────────────────

    def get(self, field: str):
        if field in SCALAR_FIELDS:
            return self._values[field]
        if field in FILE_SLOTS:
            return self.file_state(field)
        raise KeyError(field)

    def file_state(self, slot: str):
        """Display state of a file slot.

        Single slots → ``{"state": ..., "name": ...}``; list slots → a list of those.
        """
        if slot in LIST_FILE_SLOTS:
            return [
                {"state": state.value, "name": name}
                for state, name in file_refs.resolve_list(self._files[slot], self._persisted[slot])
            ]
        state, name = file_refs.resolve(self._files[slot], self._persisted[slot])
        return {"state": state.value, "name": name}

    def pending_uploads(self) -> list[tuple[str, PendingUpload]]:
        return [
            (slot, upload)
            for slot in FILE_SLOTS
            for upload in file_refs.pending_in(self._files[slot])
        ]

    def has_documents(self) -> bool:
        """True when a file slot holds a file, or a document outside the slots is attached."""
        if any(bool(value) for value in self._reconciled_files().values()):
            return True
        return any(
            not doc.get("slot") and doc.get("id") not in self._removed_documents
            for doc in self.documents
        )

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    def snapshot(self) -> dict:
        """Everything the UI renders: values, file slot states and record metadata."""
        return {
            "id": self.application_id,
            "status": self.status,
            "current_step": self.current_step,
            "vendor_number": self.vendor_number,
            "rejection_reason": self.rejection_reason,
            "fields": dict(self._values),
            "files": {slot: self.file_state(slot) for slot in FILE_SLOTS},
            "approval_history": list(self.approval_history),
            "documents": list(self.documents),
            "warnings": list(self.warnings),
        }

    # ── Load / payload ───────────────────────────────────────────────────

    def load(self, record: dict) -> None:
        """Replace in-memory state with a server record (wire shape)."""
        self.application_id = record.get("id")
        self.status = record.get("status") or "draft"
        step = record.get("current_step")
        in_range = isinstance(step, int) and not isinstance(step, bool) and 0 <= step < STEP_COUNT
        self.current_step = step if in_range else 0
        self.vendor_number = record.get("vendor_number")
        self.rejection_reason = record.get("rejection_reason")
        self.approval_history = list(record.get("approval_history") or [])
        self.documents = list(record.get("documents") or [])

        for name in SCALAR_FIELDS:
            value = record.get(name)
            if name in CODED_FIELDS:
                value = code_to_label(name, value)
            elif value is None and name not in BOOLEAN_FIELDS and name not in INTEGER_FIELDS:
                value = ""
            self._values[name] = value

        for slot in SINGLE_FILE_SLOTS:
            self._persisted[slot] = file_refs.as_persisted(record.get(slot))
        for slot in LIST_FILE_SLOTS:
            self._persisted[slot] = file_refs.as_persisted_list(record.get(slot))
        self._files = {slot: UNTOUCHED for slot in FILE_SLOTS}
        self._sent_uploads = {}
        self._removed_documents = []
        self._deleted_documents = set()
        self.warnings = []

    def _reconciled_files(self) -> dict:
        files = {}
        for slot in SINGLE_FILE_SLOTS:
            files[slot] = file_refs.reconcile(self._files[slot], self._persisted[slot])
        for slot in LIST_FILE_SLOTS:
            files[slot] = file_refs.reconcile_list(self._files[slot], self._persisted[slot])
        return files

    def to_persistable_payload(self, target_status: str = "draft", target_step: int | None = None) -> dict:
        """Build the full-snapshot save payload. Does not mutate state."""
        payload = {}
        for name in SCALAR_FIELDS:
            value = self._values[name]
            if name in CODED_FIELDS:
                payload[name] = label_to_code(name, value)
            elif name in INTEGER_FIELDS:
                payload[name] = parse_credit_period(value)
            elif name in BOOLEAN_FIELDS:
                payload[name] = bool(value)
            else:
                payload[name] = "" if value is None else value
        payload.update(self._reconciled_files())
        payload["status"] = target_status
        payload["current_step"] = self.current_step if target_step is None else target_step
        return payload

    # ── Persistence ──────────────────────────────────────────────────────

    def save(self, target_step: int | None = None, target_status: str = "draft") -> dict:
        """Persist the draft, delete removed documents, then upload pending files.

        Returns the payload that was saved. On any store error the
        in-memory form state is unchanged and the error propagates.
        """
        if self._saving:
            raise SaveInProgressError("A save is already in progress for this draft")
        if self.store is None:
            raise RuntimeError("DraftManager has no store configured")

        self._saving = True
        try:
            payload = self.to_persistable_payload(target_status, target_step)
            if self.application_id is None:
                created = self.store.create_draft(payload)
                # Identity is kept even if an upload below fails, so a retry
                # updates this draft instead of creating another one.
                self.application_id = created["id"]
            else:
                self.store.update_draft(self.application_id, payload)

            for document_id in self._removed_documents:
                if document_id in self._deleted_documents:
                    continue
                try:
                    self.store.delete_document(document_id)
                except NotFoundError:
                    logger.info("Document %s was already deleted", document_id)
                self._deleted_documents.add(document_id)

            uploaded = []
            for slot, upload in self.pending_uploads():
                key = (slot, upload)
                doc = self._sent_uploads.get(key)
                if doc is None:
                    doc = self.store.upload_document(self.application_id, slot, upload)
                    self._sent_uploads[key] = doc
                uploaded.append(doc)
        finally:
            self._saving = False

        self._commit_saved(payload, uploaded)
        logger.info(
            "Draft saved",
            extra={"application_id": self.application_id, "step": payload["current_step"],
                   "uploads": len(uploaded)},
        )
        return copy.deepcopy(payload)

    def _commit_saved(self, payload: dict, uploaded: list[dict]) -> None:
        """Promote everything that was just persisted."""
        self.current_step = payload["current_step"]
        for slot in SINGLE_FILE_SLOTS:
            self._persisted[slot] = file_refs.as_persisted(payload[slot])
        for slot in LIST_FILE_SLOTS:
            self._persisted[slot] = file_refs.as_persisted_list(payload[slot])
        self._files = {slot: UNTOUCHED for slot in FILE_SLOTS}
        self.documents = [
            doc for doc in self.documents if doc.get("id") not in self._deleted_documents
        ] + uploaded
        self._sent_uploads = {}
        self._removed_documents = []
        self._deleted_documents = set()
