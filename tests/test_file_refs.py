"""
Tests: FileRef reconciliation.

Pure functions, no app context needed. Covers the transmit table for single
and list slots, display-state resolution and list capping.
"""

import logging

import pytest

from app.workflow import file_refs
from app.workflow.file_refs import (
    CLEARED,
    UNTOUCHED,
    FileState,
    PendingUpload,
    PersistedReference,
)


class TestReconcileSingle:
    def test_untouched_keeps_persisted_reference(self):
        assert file_refs.reconcile(UNTOUCHED, PersistedReference("cert.pdf")) == "cert.pdf"

    def test_untouched_without_persisted_sends_none(self):
        assert file_refs.reconcile(UNTOUCHED, None) is None

    def test_pending_upload_sends_its_filename(self):
        upload = PendingUpload("new.pdf", b"%PDF")
        assert file_refs.reconcile(upload, PersistedReference("old.pdf")) == "new.pdf"

    def test_explicit_reference_wins(self):
        assert file_refs.reconcile(PersistedReference("b.pdf"), PersistedReference("a.pdf")) == "b.pdf"

    def test_cleared_sends_none_even_with_persisted(self):
        assert file_refs.reconcile(CLEARED, PersistedReference("cert.pdf")) is None


class TestReconcileList:
    def test_untouched_returns_persisted_names(self):
        persisted = [PersistedReference("a.pdf"), PersistedReference("b.pdf")]
        assert file_refs.reconcile_list(UNTOUCHED, persisted) == ["a.pdf", "b.pdf"]

    def test_mixed_items_keep_order(self):
        current = [PersistedReference("a.pdf"), PendingUpload("c.pdf")]
        assert file_refs.reconcile_list(current, []) == ["a.pdf", "c.pdf"]

    def test_cleared_sends_empty_list(self):
        assert file_refs.reconcile_list(CLEARED, [PersistedReference("a.pdf")]) == []


class TestResolve:
    def test_states(self):
        assert file_refs.resolve(UNTOUCHED, None) == (FileState.EMPTY, None)
        assert file_refs.resolve(UNTOUCHED, PersistedReference("a.pdf")) == (FileState.PERSISTED, "a.pdf")
        assert file_refs.resolve(PendingUpload("b.pdf"), None) == (FileState.PENDING, "b.pdf")
        assert file_refs.resolve(CLEARED, PersistedReference("a.pdf")) == (FileState.EMPTY, None)

    def test_list_states(self):
        current = [PersistedReference("a.pdf"), PendingUpload("b.pdf")]
        assert file_refs.resolve_list(current, []) == [
            (FileState.PERSISTED, "a.pdf"),
            (FileState.PENDING, "b.pdf"),
        ]
        assert file_refs.resolve_list(CLEARED, [PersistedReference("a.pdf")]) == []


class TestCoerceAndCap:
    def test_coerce_strings_and_empties(self):
        assert file_refs.coerce_item("a.pdf") == PersistedReference("a.pdf")
        assert file_refs.coerce_item(None) is None
        assert file_refs.coerce_item("") is None

    def test_coerce_rejects_other_types(self):
        with pytest.raises(TypeError):
            file_refs.coerce_item(42)

    def test_cap_splits_at_limit(self, caplog):
        items = [PendingUpload(f"f{i}.pdf") for i in range(12)]
        with caplog.at_level(logging.WARNING, logger="app.workflow.file_refs"):
            kept, discarded = file_refs.cap_items(items, 10, "directors_ids")
        assert len(kept) == 10
        assert [d.filename for d in discarded] == ["f10.pdf", "f11.pdf"]
        assert "directors_ids" in caplog.text

    def test_cap_under_limit_discards_nothing(self):
        kept, discarded = file_refs.cap_items([PendingUpload("a.pdf")], 10)
        assert len(kept) == 1 and discarded == []

    def test_markers_are_falsy(self):
        assert not UNTOUCHED
        assert not CLEARED

    def test_pending_in(self):
        upload = PendingUpload("a.pdf")
        assert file_refs.pending_in(upload) == [upload]
        assert file_refs.pending_in([PersistedReference("x"), upload]) == [upload]
        assert file_refs.pending_in(UNTOUCHED) == []

    def test_as_persisted_list_drops_blanks(self):
        assert file_refs.as_persisted_list(["a.pdf", "", None, " b.pdf "]) == [
            PersistedReference("a.pdf"), PersistedReference("b.pdf"),
        ]
        assert file_refs.as_persisted_list(None) == []
