"""
Tests: DraftManager — in-memory aggregate, payload building and save.

Uses the InMemoryStore from conftest; no HTTP involved.
"""

import pytest

from app.core.exceptions import TransportError, ValidationError
from app.workflow.draft_manager import DraftManager, SaveInProgressError
from app.workflow.fields import FILE_SLOTS, SCALAR_FIELDS
from app.workflow.file_refs import PendingUpload, PersistedReference


def _loaded(store, **record):
    base = {
        "id": "app-9",
        "status": "draft",
        "current_step": 1,
        "supplier_name": "Acme",
        "legal_nature": "company",
        "entity_type": "legacy_code",
        "certificate_of_incorporation": "cert.pdf",
        "directors_ids": ["d1.pdf", "d2.pdf"],
        "documents": [],
        "approval_history": [],
    }
    base.update(record)
    store.records[base["id"]] = dict(base)
    draft = DraftManager(store)
    draft.load(base)
    return draft


class TestPatch:
    def test_patch_sets_scalar(self):
        draft = DraftManager()
        draft.patch("supplier_name", "Acme")
        assert draft.get("supplier_name") == "Acme"

    def test_unknown_field_is_a_warning_not_an_error(self):
        draft = DraftManager()
        draft.patch("favourite_colour", "blue")
        assert any("favourite_colour" in w for w in draft.warnings)
        assert "favourite_colour" not in draft.to_persistable_payload()

    def test_empty_value_never_clears_a_single_slot(self, store):
        draft = _loaded(store)
        draft.patch("certificate_of_incorporation", None)
        draft.patch("certificate_of_incorporation", "")
        assert draft.to_persistable_payload()["certificate_of_incorporation"] == "cert.pdf"

    def test_list_slot_is_capped_with_warning(self):
        draft = DraftManager(max_files_per_slot=10)
        draft.patch("directors_ids", [PendingUpload(f"id{i}.pdf") for i in range(12)])
        payload = draft.to_persistable_payload()
        assert len(payload["directors_ids"]) == 10
        assert any("discarded 2" in w for w in draft.warnings)

    def test_add_files_appends_to_persisted(self, store):
        draft = _loaded(store)
        draft.add_files("directors_ids", [PendingUpload("d3.pdf")])
        assert draft.to_persistable_payload()["directors_ids"] == ["d1.pdf", "d2.pdf", "d3.pdf"]

    def test_remove_file_clears_single_slot(self, store):
        draft = _loaded(store)
        draft.remove_file("certificate_of_incorporation")
        assert draft.to_persistable_payload()["certificate_of_incorporation"] is None
        assert draft.file_state("certificate_of_incorporation") == {"state": "empty", "name": None}

    def test_remove_file_drops_one_list_item(self, store):
        draft = _loaded(store)
        draft.remove_file("directors_ids", 0)
        assert draft.to_persistable_payload()["directors_ids"] == ["d2.pdf"]

    def test_remove_whole_list_sends_empty_list(self, store):
        draft = _loaded(store)
        draft.remove_file("directors_ids")
        assert draft.to_persistable_payload()["directors_ids"] == []

    def test_remove_file_out_of_range(self, store):
        draft = _loaded(store)
        with pytest.raises(ValidationError):
            draft.remove_file("directors_ids", 5)

    def test_remove_file_unknown_slot(self):
        with pytest.raises(ValidationError):
            DraftManager().remove_file("passport_photo")


class TestLoad:
    def test_codes_become_labels(self, store):
        draft = _loaded(store)
        assert draft.get("legal_nature") == "Private Limited Company"

    def test_unknown_code_displays_as_other(self, store):
        draft = _loaded(store)
        assert draft.get("entity_type") == "Other"

    def test_missing_text_defaults_to_empty_string(self, store):
        draft = _loaded(store)
        assert draft.get("bank_name") == ""
        assert draft.get("credit_period") is None

    def test_file_slots_show_persisted(self, store):
        draft = _loaded(store)
        assert draft.file_state("certificate_of_incorporation") == {"state": "persisted", "name": "cert.pdf"}
        assert [s["name"] for s in draft.file_state("directors_ids")] == ["d1.pdf", "d2.pdf"]

    def test_load_resets_pending_changes(self, store):
        draft = _loaded(store)
        draft.patch("certificate_of_incorporation", PendingUpload("new.pdf"))
        draft.load(store.records["app-9"])
        assert draft.pending_uploads() == []

    @pytest.mark.parametrize("step", [9, 4, -1, None, True, "2"])
    def test_out_of_range_step_resumes_at_first_step(self, store, step):
        draft = _loaded(store, current_step=step)
        assert draft.current_step == 0
        assert draft.to_persistable_payload()["current_step"] == 0

    def test_last_step_is_kept(self, store):
        draft = _loaded(store, current_step=3)
        assert draft.current_step == 3


class TestPayload:
    def test_payload_is_a_full_snapshot(self):
        payload = DraftManager().to_persistable_payload()
        for name in SCALAR_FIELDS + FILE_SLOTS:
            assert name in payload
        assert payload["status"] == "draft"
        assert payload["current_step"] == 0

    def test_label_to_code_and_credit_period(self):
        draft = DraftManager()
        draft.patch("legal_nature", "Public Limited Company")
        draft.patch("entity_type", "Something New")
        draft.patch("credit_period", "45 Days")
        payload = draft.to_persistable_payload()
        assert payload["legal_nature"] == "company"
        assert payload["entity_type"] == "other"
        assert payload["credit_period"] == 45

    def test_empty_codes_and_text(self):
        payload = DraftManager().to_persistable_payload()
        assert payload["legal_nature"] is None
        assert payload["supplier_name"] == ""
        assert payload["consent_to_processing"] is False
        assert payload["directors_ids"] == []
        assert payload["cr12"] is None

    def test_building_twice_is_identical(self, store):
        draft = _loaded(store)
        draft.patch("cr12", PendingUpload("cr12.pdf"))
        assert draft.to_persistable_payload() == draft.to_persistable_payload()

    def test_target_step_and_status(self):
        payload = DraftManager().to_persistable_payload("pending_procurement", 3)
        assert payload["status"] == "pending_procurement"
        assert payload["current_step"] == 3


class TestSave:
    def test_first_save_creates_draft(self, store):
        draft = DraftManager(store)
        draft.patch("supplier_name", "Acme")
        draft.save()
        assert draft.application_id == "app-1"
        assert len(store.method_calls("create_draft")) == 1
        assert store.records["app-1"]["supplier_name"] == "Acme"

    def test_second_save_updates_same_draft(self, store):
        draft = DraftManager(store)
        draft.save()
        draft.patch("supplier_name", "Acme")
        draft.save(target_step=1)
        assert len(store.method_calls("create_draft")) == 1
        assert len(store.method_calls("update_draft")) == 1
        assert draft.current_step == 1

    def test_pending_uploads_are_sent_and_promoted(self, store):
        draft = DraftManager(store)
        draft.patch("cr12", PendingUpload("cr12.pdf", b"data"))
        draft.save()
        assert store.method_calls("upload_document") == [("upload_document", "app-1", "cr12", "cr12.pdf")]
        assert draft.file_state("cr12") == {"state": "persisted", "name": "cr12.pdf"}
        assert draft.pending_uploads() == []
        assert draft.documents[0]["file_name"] == "cr12.pdf"

    def test_failed_update_leaves_state_untouched(self, store):
        draft = _loaded(store)
        draft.patch("supplier_name", "Acme Two")
        draft.patch("cr12", PendingUpload("cr12.pdf"))
        before = draft.snapshot()
        store.fail_on["update_draft"] = TransportError("network down")

        with pytest.raises(TransportError):
            draft.save(target_step=2)

        assert draft.snapshot() == before
        assert draft.current_step == 1
        assert draft.file_state("cr12")["state"] == "pending"

    def test_failed_create_keeps_no_identity(self, store):
        draft = DraftManager(store)
        store.fail_on["create_draft"] = TransportError("timeout")
        with pytest.raises(TransportError):
            draft.save()
        assert draft.application_id is None

    def test_retry_after_failed_upload_updates_instead_of_creating(self, store):
        draft = DraftManager(store)
        draft.patch("cr12", PendingUpload("cr12.pdf"))
        draft.patch("etims_proof", PendingUpload("etims.pdf"))
        store.fail_on["upload_document"] = TransportError("upload failed")

        with pytest.raises(TransportError):
            draft.save()
        assert draft.application_id == "app-1"
        assert draft.file_state("cr12")["state"] == "pending"

        draft.save()
        assert len(store.method_calls("create_draft")) == 1
        assert len(store.method_calls("update_draft")) == 1
        assert {d["file_name"] for d in store.records["app-1"]["documents"]} == {"cr12.pdf", "etims.pdf"}

    def test_save_without_store(self):
        with pytest.raises(RuntimeError):
            DraftManager().save()

    def test_concurrent_save_is_refused(self, store):
        draft = DraftManager(store)

        def reentrant_create(payload):
            draft.save()

        store.create_draft = reentrant_create
        with pytest.raises(SaveInProgressError):
            draft.save()
        assert draft._saving is False

    def test_is_editable(self, store):
        draft = _loaded(store, status="more_info_required")
        assert draft.is_editable
        draft = _loaded(store, status="pending_legal")
        assert not draft.is_editable

    def test_has_documents(self, store):
        assert not DraftManager().has_documents()
        draft = DraftManager()
        draft.patch("cr12", PersistedReference("cr12.pdf"))
        assert draft.has_documents()

    def test_document_outside_slots_counts(self, store):
        draft = _loaded(store, certificate_of_incorporation=None, directors_ids=[],
                        documents=[{"id": "doc-5", "slot": None, "file_name": "profile.pdf"}])
        assert draft.has_documents()


class TestRemovedDocuments:
    def test_removed_certificate_is_deleted_on_save(self, store):
        draft = _loaded(store, directors_ids=[], documents=[
            {"id": "doc-7", "slot": "certificate_of_incorporation", "file_name": "cert.pdf"},
        ])

        draft.remove_file("certificate_of_incorporation")
        assert not draft.has_documents()

        draft.save()
        assert store.method_calls("delete_document") == [("delete_document", "doc-7")]
        assert store.records["app-9"]["documents"] == []
        assert draft.documents == []
        assert not draft.has_documents()

    def test_full_list_slot_accepts_a_replacement(self, store):
        names = [f"id{i}.pdf" for i in range(10)]
        documents = [
            {"id": f"doc-d{i}", "slot": "directors_ids", "file_name": name}
            for i, name in enumerate(names)
        ]
        draft = _loaded(store, directors_ids=names, documents=documents)

        draft.remove_file("directors_ids", 0)
        draft.save()
        assert store.method_calls("delete_document") == [("delete_document", "doc-d0")]

        draft.add_files("directors_ids", [PendingUpload("id10.pdf", b"x")])
        draft.save()

        assert draft.warnings == []
        assert len(draft.to_persistable_payload()["directors_ids"]) == 10
        assert len(store.records["app-9"]["documents"]) == 10
        assert "id0.pdf" not in {d["file_name"] for d in draft.documents}

    def test_upload_sent_by_a_failed_save_is_deleted_when_removed(self, store):
        draft = DraftManager(store)
        draft.patch("etims_proof", PendingUpload("etims.pdf"))
        draft.patch("cr12", PendingUpload("cr12.pdf"))
        upload = store.upload_document

        def cr12_fails(application_id, slot, pending):
            if slot == "cr12":
                raise TransportError("upload failed")
            return upload(application_id, slot, pending)

        store.upload_document = cr12_fails
        with pytest.raises(TransportError):
            draft.save()

        store.upload_document = upload
        draft.remove_file("etims_proof")
        draft.save()

        assert store.method_calls("delete_document") == [("delete_document", "doc-1")]
        assert [d["file_name"] for d in store.records["app-1"]["documents"]] == ["cr12.pdf"]

    def test_already_deleted_document_does_not_fail_the_save(self, store):
        draft = _loaded(store, documents=[
            {"id": "doc-7", "slot": "certificate_of_incorporation", "file_name": "cert.pdf"},
        ])
        store.records["app-9"]["documents"] = []
        draft.remove_file("certificate_of_incorporation")

        draft.save()
        assert draft.documents == []

    def test_failed_delete_is_retried(self, store):
        draft = _loaded(store, documents=[
            {"id": "doc-7", "slot": "certificate_of_incorporation", "file_name": "cert.pdf"},
        ])
        draft.remove_file("certificate_of_incorporation")
        store.fail_on["delete_document"] = TransportError("network down")

        with pytest.raises(TransportError):
            draft.save()
        assert len(draft.documents) == 1

        draft.save()
        assert len(store.method_calls("delete_document")) == 2
        assert draft.documents == []
