"""
Tests: supplier blueprint — drafts, documents, submit and reads over HTTP.
"""

import io

from app.models.supplier import SupplierApplication, SupplierDocument
from app.models import db


def _create(client, headers, **fields):
    payload = {"supplier_name": "Acme", "current_step": 0, "status": "draft"}
    payload.update(fields)
    return client.post("/api/v1/suppliers/drafts", json=payload, headers=headers)


def _upload(client, headers, application_id, name="cert.pdf", slot="certificate_of_incorporation"):
    return client.post(
        f"/api/v1/suppliers/{application_id}/documents",
        data={"file": (io.BytesIO(b"%PDF-1.4"), name), "slot": slot},
        content_type="multipart/form-data",
        headers=headers,
    )


class TestAuth:
    def test_missing_actor_headers(self, client):
        res = client.post("/api/v1/suppliers/drafts", json={})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_unknown_role(self, client, actor_headers):
        res = client.get("/api/v1/suppliers/mine", headers=actor_headers("x", "janitor"))
        assert res.status_code == 401

    def test_health_is_public(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_reviewer_cannot_create_draft(self, client, procurement_headers):
        res = _create(client, procurement_headers)
        assert res.status_code == 403


class TestDrafts:
    def test_create_draft(self, client, supplier_headers):
        res = _create(client, supplier_headers, legal_nature="company", credit_period="30 Days")
        assert res.status_code == 201
        body = res.get_json()
        assert body["status"] == "draft"
        assert body["owner_id"] == "sup-1"
        assert body["legal_nature"] == "company"
        assert body["credit_period"] == 30
        assert body["available_actions"] == ["submit"]

    def test_update_is_replace_on_write(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        res = client.put(
            f"/api/v1/suppliers/{app_id}/draft",
            json={"supplier_name": "Acme Two", "current_step": 2, "directors_ids": ["a.pdf", "b.pdf"]},
            headers=supplier_headers,
        )
        assert res.status_code == 200
        body = res.get_json()
        assert body["supplier_name"] == "Acme Two"
        assert body["current_step"] == 2
        assert body["directors_ids"] == ["a.pdf", "b.pdf"]

    def test_invalid_payload_is_422_with_details(self, client, supplier_headers):
        res = _create(client, supplier_headers, legal_nature="Private Limited Company",
                      contact_email="nope", current_step=7)
        assert res.status_code == 422
        details = res.get_json()["details"]
        assert set(details) == {"legal_nature", "contact_email", "current_step"}

    def test_path_in_file_reference_rejected(self, client, supplier_headers):
        res = _create(client, supplier_headers, cr12="../../etc/passwd")
        assert res.status_code == 422
        assert "cr12" in res.get_json()["details"]

    def test_list_slot_limit(self, client, supplier_headers):
        res = _create(client, supplier_headers, directors_ids=[f"id{i}.pdf" for i in range(11)])
        assert res.status_code == 422

    def test_save_ignores_status_field(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        client.put(f"/api/v1/suppliers/{app_id}/draft", json={"status": "approved"},
                   headers=supplier_headers)
        assert db.session.get(SupplierApplication, app_id).status == "draft"

    def test_other_supplier_sees_404(self, client, supplier_headers, actor_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        res = client.get(f"/api/v1/suppliers/{app_id}", headers=actor_headers("sup-2", "supplier"))
        assert res.status_code == 404
        res = client.put(f"/api/v1/suppliers/{app_id}/draft", json={},
                         headers=actor_headers("sup-2", "supplier"))
        assert res.status_code == 404

    def test_reviewer_can_read(self, client, supplier_headers, procurement_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        res = client.get(f"/api/v1/suppliers/{app_id}", headers=procurement_headers)
        assert res.status_code == 200
        assert res.get_json()["available_actions"] == []

    def test_list_mine(self, client, supplier_headers, actor_headers):
        _create(client, supplier_headers)
        _create(client, actor_headers("sup-2", "supplier"))
        res = client.get("/api/v1/suppliers/mine", headers=supplier_headers)
        assert res.get_json()["total"] == 1

    def test_not_editable_after_submit(self, client, supplier_headers, make_application):
        application = make_application(status="pending_procurement")
        res = client.put(f"/api/v1/suppliers/{application.id}/draft", json={"supplier_name": "X"},
                         headers=supplier_headers)
        assert res.status_code == 422
        assert res.get_json()["code"] == "POLICY_TRANSITION"


class TestDocuments:
    def test_upload_records_metadata(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        res = _upload(client, supplier_headers, app_id, name="my cert.pdf")
        assert res.status_code == 201
        body = res.get_json()
        assert body["slot"] == "certificate_of_incorporation"
        assert body["document_type"] == "certificate_of_incorporation"
        assert body["file_name"] == "my_cert.pdf"
        assert body["original_name"] == "my cert.pdf"
        assert body["file_size"] == 8

    def test_upload_unknown_slot(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        res = _upload(client, supplier_headers, app_id, slot="passport_photo")
        assert res.status_code == 422

    def test_upload_without_file(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        res = client.post(f"/api/v1/suppliers/{app_id}/documents", data={"slot": "cr12"},
                          content_type="multipart/form-data", headers=supplier_headers)
        assert res.status_code == 400

    def test_delete_document_clears_slot_reference(self, client, supplier_headers):
        app_id = _create(client, supplier_headers, cr12="cr12.pdf").get_json()["id"]
        doc_id = _upload(client, supplier_headers, app_id, name="cr12.pdf", slot="cr12").get_json()["id"]

        res = client.delete(f"/api/v1/suppliers/documents/{doc_id}", headers=supplier_headers)

        assert res.status_code == 200
        assert db.session.get(SupplierDocument, doc_id) is None
        assert db.session.get(SupplierApplication, app_id).cr12 is None

    def test_upload_records_slot_reference(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        _upload(client, supplier_headers, app_id, name="my cert.pdf")
        _upload(client, supplier_headers, app_id, name="id1.pdf", slot="directors_ids")

        application = db.session.get(SupplierApplication, app_id)
        assert application.certificate_of_incorporation == "my cert.pdf"
        assert application.directors_ids == ["id1.pdf"]

    def test_dropped_references_free_list_slot_capacity(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        for i in range(10):
            assert _upload(client, supplier_headers, app_id, name=f"id{i}.pdf",
                           slot="directors_ids").status_code == 201
        # Save without id0.pdf; its document row is still stored
        client.put(f"/api/v1/suppliers/{app_id}/draft",
                   json={"directors_ids": [f"id{i}.pdf" for i in range(1, 10)]},
                   headers=supplier_headers)

        res = _upload(client, supplier_headers, app_id, name="id10.pdf", slot="directors_ids")
        assert res.status_code == 201

        res = _upload(client, supplier_headers, app_id, name="id11.pdf", slot="directors_ids")
        assert res.status_code == 422
        assert res.get_json()["details"]["directors_ids"] == "limit reached"


class TestDocumentReview:
    def _document(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        return _upload(client, supplier_headers, app_id).get_json()["id"]

    def test_reviewer_approves_document(self, client, supplier_headers, legal_headers):
        doc_id = self._document(client, supplier_headers)

        res = client.post(f"/api/v1/suppliers/documents/{doc_id}/status",
                          json={"status": "approved", "notes": "Certified copy"},
                          headers=legal_headers)

        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "approved"
        assert body["review_notes"] == "Certified copy"
        assert body["reviewed_by"] == "legal-1"
        assert body["reviewed_at"] is not None

    def test_rejection_needs_notes_and_notifies_owner(self, client, supplier_headers, procurement_headers):
        doc_id = self._document(client, supplier_headers)
        url = f"/api/v1/suppliers/documents/{doc_id}/status"

        res = client.post(url, json={"status": "rejected", "notes": " "}, headers=procurement_headers)
        assert res.status_code == 422
        assert db.session.get(SupplierDocument, doc_id).status == "pending_review"

        res = client.post(url, json={"status": "rejected", "notes": "Expired certificate"},
                          headers=procurement_headers)
        assert res.status_code == 200
        notifications = client.get("/api/v1/notifications", headers=supplier_headers).get_json()
        assert any(n["category"] == "document_rejected" for n in notifications["items"])

    def test_unknown_status(self, client, supplier_headers, procurement_headers):
        doc_id = self._document(client, supplier_headers)
        res = client.post(f"/api/v1/suppliers/documents/{doc_id}/status",
                          json={"status": "lost"}, headers=procurement_headers)
        assert res.status_code == 422
        assert "status" in res.get_json()["details"]

    def test_missing_status(self, client, supplier_headers, procurement_headers):
        doc_id = self._document(client, supplier_headers)
        res = client.post(f"/api/v1/suppliers/documents/{doc_id}/status",
                          json={}, headers=procurement_headers)
        assert res.status_code == 400

    def test_supplier_and_management_cannot_review(self, client, supplier_headers, actor_headers):
        doc_id = self._document(client, supplier_headers)
        url = f"/api/v1/suppliers/documents/{doc_id}/status"
        for headers in (supplier_headers, actor_headers("mgmt-1", "management")):
            res = client.post(url, json={"status": "approved"}, headers=headers)
            assert res.status_code == 403
        assert db.session.get(SupplierDocument, doc_id).reviewed_by is None

    def test_super_admin_can_review(self, client, supplier_headers, actor_headers):
        doc_id = self._document(client, supplier_headers)
        res = client.post(f"/api/v1/suppliers/documents/{doc_id}/status",
                          json={"status": "expired"}, headers=actor_headers("admin-1", "super_admin"))
        assert res.status_code == 200
        assert res.get_json()["status"] == "expired"

    def test_unknown_document(self, client, procurement_headers):
        res = client.post("/api/v1/suppliers/documents/nope/status",
                          json={"status": "approved"}, headers=procurement_headers)
        assert res.status_code == 404


class TestSubmit:
    def test_submit_returns_server_status(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        _upload(client, supplier_headers, app_id)

        res = client.post(f"/api/v1/suppliers/{app_id}/submit",
                          json={"expected_status": "draft"}, headers=supplier_headers)

        assert res.status_code == 200
        assert res.get_json()["status"] == "pending_procurement"
        record = client.get(f"/api/v1/suppliers/{app_id}", headers=supplier_headers).get_json()
        assert len(record["approval_history"]) == 1
        assert record["sla"]["due_at"] is not None

    def test_submit_without_documents_is_422(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        res = client.post(f"/api/v1/suppliers/{app_id}/submit", json={}, headers=supplier_headers)
        assert res.status_code == 422
        assert "documents" in res.get_json()["details"]

    def test_document_no_longer_referenced_does_not_count(self, client, supplier_headers):
        app_id = _create(client, supplier_headers).get_json()["id"]
        _upload(client, supplier_headers, app_id)
        client.put(f"/api/v1/suppliers/{app_id}/draft",
                   json={"certificate_of_incorporation": None}, headers=supplier_headers)

        res = client.post(f"/api/v1/suppliers/{app_id}/submit", json={}, headers=supplier_headers)

        assert res.status_code == 422
        assert "documents" in res.get_json()["details"]

    def test_stale_submit_is_409(self, client, supplier_headers, make_application):
        application = make_application(status="pending_procurement")
        res = client.post(f"/api/v1/suppliers/{application.id}/submit",
                          json={"expected_status": "draft"}, headers=supplier_headers)
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFLICT_STATE"
        assert body["details"]["value"] == "pending_procurement"
