"""
Tests: contract blueprint over HTTP.
"""

import io


def _create(client, headers, supplier_id, **overrides):
    body = {
        "supplier_id": supplier_id,
        "title": "Courier services",
        "start_date": "2026-01-01",
        "end_date": "2026-12-31",
    }
    body.update(overrides)
    return client.post("/api/v1/contracts", json=body, headers=headers)


def test_contract_lifecycle_over_http(client, make_application, procurement_headers, legal_headers):
    supplier = make_application(status="approved", vendor_number="V-10")

    res = _create(client, procurement_headers, supplier.id)
    assert res.status_code == 201
    contract_id = res.get_json()["id"]

    res = client.post(f"/api/v1/contracts/{contract_id}/activate", json={}, headers=legal_headers)
    assert res.status_code == 422

    res = client.post(
        f"/api/v1/contracts/{contract_id}/signed-document",
        data={"file": (io.BytesIO(b"%PDF"), "signed.pdf")},
        content_type="multipart/form-data",
        headers=legal_headers,
    )
    assert res.status_code == 200
    assert res.get_json()["signed_document_name"] == "signed.pdf"

    res = client.post(f"/api/v1/contracts/{contract_id}/activate",
                      json={"expected_status": "draft"}, headers=legal_headers)
    assert res.status_code == 200
    assert res.get_json()["status"] == "active"

    body = client.get(f"/api/v1/contracts/{contract_id}", headers=legal_headers).get_json()
    assert body["status"] == "active"
    assert [h["action"] for h in body["history"]] == ["activated"]


def test_contract_for_unapproved_supplier(client, make_application, procurement_headers):
    supplier = make_application(status="pending_legal")
    res = _create(client, procurement_headers, supplier.id)
    assert res.status_code == 422


def test_supplier_id_required(client, procurement_headers):
    res = client.post("/api/v1/contracts", json={"title": "x"}, headers=procurement_headers)
    assert res.status_code == 400


def test_unknown_contract_action(client, make_application, procurement_headers):
    supplier = make_application(status="approved")
    contract_id = _create(client, procurement_headers, supplier.id).get_json()["id"]
    res = client.post(f"/api/v1/contracts/{contract_id}/publish", json={}, headers=procurement_headers)
    assert res.status_code == 404


def test_expiring_requires_staff_role(client, supplier_headers, legal_headers):
    assert client.get("/api/v1/contracts/expiring", headers=supplier_headers).status_code == 403
    res = client.get("/api/v1/contracts/expiring?days=60", headers=legal_headers)
    assert res.status_code == 200
    assert res.get_json()["days"] == 60
