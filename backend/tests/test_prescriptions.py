import dataclasses
from pathlib import Path

from fastapi.testclient import TestClient

from conftest import API, bearer, create_product, create_user, token_for
from epharmacy import models
from epharmacy.config.settings import get_settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _upload(client: TestClient, headers, *, name="scan.png", content=PNG_BYTES, content_type="image/png"):
    return client.post(
        f"{API}/prescriptions/upload",
        files={"prescription": (name, content, content_type)},
        headers=headers,
    )


def test_upload_list_and_download(client: TestClient, db, customer_headers):
    response = _upload(client, customer_headers)
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "pending"
    assert created["original_name"] == "scan.png"
    assert created["file_size"] == len(PNG_BYTES)
    assert created["file_name"].endswith(".png")

    stored = db.get(models.Prescription, created["id"])
    assert Path(stored.file_path).is_file()

    listing = client.get(f"{API}/prescriptions", headers=customer_headers).json()
    assert [p["id"] for p in listing["prescriptions"]] == [created["id"]]

    download = client.get(f"{API}/prescriptions/{created['id']}/download", headers=customer_headers)
    assert download.status_code == 200
    assert download.content == PNG_BYTES
    assert download.headers["content-type"] == "image/png"


def test_upload_rejects_bad_files(client: TestClient, customer_headers):
    wrong_type = _upload(client, customer_headers, name="notes.txt", content=b"hello", content_type="text/plain")
    assert wrong_type.status_code == 400

    empty = _upload(client, customer_headers, content=b"")
    assert empty.status_code == 400

    missing_field = client.post(f"{API}/prescriptions/upload", headers=customer_headers)
    assert missing_field.status_code == 422


def test_oversized_upload_is_rejected(client: TestClient, customer_headers, monkeypatch):
    limited = dataclasses.replace(get_settings(), max_upload_bytes=16)
    monkeypatch.setattr("epharmacy.utils.uploads.get_settings", lambda: limited)

    response = _upload(client, customer_headers)
    assert response.status_code == 400
    assert "too large" in response.json()["detail"]


def test_prescriptions_are_private(client: TestClient, db, customer_headers):
    created = _upload(client, customer_headers).json()
    other_headers = bearer(token_for(create_user(db, email="other@example.com")))

    assert client.get(f"{API}/prescriptions/{created['id']}", headers=other_headers).status_code == 404
    assert client.get(f"{API}/prescriptions/{created['id']}/download", headers=other_headers).status_code == 404
    assert client.delete(f"{API}/prescriptions/{created['id']}", headers=other_headers).status_code == 404


def test_delete_pending_prescription_removes_file(client: TestClient, db, customer_headers):
    created = _upload(client, customer_headers).json()
    file_path = Path(db.get(models.Prescription, created["id"]).file_path)

    response = client.delete(f"{API}/prescriptions/{created['id']}", headers=customer_headers)
    assert response.status_code == 204
    assert not file_path.exists()
    assert client.get(f"{API}/prescriptions/{created['id']}", headers=customer_headers).status_code == 404


def test_admin_review_flow(client: TestClient, admin, admin_headers, customer_headers):
    created = _upload(client, customer_headers).json()

    queue = client.get(f"{API}/admin/prescriptions", params={"status": "pending"}, headers=admin_headers).json()
    assert [p["id"] for p in queue["prescriptions"]] == [created["id"]]
    assert queue["prescriptions"][0]["user"]["email"] == "customer@example.com"

    review = client.post(
        f"{API}/admin/prescriptions/{created['id']}/review",
        json={"status": "approved", "admin_notes": "Looks valid"},
        headers=admin_headers,
    )
    assert review.status_code == 200
    body = review.json()
    assert body["status"] == "approved"
    assert body["admin_notes"] == "Looks valid"
    assert body["approved_by"] == admin.id
    assert body["approved_at"] is not None

    again = client.post(
        f"{API}/admin/prescriptions/{created['id']}/review",
        json={"status": "rejected"},
        headers=admin_headers,
    )
    assert again.status_code == 400

    # Reviewed prescriptions can no longer be deleted by the owner.
    assert client.delete(f"{API}/prescriptions/{created['id']}", headers=customer_headers).status_code == 400


def test_review_rejects_unknown_status(client: TestClient, admin_headers, customer_headers):
    created = _upload(client, customer_headers).json()
    response = client.post(
        f"{API}/admin/prescriptions/{created['id']}/review",
        json={"status": "pending"},
        headers=admin_headers,
    )
    assert response.status_code == 422


def test_approved_prescription_unlocks_gated_order(
    client: TestClient, db, pharmacy, admin_headers, customer_headers
):
    product = create_product(db, pharmacy, requires_prescription=True)
    created = _upload(client, customer_headers).json()
    client.post(
        f"{API}/admin/prescriptions/{created['id']}/review",
        json={"status": "approved"},
        headers=admin_headers,
    )

    order = client.post(
        f"{API}/orders",
        json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "shipping_address": "1 Clinic Road",
            "prescription_id": created["id"],
        },
        headers=customer_headers,
    )
    assert order.status_code == 201


def test_download_refuses_paths_outside_upload_dir(client: TestClient, db, customer_headers, tmp_path):
    created = _upload(client, customer_headers).json()
    outside = tmp_path / "elsewhere.png"
    outside.write_bytes(PNG_BYTES)

    stored = db.get(models.Prescription, created["id"])
    stored.file_path = str(outside)
    db.commit()

    response = client.get(f"{API}/prescriptions/{created['id']}/download", headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid file path"


def test_download_of_missing_file_is_not_found(client: TestClient, db, customer_headers):
    created = _upload(client, customer_headers).json()
    stored = db.get(models.Prescription, created["id"])
    Path(stored.file_path).unlink()

    response = client.get(f"{API}/prescriptions/{created['id']}/download", headers=customer_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "File not found"


def test_prescription_attached_to_order_cannot_be_deleted(client: TestClient, db, pharmacy, customer_headers):
    product = create_product(db, pharmacy)
    created = _upload(client, customer_headers).json()

    order = client.post(
        f"{API}/orders",
        json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "shipping_address": "1 Clinic Road",
            "prescription_id": created["id"],
        },
        headers=customer_headers,
    )
    assert order.status_code == 201

    response = client.delete(f"{API}/prescriptions/{created['id']}", headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Prescription is attached to an order"

    stored = db.get(models.Prescription, created["id"])
    assert Path(stored.file_path).is_file()
