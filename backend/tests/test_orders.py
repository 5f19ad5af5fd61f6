from fastapi.testclient import TestClient

from conftest import API, bearer, create_pharmacy, create_product, create_user, token_for
from epharmacy import models


def _approved_prescription(db, user: models.User, status: str = models.PrescriptionStatus.APPROVED):
    prescription = models.Prescription(
        user_id=user.id,
        file_name="rx.pdf",
        file_path="/nonexistent/rx.pdf",
        original_name="rx.pdf",
        file_size=10,
        mime_type="application/pdf",
        status=status,
    )
    db.add(prescription)
    db.commit()
    db.refresh(prescription)
    return prescription


def _place(client: TestClient, headers, items, **extra):
    payload = {"items": items, "shipping_address": "10 Downing Street", **extra}
    return client.post(f"{API}/orders", json=payload, headers=headers)


def test_order_totals_and_stock_decrement(client: TestClient, db, pharmacy, customer_headers):
    aspirin = create_product(db, pharmacy, name="Aspirin", price=3.10, stock=10)
    gauze = create_product(db, pharmacy, name="Gauze", price=1.15, stock=5)

    response = _place(
        client,
        customer_headers,
        [{"product_id": aspirin.id, "quantity": 3}, {"product_id": gauze.id, "quantity": 2}],
        notes="Leave at the door",
    )
    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["total_amount"] == 11.6
    assert order["tracking_number"].startswith("TRK")
    assert order["assigned_pharmacy_id"] == pharmacy.id
    assert [(i["quantity"], i["unit_price"], i["total_price"]) for i in order["order_items"]] == [
        (3, 3.1, 9.3),
        (2, 1.15, 2.3),
    ]

    db.refresh(aspirin)
    db.refresh(gauze)
    assert aspirin.stock_quantity == 7
    assert gauze.stock_quantity == 3


def test_insufficient_stock_rolls_back_every_line(client: TestClient, db, pharmacy, customer_headers):
    plenty = create_product(db, pharmacy, name="Plenty", stock=10)
    scarce = create_product(db, pharmacy, name="Scarce", stock=1)

    response = _place(
        client,
        customer_headers,
        [{"product_id": plenty.id, "quantity": 4}, {"product_id": scarce.id, "quantity": 2}],
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient stock for product: Scarce"

    db.refresh(plenty)
    db.refresh(scarce)
    assert plenty.stock_quantity == 10
    assert scarce.stock_quantity == 1
    assert db.query(models.Order).count() == 0


def test_repeated_lines_share_the_same_stock(client: TestClient, db, pharmacy, customer_headers):
    product = create_product(db, pharmacy, name="Bandage", stock=5)

    response = _place(
        client,
        customer_headers,
        [{"product_id": product.id, "quantity": 3}, {"product_id": product.id, "quantity": 3}],
    )
    assert response.status_code == 400

    db.refresh(product)
    assert product.stock_quantity == 5


def test_order_can_consume_exact_stock(client: TestClient, db, pharmacy, customer_headers):
    product = create_product(db, pharmacy, stock=2)
    assert _place(client, customer_headers, [{"product_id": product.id, "quantity": 2}]).status_code == 201

    db.refresh(product)
    assert product.stock_quantity == 0

    again = _place(client, customer_headers, [{"product_id": product.id, "quantity": 1}])
    assert again.status_code == 400


def test_order_validation_errors(client: TestClient, db, pharmacy, customer_headers):
    product = create_product(db, pharmacy)
    pending = create_product(db, pharmacy, name="Unapproved", status=models.ProductStatus.PENDING_APPROVAL)

    assert _place(client, customer_headers, []).status_code == 400
    assert (
        client.post(
            f"{API}/orders",
            json={"items": [{"product_id": product.id, "quantity": 1}], "shipping_address": "   "},
            headers=customer_headers,
        ).status_code
        == 400
    )
    assert _place(client, customer_headers, [{"product_id": product.id, "quantity": 0}]).status_code == 422

    missing = _place(client, customer_headers, [{"product_id": 9999, "quantity": 1}])
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Product not found: 9999"

    unavailable = _place(client, customer_headers, [{"product_id": pending.id, "quantity": 1}])
    assert unavailable.status_code == 400


def test_prescription_gate(client: TestClient, db, pharmacy, customer, customer_headers):
    product = create_product(db, pharmacy, name="Amoxicillin", requires_prescription=True, stock=5)
    line = [{"product_id": product.id, "quantity": 1}]

    no_rx = _place(client, customer_headers, line)
    assert no_rx.status_code == 400
    assert no_rx.json()["detail"] == "Prescription is required for this order"

    pending_rx = _approved_prescription(db, customer, status=models.PrescriptionStatus.PENDING)
    not_approved = _place(client, customer_headers, line, prescription_id=pending_rx.id)
    assert not_approved.status_code == 400
    assert not_approved.json()["detail"] == "Valid approved prescription is required"

    someone_else = create_user(db, email="someone@example.com")
    foreign_rx = _approved_prescription(db, someone_else)
    assert _place(client, customer_headers, line, prescription_id=foreign_rx.id).status_code == 400

    db.refresh(product)
    assert product.stock_quantity == 5

    own_rx = _approved_prescription(db, customer)
    accepted = _place(client, customer_headers, line, prescription_id=own_rx.id)
    assert accepted.status_code == 201
    assert accepted.json()["prescription_id"] == own_rx.id


def test_cancel_restores_stock_once(client: TestClient, db, pharmacy, customer_headers):
    product = create_product(db, pharmacy, stock=10)
    order = _place(client, customer_headers, [{"product_id": product.id, "quantity": 4}]).json()

    cancelled = client.post(f"{API}/orders/{order['id']}/cancel", headers=customer_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    db.refresh(product)
    assert product.stock_quantity == 10

    again = client.post(f"{API}/orders/{order['id']}/cancel", headers=customer_headers)
    assert again.status_code == 400
    db.refresh(product)
    assert product.stock_quantity == 10


def test_orders_are_private_to_their_owner(client: TestClient, db, pharmacy, customer_headers):
    product = create_product(db, pharmacy)
    order = _place(client, customer_headers, [{"product_id": product.id, "quantity": 1}]).json()

    other_headers = bearer(token_for(create_user(db, email="other@example.com")))
    assert client.get(f"{API}/orders/{order['id']}", headers=other_headers).status_code == 404
    assert client.post(f"{API}/orders/{order['id']}/cancel", headers=other_headers).status_code == 404
    assert client.get(f"{API}/orders", headers=other_headers).json()["orders"] == []

    mine = client.get(f"{API}/orders", headers=customer_headers).json()
    assert [o["id"] for o in mine["orders"]] == [order["id"]]


def test_track_and_filter_orders(client: TestClient, db, pharmacy, customer_headers):
    product = create_product(db, pharmacy)
    first = _place(client, customer_headers, [{"product_id": product.id, "quantity": 1}]).json()
    second = _place(client, customer_headers, [{"product_id": product.id, "quantity": 1}]).json()
    client.post(f"{API}/orders/{first['id']}/cancel", headers=customer_headers)

    tracking = client.get(f"{API}/orders/{second['id']}/track", headers=customer_headers)
    assert tracking.status_code == 200
    assert tracking.json()["tracking_number"] == second["tracking_number"]
    assert tracking.json()["order_items"][0]["product"]["name"] == product.name

    pending = client.get(f"{API}/orders", params={"status": "pending"}, headers=customer_headers).json()
    assert [o["id"] for o in pending["orders"]] == [second["id"]]


def test_mixed_pharmacy_cart_is_not_assigned(client: TestClient, db, pharmacy, customer_headers):
    other = create_pharmacy(db, email="second@example.com")
    a = create_product(db, pharmacy, name="From first")
    b = create_product(db, other, name="From second")

    order = _place(client, customer_headers, [{"product_id": a.id, "quantity": 1}, {"product_id": b.id, "quantity": 1}])
    assert order.status_code == 201
    assert order.json()["assigned_pharmacy_id"] is None


def test_admin_status_updates(client: TestClient, db, pharmacy, customer_headers, admin_headers):
    product = create_product(db, pharmacy, stock=10)
    order = _place(client, customer_headers, [{"product_id": product.id, "quantity": 3}]).json()
    url = f"{API}/admin/orders/{order['id']}/status"

    approved = client.put(url, json={"status": "approved"}, headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    # A customer can no longer cancel once the order left pending.
    assert client.post(f"{API}/orders/{order['id']}/cancel", headers=customer_headers).status_code == 400

    shipped = client.put(
        url,
        json={"status": "shipped", "estimated_delivery_date": "2030-01-15T12:00:00"},
        headers=admin_headers,
    )
    assert shipped.json()["estimated_delivery_date"].startswith("2030-01-15")

    assert client.put(url, json={"status": "cancelled"}, headers=admin_headers).status_code == 400
    assert client.put(url, json={"status": "teleported"}, headers=admin_headers).status_code == 422

    db.refresh(product)
    assert product.stock_quantity == 7


def test_admin_cancel_of_approved_order_restores_stock(client: TestClient, db, pharmacy, customer_headers, admin_headers):
    product = create_product(db, pharmacy, stock=10)
    order = _place(client, customer_headers, [{"product_id": product.id, "quantity": 6}]).json()
    url = f"{API}/admin/orders/{order['id']}/status"

    client.put(url, json={"status": "approved"}, headers=admin_headers)
    cancelled = client.put(url, json={"status": "cancelled"}, headers=admin_headers)
    assert cancelled.status_code == 200

    db.refresh(product)
    assert product.stock_quantity == 10

    assert client.put(url, json={"status": "pending"}, headers=admin_headers).status_code == 400


def test_attached_prescription_must_belong_to_the_customer(client: TestClient, db, pharmacy, customer, customer_headers):
    product = create_product(db, pharmacy, name="Plasters", stock=5)
    line = [{"product_id": product.id, "quantity": 1}]

    someone_else = create_user(db, email="victim@example.com")
    foreign_rx = _approved_prescription(db, someone_else, status=models.PrescriptionStatus.PENDING)

    foreign = _place(client, customer_headers, line, prescription_id=foreign_rx.id)
    assert foreign.status_code == 400
    assert foreign.json()["detail"] == "Invalid prescription"

    missing = _place(client, customer_headers, line, prescription_id=424242)
    assert missing.status_code == 400

    assert db.query(models.Order).count() == 0
    db.refresh(product)
    assert product.stock_quantity == 5

    # The other customer can still withdraw their own prescription.
    victim_delete = client.delete(
        f"{API}/prescriptions/{foreign_rx.id}",
        headers=bearer(token_for(someone_else)),
    )
    assert victim_delete.status_code == 204


def test_own_pending_prescription_may_accompany_an_ungated_cart(
    client: TestClient, db, pharmacy, customer, customer_headers
):
    product = create_product(db, pharmacy, name="Plasters")
    own_rx = _approved_prescription(db, customer, status=models.PrescriptionStatus.PENDING)

    response = _place(client, customer_headers, [{"product_id": product.id, "quantity": 1}], prescription_id=own_rx.id)
    assert response.status_code == 201
    assert response.json()["prescription_id"] == own_rx.id
