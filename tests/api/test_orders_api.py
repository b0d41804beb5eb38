from __future__ import annotations

from tests.api.api_fixtures import _add_codes, _create_product


def test_confirm_order_returns_delivery_codes(client) -> None:
    _create_product(client, "p1")
    _add_codes(client, "p1", ["A", "B"])

    response = client.post("/api/orders/confirm", json={"productId": "p1", "userId": "u1", "quantity": 2})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["orderId"].startswith("ord-")
    assert sorted(payload["deliveryCodes"]["p1"]) == ["A", "B"]

    stats = client.get("/api/codes/stats/p1").json()
    assert (stats["available"], stats["sold"], stats["total"]) == (0, 2, 2)

    order = client.get(f"/api/orders/{payload['orderId']}").json()
    assert order["userId"] == "u1"
    assert order["status"] == "completed"
    assert order["paymentMethod"] == "Chargily Pay"
    assert order["total"] == 20.0


def test_confirm_order_error_mapping(client) -> None:
    _create_product(client, "p1")
    _add_codes(client, "p1", ["A"])

    missing_product = client.post("/api/orders/confirm", json={"productId": "nope", "userId": "u1", "quantity": 1})
    assert missing_product.status_code == 404
    assert missing_product.json() == {"message": "المنتج غير موجود"}

    not_enough = client.post("/api/orders/confirm", json={"productId": "p1", "userId": "u1", "quantity": 2})
    assert not_enough.status_code == 400
    assert not_enough.json() == {"message": "لا يوجد أكواد كافية لهذا المنتج"}

    for body in ({"userId": "u1", "quantity": 1}, {"productId": "p1", "quantity": 1}, {"productId": "p1", "userId": "u1", "quantity": 0}):
        response = client.post("/api/orders/confirm", json=body)
        assert response.status_code == 400
        assert response.json() == {"message": "productId, userId and positive quantity are required"}

    assert client.get("/api/orders").json() == []
    assert client.get("/api/codes/stats/p1").json()["available"] == 1


def test_place_order_creates_order_and_lists_by_user(client) -> None:
    _create_product(client, "p1", name="Steam 10")
    _create_product(client, "p2", name="PSN 20", price=20)
    _add_codes(client, "p1", ["A1", "A2"])
    _add_codes(client, "p2", ["B1"])

    response = client.post(
        "/api/orders",
        json={
            "userId": "u1",
            "items": [{"id": "p1", "quantity": 2, "name": "Steam 10"}, {"productId": "p2", "quantity": 1}],
            "total": 40,
            "paymentMethod": "PayPal",
        },
    )

    assert response.status_code == 201
    order = response.json()
    assert order["userId"] == "u1"
    assert order["total"] == 40.0
    assert order["paymentMethod"] == "PayPal"
    assert sorted(order["deliveryCodes"]["p1"]) == ["A1", "A2"]
    assert order["deliveryCodes"]["p2"] == ["B1"]
    assert order["paypalOrderId"] is None

    assert [item["id"] for item in client.get("/api/orders", params={"userId": "u1"}).json()] == [order["id"]]
    assert client.get("/api/orders", params={"userId": "u2"}).json() == []
    assert client.get("/api/products/p1").json()["stock"] == 0


def test_place_order_error_mapping(client) -> None:
    _create_product(client, "p1", name="Steam 10")
    _add_codes(client, "p1", ["A1"])

    incomplete = client.post("/api/orders", json={"userId": "u1", "items": [], "total": 10})
    assert incomplete.status_code == 400
    assert incomplete.json() == {"message": "معلومات الطلب غير كاملة"}

    unknown = client.post(
        "/api/orders",
        json={"userId": "u1", "items": [{"id": "ghost", "quantity": 1, "name": "Ghost card"}], "total": 5},
    )
    assert unknown.status_code == 400
    assert unknown.json() == {"message": "المنتج Ghost card غير موجود"}

    too_many = client.post(
        "/api/orders",
        json={"userId": "u1", "items": [{"id": "p1", "quantity": 2}], "total": 20},
    )
    assert too_many.status_code == 400
    assert too_many.json() == {"message": "الكمية المطلوبة من Steam 10 غير متوفرة"}
    assert client.get("/api/products/p1").json()["stock"] == 1


def test_attach_paypal_reference(client) -> None:
    _create_product(client, "p1")
    _add_codes(client, "p1", ["A"])
    order_id = client.post(
        "/api/orders/confirm",
        json={"productId": "p1", "userId": "u1", "quantity": 1},
    ).json()["orderId"]

    response = client.put(f"/api/orders/{order_id}/paypal/PAYPAL-42")
    assert response.status_code == 200
    assert response.json()["paypalOrderId"] == "PAYPAL-42"

    missing = client.put("/api/orders/ord-missing/paypal/PAYPAL-42")
    assert missing.status_code == 404
    assert missing.json() == {"message": "الطلب غير موجود"}
    assert client.get("/api/orders/ord-missing").status_code == 404


def test_order_endpoints_mask_internal_failures(client) -> None:
    from app.store.fulfillment.errors import FulfillmentAbortedError

    class _BrokenFulfillment:
        async def place_order(self, **kwargs):  # noqa: ARG002
            raise FulfillmentAbortedError("place")

        async def confirm_order(self, **kwargs):  # noqa: ARG002
            raise FulfillmentAbortedError("confirm")

    client.app.state.fulfillment = _BrokenFulfillment()

    placed = client.post("/api/orders", json={"userId": "u1", "items": [{"id": "p1", "quantity": 1}], "total": 1})
    assert placed.status_code == 400
    assert placed.json() == {"message": "خطأ في تأكيد الطلب"}

    confirmed = client.post("/api/orders/confirm", json={"productId": "p1", "userId": "u1", "quantity": 1})
    assert confirmed.status_code == 500
    assert confirmed.json() == {"message": "خطأ في تأكيد الطلب"}


def test_committed_orders_are_returned_when_change_publishing_fails(client, monkeypatch) -> None:
    from app.db.repo.products_repo import ProductsRepo

    _create_product(client, "p1")
    _add_codes(client, "p1", ["A", "B"])

    async def _snapshot_unavailable(session, product_id):  # noqa: ARG001
        raise RuntimeError("replica unavailable")

    monkeypatch.setattr(ProductsRepo, "get_by_id", staticmethod(_snapshot_unavailable))

    confirmed = client.post("/api/orders/confirm", json={"productId": "p1", "userId": "u1", "quantity": 1})
    assert confirmed.status_code == 200
    first = confirmed.json()["deliveryCodes"]["p1"]
    assert len(first) == 1

    placed = client.post(
        "/api/orders",
        json={"userId": "u2", "items": [{"id": "p1", "quantity": 1}], "total": 10},
    )
    assert placed.status_code == 201
    second = placed.json()["deliveryCodes"]["p1"]
    assert sorted(first + second) == ["A", "B"]

    monkeypatch.undo()
    stats = client.get("/api/codes/stats/p1").json()
    assert (stats["available"], stats["sold"]) == (0, 2)
    assert len(client.get("/api/orders").json()) == 2
