from decimal import Decimal

from conftest import OTHER_SUPPLIER_ID, SUPPLIER_ID, VENDOR_ID, auth_headers, make_token


class TestCreateOrderAPI:

    async def test_create_order_success(self, client, make_product, store, vendor_headers):
        product = await make_product(quantity=10, price=Decimal("40.00"))

        response = await client.post(
            "/orders/",
            json={"product_id": product.id, "quantity": 3, "notes": "Morning delivery"},
            headers=vendor_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["vendor_id"] == VENDOR_ID
        assert data["supplier_id"] == SUPPLIER_ID
        assert Decimal(data["total_amount"]) == Decimal("120.00")
        assert (await store.get_product(product.id)).quantity == 7

    async def test_insufficient_stock_is_conflict(self, client, make_product, store, vendor_headers):
        product = await make_product(quantity=2, unit="kg")

        response = await client.post(
            "/orders/",
            json={"product_id": product.id, "quantity": 5},
            headers=vendor_headers
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Only 2 kg available"
        assert (await store.get_product(product.id)).quantity == 2

    async def test_zero_quantity_is_bad_request(self, client, make_product, vendor_headers):
        product = await make_product()

        response = await client.post(
            "/orders/",
            json={"product_id": product.id, "quantity": 0},
            headers=vendor_headers
        )

        assert response.status_code == 400

    async def test_unknown_product_is_not_found(self, client, vendor_headers):
        response = await client.post(
            "/orders/",
            json={"product_id": "missing", "quantity": 1},
            headers=vendor_headers
        )

        assert response.status_code == 404

    async def test_requires_authentication(self, client, make_product):
        product = await make_product()

        response = await client.post("/orders/", json={"product_id": product.id, "quantity": 1})

        assert response.status_code == 401

    async def test_expired_token(self, client, make_product):
        product = await make_product()
        headers = {"Authorization": f"Bearer {make_token(VENDOR_ID, 'vendor', expires_in=-60)}"}

        response = await client.post("/orders/", json={"product_id": product.id, "quantity": 1}, headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    async def test_supplier_cannot_order(self, client, make_product, supplier_headers):
        product = await make_product()

        response = await client.post(
            "/orders/",
            json={"product_id": product.id, "quantity": 1},
            headers=supplier_headers
        )

        assert response.status_code == 403

    async def test_role_falls_back_to_profile(self, client, make_product):
        product = await make_product()

        response = await client.post(
            "/orders/",
            json={"product_id": product.id, "quantity": 1},
            headers=auth_headers(VENDOR_ID)
        )

        assert response.status_code == 201


class TestOrderListsAPI:

    async def test_vendor_history(self, client, make_product, vendor_headers):
        product = await make_product(name="Paneer", category="Dairy")
        await client.post("/orders/", json={"product_id": product.id, "quantity": 1}, headers=vendor_headers)

        response = await client.get("/orders/my-orders", headers=vendor_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["orders"][0]["product_name"] == "Paneer"
        assert data["orders"][0]["supplier_name"] == "Fresh Farms"

    async def test_supplier_incoming_and_status_flow(self, client, make_product, vendor_headers, supplier_headers):
        product = await make_product(price=Decimal("50.00"))
        created = await client.post("/orders/", json={"product_id": product.id, "quantity": 2}, headers=vendor_headers)
        order_id = created.json()["id"]

        incoming = await client.get("/orders/incoming", headers=supplier_headers)
        assert incoming.status_code == 200
        assert incoming.json()["orders"][0]["vendor_name"] == "Ravi Chaatwala"

        accepted = await client.put(f"/orders/{order_id}/status", json={"status": "accepted"}, headers=supplier_headers)
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

        completed = await client.put(f"/orders/{order_id}/status", json={"status": "completed"}, headers=supplier_headers)
        assert completed.status_code == 200

        summary = await client.get("/orders/summary", headers=supplier_headers)
        assert summary.status_code == 200
        assert summary.json()["completed_orders"] == 1
        assert Decimal(summary.json()["total_revenue"]) == Decimal("100.00")

    async def test_invalid_transition_is_bad_request(self, client, make_product, vendor_headers, supplier_headers):
        product = await make_product()
        created = await client.post("/orders/", json={"product_id": product.id, "quantity": 1}, headers=vendor_headers)

        response = await client.put(
            f"/orders/{created.json()['id']}/status",
            json={"status": "completed"},
            headers=supplier_headers
        )

        assert response.status_code == 400

    async def test_other_supplier_cannot_update(self, client, make_product, vendor_headers):
        product = await make_product()
        created = await client.post("/orders/", json={"product_id": product.id, "quantity": 1}, headers=vendor_headers)

        response = await client.put(
            f"/orders/{created.json()['id']}/status",
            json={"status": "accepted"},
            headers=auth_headers(OTHER_SUPPLIER_ID, "supplier")
        )

        assert response.status_code == 403

    async def test_vendor_cannot_see_incoming(self, client, vendor_headers):
        response = await client.get("/orders/incoming", headers=vendor_headers)

        assert response.status_code == 403
