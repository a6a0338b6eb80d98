# Overview: HTTP-level tests for status codes and JSON shapes of the ledger API.

"""
API Route Tests

Domain errors map to status codes through LedgerError.status_code:
400 validation, 404 not found, 409 conflict, 422 configuration.
"""

from conftest import receive


class TestMoveRoutes:

    def test_purchase_created(self, client, db_session, warehouse, product):
        response = client.post("/api/moves/purchase", json={
            "to_id": warehouse.id,
            "lines": [{"sku": product.sku, "quantity": 4, "unit_cost_cents": 1200}],
            "date": "2025-04-02",
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body["type"] == "purchase"
        assert body["to_id"] == warehouse.id
        assert body["lines"][0]["quantity"] == 4
        assert body["date"].startswith("2025-04-02T")
        assert body["date"].endswith("Z")

    def test_missing_field_is_400(self, client, db_session):
        response = client.post("/api/moves/purchase", json={"lines": []})

        assert response.status_code == 400
        assert "to_id" in response.get_json()["error"]

    def test_malformed_lines_is_400(self, client, db_session, warehouse):
        response = client.post("/api/moves/purchase", json={
            "to_id": warehouse.id,
            "lines": [{"sku": "X", "quantity": "1.5"}],
        })
        assert response.status_code == 400

    def test_unknown_location_is_404(self, client, db_session, product):
        response = client.post("/api/moves/adjust", json={
            "location_id": 999,
            "direction": "in",
            "lines": [{"sku": product.sku, "quantity": 1}],
        })
        assert response.status_code == 404

    def test_insufficient_stock_is_409_with_details(self, client, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 1)

        response = client.post("/api/moves/transfer", json={
            "from_id": warehouse.id,
            "to_id": retail.id,
            "lines": [{"sku": product.sku, "quantity": 5}],
        })

        assert response.status_code == 409
        body = response.get_json()
        assert body["sku"] == product.sku
        assert body["available"] == 1
        assert body["requested"] == 5

    def test_duplicate_reference_is_409(self, client, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 4)
        payload = {
            "from_id": warehouse.id,
            "to_id": retail.id,
            "lines": [{"sku": product.sku, "quantity": 1}],
            "date": "2025-03-01",
        }
        first = client.post("/api/moves/b2b-sale", json=payload).get_json()

        response = client.post("/api/moves/transfer", json={**payload, "reference": first["reference"]})

        assert response.status_code == 409
        assert response.get_json()["reference"] == "B2B-2025-000001"
        assert client.get(f"/api/stock/{warehouse.id}/{product.sku}").get_json()["quantity"] == 3

    def test_string_false_flag_keeps_guard(self, client, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 1)
        payload = {
            "from_id": warehouse.id,
            "to_id": retail.id,
            "lines": [{"sku": product.sku, "quantity": 5}],
        }

        response = client.post("/api/moves/transfer", json={**payload, "allow_negative_stock": "false"})
        assert response.status_code == 409
        assert response.get_json()["available"] == 1

        response = client.post("/api/moves/transfer", json={**payload, "allow_negative_stock": "maybe"})
        assert response.status_code == 400
        assert "allow_negative_stock" in response.get_json()["error"]

    def test_missing_skus_listed(self, client, db_session, warehouse, retail):
        response = client.post("/api/moves/transfer", json={
            "from_id": warehouse.id,
            "to_id": retail.id,
            "lines": [{"sku": "GHOST", "quantity": 1}],
        })

        assert response.status_code == 400
        assert response.get_json()["missing_skus"] == ["GHOST"]

    def test_list_get_update_delete(self, client, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 5)
        created = client.post("/api/moves/b2b-sale", json={
            "from_id": warehouse.id,
            "to_id": retail.id,
            "lines": [{"sku": product.sku, "quantity": 2, "unit_price_cents": 2500}],
            "date": "2025-07-01",
        }).get_json()
        assert created["reference"] == "B2B-2025-000001"
        move_id = created["id"]

        listing = client.get("/api/moves").get_json()["moves"]
        assert [m["id"] for m in listing] == [move_id]
        assert listing[0]["buyer"] == retail.name

        assert client.get(f"/api/moves/{move_id}").status_code == 200

        response = client.put(f"/api/moves/{move_id}", json={"paid_amount_cents": 1000})
        assert response.status_code == 200
        assert response.get_json()["payment_status"] == "partial"

        response = client.delete(f"/api/moves/{move_id}")
        assert response.status_code == 200
        assert response.get_json() == {"deleted": move_id}
        assert client.get(f"/api/moves/{move_id}").status_code == 404

    def test_list_with_invalid_types(self, client, db_session):
        response = client.get("/api/moves?types=nope")
        assert response.status_code == 400


class TestPosRoutes:

    def test_sale_and_return(self, client, db_session, warehouse, product):
        receive(warehouse.id, product.sku, 3)

        sale = client.post("/api/pos/sale", json={
            "warehouse_id": warehouse.id,
            "channel": "B2C",
            "lines": [{"sku": product.sku, "quantity": 3, "unit_price_cents": 1000}],
        })
        assert sale.status_code == 201
        sale_id = sale.get_json()["id"]

        response = client.post("/api/pos/return", json={
            "sale_id": sale_id,
            "lines": [{"sku": product.sku, "quantity": 4}],
        })
        assert response.status_code == 409
        assert response.get_json()["remaining"] == 3

        response = client.post("/api/pos/return", json={
            "sale_id": sale_id,
            "lines": [{"sku": product.sku, "quantity": 1}],
        })
        assert response.status_code == 201
        assert response.get_json()["related_move_id"] == sale_id

        response = client.get(f"/api/pos/sales/{sale_id}/returnable")
        assert response.get_json() == {"sale_id": sale_id, "returnable": {product.sku: 2}}

    def test_return_for_missing_sale_is_404(self, client, db_session):
        response = client.post("/api/pos/return", json={"sale_id": 12345, "lines": [{"sku": "A", "quantity": 1}]})
        assert response.status_code == 404

    def test_web_sale(self, client, db_session, warehouse, product):
        receive(warehouse.id, product.sku, 1)

        response = client.post("/api/web-sales", json={
            "warehouse_id": warehouse.id,
            "order_number": "A-17",
            "lines": [{"sku": product.sku, "quantity": 1, "unit_price_cents": 1999}],
        })

        assert response.status_code == 201
        assert response.get_json()["notes"] == "WEB #A-17"


class TestSeriesRoutes:

    def test_unusable_series_is_422_and_nothing_written(self, client, db_session, warehouse, retail, product):
        receive(warehouse.id, product.sku, 2)
        client.post("/api/series", json={"code": "B2B", "scope": "sale_b2b", "year": 2024})
        client.post("/api/series", json={"code": "B2B2025", "scope": "sale_b2b", "year": 2025, "active": False})

        response = client.post("/api/moves/b2b-sale", json={
            "from_id": warehouse.id,
            "to_id": retail.id,
            "lines": [{"sku": product.sku, "quantity": 1}],
            "date": "2025-03-01",
        })

        assert response.status_code == 422
        assert response.get_json()["scope"] == "sale_b2b"
        assert client.get("/api/moves?types=b2b_sale").get_json()["moves"] == []
        assert client.get(f"/api/stock/{warehouse.id}/{product.sku}").get_json()["quantity"] == 2

    def test_crud(self, client, db_session):
        response = client.post("/api/series", json={"code": "ALB", "scope": "delivery_note", "year": 2025})
        assert response.status_code == 201
        assert response.get_json()["prefix"] == "ALB"

        assert client.post("/api/series", json={"code": "ALB", "scope": "delivery_note"}).status_code == 409
        assert client.post("/api/series", json={"scope": "delivery_note"}).status_code == 400
        assert client.post("/api/series", json={"code": "X", "scope": "web", "bogus": 1}).status_code == 400

        response = client.put("/api/series/ALB", json={"next_number": 50})
        assert response.status_code == 200
        assert response.get_json()["next_number"] == 50
        assert client.put("/api/series/ALB", json={"next_number": 10}).status_code == 409

        codes = [s["code"] for s in client.get("/api/series").get_json()["series"]]
        assert codes == ["ALB"]

        assert client.delete("/api/series/ALB").status_code == 200
        assert client.get("/api/series/ALB").status_code == 404


    def test_string_active_flag_is_parsed(self, client, db_session):
        response = client.post("/api/series", json={"code": "WEB", "scope": "web", "active": "false"})

        assert response.status_code == 201
        assert response.get_json()["active"] is False


class TestStockAndCatalogRoutes:

    def test_stock_listing_and_balance(self, client, db_session, warehouse, product, product_b):
        receive(warehouse.id, product.sku, 6)

        body = client.get(f"/api/stock/{warehouse.id}").get_json()
        assert body["location_id"] == warehouse.id
        assert {i["sku"]: i["quantity"] for i in body["items"]} == {product.sku: 6, product_b.sku: 0}

        body = client.get(f"/api/stock/{warehouse.id}/{product.sku}").get_json()
        assert body == {"location_id": warehouse.id, "sku": product.sku, "quantity": 6}

    def test_stock_for_unknown_location_is_404(self, client, db_session):
        assert client.get("/api/stock/777").status_code == 404

    def test_products(self, client, db_session):
        response = client.post("/api/products", json={"sku": "BR-1", "name": "Bracelet", "cost_cents": 700})
        assert response.status_code == 201
        assert client.post("/api/products", json={"sku": "BR-1", "name": "Again"}).status_code == 409
        assert client.post("/api/products", json={"sku": "BR-2", "name": "Neg", "cost_cents": -5}).status_code == 400

        quick = client.post("/api/products/quick", json={"name": "Loose charm"}).get_json()
        assert quick["sku"] == "TMP-0001"

        assert client.delete("/api/products/BR-1").get_json()["active"] is False

    def test_locations_and_customers(self, client, db_session):
        response = client.post("/api/locations", json={"name": "Outlet", "type": "retail"})
        assert response.status_code == 201
        location_id = response.get_json()["id"]

        assert client.post("/api/locations", json={"name": "Bad", "type": "garage"}).status_code == 400
        assert client.delete(f"/api/locations/{location_id}").get_json()["active"] is False
        assert client.get(f"/api/locations/{location_id}").status_code == 404

        response = client.post("/api/customers", json={"name": "Mayorista Sur", "type": "b2b"})
        assert response.status_code == 201
        assert client.get("/api/customers?type=b2b").get_json()["customers"][0]["name"] == "Mayorista Sur"

    def test_deposit_endpoints(self, client, db_session, warehouse, product, b2b_customer):
        receive(warehouse.id, product.sku, 4)

        response = client.post(f"/api/deposits/customers/{b2b_customer.id}/send", json={
            "warehouse_id": warehouse.id,
            "lines": [{"sku": product.sku, "quantity": 2}],
        })
        assert response.status_code == 201

        response = client.post(f"/api/deposits/customers/{b2b_customer.id}/convert", json={
            "lines": [{"sku": product.sku, "quantity": 1}],
        })
        assert response.status_code == 201
        assert response.get_json()["type"] == "b2b_sale"

        body = client.get(f"/api/deposits/customers/{b2b_customer.id}").get_json()
        assert body["items"][0]["quantity"] == 1


class TestHealth:

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"
