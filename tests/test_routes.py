"""
HTTP layer smoke tests through FastAPI's TestClient.
"""
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app
from models.users import User
from utils.tokenJWT import create_access_token


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


class TestStockRoutes:

    def test_requires_token(self, client):
        response = client.get("/locations")
        assert response.status_code in (401, 403)

    def test_role_gate(self, client, db, owner):
        customer = User(email="customer@example.com", role="CUSTOMER", tenant_id=owner.id)
        db.add(customer)
        db.commit()
        assert client.get("/locations", headers=auth(customer)).status_code == 403

    def test_adjust_success_and_failure_statuses(self, client, owner, make_product):
        product = make_product(quantity=10)

        ok = client.post("/stock/adjust", json={"product_id": product.id, "adjustment": -3}, headers=auth(owner))
        assert ok.status_code == 200
        assert ok.json()["data"]["new_quantity"] == 7

        rejected = client.post(
            "/stock/adjust", json={"product_id": product.id, "adjustment": -15}, headers=auth(owner)
        )
        assert rejected.status_code == 409
        body = rejected.json()
        assert body["success"] is False
        assert "below zero" in body["message"]
        assert "error_code" not in body

    def test_missing_product_is_404(self, client, owner):
        response = client.post("/stock/adjust", json={"product_id": 999, "adjustment": 1}, headers=auth(owner))
        assert response.status_code == 404

    def test_body_validation(self, client, owner):
        response = client.post("/stock/adjust", json={"adjustment": 1}, headers=auth(owner))
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed."
        assert "body.product_id" in body["errors"]

    def test_location_and_transfer_flow(self, client, owner, make_product):
        product = make_product(quantity=5)
        headers = auth(owner)
        a = client.post("/locations", json={"name": "A"}, headers=headers).json()["data"]["id"]
        b = client.post("/locations", json={"name": "B"}, headers=headers).json()["data"]["id"]
        client.post(
            "/stock/adjust", json={"product_id": product.id, "adjustment": 2, "location_id": a}, headers=headers
        )

        response = client.post("/locations/transfer", json={
            "product_id": product.id, "from_location_id": a, "to_location_id": b, "quantity": 2,
        }, headers=headers)

        assert response.status_code == 200
        stock = client.get(f"/locations/products/{product.id}", headers=headers).json()["data"]
        assert {row["location_name"]: row["quantity"] for row in stock} == {"A": 0, "B": 2}
        assert client.delete(f"/locations/{b}", headers=headers).status_code == 422


class TestPurchaseOrderRoutes:

    def test_invalid_status_change_is_409(self, client, owner, supplier):
        headers = auth(owner)
        created = client.post("/purchase-orders", json={
            "supplier_id": supplier.id,
            "items": [{"product_name": "Bolt", "ordered_quantity": 3, "unit_cost": 1}],
        }, headers=headers).json()["data"]

        response = client.patch(
            f"/purchase-orders/{created['id']}/status", json={"status": "received"}, headers=headers
        )

        assert response.status_code == 409
        order = client.get(f"/purchase-orders/{created['id']}", headers=headers).json()["data"]
        assert order["status"] == "draft"


class TestReadRoutes:

    def test_reports_and_logs(self, client, owner, other_owner, make_product):
        make_product("Empty", quantity=0)
        make_product("Theirs", quantity=3, user=other_owner)
        client.post("/locations", json={"name": "Mine"}, headers=auth(owner))
        client.post("/locations", json={"name": "Theirs"}, headers=auth(other_owner))

        alerts = client.get("/reports/alerts/summary", headers=auth(owner)).json()["data"]
        assert alerts["out_of_stock"] == 1

        forecast = client.get("/reports/forecast", headers=auth(owner))
        assert forecast.status_code == 200

        logs = client.get("/logs", headers=auth(owner)).json()
        assert logs["total"] == 1
        assert logs["items"][0]["entity_type"] == "location"
        assert logs["items"][0]["note"] == "Created location: Mine"
