"""
Tests for the /api/v1/production endpoints.
"""
import pytest
from decimal import Decimal

from stockflow.models.reservation import ProductionReservation

from tests.factories import create_test_order, create_test_task


@pytest.mark.api
class TestProductionBoard:
    """GET /api/v1/production"""

    def test_lists_active_tasks(self, client, db_session, material):
        order = create_test_order(db_session, items=[(material, 6)])
        cancelled = create_test_order(db_session, items=[(material, 6)], status="CANCELLED")
        task = create_test_task(db_session, order, material, 6)
        create_test_task(db_session, cancelled, material, 6)
        db_session.commit()

        response = client.get("/api/v1/production")

        assert response.status_code == 200
        (row,) = response.json()
        assert row["id"] == task.id
        assert row["order_number"] == order.order_number
        assert row["material_name"] == "PLA Black"
        assert row["status"] == "PENDING"
        assert Decimal(str(row["qty_to_produce"])) == Decimal("6")

    def test_empty_board(self, client):
        response = client.get("/api/v1/production")

        assert response.status_code == 200
        assert response.json() == []


@pytest.mark.api
class TestTaskActions:
    """PATCH /api/v1/production/{id}"""

    @pytest.fixture
    def task(self, db_session, material):
        order = create_test_order(db_session, items=[(material, 6)])
        task = create_test_task(db_session, order, material, 6)
        db_session.commit()
        return task

    def test_start_then_complete(self, client, task, cache_calls):
        started = client.patch(f"/api/v1/production/PT-{task.id}", json={"action": "start"})
        assert started.status_code == 200
        assert started.json()["status"] == "IN_PROGRESS"
        assert started.json()["started_at"] is not None

        done = client.patch(f"/api/v1/production/{task.id}", json={"action": "complete"})
        assert done.status_code == 200
        assert done.json()["status"] == "DONE"
        assert done.json()["completed_at"] is not None

        assert cache_calls == [["production", "orders"], ["production", "orders"]]

    def test_start_on_done_task_is_a_noop(self, client, task):
        client.patch(f"/api/v1/production/{task.id}", json={"action": "complete"})

        response = client.patch(f"/api/v1/production/{task.id}", json={"action": "start"})

        assert response.status_code == 200
        assert response.json()["status"] == "DONE"

    def test_invalid_action(self, client, task):
        response = client.patch(f"/api/v1/production/{task.id}", json={"action": "explode"})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_ACTION"

    def test_missing_task(self, client):
        response = client.patch("/api/v1/production/4040", json={"action": "start"})

        assert response.status_code == 404


@pytest.mark.api
class TestManualUpsert:
    """POST /api/v1/production"""

    def test_creates_then_resizes(self, client, db_session, material):
        order = create_test_order(db_session, items=[(material, 6)])
        db_session.commit()
        payload = {"order_id": f"O-{order.id}", "material_id": material.id, "qty_to_produce": "6"}

        created = client.post("/api/v1/production", json=payload)
        resized = client.post("/api/v1/production", json={**payload, "qty_to_produce": 2})

        assert created.status_code == 201
        assert resized.status_code == 201
        assert resized.json()["id"] == created.json()["id"]
        assert Decimal(str(resized.json()["qty_to_produce"])) == Decimal("2")

    def test_production_reservation_follows_task(self, client, db_session, material):
        order = create_test_order(db_session, items=[(material, 6)])
        db_session.commit()
        payload = {"order_id": order.id, "material_id": material.id, "qty_to_produce": 6}

        client.post("/api/v1/production", json=payload)
        created = db_session.query(ProductionReservation).filter_by(order_id=order.id).one()
        assert created.qty == Decimal("6")

        client.post("/api/v1/production", json={**payload, "qty_to_produce": "2.5"})
        db_session.expire_all()
        resized = db_session.query(ProductionReservation).filter_by(order_id=order.id).one()
        assert resized.qty == Decimal("2.5")
        assert resized.material_id == material.id

    def test_validation(self, client):
        response = client.post("/api/v1/production", json={"qty_to_produce": 0})

        assert response.status_code == 400
        assert set(response.json()["details"]["errors"]) == {"order_id", "material_id", "qty_to_produce"}

    def test_unknown_order(self, client, material):
        response = client.post(
            "/api/v1/production",
            json={"order_id": 999, "material_id": material.id, "qty_to_produce": 1},
        )

        assert response.status_code == 404
