"""
Unit Tests for the Order Submission Processor

Covers:
1. Line validation and the per-field error map
2. Stock reservation vs. production shortage on submit
3. DRAFT orders stay out of stock competition
4. Order numbering and totals
"""
import pytest
from datetime import datetime
from decimal import Decimal

from stockflow.exceptions import ValidationError
from stockflow.models.notification import Notification
from stockflow.models.order import Order
from stockflow.models.production import ProductionTask
from stockflow.models.reservation import ProductionReservation, StockReservation
from stockflow.services.order_numbering import day_key
from stockflow.services.order_submission import submit_order, validate_items

from tests.factories import create_test_order, create_test_task


def _line(material, qty, **extra):
    line = {"material_id": material.id, "quantity": qty}
    line.update(extra)
    return line


class TestValidation:

    def test_empty_order_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            submit_order(db_session, [])

        assert "items" in exc_info.value.errors

    def test_errors_are_keyed_per_line_and_field(self, db_session, material):
        items = [
            _line(material, 5),
            {"material_id": None, "quantity": 0},
            {"material_id": "M-9999", "quantity": "abc", "unit_price": "-1"},
            _line(material, 2, unit_price="cheap", shortage_action="STEAL"),
        ]

        with pytest.raises(ValidationError) as exc_info:
            validate_items(db_session, items)

        errors = exc_info.value.errors
        assert errors == {
            "items[1].material_id": "material_id is required",
            "items[1].quantity": "Quantity must be greater than zero",
            "items[2].material_id": "Material 'M-9999' not found",
            "items[2].quantity": "Quantity must be greater than zero",
            "items[2].unit_price": "Unit price cannot be negative",
            "items[3].unit_price": "Unit price must be a number",
            "items[3].shortage_action": "Shortage action must be PRODUCE or BUY",
        }

    @pytest.mark.parametrize("qty", [float("nan"), float("inf"), Decimal("NaN"), Decimal("-Infinity"), "Infinity"])
    def test_non_finite_quantity_rejected(self, db_session, material, qty):
        with pytest.raises(ValidationError) as exc_info:
            submit_order(db_session, [_line(material, qty)])

        assert exc_info.value.errors == {"items[0].quantity": "Quantity must be greater than zero"}
        assert db_session.query(Order).count() == 0

    def test_nothing_written_when_a_line_is_invalid(self, db_session, material):
        with pytest.raises(ValidationError):
            submit_order(db_session, [_line(material, 5), _line(material, -1)])

        assert db_session.query(Order).count() == 0

    def test_invalid_status_reported_with_line_errors(self, db_session, material):
        with pytest.raises(ValidationError) as exc_info:
            submit_order(db_session, [_line(material, 0)], status="SHIPPED")

        assert set(exc_info.value.errors) == {"items[0].quantity", "status"}

    def test_invalid_status_alone(self, db_session, material):
        with pytest.raises(ValidationError) as exc_info:
            submit_order(db_session, [_line(material, 1)], status="DONE")

        assert exc_info.value.errors == {"status": "Status must be DRAFT or OPEN"}

    def test_material_resolved_by_sku_and_prefixed_id(self, db_session, material):
        lines = validate_items(
            db_session,
            [
                {"material_id": "MAT-PLA-BLK", "quantity": 1},
                {"material_id": f"M-{material.id}", "quantity": "2.5"},
            ],
        )

        assert [line["material_id"] for line in lines] == [material.id, material.id]
        assert lines[1]["quantity"] == Decimal("2.5")

    def test_defaults_for_price_and_action(self, db_session, material):
        (line,) = validate_items(db_session, [_line(material, 3)])

        assert line["unit_price"] == Decimal("0")
        assert line["shortage_action"] == "PRODUCE"


class TestStockAndShortage:

    def test_stock_covers_whole_order(self, db_session, stocked_material):
        order = submit_order(db_session, [_line(stocked_material, 5, unit_price="2.50")], actor_id="clerk-1")

        item = order.items[0]
        assert item.qty_reserved_from_stock == Decimal("5")
        assert item.qty_to_produce == Decimal("0")
        reservation = db_session.query(StockReservation).filter_by(order_id=order.id).one()
        assert reservation.qty == Decimal("5")
        assert reservation.user_id == "clerk-1"
        assert db_session.query(ProductionTask).count() == 0

    def test_no_stock_routes_everything_to_production(self, db_session, material):
        order = submit_order(db_session, [_line(material, 10)])

        item = order.items[0]
        assert item.qty_reserved_from_stock == Decimal("0")
        assert item.qty_to_produce == Decimal("10")

        task = db_session.query(ProductionTask).filter_by(order_id=order.id).one()
        assert task.qty_to_produce == Decimal("10")
        assert task.status == "PENDING"
        assert db_session.query(ProductionReservation).filter_by(order_id=order.id).one().qty == Decimal("10")
        assert db_session.query(StockReservation).count() == 0

        notification = db_session.query(Notification).filter_by(type="PRODUCTION_PENDING").one()
        assert notification.order_id == order.id
        assert notification.role_target == "production"

    def test_unmet_demand_of_other_orders_is_set_aside(self, db_session, stocked_material):
        create_test_order(db_session, items=[(stocked_material, 15)], created_at=datetime(2025, 1, 1))

        order = submit_order(db_session, [_line(stocked_material, 8)])

        item = order.items[0]
        assert item.qty_reserved_from_stock == Decimal("5")
        assert item.qty_to_produce == Decimal("3")
        task = db_session.query(ProductionTask).filter_by(order_id=order.id).one()
        assert task.qty_to_produce == Decimal("3")

    def test_demand_already_routed_to_production_is_not_set_aside(self, db_session, stocked_material):
        other = create_test_order(db_session, items=[(stocked_material, 15)], created_at=datetime(2025, 1, 1))
        create_test_task(db_session, other, stocked_material, 15)

        order = submit_order(db_session, [_line(stocked_material, 8)])

        assert order.items[0].qty_reserved_from_stock == Decimal("8")

    def test_done_tasks_do_not_count_as_routed(self, db_session, stocked_material):
        other = create_test_order(db_session, items=[(stocked_material, 15)], created_at=datetime(2025, 1, 1))
        create_test_task(db_session, other, stocked_material, 15, status="DONE")

        order = submit_order(db_session, [_line(stocked_material, 8)])

        assert order.items[0].qty_reserved_from_stock == Decimal("5")

    def test_buy_line_never_creates_a_task(self, db_session, material):
        order = submit_order(db_session, [_line(material, 4, shortage_action="buy")])

        item = order.items[0]
        assert item.shortage_action == "BUY"
        assert item.qty_to_produce == Decimal("0")
        assert db_session.query(ProductionTask).count() == 0

    def test_produce_lines_are_served_before_buy_lines(self, db_session, stocked_material):
        order = submit_order(
            db_session,
            [
                _line(stocked_material, 15, shortage_action="BUY"),
                _line(stocked_material, 10, shortage_action="PRODUCE"),
            ],
        )

        buy_line, produce_line = order.items
        assert produce_line.qty_reserved_from_stock == Decimal("10")
        assert produce_line.qty_to_produce == Decimal("0")
        assert buy_line.qty_reserved_from_stock == Decimal("10")
        assert db_session.query(StockReservation).filter_by(order_id=order.id).one().qty == Decimal("20")
        assert db_session.query(ProductionTask).count() == 0

    def test_one_task_per_material(self, db_session, material):
        order = submit_order(db_session, [_line(material, 3), _line(material, 4)])

        task = db_session.query(ProductionTask).filter_by(order_id=order.id).one()
        assert task.qty_to_produce == Decimal("7")


class TestDraftOrders:

    def test_draft_touches_no_stock(self, db_session, stocked_material):
        order = submit_order(db_session, [_line(stocked_material, 5)], status="draft")

        item = order.items[0]
        assert order.status == "DRAFT"
        assert item.qty_reserved_from_stock == Decimal("0")
        assert item.qty_to_produce == Decimal("5")
        assert db_session.query(StockReservation).count() == 0
        assert db_session.query(ProductionTask).count() == 0

    def test_draft_demand_does_not_reduce_availability(self, db_session, stocked_material):
        submit_order(db_session, [_line(stocked_material, 20)], status="DRAFT")

        order = submit_order(db_session, [_line(stocked_material, 20)])

        assert order.items[0].qty_reserved_from_stock == Decimal("20")


class TestNumberingAndTotals:

    def test_total_is_sum_of_quantity_times_price(self, db_session, material):
        order = submit_order(
            db_session,
            [
                _line(material, 2, unit_price="10.25"),
                _line(material, "1.5", unit_price=4),
            ],
        )

        assert order.total == Decimal("26.50")

    def test_order_numbers_follow_the_day_sequence(self, db_session, material):
        first = submit_order(db_session, [_line(material, 1)])
        second = submit_order(db_session, [_line(material, 1)])

        today = day_key()
        assert first.order_number == f"{today}01"
        assert second.order_number == f"{today}02"

    def test_default_status_is_open(self, db_session, material):
        order = submit_order(db_session, [_line(material, 1)])

        assert order.status == "OPEN"
