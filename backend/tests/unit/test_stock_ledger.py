"""
Unit Tests for the Stock Ledger
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from stockflow.exceptions import NotFoundError, ValidationError
from stockflow.models.inventory import InventoryAdjustment
from stockflow.models.reservation import StockReservation
from stockflow.services.stock_ledger import (
    adjust_stock,
    credit,
    get_on_hand,
    resolve_material_id,
    stock_snapshot,
)

from tests.factories import create_test_material, create_test_order, set_on_hand


class TestCredit:

    def test_credit_creates_balance_on_first_receipt(self, db_session, material):
        balance = credit(db_session, material.id, Decimal("7"))

        assert balance.on_hand == Decimal("7")
        assert get_on_hand(db_session, material.id) == Decimal("7")

    def test_credit_adds_to_existing_balance(self, db_session, stocked_material):
        credit(db_session, stocked_material.id, "2.5")

        assert get_on_hand(db_session, stocked_material.id) == Decimal("22.5")

    @pytest.mark.parametrize("qty", [0, -1])
    def test_credit_rejects_non_positive(self, db_session, material, qty):
        with pytest.raises(ValidationError):
            credit(db_session, material.id, qty)

    def test_credit_unknown_material(self, db_session):
        with pytest.raises(NotFoundError):
            credit(db_session, 9999, 1)


class TestAdjustStock:

    def test_adjust_sets_counted_quantity(self, db_session, stocked_material):
        adjustment = adjust_stock(db_session, f"M-{stocked_material.id}", "17", "Cycle count", actor="clerk-1")

        assert get_on_hand(db_session, stocked_material.id) == Decimal("17")
        assert adjustment.qty_before == Decimal("20")
        assert adjustment.qty_after == Decimal("17")
        assert adjustment.adjustment_qty == Decimal("-3")
        assert adjustment.actor == "clerk-1"
        assert db_session.query(InventoryAdjustment).count() == 1

    def test_adjust_material_without_balance(self, db_session, material):
        adjustment = adjust_stock(db_session, material.id, 5, "Found a box")

        assert adjustment.qty_before == Decimal("0")
        assert get_on_hand(db_session, material.id) == Decimal("5")

    def test_adjust_validation(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            adjust_stock(db_session, None, "-4", "  ")

        assert set(exc_info.value.errors) == {"material_id", "on_hand", "reason"}

    def test_adjust_non_numeric(self, db_session, material):
        with pytest.raises(ValidationError) as exc_info:
            adjust_stock(db_session, material.id, "lots", "count")

        assert exc_info.value.errors == {"on_hand": "on_hand must be a number"}

    def test_adjust_unknown_material(self, db_session):
        with pytest.raises(NotFoundError):
            adjust_stock(db_session, "M-404", 1, "count")


class TestStockSnapshot:

    def test_snapshot_reports_reserved_and_available(self, db_session, stocked_material, material):
        order = create_test_order(db_session, items=[(stocked_material, 5)])
        now = datetime.utcnow()
        db_session.add(StockReservation(
            order_id=order.id, material_id=stocked_material.id, qty=Decimal("5"),
            expires_at=now - timedelta(minutes=1),
        ))
        db_session.flush()

        rows = {row["material_id"]: row for row in stock_snapshot(db_session, now=now)}

        stocked = rows[stocked_material.id]
        assert stocked["on_hand"] == Decimal("20")
        assert stocked["reserved_total"] == Decimal("5")
        assert stocked["available"] == Decimal("15")
        assert stocked["stale_reservations"] == 1

        empty = rows[material.id]
        assert empty["on_hand"] == Decimal("0")
        assert empty["available"] == Decimal("0")
        assert empty["stale_reservations"] == 0

    def test_available_never_negative(self, db_session, material):
        order = create_test_order(db_session, items=[(material, 5)])
        set_on_hand(db_session, material, 2)
        db_session.add(StockReservation(
            order_id=order.id, material_id=material.id, qty=Decimal("5"),
            expires_at=datetime.utcnow() + timedelta(hours=1),
        ))
        db_session.flush()

        (row,) = stock_snapshot(db_session)

        assert row["available"] == Decimal("0")


class TestResolveMaterialId:

    def test_resolves_ids_skus_and_names(self, db_session):
        widget = create_test_material(db_session, sku="WID-01", name="Blue Widget")

        assert resolve_material_id(db_session, widget.id) == widget.id
        assert resolve_material_id(db_session, str(widget.id)) == widget.id
        assert resolve_material_id(db_session, f"M-{widget.id}") == widget.id
        assert resolve_material_id(db_session, "WID-01") == widget.id
        assert resolve_material_id(db_session, "blue widget") == widget.id

    @pytest.mark.parametrize("value", [None, "", "   ", True, 0, "M-999", "Unknown"])
    def test_unresolvable(self, db_session, material, value):
        assert resolve_material_id(db_session, value) is None
