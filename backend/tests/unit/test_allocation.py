"""
Unit Tests for the Allocation Engine

Covers:
1. Strict FIFO distribution across orders
2. Production shortage sync (resize, delete, DONE never reopened)
3. BUY lines never produce
4. Which orders take part (draft, cancelled, trashed are skipped)
5. Stock reservations never exceed what is on hand
"""
import pytest
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from stockflow.models.notification import Notification
from stockflow.models.production import ProductionTask
from stockflow.models.reservation import ProductionReservation, StockReservation
from stockflow.services.allocation import allocate
from stockflow.services.production_tasks import upsert_production_reservation

from tests.factories import (
    create_test_order,
    create_test_task,
    orders_in_fifo_order,
    set_on_hand,
)


def _task(db, order, material):
    return (
        db.query(ProductionTask)
        .filter_by(order_id=order.id, material_id=material.id)
        .first()
    )


def _reservation(db, order, material):
    return (
        db.query(StockReservation)
        .filter_by(order_id=order.id, material_id=material.id)
        .first()
    )


class TestFifoDistribution:
    """Oldest order is served first, completely, before the next gets anything"""

    def test_earlier_order_fully_served_first(self, db_session, material):
        order_a, order_b = orders_in_fifo_order(db_session, material, [10, 5])

        allocate(db_session, material.id, Decimal("8"), actor_id="clerk-1")

        line_a, line_b = order_a.items[0], order_b.items[0]
        assert line_a.qty_reserved_from_stock == Decimal("8")
        assert line_a.qty_to_produce == Decimal("2")
        assert line_b.qty_reserved_from_stock == Decimal("0")
        assert line_b.qty_to_produce == Decimal("5")

    def test_remaining_flows_to_next_order(self, db_session, material):
        order_a, order_b = orders_in_fifo_order(db_session, material, [10, 5])

        allocations = allocate(db_session, material.id, 12)

        assert [(a.order_id, a.allocated) for a in allocations] == [
            (order_a.id, Decimal("10")),
            (order_b.id, Decimal("2")),
        ]
        assert order_b.items[0].qty_reserved_from_stock == Decimal("2")
        assert order_b.items[0].qty_to_produce == Decimal("3")

    def test_fifo_uses_creation_time_not_id(self, db_session, material):
        later = create_test_order(db_session, items=[(material, 4)], created_at=datetime(2025, 3, 14, 12, 0))
        earlier = create_test_order(db_session, items=[(material, 4)], created_at=datetime(2025, 3, 14, 9, 0))

        allocate(db_session, material.id, 4)

        assert earlier.items[0].qty_reserved_from_stock == Decimal("4")
        assert later.items[0].qty_reserved_from_stock == Decimal("0")

    def test_already_covered_lines_are_skipped(self, db_session, material):
        covered = create_test_order(
            db_session, items=[(material, 5, "PRODUCE", 5)], created_at=datetime(2025, 3, 14, 8, 0)
        )
        waiting = create_test_order(db_session, items=[(material, 5)], created_at=datetime(2025, 3, 14, 9, 0))

        allocations = allocate(db_session, material.id, 3)

        assert [a.order_id for a in allocations] == [waiting.id]
        assert covered.items[0].qty_reserved_from_stock == Decimal("5")
        assert waiting.items[0].qty_reserved_from_stock == Decimal("3")

    def test_leftover_stays_unallocated(self, db_session, material):
        (order,) = orders_in_fifo_order(db_session, material, [3])

        allocations = allocate(db_session, material.id, 10)

        assert sum(a.allocated for a in allocations) == Decimal("3")
        assert order.items[0].qty_reserved_from_stock == Decimal("3")

    @pytest.mark.parametrize("qty", [0, -5, "0"])
    def test_non_positive_quantity_is_a_noop(self, db_session, material, qty):
        (order,) = orders_in_fifo_order(db_session, material, [3])

        assert allocate(db_session, material.id, qty) == []
        assert order.items[0].qty_reserved_from_stock == Decimal("0")


class TestProductionShortageSync:
    """The order's production task follows the remaining PRODUCE shortage"""

    def test_full_coverage_deletes_task_and_production_reservation(self, db_session, material):
        (order,) = orders_in_fifo_order(db_session, material, [10])
        create_test_task(db_session, order, material, 10)
        upsert_production_reservation(db_session, order.id, material.id, Decimal("10"))

        allocate(db_session, material.id, 10)

        assert order.items[0].qty_to_produce == Decimal("0")
        assert _task(db_session, order, material) is None
        assert db_session.query(ProductionReservation).filter_by(order_id=order.id).count() == 0

    def test_partial_coverage_resizes_task(self, db_session, material):
        (order,) = orders_in_fifo_order(db_session, material, [10])
        create_test_task(db_session, order, material, 10)

        allocate(db_session, material.id, 8)

        task = _task(db_session, order, material)
        assert task.qty_to_produce == Decimal("2")
        assert task.status == "PENDING"
        reservation = db_session.query(ProductionReservation).filter_by(order_id=order.id).one()
        assert reservation.qty == Decimal("2")

    def test_done_task_is_never_reopened(self, db_session, material):
        (order,) = orders_in_fifo_order(db_session, material, [10])
        create_test_task(db_session, order, material, 10, status="DONE")

        allocate(db_session, material.id, 4)

        task = _task(db_session, order, material)
        assert task.status == "DONE"
        assert task.qty_to_produce == Decimal("6")

    def test_in_progress_task_goes_back_to_pending_on_resize(self, db_session, material):
        (order,) = orders_in_fifo_order(db_session, material, [10])
        create_test_task(db_session, order, material, 10, status="IN_PROGRESS")

        allocate(db_session, material.id, 4)

        assert _task(db_session, order, material).status == "PENDING"

    def test_task_quantity_sums_all_produce_lines_of_the_order(self, db_session, material):
        order = create_test_order(db_session, items=[(material, 3), (material, 4)])

        allocate(db_session, material.id, 5)

        first, second = order.items
        assert first.qty_reserved_from_stock == Decimal("3")
        assert second.qty_reserved_from_stock == Decimal("2")
        assert _task(db_session, order, material).qty_to_produce == Decimal("2")
        assert _reservation(db_session, order, material).qty == Decimal("5")


class TestBuyLines:

    def test_buy_line_never_produces(self, db_session, material):
        order = create_test_order(db_session, items=[(material, 10, "BUY")])

        allocate(db_session, material.id, 4)

        line = order.items[0]
        assert line.qty_reserved_from_stock == Decimal("4")
        assert line.qty_to_produce == Decimal("0")
        assert _task(db_session, order, material) is None


class TestParticipatingOrders:

    def test_inactive_orders_are_skipped(self, db_session, material):
        draft = create_test_order(db_session, items=[(material, 5)], status="DRAFT", created_at=datetime(2025, 1, 1))
        cancelled = create_test_order(
            db_session, items=[(material, 5)], status="CANCELLED", created_at=datetime(2025, 1, 2)
        )
        done = create_test_order(db_session, items=[(material, 5)], status="DONE", created_at=datetime(2025, 1, 3))
        trashed = create_test_order(
            db_session, items=[(material, 5)], created_at=datetime(2025, 1, 4), trashed_at=datetime(2025, 1, 5)
        )
        picking = create_test_order(
            db_session, items=[(material, 5)], status="IN_PICKING", created_at=datetime(2025, 1, 6)
        )

        allocate(db_session, material.id, 5)

        for skipped in (draft, cancelled, done, trashed):
            assert skipped.items[0].qty_reserved_from_stock == Decimal("0")
        assert picking.items[0].qty_reserved_from_stock == Decimal("5")

    def test_other_materials_are_untouched(self, db_session, material):
        from tests.factories import create_test_material

        other = create_test_material(db_session)
        order = create_test_order(db_session, items=[(material, 5), (other, 5)])

        allocate(db_session, material.id, 5)

        assert order.items[0].qty_reserved_from_stock == Decimal("5")
        assert order.items[1].qty_reserved_from_stock == Decimal("0")


class TestReservations:

    def test_reservations_never_exceed_on_hand(self, db_session, material):
        orders_in_fifo_order(db_session, material, [10, 5])
        set_on_hand(db_session, material, 8)

        allocate(db_session, material.id, 8)

        reserved = db_session.query(func.sum(StockReservation.qty)).scalar()
        assert Decimal(str(reserved)) <= Decimal("8")

    def test_reservation_records_actor_and_fresh_ttl(self, db_session, material):
        (order,) = orders_in_fifo_order(db_session, material, [10])
        before = datetime.utcnow()

        allocate(db_session, material.id, 3, actor_id="clerk-7")

        reservation = _reservation(db_session, order, material)
        assert reservation.qty == Decimal("3")
        assert reservation.user_id == "clerk-7"
        assert reservation.expires_at > before

    def test_each_served_order_is_notified_once(self, db_session, material):
        order_a, order_b = orders_in_fifo_order(db_session, material, [2, 2])

        allocate(db_session, material.id, 4)

        notified = {
            n.order_id
            for n in db_session.query(Notification).filter_by(type="ALLOCATION_AVAILABLE").all()
        }
        assert notified == {order_a.id, order_b.id}
