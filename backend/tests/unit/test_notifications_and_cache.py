"""
Unit Tests for notification publishing and cache invalidation hooks
"""
from sqlalchemy.exc import OperationalError

from stockflow.models.notification import Notification
from stockflow.models.order import Order
from stockflow.services import cache_service, notification_service

from tests.factories import create_test_order


class TestPublish:

    def test_publish_inserts_row(self, db_session, material):
        order = create_test_order(db_session, items=[(material, 1)])

        notification = notification_service.notify_production_pending(db_session, order, material.id, 4)

        assert notification.type == "PRODUCTION_PENDING"
        assert notification.role_target == "production"
        assert order.order_number in notification.title
        assert notification.dedupe_key == f"production-pending:{order.id}:{material.id}"

    def test_same_dedupe_key_refreshes_existing_row(self, db_session, material):
        order = create_test_order(db_session, items=[(material, 1)])

        notification_service.notify_order_stage(db_session, order.id, "IN_PICKING")
        latest = notification_service.notify_order_stage(db_session, order.id, "DONE", "Order moved from IN_PICKING to DONE")

        rows = db_session.query(Notification).filter_by(order_id=order.id).all()
        assert len(rows) == 1
        assert rows[0].id == latest.id
        assert rows[0].title == f"Order O-{order.id}: DONE"
        assert rows[0].read_at is None

    def test_rows_without_dedupe_key_accumulate(self, db_session, material):
        create_test_order(db_session, items=[(material, 1)])

        notification_service.publish(db_session, "ORDER_STAGE", "first")
        notification_service.publish(db_session, "ORDER_STAGE", "second")

        assert db_session.query(Notification).count() == 2

    def test_database_failure_is_swallowed(self, db_session, material, monkeypatch):
        order = create_test_order(db_session, items=[(material, 1)])

        def broken_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "query", broken_query)
        result = notification_service.publish(db_session, "ORDER_STAGE", "lost", dedupe_key="k")
        monkeypatch.undo()

        assert result is None
        # The surrounding unit of work is intact
        assert db_session.query(Order).filter_by(id=order.id).count() == 1
        assert db_session.query(Notification).count() == 0


class TestCacheInvalidation:

    def test_hooks_receive_unique_scopes(self, cache_calls):
        cache_service.invalidate(cache_service.STOCK, cache_service.ORDERS, cache_service.STOCK)

        assert cache_calls == [["stock", "orders"]]

    def test_no_scopes_no_call(self, cache_calls):
        cache_service.invalidate()

        assert cache_calls == []

    def test_failing_hook_does_not_stop_others(self, cache_calls):
        def broken(scopes):
            raise RuntimeError("cache down")

        cache_service.register_hook(broken)
        second = []
        cache_service.register_hook(second.append)

        cache_service.invalidate(cache_service.PRODUCTION)

        assert cache_calls == [["production"]]
        assert second == [["production"]]

    def test_register_is_idempotent_and_unregister(self):
        calls = []
        cache_service.register_hook(calls.append)
        hook = calls.append
        cache_service.register_hook(hook)

        cache_service.invalidate("orders")
        cache_service.unregister_hook(hook)
        cache_service.invalidate("orders")

        assert calls == [["orders"]]
