"""
SQLite engine setup and serialized writes under concurrent requests.
"""
import threading

import pytest

import database
from models.stock import MovementType, StockMovement
from models.users import User
from services import purchase_orders, stock


def run_together(session_factory, owner_id, action, workers=2):
    """Release ``workers`` threads at once, each with its own session, and collect their results."""
    barrier = threading.Barrier(workers, timeout=10)
    results = []

    def work():
        session = session_factory()
        try:
            user = session.get(User, owner_id)
            barrier.wait()
            results.append(action(session, user))
        finally:
            session.close()

    threads = [threading.Thread(target=work) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    assert len(results) == workers
    return results


class TestSqliteSetup:

    def test_app_engine_enforces_foreign_keys(self):
        if database.engine.dialect.name != "sqlite":
            pytest.skip("SQLite only")
        with database.engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1


class TestConcurrentWrites:

    def test_decrements_cannot_jointly_go_negative(self, db, session_factory, owner, make_product):
        product = make_product(quantity=10)
        product_id = product.id

        results = run_together(
            session_factory, owner.id,
            lambda session, user: stock.adjust_stock(session, user, {"product_id": product_id, "adjustment": -8}),
        )

        assert sorted(r.success for r in results) == [False, True]
        assert [r.error_code for r in results if not r.success] == ["NEGATIVE_STOCK"]
        db.refresh(product)
        assert product.quantity == 2
        assert [m.quantity for m in db.query(StockMovement).all()] == [-8]

    def test_receipts_cannot_exceed_ordered(self, db, session_factory, owner, make_product, make_order):
        product = make_product(quantity=0)
        order = make_order([(product, 20, 6)])
        order_id, item_id = order.id, order.items[0].id

        results = run_together(
            session_factory, owner.id,
            lambda session, user: purchase_orders.receive_purchase_order_items(session, user, {
                "purchase_order_id": order_id,
                "items": [{"item_id": item_id, "received_quantity": 8}],
            }),
        )

        assert sorted(r.success for r in results) == [False, True]
        assert [r.error_code for r in results if not r.success] == ["OVER_RECEIVE"]
        db.refresh(order.items[0])
        assert order.items[0].received_quantity == 14
        db.refresh(product)
        assert product.quantity == 8
        moves = db.query(StockMovement).all()
        assert [(m.type, m.quantity) for m in moves] == [(MovementType.RECEIVE, 8)]
