"""
Activity log: entries follow committed changes and never undo them.
"""
from models.log import ActivityLog
from services import stock
from services.activity import ActivityAction, ActivityEntry, ActivityLogger, EntityType, activity_log


def broken_factory():
    raise RuntimeError("log database unavailable")


class TestActivityLogging:

    def test_mutation_records_actor_and_tenant(self, db, owner, staff, make_product):
        product = make_product(quantity=5)

        stock.adjust_stock(db, staff, {"product_id": product.id, "adjustment": 2, "reason": "Count"})

        entry = db.query(ActivityLog).one()
        assert (entry.user_id, entry.actor_id) == (owner.id, staff.id)
        assert (entry.entity_type, entry.entity_id, entry.action) == ("product", str(product.id), "stock_adjustment")
        assert entry.changes["quantity"] == {"from": 5, "to": 7}

    def test_failed_log_write_keeps_the_change(self, db, owner, make_product):
        product = make_product(quantity=5)
        activity_log.session_factory = broken_factory

        result = stock.adjust_stock(db, owner, {"product_id": product.id, "adjustment": -1})

        assert result.success
        db.refresh(product)
        assert product.quantity == 4
        assert len(activity_log.pending) == 1

    def test_next_write_flushes_queued_entries(self, db, owner, make_product, session_factory):
        product = make_product(quantity=5)
        activity_log.session_factory = broken_factory
        stock.adjust_stock(db, owner, {"product_id": product.id, "adjustment": -1})
        assert len(activity_log.pending) == 1

        activity_log.session_factory = session_factory
        stock.adjust_stock(db, owner, {"product_id": product.id, "adjustment": -1})

        assert activity_log.pending == []
        assert db.query(ActivityLog).count() == 2

    def test_rejected_mutation_writes_no_entry(self, db, owner, make_product):
        product = make_product(quantity=1)
        stock.adjust_stock(db, owner, {"product_id": product.id, "adjustment": -2})
        assert db.query(ActivityLog).count() == 0


class TestActivityLogger:

    def entry(self, owner_id):
        return ActivityEntry(user_id=owner_id, entity_type=EntityType.LOCATION, entity_id=3, action=ActivityAction.DELETE)

    def test_retry_flushes_outbox(self, db, owner, session_factory):
        logger = ActivityLogger(session_factory=broken_factory)
        assert logger.record(self.entry(owner.id)) is False

        logger.session_factory = session_factory

        assert logger.retry_pending() == 1
        assert logger.pending == []
        assert db.query(ActivityLog).count() == 1

    def test_outbox_is_bounded(self, owner):
        logger = ActivityLogger(session_factory=broken_factory, max_pending=2)
        for _ in range(3):
            logger.record(self.entry(owner.id))
        assert len(logger.pending) == 2
