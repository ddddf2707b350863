"""
Purchase order creation, status changes and receiving.
"""
from models.product import Product
from models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from models.stock import MovementType, ReferenceType, StockMovement
from services import purchase_orders as po


def receive(db, owner, order, *lines):
    return po.receive_purchase_order_items(db, owner, {
        "purchase_order_id": order.id,
        "items": [{"item_id": item_id, "received_quantity": qty} for item_id, qty in lines],
    })


class TestCreate:

    def test_totals_and_number(self, db, owner, supplier, make_product):
        product = make_product("Bolt")

        result = po.create_purchase_order(db, owner, {
            "supplier_id": supplier.id,
            "tax": 1.5,
            "shipping_cost": 4,
            "items": [
                {"product_id": product.id, "product_name": "Bolt", "ordered_quantity": 10, "unit_cost": 0.25},
                {"product_name": "Custom part", "ordered_quantity": 2, "unit_cost": 10},
            ],
        })

        assert result.success
        assert result.data["total_amount"] == 28.0
        assert result.data["order_number"].startswith("PO-")
        order = db.get(PurchaseOrder, result.data["id"])
        assert order.status is PurchaseOrderStatus.DRAFT
        assert order.subtotal == 22.5

    def test_numbers_increase(self, db, owner, supplier):
        payload = {
            "supplier_id": supplier.id,
            "items": [{"product_name": "X", "ordered_quantity": 1, "unit_cost": 1}],
        }
        first = po.create_purchase_order(db, owner, payload).data["order_number"]
        second = po.create_purchase_order(db, owner, payload).data["order_number"]
        assert first.endswith("-0001")
        assert second.endswith("-0002")

    def test_unknown_product_is_keyed_by_line(self, db, owner, supplier):
        result = po.create_purchase_order(db, owner, {
            "supplier_id": supplier.id,
            "items": [{"product_id": 999, "product_name": "Ghost", "ordered_quantity": 1, "unit_cost": 1}],
        })
        assert result.error_code == "NOT_FOUND"
        assert "items.0.product_id" in result.errors


class TestStatus:

    def test_ordered_stamps_order_date(self, db, owner, make_order):
        order = make_order([(None, 1, 0)], status=PurchaseOrderStatus.DRAFT)
        result = po.update_purchase_order_status(db, owner, order.id, "ordered")
        assert result.success
        db.refresh(order)
        assert order.status is PurchaseOrderStatus.ORDERED
        assert order.order_date is not None

    def test_transition_outside_table_keeps_stored_status(self, db, owner, make_order):
        order = make_order([(None, 1, 0)], status=PurchaseOrderStatus.DRAFT)

        result = po.update_purchase_order_status(db, owner, order.id, "received")

        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert result.message == 'Cannot change status from "draft" to "received".'
        db.refresh(order)
        assert order.status is PurchaseOrderStatus.DRAFT

    def test_terminal_order_cannot_move(self, db, owner, make_order):
        order = make_order([(None, 1, 0)], status=PurchaseOrderStatus.CANCELLED)
        result = po.update_purchase_order_status(db, owner, order.id, "ordered")
        assert result.error_code == "INVALID_STATE_TRANSITION"

    def test_only_drafts_can_be_deleted(self, db, owner, make_order):
        ordered = make_order([(None, 1, 0)])
        assert po.delete_purchase_order(db, owner, ordered.id).message == "Only draft orders can be deleted."
        draft = make_order([(None, 1, 0)], status=PurchaseOrderStatus.DRAFT, number="PO-202601-0002")
        assert po.delete_purchase_order(db, owner, draft.id).success
        assert db.query(PurchaseOrderItem).count() == 1


class TestReceive:

    def test_over_receive_then_exact_receive(self, db, owner, make_product, make_order):
        product = make_product("Bolt", quantity=12)
        order = make_order([(product, 20, 12)], status=PurchaseOrderStatus.PARTIAL)
        item = order.items[0]

        rejected = receive(db, owner, order, (item.id, 10))

        assert rejected.error_code == "OVER_RECEIVE"
        db.refresh(item)
        assert item.received_quantity == 12

        accepted = receive(db, owner, order, (item.id, 8))

        assert accepted.success
        assert accepted.data["status"] == "received"
        db.refresh(item)
        db.refresh(order)
        db.refresh(product)
        assert item.received_quantity == 20
        assert order.status is PurchaseOrderStatus.RECEIVED
        assert order.received_date is not None
        assert product.quantity == 20
        [movement] = db.query(StockMovement).all()
        assert (movement.type, movement.quantity, movement.reference) == (MovementType.RECEIVE, 8, order.order_number)
        assert movement.reference_type is ReferenceType.PURCHASE_ORDER

    def test_partial_receipt(self, db, owner, make_product, make_order):
        a, b = make_product("A"), make_product("B")
        order = make_order([(a, 5, 0), (b, 5, 0)])

        result = receive(db, owner, order, (order.items[0].id, 5))

        assert result.data["status"] == "partial"

    def test_lines_listed_out_of_product_order(self, db, owner, make_product, make_order):
        a, b = make_product("A", quantity=1), make_product("B", quantity=2)
        order = make_order([(a, 5, 0), (b, 5, 0)])
        first, second = order.items

        result = receive(db, owner, order, (second.id, 4), (first.id, 3))

        assert result.data == {"id": order.id, "status": "partial", "received_total": 7}
        db.refresh(a)
        db.refresh(b)
        assert (a.quantity, b.quantity) == (4, 6)

    def test_one_bad_line_aborts_the_receipt(self, db, owner, make_product, make_order):
        a, b = make_product("A"), make_product("B")
        order = make_order([(a, 5, 0), (b, 5, 0)])
        first, second = order.items

        result = receive(db, owner, order, (first.id, 5), (second.id, 6))

        assert result.error_code == "OVER_RECEIVE"
        db.refresh(first)
        assert first.received_quantity == 0
        assert db.query(Product).filter(Product.quantity > 0).count() == 0

    def test_duplicate_lines_are_summed(self, db, owner, make_product, make_order):
        product = make_product("A")
        order = make_order([(product, 5, 0)])
        item_id = order.items[0].id

        result = receive(db, owner, order, (item_id, 3), (item_id, 3))

        assert result.error_code == "OVER_RECEIVE"

    def test_line_without_product_only_counts(self, db, owner, make_order):
        order = make_order([(None, 4, 0)])
        result = receive(db, owner, order, (order.items[0].id, 4))
        assert result.data == {"id": order.id, "status": "received", "received_total": 4}
        assert db.query(StockMovement).count() == 0

    def test_cancelled_and_draft_orders_reject_receipts(self, db, owner, make_product, make_order):
        product = make_product("A")
        cancelled = make_order([(product, 5, 0)], status=PurchaseOrderStatus.CANCELLED)
        draft = make_order([(product, 5, 0)], status=PurchaseOrderStatus.DRAFT, number="PO-202601-0002")

        assert receive(db, owner, cancelled, (cancelled.items[0].id, 1)).error_code == "INVALID_STATE_TRANSITION"
        assert receive(db, owner, draft, (draft.items[0].id, 1)).error_code == "INVALID_STATE_TRANSITION"

    def test_item_from_another_order(self, db, owner, make_product, make_order):
        product = make_product("A")
        order = make_order([(product, 5, 0)])
        other = make_order([(product, 5, 0)], number="PO-202601-0002")

        result = receive(db, owner, order, (other.items[0].id, 1))

        assert result.error_code == "NOT_FOUND"
        assert "items.0.item_id" in result.errors
