"""
Point-of-sale checkout.
"""
from models.batch import Batch
from models.sale import Sale, SaleItem
from models.stock import MovementType, ReferenceType, StockMovement
from services import sales


class TestCreateSale:

    def test_checkout_totals_stock_and_ledger(self, db, owner, make_product):
        pen = make_product("Pen", quantity=10)
        pad = make_product("Pad", quantity=3)

        result = sales.create_sale(db, owner, {
            "items": [
                {"product_id": pen.id, "quantity": 4, "price": 2.5, "discount": 1},
                {"product_id": pad.id, "quantity": 1, "price": 6},
            ],
            "overall_discount": 5,
            "tax_rate": 10,
        })

        assert result.success
        # subtotal 9 + 6 = 15, minus 5, plus 10% tax
        assert result.data["total_amount"] == 11.0
        assert result.data["sale_number"].startswith("SALE-")
        db.refresh(pen)
        db.refresh(pad)
        assert (pen.quantity, pad.quantity) == (6, 2)

        sale = db.get(Sale, result.data["sale_id"])
        assert (sale.subtotal, sale.discount, sale.tax) == (15.0, 5.0, 1.0)
        moves = db.query(StockMovement).order_by(StockMovement.id).all()
        assert [(m.type, m.quantity) for m in moves] == [(MovementType.OUT, -4), (MovementType.OUT, -1)]
        assert all(m.reference == sale.sale_number for m in moves)
        assert all(m.reference_type is ReferenceType.SALE for m in moves)

    def test_discount_never_exceeds_subtotal(self, db, owner, make_product):
        pen = make_product("Pen", quantity=1)
        result = sales.create_sale(db, owner, {
            "items": [{"product_id": pen.id, "quantity": 1, "price": 3}],
            "overall_discount": 50,
        })
        assert result.data["total_amount"] == 0

    def test_insufficient_stock_across_lines(self, db, owner, make_product):
        pen = make_product("Pen", quantity=5)

        result = sales.create_sale(db, owner, {"items": [
            {"product_id": pen.id, "quantity": 3, "price": 1},
            {"product_id": pen.id, "quantity": 3, "price": 1},
        ]})

        assert result.error_code == "NEGATIVE_STOCK"
        assert "Available: 5" in result.message
        db.refresh(pen)
        assert pen.quantity == 5
        assert db.query(Sale).count() == 0
        assert db.query(StockMovement).count() == 0

    def test_cost_price_comes_from_latest_batch(self, db, owner, make_product):
        pen = make_product("Pen", quantity=5)
        db.add_all([
            Batch(user_id=owner.id, product_id=pen.id, batch_number="OLD", quantity=0, cost_price=0.5),
            Batch(user_id=owner.id, product_id=pen.id, batch_number="NEW", quantity=0, cost_price=0.8),
        ])
        db.commit()

        sales.create_sale(db, owner, {"items": [{"product_id": pen.id, "quantity": 1, "price": 2}]})

        assert db.query(SaleItem).one().cost_price == 0.8

    def test_sale_numbers_are_sequential(self, db, owner, make_product):
        pen = make_product("Pen", quantity=5)
        payload = {"items": [{"product_id": pen.id, "quantity": 1, "price": 2}]}
        first = sales.create_sale(db, owner, payload).data["sale_number"]
        second = sales.create_sale(db, owner, payload).data["sale_number"]
        assert (first[-4:], second[-4:]) == ("0001", "0002")

    def test_line_discount_above_line_amount(self, db, owner, make_product):
        pen = make_product("Pen", quantity=5)
        result = sales.create_sale(db, owner, {
            "items": [{"product_id": pen.id, "quantity": 1, "price": 2, "discount": 3}]
        })
        assert result.error_code == "VALIDATION_FAILED"
        assert "items.0" in result.errors
