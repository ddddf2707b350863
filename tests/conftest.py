"""
Shared fixtures: a throwaway SQLite database per test, tenants and catalog factories.
"""
import os

# Settings are read at import time; keep the app away from the real database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base, configure_sqlite
import models  # noqa: F401
from models.location import Location, ProductStock
from models.product import Product
from models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from models.supplier import Supplier
from models.users import User
from services.activity import activity_log
from services.cache import read_cache


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'stock.db'}", connect_args={"check_same_thread": False}
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def _isolated_side_effects(request):
    read_cache.clear()
    activity_log._pending.clear()
    original_factory = activity_log.session_factory
    if "session_factory" in request.fixturenames:
        activity_log.session_factory = request.getfixturevalue("session_factory")
    yield
    activity_log.session_factory = original_factory
    activity_log._pending.clear()
    read_cache.clear()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def owner(db):
    user = User(email="owner@example.com", role="ADMIN", first_name="Olga")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def staff(db, owner):
    user = User(email="staff@example.com", role="WAREHOUSE", tenant_id=owner.id)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_owner(db):
    user = User(email="rival@example.com", role="ADMIN")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_product(db, owner):
    def _make(name="Widget", quantity=0, user=None, price=10.0, **kwargs):
        product = Product(user_id=(user or owner).id, name=name, quantity=quantity, price=price, **kwargs)
        db.add(product)
        db.commit()
        return product
    return _make


@pytest.fixture
def make_location(db, owner):
    def _make(name="Main", user=None, **kwargs):
        location = Location(user_id=(user or owner).id, name=name, **kwargs)
        db.add(location)
        db.commit()
        return location
    return _make


@pytest.fixture
def put_stock(db):
    def _put(product, location, quantity):
        stock = ProductStock(product_id=product.id, location_id=location.id, quantity=quantity)
        db.add(stock)
        db.commit()
        return stock
    return _put


@pytest.fixture
def supplier(db, owner):
    row = Supplier(user_id=owner.id, name="Acme Supply")
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def make_order(db, owner, supplier):
    """Purchase order with one line per ``(product, ordered, received)`` tuple."""
    def _make(lines, status=PurchaseOrderStatus.ORDERED, number="PO-202601-0001"):
        order = PurchaseOrder(
            user_id=owner.id,
            supplier_id=supplier.id,
            order_number=number,
            status=status,
            items=[
                PurchaseOrderItem(
                    product_id=product.id if product else None,
                    product_name=product.name if product else "Loose item",
                    ordered_quantity=ordered,
                    received_quantity=received,
                    unit_cost=2.5,
                    total_cost=2.5 * ordered,
                )
                for product, ordered, received in lines
            ],
        )
        db.add(order)
        db.commit()
        return order
    return _make
