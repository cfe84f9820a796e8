"""
Shared fixtures: an in-memory SQLite database per test, model factories,
and a FastAPI TestClient wired to the same session.
"""

import os

# Must happen before brewshop builds its engine and settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("GOOGLE_API_KEY", None)

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import brewshop.models  # noqa: F401
from brewshop.models import Order, OrderItem, OrderStatus, Product, User, UserTier


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def factory(tier: UserTier = UserTier.SILVER, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            name=kwargs.pop("name", f"Customer {counter['n']}"),
            email=kwargs.pop("email", f"customer{counter['n']}@example.com"),
            tier=tier,
            **kwargs,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return factory


@pytest.fixture
def make_product(session):
    def factory(name: str = "Espresso Blend", price: float = 58.0, tags=None, **kwargs) -> Product:
        product = Product(
            name=name,
            price=price,
            category=kwargs.pop("category", "Beans"),
            tags=tags or [],
            **kwargs,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return factory


@pytest.fixture
def make_order(session):
    def factory(
        user: User,
        status: OrderStatus = OrderStatus.DELIVERED,
        total: float = 50.0,
        product: Product = None,
        created_at: datetime = None,
    ) -> Order:
        order = Order(user_id=user.id, status=status, total=total)
        if created_at:
            order.created_at = created_at
        session.add(order)
        session.flush()
        if product:
            session.add(OrderItem(order_id=order.id, product_id=product.id, quantity=1, unit_price=product.price))
        session.commit()
        session.refresh(order)
        return order

    return factory


@pytest.fixture
def client(session):
    from brewshop.main import app
    from brewshop.utils.db import get_session

    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    # Not used as a context manager: the lifespan would create tables on the real engine
    yield TestClient(app)
    app.dependency_overrides.clear()
