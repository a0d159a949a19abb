"""Pytest fixtures for testing"""

import itertools
import pytest
from datetime import date
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from jewelry_ledger.api.main import create_app
from jewelry_ledger.infrastructure.database.models import Base, Customer, InventoryItem
from jewelry_ledger.infrastructure.database.session import build_engine, build_session_factory, get_db
from jewelry_ledger.domain.models import Category, Metal
from jewelry_ledger.services.customers import CustomerService
from jewelry_ledger.services.inventory_ledger import InventoryLedger
from jewelry_ledger.services.price_oracle import PriceOracle
from tests.builders import TODAY

_sku_counter = itertools.count(1)
_phone_counter = itertools.count(9_000_000_000)


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """File-backed SQLite database per test, shareable across threads"""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    """Sessionmaker configured like the production one"""
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create test database and session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory: sessionmaker) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def make_item(db: Session) -> Callable[..., InventoryItem]:
    """Factory for committed inventory items"""

    def _make(
        name: str = "Gold Ring",
        material: Metal = Metal.GOLD,
        weight_per_piece: float = 10.0,
        quantity: int = 5,
        min_stock_level: int = 2,
        category: Category = Category.RING,
    ) -> InventoryItem:
        item = InventoryLedger(db).add_item(
            sku=f"SKU-{next(_sku_counter):05d}",
            name=name,
            material=material,
            weight_per_piece=weight_per_piece,
            quantity=quantity,
            category=category,
            min_stock_level=min_stock_level,
        )
        db.commit()
        return item

    return _make


@pytest.fixture
def make_customer(db: Session) -> Callable[..., Customer]:
    """Factory for committed customers"""

    def _make(name: str = "Asha Rao", city: str = "Jaipur") -> Customer:
        return CustomerService(db).add_customer(name=name, phone=str(next(_phone_counter)), city=city)

    return _make


@pytest.fixture
def set_price(db: Session) -> Callable[..., None]:
    """Record a daily metal rate and commit"""

    def _set(metal: Metal, price_per_gram_paise: int, price_date: date = TODAY) -> None:
        PriceOracle(db).set_price(metal, price_per_gram_paise, price_date)
        db.commit()

    return _set
