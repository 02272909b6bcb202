"""
Fixtures compartidas de pruebas.

La app apunta a SQLite en memoria (una sola conexión compartida) y el
esquema se crea y elimina en cada prueba.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ["DATABASE_URL"] = "sqlite://"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, SessionLocal, engine
from app.modules.auth.schemas import AuthContext, UserRole
from app.modules.auth.utils import create_access_token
from app.modules.configuration.service import ConfigurationService
from app.modules.products.models import Product, UnitOfMeasure
from app.modules.turnos.schemas import TurnoOpen
from app.modules.turnos.service import TurnoService


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


# ===== IDENTIDADES =====

@pytest.fixture
def cashier():
    return AuthContext(user_id="cajero-1", user_name="Ana Cajera", user_role=UserRole.CAJERO)


@pytest.fixture
def other_cashier():
    return AuthContext(user_id="cajero-2", user_name="Luis Cajero", user_role=UserRole.CAJERO)


@pytest.fixture
def supervisor():
    return AuthContext(user_id="super-1", user_name="Sofía Supervisora", user_role=UserRole.SUPERVISOR)


def _headers(identity: AuthContext) -> dict:
    token = create_access_token({
        "sub": identity.user_id,
        "name": identity.user_name,
        "role": identity.user_role.value,
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def cashier_headers(cashier):
    return _headers(cashier)


@pytest.fixture
def other_cashier_headers(other_cashier):
    return _headers(other_cashier)


@pytest.fixture
def supervisor_headers(supervisor):
    return _headers(supervisor)


@pytest.fixture
def admin_headers():
    return _headers(AuthContext(user_id="admin-1", user_name="Admin", user_role=UserRole.ADMIN))


# ===== DATOS =====

@pytest.fixture
def exchange_rate(db_session):
    """Tasa publicada de 40 Bs/USD"""
    ConfigurationService(db_session).publish_exchange_rate(Decimal("40"), source="test")
    return Decimal("40")


@pytest.fixture
def make_product(db_session):
    """Fábrica de productos con códigos secuenciales"""
    counter = {"code": 100}

    def _make(name="Producto", unit_price="10.00", stock="5", unit=UnitOfMeasure.UNIDAD, barcode=None):
        code = counter["code"]
        counter["code"] += 1
        product = Product(
            code=str(code),
            code_int=code,
            barcode=barcode,
            name=name,
            name_lower=name.lower(),
            unit_price=Decimal(unit_price),
            unit=unit,
            stock=Decimal(stock),
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def open_turno(db_session, cashier):
    """Turno abierto del cajero con fondo de 100 Bs y 20 USD"""
    return TurnoService(db_session).open_turno(
        TurnoOpen(opening_float_bs=Decimal("100"), opening_float_usd=Decimal("20")),
        cashier=cashier
    )
