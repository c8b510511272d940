import os

# Must be set before app.core.config is imported
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FORCE_SEED"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.core.database import SessionLocal, engine
from app.core.security import create_token
from app.main import app
from app.models.tenant import Base, Tenant
from app.models.user import User
from app.services import currency_service, metal_service, variant_pricing


@pytest.fixture(autouse=True)
def reset_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tenant(db):
    t = Tenant(name="Joyería Test", slug="t")
    db.add(t)
    db.commit()
    return t


@pytest.fixture
def owner(db, tenant):
    user = User(email="owner@test.com", name="Owner", role="owner", tenant_id=tenant.id)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def seller(db, tenant):
    user = User(email="seller@test.com", role="seller", tenant_id=tenant.id)
    db.add(user)
    db.commit()
    return user


def headers_for(user, tenant):
    token = create_token(str(user.id), 30, token_type="access")
    return {"Authorization": f"Bearer {token}", "X-Tenant-ID": tenant.slug}


@pytest.fixture
def auth_headers(owner, tenant):
    return headers_for(owner, tenant)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def ars(db, tenant):
    currency = currency_service.create_currency(db, tenant.id, "ars", "Peso argentino", "$")
    db.commit()
    return currency


@pytest.fixture
def usd(db, tenant, ars, owner):
    currency = currency_service.create_currency(db, tenant.id, "USD", "Dólar", "US$")
    currency_service.add_rate(db, tenant.id, currency.id, 1000, actor=owner)
    db.commit()
    return currency


@pytest.fixture
def oro(db, tenant, owner):
    metal = metal_service.create_metal(db, tenant.id, "Oro", "Au", 100000, actor=owner)
    db.commit()
    return metal


@pytest.fixture
def oro_18k(db, tenant, oro):
    variant = variant_pricing.create_variant(db, tenant.id, oro.id, {
        "name": "Oro 18k",
        "sku": "AU-18K",
        "purity": "0.75",
        "buy_factor": "0.95",
        "sale_factor": "1.1",
    })
    db.commit()
    return variant


@pytest.fixture
def seller_headers(seller, tenant):
    return headers_for(seller, tenant)
