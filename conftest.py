# conftest.py
import os

# settings are read at import time
os.environ.setdefault("APP_SECRET", "test-secret")
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import random
import string

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from pos.db import Base, get_db, make_engine
from pos.main import app
from pos.models.core import User, UserRole
from pos.util.security import hash_pw

ADMIN = ("admin", "admin123")
CASHIER = ("kasir", "kasir123")


@pytest.fixture()
def engine(tmp_path):
    # a file, not :memory:, so separate sessions see each other's commits
    eng = make_engine(f"sqlite:///{tmp_path / 'pos.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture()
def users(db):
    admin = User(username=ADMIN[0], pass_hash=hash_pw(ADMIN[1]), role=UserRole.ADMIN)
    cashier = User(username=CASHIER[0], pass_hash=hash_pw(CASHIER[1]), role=UserRole.CASHIER)
    db.add_all([admin, cashier])
    db.commit()
    return {"admin": admin, "cashier": cashier}


@pytest.fixture()
def base_url():
    return "http://testserver"


@pytest.fixture()
def client(session_factory, users):
    def _get_db():
        s = session_factory()
        try:
            yield s
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _login(client, username, password):
    r = client.post("/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, f"/auth/login failed: {r.text}"
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture()
def auth_headers(client):
    return _login(client, *ADMIN)


@pytest.fixture()
def cashier_headers(client):
    return _login(client, *CASHIER)


@pytest.fixture()
def rng_suffix():
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))


@pytest.fixture()
def make_product(client, auth_headers, rng_suffix):
    def _make(name="Soto Ayam", price=15000, category="Makanan", **extra):
        r = client.post("/admin/products/", headers=auth_headers, json={
            "name": f"{name}-{rng_suffix}", "price": price, "category": category, **extra,
        })
        assert r.status_code == 201, f"POST /admin/products/ -> {r.status_code}: {r.text}"
        return r.json()
    return _make
