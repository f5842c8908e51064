import os, tempfile

# Configuration is read at import time, point it at a throw-away database first
testDir = tempfile.mkdtemp(prefix="bilty-test-")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(testDir, 'bilty.db')}"
os.environ["OPENOBSERVE_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from bilty.main import app
from bilty.src.db import ORMbase, engine, sessionMaker
from bilty.src.store import dataStore
from bilty.src.constants import DEFAULT_USER_PASSWORD
from bilty.src.urls import URL_ACCOUNT_TOKEN, URL_SELLER, URL_SUPPLIER, URL_BILTY

BASE_URL = "/user"


@pytest.fixture(autouse=True)
def database():
    ORMbase.metadata.drop_all(engine)
    ORMbase.metadata.create_all(engine)
    with sessionMaker() as session:
        dataStore.load(session)
    yield
    ORMbase.metadata.drop_all(engine)


@pytest.fixture
def client():
    return TestClient(app)


def authHeader(client: TestClient, email: str) -> dict:
    response = client.post(
        BASE_URL + URL_ACCOUNT_TOKEN,
        data={"email": email, "password": DEFAULT_USER_PASSWORD},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin(client):
    return authHeader(client, "admin@bilty.com")


@pytest.fixture
def dispatcher(client):
    return authHeader(client, "dispatcher@bilty.com")


@pytest.fixture
def entryOperator(client):
    return authHeader(client, "entry@bilty.com")


@pytest.fixture
def accountant(client):
    return authHeader(client, "accounts@bilty.com")


@pytest.fixture
def seller(client, admin):
    response = client.post(
        BASE_URL + URL_SELLER,
        headers=admin,
        data={
            "name": "Ramesh Patil",
            "mobile_number": "9876543210",
            "address": "Market Yard, Pune",
            "shop_name": "Patil Vegetables",
        },
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def supplier(client, admin):
    response = client.post(
        BASE_URL + URL_SUPPLIER,
        headers=admin,
        data={"name": "Nashik Farmers", "contact_number": "9765432109"},
    )
    assert response.status_code == 201
    return response.json()


def biltyForm(sellerId: int, **overrides) -> dict:
    form = {
        "seller_id": sellerId,
        "transport_name": "Shree Ganesh Transport",
        "driver_name": "Vijay More",
        "vehicle_no": "MH 12 AB 1234",
        "driver_mobile": "9988776655",
        "delivery_address": "Market Yard, Pune",
        "rent": 5000,
        "advance": 2000,
        "driver_tips": 100,
        "product_details": [
            {"product_name": "Tomato", "unit_type": "kg", "quantity": 500},
        ],
    }
    form.update(overrides)
    return form


@pytest.fixture
def bilty(client, admin, seller):
    response = client.post(
        BASE_URL + URL_BILTY,
        headers=admin,
        json=biltyForm(
            seller["id"],
            product_details=[
                {"product_name": "Tomato", "unit_type": "kg", "quantity": 500},
                {"product_name": "Tomato", "unit_type": "crate", "quantity": 20},
            ],
        ),
    )
    assert response.status_code == 201
    return response.json()
