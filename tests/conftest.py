"""
Shared fixtures: an in-memory Mongo database patched into every module
that imported `db`, a TestClient, and helpers for signed-in profiles.
"""

import asyncio
import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import chat_service  # noqa: E402
import dataBase  # noqa: E402
import dependencies  # noqa: E402
import main  # noqa: E402
import realtime  # noqa: E402
from realtime import Broker  # noqa: E402
from utils import create_access_token  # noqa: E402

# routes/__init__ re-exports each router under its module name, so the
# route modules themselves are looked up by dotted path.
ROUTE_MODULES = [
    "profile_routes",
    "item_routes",
    "request_routes",
    "chat_routes",
    "payment_routes",
    "review_routes",
    "notification_routes",
]

DB_MODULES = [dataBase, dependencies, chat_service, main] + [
    importlib.import_module(f"routes.{name}") for name in ROUTE_MODULES
]


@pytest.fixture
def mock_db(monkeypatch):
    database = AsyncMongoMockClient()["borrowhub_test"]
    for module in DB_MODULES:
        monkeypatch.setattr(module, "db", database)
    return database


@pytest.fixture
def client(mock_db):
    with TestClient(main.app) as test_client:
        yield test_client


def run(coro):
    """Drive a database coroutine from synchronous test code."""
    return asyncio.run(coro)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'user_id': user_id})}"}


class Member:
    def __init__(self, profile: dict, headers: dict):
        self.profile = profile
        self.headers = headers

    @property
    def id(self) -> str:
        return self.profile["id"]


@pytest.fixture
def make_member(client):
    def _make(user_id: str, full_name: str) -> Member:
        headers = auth_headers(user_id)
        response = client.post(
            "/profiles",
            json={"full_name": full_name, "email": f"{user_id}@borrowhub.io"},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return Member(response.json(), headers)
    return _make


@pytest.fixture
def owner(make_member):
    return make_member("owner-1", "Olivia Owner")


@pytest.fixture
def borrower(make_member):
    return make_member("borrower-1", "Ben Borrower")


@pytest.fixture
def listed_item(client, owner):
    response = client.post(
        "/items",
        json={
            "title": "Mountain Bike",
            "description": "21-speed, recently serviced",
            "category": "bikes",
            "condition": "good",
            "daily_rate": 10.0,
            "deposit_amount": 50.0,
        },
        headers=owner.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def pending_request(client, borrower, listed_item):
    response = client.post(
        "/requests",
        json={
            "item_id": listed_item["id"],
            "start_date": "2026-11-01",
            "end_date": "2026-11-04",
            "message": "Need it for a weekend trip",
        },
        headers=borrower.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def broker():
    return Broker(queue_size=2)


@pytest.fixture
def live_broker(monkeypatch):
    """A fresh broker in place of the app-wide one, for watching route events."""
    fresh = Broker()
    monkeypatch.setattr(realtime, "broker", fresh)
    return fresh


def drain(queue) -> list:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events
