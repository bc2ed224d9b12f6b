import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import json
from datetime import datetime

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers tables)
from app.db import Base
from app.services.clock import FixedClock
from app.services.remote_source import RemoteDataSource

HOURS_URL = "https://hooks.test/hours"
SAVE_URL = "https://hooks.test/admin-save"
AUTH_URL = "https://hooks.test/admin-auth"
VERIFY_URL = "https://hooks.test/admin-verify"
ADMIN_TOKEN = "admin-tok"

SAMPLE_HOURS = {
    "restaurant": {
        "Monday": {"open": "07:00", "close": "22:00"},
        "default": {"open": "08:00", "close": "20:00"},
    },
    "service_bay": {
        "Tuesday": {"open": "08:00", "close": "17:00"},
        "Monday": {"open": "08:00", "close": "17:00"},
        "emergency": "24/7 on-call",
    },
    "car_wash": {"Monday": {"open": "09:00", "close": "09:00"}},
    "bakery": {"default": {"open": "06:00", "close": "12:00"}},
}


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _respond(spec):
    status, kwargs = spec
    return httpx.Response(status, **kwargs)


class Webhook:
    """Scripted webhook backend for httpx.MockTransport."""

    def __init__(self):
        # (status, httpx.Response kwargs); a fresh response is built per request
        self.hours_response = (200, {"json": {"hours": SAMPLE_HOURS}})
        self.save_response = (200, {"json": {"success": True}})
        self.auth_response = (200, {"json": {"success": True, "token": ADMIN_TOKEN}})
        self.valid_token = ADMIN_TOKEN
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url == httpx.URL(HOURS_URL):
            return _respond(self.hours_response)
        if request.url == httpx.URL(SAVE_URL):
            return _respond(self.save_response)
        if request.url == httpx.URL(AUTH_URL):
            return _respond(self.auth_response)
        if request.url == httpx.URL(VERIFY_URL):
            ok = request.headers.get("x-admin-token") == self.valid_token
            return httpx.Response(200, json={"success": ok})
        return httpx.Response(404)

    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def webhook():
    return Webhook()


@pytest.fixture
def source(webhook):
    return RemoteDataSource(
        hours_endpoint=HOURS_URL,
        admin_auth_endpoint=AUTH_URL,
        admin_verify_endpoint=VERIFY_URL,
        admin_save_endpoint=SAVE_URL,
        api_key="test-key",
        transport=httpx.MockTransport(webhook),
    )


@pytest.fixture
def clock():
    # 2024-01-01 is a Monday
    return FixedClock(datetime(2024, 1, 1, 7, 0))
