"""Pytest configuration and fixtures for postflow tests.

This module provides fixtures for:
- Settings pointing at an in-memory SQLite database and temp directories
- The FastAPI app with Redis and the automation gateway replaced by in-memory doubles
- HTTP client: AsyncClient over ASGITransport
- Helpers to sign up and log in users
"""

import json
import os
import tempfile
import time
from collections.abc import AsyncGenerator
from typing import Any, Optional

# importing postflow.main builds a module-level app from the environment
_TMP = tempfile.mkdtemp(prefix="postflow-tests-")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("UPLOADS_DIR", os.path.join(_TMP, "uploads"))
os.environ.setdefault("TEMPLATES_DIR", os.path.join(_TMP, "templates"))

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from postflow.config import Settings
from postflow.infrastructure.automation_gateway import AutomationGateway, AutomationGatewayError
from postflow.main import create_app

SAMPLE_TEMPLATE = {
    "name": "Social Post Automation",
    "nodes": [{"name": "Webhook", "type": "n8n-nodes-base.webhook", "parameters": {"path": "post-automation"}}],
    "connections": {},
    "settings": {},
}


# -----------------------------------------------------------------------------
# Test doubles
# -----------------------------------------------------------------------------


class FakeRedis:
    """The handful of redis.asyncio commands the app uses, kept in a dict."""

    def __init__(self):
        self.store: dict = {}
        self.expiry: dict = {}

    def _alive(self, key: str) -> bool:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.time():
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.store

    async def set(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        self.store[key] = str(value)
        if ex:
            self.expiry[key] = time.time() + ex
        else:
            self.expiry.pop(key, None)
        return True

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key) if self._alive(key) else None

    async def exists(self, key: str) -> int:
        return 1 if self._alive(key) else 0

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1 if self._alive(key) else 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self.expiry[key] = time.time() + seconds
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return removed

    async def aclose(self) -> None:
        pass


class FakeGateway(AutomationGateway):
    """Records the payloads it would have sent; can be told to fail."""

    def __init__(self, backend_url: str):
        super().__init__("http://n8n.test/webhook/post-automation", backend_url)
        self.calls: list = []
        self.ack: dict = {}
        self.error: Optional[str] = None

    async def trigger_publish(self, post, platforms, media_files) -> dict:
        self.calls.append(self.build_payload(post, platforms, media_files))
        if self.error:
            raise AutomationGatewayError(self.error)
        return dict(self.ack)


# -----------------------------------------------------------------------------
# Settings and application
# -----------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    templates_dir = tmp_path / "templates"
    templates_dir.mkdir()
    (templates_dir / "social-post-automation.json").write_text(json.dumps(SAMPLE_TEMPLATE))

    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        db_auto_create=False,
        uploads_dir=str(tmp_path / "uploads"),
        templates_dir=str(templates_dir),
        secret_key="test-secret-key-do-not-use-in-production",
        backend_url="http://api.test",
        n8n_webhook_secret=None,
        n8n_base_url="http://n8n.test",
        n8n_email="",
        n8n_password="",
        smtp_host="",
        smtp_user="",
        return_reset_code=True,
        admin_email="admin@example.com",
        admin_password="admin-password",
        frontend_origins=[],
    )


@pytest.fixture
async def app(test_settings) -> AsyncGenerator[FastAPI, None]:
    application = create_app(test_settings)
    application.state.redis = FakeRedis()
    application.state.gateway = FakeGateway(test_settings.backend_url)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest.fixture
def gateway(app) -> FakeGateway:
    return app.state.gateway


@pytest.fixture
def redis(app) -> FakeRedis:
    return app.state.redis


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session(app) -> AsyncGenerator[AsyncSession, None]:
    async with app.state.database.session() as session:
        yield session


# -----------------------------------------------------------------------------
# Account helpers
# -----------------------------------------------------------------------------


@pytest.fixture
def register(client):
    """Signs a user up and logs in; returns (auth headers, user json)."""

    async def _register(email: str = "owner@example.com", password: str = "secret123", full_name: str = "Post Owner"):
        resp = await client.post("/auth/signup", json={"full_name": full_name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        resp = await client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register


@pytest.fixture
async def owner(register):
    return await register()


@pytest.fixture
async def admin_headers(client, test_settings) -> dict:
    resp = await client.post(
        "/admin/login",
        json={"email": test_settings.admin_email, "password": test_settings.admin_password},
    )
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}
