import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

# Settings are read at import time; these must be set before any remix import.
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from remix.container import ServiceContainer
from remix.domain.common.pipeline import RequestContext
from remix.infra.auth import dev_claims
from remix.infra.store import InMemoryStore
from remix.main import app
from remix.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from remix.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via the X-User-Id header, which is only accepted in
	dev mode.
	"""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest_asyncio.fixture
async def services():
	container = ServiceContainer(InMemoryStore())
	await container.start()
	try:
		yield container
	finally:
		await container.stop()


@pytest_asyncio.fixture
async def api_client(services):
	original = getattr(app.state, "services", None)
	app.state.services = services
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.state.services = original


@pytest.fixture
def ctx_for():
	def _ctx(user_id: str) -> RequestContext:
		return RequestContext.for_claims(dev_claims(user_id))

	return _ctx


@pytest.fixture
def anonymous_ctx() -> RequestContext:
	return RequestContext.anonymous()


@pytest_asyncio.fixture
async def make_user(services, anonymous_ctx):
	counter = {"n": 0}

	async def _make(name: str | None = None, *, password: str = "secret-pass"):
		counter["n"] += 1
		label = name or f"user{counter['n']}"
		result = await services.users.create_user(
			anonymous_ctx,
			password=password,
			email=f"{label}@example.com",
			username=label,
			name=label.title(),
		)
		return result.user

	return _make
