"""Shared fixtures: in-memory asyncpg stand-in and a fake auth service."""
import asyncio
import os
from contextlib import asynccontextmanager

import aiohttp
import pytest
from aiohttp import web

from navigator_secrets.vault import (
    EnvelopeCipher,
    IdentityResolver,
    SymmetricKey,
    VaultConfig,
    VaultStore,
)


# --- Fake Postgres pool ---

class FakeConnection:
    """Implements the subset of asyncpg.Connection the vault store uses."""

    def __init__(self, pool: "FakePool"):
        self._pool = pool

    async def execute(self, query: str, *args, timeout=None):
        self._pool.statements.append((query, args))
        if self._pool.fail is not None:
            raise self._pool.fail
        if query.lstrip().startswith("CREATE TABLE"):
            return "CREATE TABLE"
        if query.lstrip().startswith("INSERT INTO"):
            user_id, value = args
            self._pool.rows[user_id] = value
            return "INSERT 0 1"
        raise AssertionError(f"unexpected statement: {query}")

    async def fetchval(self, query: str, *args, timeout=None):
        self._pool.statements.append((query, args))
        if self._pool.fail is not None:
            raise self._pool.fail
        return self._pool.rows.get(args[0])


class FakePool:
    """Dict-backed pool: ``rows`` maps id -> encrypted_secret (or None)."""

    def __init__(self):
        self.rows: dict[str, str | None] = {}
        self.statements: list[tuple[str, tuple]] = []
        self.acquired = 0
        self.fail: BaseException | None = None

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        yield FakeConnection(self)


# --- Fake auth service ---

USERS = {
    "token-alice": {"id": "alice-0001", "email": "alice@example.com", "role": "authenticated"},
    "token-bob": {"id": "bob-0002", "email": "bob@example.com", "role": "authenticated"},
    "token-fresh": {"id": "fresh-0003", "email": "fresh@example.com", "role": "authenticated"},
}
ANON_KEY = "anon-test-key"
CALLS_KEY = web.AppKey("calls", list)
SLOW_AUTH_DELAY = 1.0


async def _auth_user(request: web.Request) -> web.Response:
    request.app[CALLS_KEY].append(dict(request.headers))
    auth = request.headers.get("Authorization", "")
    token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
    if token == "token-error":
        return web.json_response({"msg": "boom"}, status=500)
    if token == "token-slow":
        await asyncio.sleep(SLOW_AUTH_DELAY)
        return web.json_response(USERS["token-alice"])
    if token == "token-noid":
        return web.json_response({"email": "ghost@example.com"})
    user = USERS.get(token)
    if user is None:
        return web.json_response({"msg": "invalid JWT"}, status=401)
    return web.json_response(user)


@pytest.fixture
def key():
    return SymmetricKey(os.urandom(32))


@pytest.fixture
def cipher(key):
    return EnvelopeCipher(key)


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def store(fake_pool):
    return VaultStore(fake_pool, table_name="user_secrets", timeout=5.0)


@pytest.fixture
async def auth_server(aiohttp_server):
    app = web.Application()
    app[CALLS_KEY] = []
    app.router.add_get("/auth/v1/user", _auth_user)
    return await aiohttp_server(app)


@pytest.fixture
def auth_url(auth_server):
    return str(auth_server.make_url("/")).rstrip("/")


@pytest.fixture
async def resolver(auth_url):
    async with aiohttp.ClientSession() as client:
        yield IdentityResolver(client, auth_url, api_key=ANON_KEY, timeout=5.0)


@pytest.fixture
def config(key, auth_url):
    return VaultConfig(
        encryption_key=key,
        auth_url=auth_url,
        auth_api_key=ANON_KEY,
        cors_origin="https://app.example.com",
    )
