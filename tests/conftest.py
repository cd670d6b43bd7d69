"""
Pytest fixtures for the request pipeline.

End-to-end tests go through FastAPI's TestClient (lifespan is not run,
so logging stays unconfigured and ``structlog.testing.capture_logs``
sees every record).  Streaming and abort behaviour is tested by driving
the ASGI callables directly with a recording ``send``.
"""

from __future__ import annotations

import asyncio

import pytest
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from gatekeeper.core.config import Settings


class CallCounter:
    """Counts route handler invocations."""

    def __init__(self) -> None:
        self.calls = 0

    def hit(self) -> None:
        self.calls += 1


def build_test_router(counter: CallCounter) -> APIRouter:
    router = APIRouter(prefix="/items")

    @router.get("")
    async def list_items() -> dict:
        counter.hit()
        return {"items": ["a", "b"]}

    @router.post("", status_code=201)
    async def create_item() -> dict:
        counter.hit()
        return {"created": True}

    @router.put("/{item_id}")
    async def replace_item(item_id: int) -> dict:
        counter.hit()
        return {"replaced": item_id}

    @router.delete("/{item_id}")
    async def delete_item(item_id: int) -> dict:
        counter.hit()
        return {"deleted": item_id}

    @router.get("/boom")
    async def boom() -> dict:
        counter.hit()
        raise RuntimeError("kaboom")

    @router.get("/slow")
    async def slow() -> dict:
        counter.hit()
        await asyncio.sleep(0.05)
        return {"slow": True}

    @router.post("/echo")
    async def echo(request: Request) -> PlainTextResponse:
        counter.hit()
        body = await request.body()
        return PlainTextResponse(body.decode("utf-8"))

    return router


@pytest.fixture
def counter() -> CallCounter:
    return CallCounter()


@pytest.fixture
def console_lines() -> list[str]:
    return []


@pytest.fixture
def prod_settings() -> Settings:
    return Settings(APP_ENV="production", LOG_TO_FILE=False, _env_file=None)


@pytest.fixture
def dev_settings() -> Settings:
    return Settings(APP_ENV="development", LOG_TO_FILE=False, _env_file=None)


@pytest.fixture
def make_client(counter, console_lines):
    """Factory: TestClient over an app carrying the test router."""
    from fastapi.testclient import TestClient

    from gatekeeper.main import create_app

    def _make(config: Settings, **kwargs) -> TestClient:
        app = create_app(
            config=config,
            routers=[build_test_router(counter)],
            console=console_lines.append,
            **kwargs,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client, prod_settings):
    return make_client(prod_settings)


@pytest.fixture
def dev_client(make_client, dev_settings):
    return make_client(dev_settings)


AUTH = {"authenticated": "true"}
AUTH_AND_AUTHZ = {"authenticated": "true", "authorized": "true"}


# ─── Direct ASGI helpers ─────────────────────────────────

def http_scope(method: str = "GET", path: str = "/", query: str = "", headers=None) -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query.encode(),
        "headers": headers or [],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


class Transport:
    """Recording ASGI transport: replays a request body, records sent messages."""

    def __init__(self, body: bytes = b"", fail_on_body: bool = False) -> None:
        self.sent: list[dict] = []
        self._body = body
        self._body_sent = False
        self.fail_on_body = fail_on_body

    async def receive(self) -> dict:
        if not self._body_sent:
            self._body_sent = True
            return {"type": "http.request", "body": self._body, "more_body": False}
        return {"type": "http.disconnect"}

    async def send(self, message: dict) -> None:
        if self.fail_on_body and message["type"] == "http.response.body":
            raise ConnectionResetError("client went away")
        self.sent.append(message)

    @property
    def starts(self) -> list[dict]:
        return [m for m in self.sent if m["type"] == "http.response.start"]

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.sent if m["type"] == "http.response.body")


@pytest.fixture
def transport() -> Transport:
    return Transport()


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)
