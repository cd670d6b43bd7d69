"""
RequestContext — per-request state object carried through every stage.

One context is created by the ASGI adapter for each inbound request and
handed by reference down the chain.  It owns the ResponseInProgress,
the single authoritative record of what has already been sent to the
client.  Nothing in here is shared between requests.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from starlette.datastructures import Headers, QueryParams
from starlette.types import Message, Receive, Scope, Send

from gatekeeper.core.constants import CONTENT_TYPE_JSON, CONTENT_TYPE_TEXT
from gatekeeper.pipeline.errors import ResponseAlreadyStartedError

BodyObserver = Callable[[bytes], None]


# ═══════════════════════════════════════════════════════════
#  ResponseInProgress
# ═══════════════════════════════════════════════════════════

@dataclass
class ResponseInProgress:
    """
    The response being built for one request.

    ``started`` flips to True the moment the ``http.response.start``
    message is handed to the transport.  From then on status and
    headers are frozen; the only remaining option for a stage that
    cannot finish the response is ``abort()``.
    """

    transport_send: Send
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    started: bool = False
    completed: bool = False
    aborted: bool = False
    body_observers: list[BodyObserver] = field(default_factory=list)

    # ─── Mutation (only before start) ──────────────────

    def _ensure_not_started(self, action: str) -> None:
        if self.started:
            raise ResponseAlreadyStartedError(
                f"Cannot {action}: the response has already started",
                details={"status_code": self.status_code},
            )

    def set_status(self, status_code: int) -> None:
        self._ensure_not_started("set status code")
        self.status_code = status_code

    def set_header(self, name: str, value: str) -> None:
        self._ensure_not_started("set header")
        self.headers[name.lower()] = value

    def observe_body(self, observer: BodyObserver) -> None:
        """Register a callback that sees every body chunk as it is sent."""
        self.body_observers.append(observer)

    # ─── Sending ───────────────────────────────────────

    async def send(self, message: Message) -> None:
        """
        ASGI ``send`` for everything downstream.

        Tracks start/completion so the chain always knows whether the
        status line is still writable.
        """
        message_type = message["type"]

        if message_type == "http.response.start":
            self._ensure_not_started("start the response twice")
            self.status_code = message["status"]
            self.headers = {
                key.decode("latin-1").lower(): value.decode("latin-1")
                for key, value in message.get("headers", [])
            }
            self.started = True

        elif message_type == "http.response.body":
            if self.completed:
                raise ResponseAlreadyStartedError("Cannot write body: the response is already complete")
            chunk = message.get("body", b"")
            for observer in self.body_observers:
                observer(chunk)
            if not message.get("more_body", False):
                self.completed = True

        await self.transport_send(message)

    async def write(self, body: bytes, content_type: str) -> None:
        """Single terminal write: status line, headers and the full body."""
        self._ensure_not_started("write a terminal response")
        self.headers["content-type"] = content_type
        self.headers["content-length"] = str(len(body))
        await self.send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": [
                (key.encode("latin-1"), value.encode("latin-1"))
                for key, value in self.headers.items()
            ],
        })
        await self.send({"type": "http.response.body", "body": body, "more_body": False})

    async def write_text(self, text: str) -> None:
        await self.write(text.encode("utf-8"), CONTENT_TYPE_TEXT)

    async def write_json(self, payload: Any) -> None:
        """Write ``payload`` as compact JSON (no whitespace between tokens)."""
        body = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        await self.write(body, CONTENT_TYPE_JSON)

    def abort(self) -> None:
        """Give up on the connection; nothing more is written."""
        self.aborted = True


# ═══════════════════════════════════════════════════════════
#  ErrorRecord
# ═══════════════════════════════════════════════════════════

@dataclass
class ErrorRecord:
    """A captured failure, correlated to the request that produced it."""

    kind: str
    message: str
    method: str
    path: str
    request_id: str

    @classmethod
    def from_exception(cls, exc: BaseException, ctx: RequestContext) -> ErrorRecord:
        return cls(
            kind=type(exc).__name__,
            message=str(exc),
            method=ctx.method,
            path=ctx.path,
            request_id=ctx.request_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_kind": self.kind,
            "error_message": self.message,
            "method": self.method,
            "path": self.path,
            "request_id": self.request_id,
        }


# ═══════════════════════════════════════════════════════════
#  RequestContext
# ═══════════════════════════════════════════════════════════

@dataclass
class RequestContext:
    """
    Everything one pipeline invocation knows about its request.

    ``receive`` is the body stream.  Stages that need to observe the
    body (the access log) replace it with a wrapping coroutine, so
    everything further down reads through them.
    """

    scope: Scope
    receive: Receive
    response: ResponseInProgress
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive, send: Send) -> RequestContext:
        return cls(scope=scope, receive=receive, response=ResponseInProgress(transport_send=send))

    @property
    def method(self) -> str:
        return self.scope["method"].upper()

    @property
    def path(self) -> str:
        return self.scope["path"]

    @property
    def query(self) -> QueryParams:
        """Query parameters; on duplicate keys the last value wins."""
        return QueryParams(self.scope.get("query_string", b""))

    @property
    def query_string(self) -> str:
        """Raw query string with its leading '?', or '' when there is none."""
        raw = self.scope.get("query_string", b"").decode("latin-1")
        return f"?{raw}" if raw else ""

    @property
    def headers(self) -> Headers:
        return Headers(scope=self.scope)

    @property
    def protocol(self) -> str:
        return f"HTTP/{self.scope.get('http_version', '1.1')}"

    @property
    def scheme(self) -> str:
        return self.scope.get("scheme", "http")
