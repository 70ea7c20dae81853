from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from thumb_architect.workflow import Workflow


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return uuid.uuid4().hex


class SessionStore:
    """
    In-memory workflows keyed by browser session. Nothing is persisted; a
    restart forgets every session.
    """

    def __init__(self) -> None:
        self._workflows: dict[str, Workflow] = {}
        self._last_seen: dict[str, datetime] = {}

    def get(self, session_id: str) -> Workflow:
        wf = self._workflows.get(session_id)
        if wf is None:
            wf = Workflow()
            self._workflows[session_id] = wf
        self._last_seen[session_id] = _now()
        return wf

    def discard(self, session_id: str) -> None:
        self._workflows.pop(session_id, None)
        self._last_seen.pop(session_id, None)

    def prune(self, max_idle_seconds: float) -> int:
        cutoff = _now().timestamp() - max_idle_seconds
        stale = [sid for sid, seen in self._last_seen.items() if seen.timestamp() < cutoff]
        for sid in stale:
            self.discard(sid)
        return len(stale)

    def __len__(self) -> int:
        return len(self._workflows)


class SessionCookieMiddleware:
    """
    Pure ASGI middleware: puts the session id on ``request.state.session_id``
    and issues a cookie for first-time visitors.
    """

    def __init__(self, app: ASGIApp, cookie_name: str, on_new_session: Callable[[], None] | None = None) -> None:
        self.app = app
        self.cookie_name = cookie_name
        self.on_new_session = on_new_session

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        session_id = HTTPConnection(scope).cookies.get(self.cookie_name)
        fresh = not session_id
        if fresh:
            session_id = new_session_id()
            if self.on_new_session is not None:
                self.on_new_session()
        scope.setdefault("state", {})["session_id"] = session_id

        async def send_with_cookie(message: Message) -> None:
            if fresh and message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.append("set-cookie", f"{self.cookie_name}={session_id}; HttpOnly; Path=/; SameSite=lax")
            await send(message)

        await self.app(scope, receive, send_with_cookie)
