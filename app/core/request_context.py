"""Request-scoped navigation context for audit instrumentation."""

from __future__ import annotations

from contextvars import ContextVar

from starlette.types import ASGIApp, Receive, Scope, Send

_current_route: ContextVar[str | None] = ContextVar("current_route", default=None)


def current_route() -> str | None:
    """Return the path of the request being served, if any."""
    return _current_route.get()


class RouteContextMiddleware:
    """Expose the request path to code that has no access to the request object."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        token = _current_route.set(scope.get("path"))
        try:
            await self.app(scope, receive, send)
        finally:
            _current_route.reset(token)
