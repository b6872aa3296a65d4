"""Best-effort client IP and user-agent resolution for impersonation sessions."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
from fastapi import Request

from app.core.config import settings
from app.schemas.impersonation import UNKNOWN, ClientMetadata

logger = logging.getLogger(__name__)

IpLookup = Callable[[], str]


class LookupUnavailable(RuntimeError):
    """Raised by an IP lookup that could not produce an address."""


class PublicIpLookup:
    """Ask a public echo service for the caller's address (``{"ip": "..."}``)."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url or settings.ip_lookup_url
        self._timeout = timeout if timeout is not None else settings.ip_lookup_timeout_seconds
        self._transport = transport

    def __call__(self) -> str:
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(self._url)
                response.raise_for_status()
                address = response.json()["ip"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            raise LookupUnavailable(f"IP lookup via {self._url} failed") from exc
        if not isinstance(address, str) or not address:
            raise LookupUnavailable("IP lookup returned an empty address")
        return address


def request_ip_lookup(request: Request) -> IpLookup:
    """Build a lookup that reads the client address from the incoming request."""

    def _lookup() -> str:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
        if request.client is not None and request.client.host:
            return request.client.host
        raise LookupUnavailable("Request carries no client address")

    return _lookup


def lookup_for_request(request: Request) -> IpLookup:
    """Pick the configured lookup strategy for a request-scoped session start."""
    if settings.ip_lookup_mode == "public":
        return PublicIpLookup()
    return request_ip_lookup(request)


def resolve_client_metadata(ip_lookup: IpLookup | None, user_agent: str | None) -> ClientMetadata:
    """Resolve client metadata, substituting ``Unknown`` for anything unavailable.

    The lookup never aborts a session start.
    """
    ip_address = UNKNOWN
    if ip_lookup is not None:
        try:
            ip_address = ip_lookup() or UNKNOWN
        except LookupUnavailable as exc:
            logger.warning("[IMPERSONATION] Client IP lookup unavailable: %s", exc)
        except Exception:
            logger.exception("[IMPERSONATION] Client IP lookup failed unexpectedly.")
    return ClientMetadata(ip_address=ip_address, user_agent=(user_agent or "").strip() or UNKNOWN)
