"""httpx-based client for the etcd v2 HTTP API.

Clients are built per endpoint set and per collection cycle; nothing is
pooled across cycles. Building a client performs no network I/O.

All request methods either return a parsed result or raise DiscoveryError /
ProbeError. Building raises TransportError.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from etcd_health.etcd_client.models import Member, MemberList

logger = logging.getLogger(__name__)

TRANSPORT_TIMEOUT = 10.0  # seconds, connect + TLS handshake
REQUEST_TIMEOUT = 20.0  # seconds, whole request


class EtcdHealthError(Exception):
    """Base class for collector errors."""


class TransportError(EtcdHealthError):
    """Raised when a client cannot be built (bad TLS material or endpoint)."""


class DiscoveryError(EtcdHealthError):
    """Raised when the cluster member list cannot be fetched."""


class ProbeError(EtcdHealthError):
    """Raised when a health write against one member fails."""


@dataclass(frozen=True)
class TLSInfo:
    """Paths to TLS material. Empty strings mean "not configured"."""

    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.ca_file or self.cert_file or self.key_file)


def build_ssl_context(tls: TLSInfo) -> ssl.SSLContext | bool:
    """Return an httpx ``verify`` value for the given TLS material."""
    if tls.is_empty:
        return True  # system trust store
    if bool(tls.cert_file) != bool(tls.key_file):
        raise TransportError("ssl_cert_file and ssl_key_file must be set together")
    try:
        ctx = ssl.create_default_context(cafile=tls.ca_file or None)
        if tls.cert_file:
            ctx.load_cert_chain(tls.cert_file, tls.key_file)
    except (ssl.SSLError, OSError) as e:
        raise TransportError(f"Invalid TLS material: {type(e).__name__}: {e}") from e
    return ctx


def _parse_endpoint(endpoint: str) -> httpx.URL:
    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as e:
        raise TransportError(f"Invalid endpoint {endpoint!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise TransportError(f"Invalid endpoint {endpoint!r}: expected http(s)://host[:port]")
    return url


class EtcdClient:
    """Async client bound to an ordered set of etcd endpoints.

    Requests go to the first endpoint; a connection failure moves on to the
    next one. HTTP error responses are returned as-is and never fail over.
    """

    def __init__(
        self,
        endpoints: Sequence[httpx.URL],
        verify: ssl.SSLContext | bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoints:
            raise TransportError("No endpoints given")
        self._endpoints = list(endpoints)
        self._http = httpx.AsyncClient(
            verify=verify,
            timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=TRANSPORT_TIMEOUT),
            transport=transport,
        )

    @property
    def endpoints(self) -> list[str]:
        return [str(e) for e in self._endpoints]

    async def __aenter__(self) -> EtcdClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        *fallbacks, last = self._endpoints
        for endpoint in fallbacks:
            try:
                return await self._http.request(method, endpoint.join(path), **kwargs)
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                logger.debug("Endpoint %s unreachable: %s", endpoint, e)
        return await self._http.request(method, last.join(path), **kwargs)

    # ── High-level methods ───────────────────────────────────────────────

    async def list_members(self, timeout: float = REQUEST_TIMEOUT) -> list[Member]:
        """GET /v2/members, bounded by ``timeout`` seconds."""
        try:
            resp = await asyncio.wait_for(self._request("GET", "/v2/members"), timeout)
        except asyncio.TimeoutError as e:
            raise DiscoveryError(f"Member listing timed out after {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise DiscoveryError(f"Member listing failed: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise DiscoveryError(f"Member listing returned {resp.status_code}: {resp.text[:200]}")
        try:
            return MemberList.model_validate_json(resp.content).members
        except ValidationError as e:
            raise DiscoveryError(f"Malformed member list: {e}") from e

    async def set_key(self, key: str, value: str, timeout: float = REQUEST_TIMEOUT) -> None:
        """PUT /v2/keys/<key> with a form-encoded value."""
        path = "/v2/keys/" + key.lstrip("/")
        try:
            resp = await asyncio.wait_for(
                self._request("PUT", path, data={"value": value}), timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProbeError(f"Write timed out after {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise ProbeError(f"Write failed: {type(e).__name__}: {e}") from e

        if resp.status_code not in (200, 201):
            raise ProbeError(f"Write returned {resp.status_code}: {resp.text[:200]}")


def connect_to(
    endpoints: Sequence[str],
    tls: TLSInfo | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> EtcdClient:
    """Build a client for ``endpoints``. Connections are opened lazily."""
    if not endpoints:
        raise TransportError("No endpoints given")
    urls = [_parse_endpoint(e) for e in endpoints]
    return EtcdClient(urls, verify=build_ssl_context(tls or TLSInfo()), transport=transport)
