"""Shared test fixtures: a fake etcd cluster behind httpx.MockTransport."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from etcd_health.config import Settings
from etcd_health.sinks import CollectingSink


class FakeEtcd:
    """In-process etcd v2 stand-in keyed by request host.

    - ``down``: hosts that refuse connections
    - ``slow``: host -> seconds to sleep before answering
    - ``failing``: hosts whose key writes return 500
    """

    def __init__(self, members: list[dict[str, Any]] | None = None) -> None:
        self.members = members or []
        self.down: set[str] = set()
        self.slow: dict[str, float] = {}
        self.failing: set[str] = set()
        self.members_status = 200
        self.members_body: bytes | None = None
        self.requests: list[httpx.Request] = []
        self.writes_in_flight = 0
        self.max_writes_in_flight = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.down:
            raise httpx.ConnectError("Connection refused", request=request)

        if request.url.path == "/v2/members":
            if host in self.slow:
                await asyncio.sleep(self.slow[host])
            if self.members_body is not None:
                return httpx.Response(self.members_status, content=self.members_body)
            return httpx.Response(self.members_status, json={"members": self.members})

        if request.method == "PUT" and request.url.path.startswith("/v2/keys/"):
            self.writes_in_flight += 1
            self.max_writes_in_flight = max(self.max_writes_in_flight, self.writes_in_flight)
            try:
                if host in self.slow:
                    await asyncio.sleep(self.slow[host])
            finally:
                self.writes_in_flight -= 1
            if host in self.failing:
                return httpx.Response(500, json={"errorCode": 300, "message": "Raft Internal Error"})
            return httpx.Response(201, json={
                "action": "set",
                "node": {"key": request.url.path[len("/v2/keys"):], "value": "telegrafetcd"},
            })

        return httpx.Response(404, json={"message": "Not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def writes_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT" and r.url.host == host]


def member(member_id: str, name: str, client_urls: list[str] | None = None) -> dict[str, Any]:
    return {
        "id": member_id,
        "name": name,
        "peerURLs": [f"https://{name}:2380"],
        "clientURLs": client_urls if client_urls is not None else [f"https://{name}:2379"],
    }


@pytest.fixture
def fake_etcd() -> FakeEtcd:
    return FakeEtcd(members=[member("a1", "n1"), member("a2", "n2")])


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, urls=["https://10.0.0.1:2379"], cluster="prod")


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def make_member():
    return member


@pytest.fixture
def make_fake_etcd():
    return FakeEtcd
