"""Pydantic models for etcd v2 API responses."""

from __future__ import annotations

from pydantic import BaseModel


class Member(BaseModel):
    id: str
    name: str = ""
    peerURLs: list[str] = []
    clientURLs: list[str] = []


class MemberList(BaseModel):
    members: list[Member]
