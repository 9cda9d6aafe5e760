"""Principal models for requests authenticated upstream."""

from __future__ import annotations

from pydantic import BaseModel


class UserInfo(BaseModel):
    id: str
    name: str | None = None
    email: str | None = None
