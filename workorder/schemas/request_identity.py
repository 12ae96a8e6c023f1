from __future__ import annotations

from pydantic import BaseModel


class RequestIdentity(BaseModel):
    email: str | None = None
    auth_source: str = "anonymous"
