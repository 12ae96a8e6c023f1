from __future__ import annotations

from fastapi import Request

from workorder.core.config import settings
from workorder.schemas.request_identity import RequestIdentity


def _identity_from_legacy_header(request: Request) -> RequestIdentity:
    email = request.headers.get("X-User-Email") or request.headers.get("X-User") or ""
    email = email.strip().lower()
    if not email:
        return RequestIdentity(email=None, auth_source="anonymous")
    return RequestIdentity(email=email, auth_source="legacy_header")


def get_request_identity(request: Request) -> RequestIdentity:
    return _identity_from_legacy_header(request)


def get_request_actor(request: Request) -> str:
    """Name stamped into last_changed_by / deleted_by for this request."""
    identity = get_request_identity(request)
    return identity.email or settings.DEFAULT_ACTOR
