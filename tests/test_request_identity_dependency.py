from __future__ import annotations

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from workorder.api.deps import request_identity as request_identity_module
from workorder.core.config import settings
from workorder.schemas.request_identity import RequestIdentity


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/whoami")
    def whoami(
        identity: RequestIdentity = Depends(request_identity_module.get_request_identity),
        actor: str = Depends(request_identity_module.get_request_actor),
    ):
        return {
            "email": identity.email,
            "source": identity.auth_source,
            "actor": actor,
        }

    return app


def test_x_user_email_header_is_the_actor():
    app = _build_app()
    with TestClient(app) as client:
        r = client.get("/whoami", headers={"X-User-Email": " Legacy@Example.com "})
        assert r.status_code == 200
        payload = r.json()
        assert payload["email"] == "legacy@example.com"
        assert payload["source"] == "legacy_header"
        assert payload["actor"] == "legacy@example.com"


def test_x_user_header_is_accepted():
    app = _build_app()
    with TestClient(app) as client:
        r = client.get("/whoami", headers={"X-User": "crew@example.com"})
        assert r.json()["actor"] == "crew@example.com"


def test_missing_header_falls_back_to_default_actor(monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_ACTOR", "Scheduler")
    app = _build_app()
    with TestClient(app) as client:
        r = client.get("/whoami")
        assert r.status_code == 200
        payload = r.json()
        assert payload["email"] is None
        assert payload["source"] == "anonymous"
        assert payload["actor"] == "Scheduler"
