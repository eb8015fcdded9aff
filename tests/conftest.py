"""Shared pytest fixtures for gallery-gate tests."""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from starlette.authentication import AuthCredentials, AuthenticationBackend, SimpleUser
from starlette.middleware.authentication import AuthenticationMiddleware

from gallery_gate.config import GateSettings
from gallery_gate.core.context import Capability, Share, ShareItemType
from gallery_gate.core.gate import Gate
from gallery_gate.core.middleware import route
from gallery_gate.core.passwords import hash_password
from gallery_gate.core.request import GateRequest, Headers
from gallery_gate.exceptions import NotFoundError
from gallery_gate.fastapi import create_error_router, create_gated_router

NOW = datetime(2015, 6, 1, 12, 0, tzinfo=timezone.utc)

SHARE_PASSWORD = "s3cret"

# Low cost factor keeps the suite fast
PROTECTED_HASH = hash_password(SHARE_PASSWORD, rounds=4)

JSON_ACCEPT = "application/json, text/javascript, */*; q=0.01"
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class InMemoryShares:
    """ShareLookup over a dict, recording every lookup."""

    def __init__(self, shares: list[Share] | None = None) -> None:
        self.shares = {share.token: share for share in shares or []}
        self.lookups: list[str] = []

    def get_share(self, token: str) -> Share | None:
        self.lookups.append(token)
        return self.shares.get(token)


class InMemoryIdentities:
    """IdentityLookup over a set of known user ids."""

    def __init__(self, users: set[str] | None = None) -> None:
        self.users = set(users or ())

    def user_exists(self, user_id: str) -> bool:
        return user_id in self.users


def default_shares() -> list[Share]:
    return [
        Share(token="folder-token", owner_id="alice", root="photos/2015", share_id="1"),
        Share(
            token="file-token",
            owner_id="alice",
            root="photos/2015/cat.jpg",
            item_type=ShareItemType.FILE,
            share_id="2",
        ),
        Share(
            token="expired-token",
            owner_id="alice",
            root="photos/2014",
            share_id="3",
            expires_at=NOW - timedelta(days=1),
        ),
        Share(
            token="protected-token",
            owner_id="bob",
            root="holidays",
            share_id="4",
            password_hash=PROTECTED_HASH,
        ),
        Share(token="orphan-token", owner_id=None, root="lost", share_id="5"),
    ]


@pytest.fixture
def shares() -> InMemoryShares:
    return InMemoryShares(default_shares())


@pytest.fixture
def identities() -> InMemoryIdentities:
    return InMemoryIdentities({"alice", "bob"})


@pytest.fixture
def settings() -> GateSettings:
    return GateSettings(app_name="gallery", sharing_enabled=True)


@pytest.fixture
def gate(shares: InMemoryShares, identities: InMemoryIdentities, settings: GateSettings) -> Gate:
    return Gate(shares, identities, settings=settings, clock=lambda: NOW)


@pytest.fixture
def make_request():
    """Build a GateRequest.

    Returns a callable accepting accept, params, user_id, token, path,
    share_session and method keyword arguments.
    """

    def _create(
        *,
        accept: str = JSON_ACCEPT,
        params: dict[str, Any] | None = None,
        user_id: str | None = None,
        token: str | None = None,
        path: str = "",
        share_session: set[str] | None = None,
        method: str = "GET",
    ) -> GateRequest:
        return GateRequest(
            headers=Headers({"Accept": accept}),
            params=dict(params or {}),
            user_id=user_id,
            token=token,
            path=path,
            share_session=share_session if share_session is not None else set(),
            method=method,
        )

    return _create


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------


class HeaderAuthBackend(AuthenticationBackend):
    """Logs the X-User header value in, standing in for a real session."""

    async def authenticate(self, conn):
        user_id = conn.headers.get("x-user")
        if not user_id:
            return None
        return AuthCredentials(["authenticated"]), SimpleUser(user_id)


class FakeSessionMiddleware:
    """Pure ASGI middleware exposing one shared dict as scope["session"]."""

    def __init__(self, app, store: dict[str, Any]) -> None:
        self.app = app
        self.store = store

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] == "http":
            scope["session"] = self.store
        await self.app(scope, receive, send)


def _context_body(request: Request) -> dict[str, Any]:
    ctx = request.state.access_context
    return {
        "owner": ctx.owner_id,
        "origin": ctx.origin.value,
        "target": str(ctx.target),
    }


class view_share(route):  # noqa: N801
    public = True

    async def handler(token: str, request: Request) -> dict[str, Any]:
        """Show a shared folder."""
        return _context_body(request)


class unlock_share(route):  # noqa: N801
    public = True
    status_code = 200

    async def handler(token: str, request: Request) -> dict[str, Any]:
        return _context_body(request)


class upload_to_share(route):  # noqa: N801
    public = True
    requires = [Capability.WRITE]

    async def handler(token: str) -> dict[str, Any]:
        return {"uploaded": True}


class missing_picture(route):  # noqa: N801
    public = True

    async def handler(token: str) -> dict[str, Any]:
        raise NotFoundError("The picture does not exist")


class broken_storage(route):  # noqa: N801
    public = True

    async def handler(token: str) -> dict[str, Any]:
        raise ConnectionError("storage unavailable")


async def list_files(request: Request) -> dict[str, Any]:
    return _context_body(request)


class delete_file(route):  # noqa: N801
    requires = Capability.DELETE

    async def handler() -> None:
        return None


GALLERY_ROUTES = {
    "/s/{token}": {"get": view_share, "post": unlock_share},
    "/s/{token}/upload": {"post": upload_to_share},
    "/s/{token}/missing": {"get": missing_picture},
    "/s/{token}/broken": {"get": broken_storage},
    "/files": {"get": list_files, "delete": delete_file},
}


def create_gallery_app(gate: Gate, session_store: dict[str, Any] | None = None) -> FastAPI:
    """Gallery app with every route behind the gate."""
    app = FastAPI()
    app.include_router(create_gated_router(gate, GALLERY_ROUTES))
    app.include_router(create_error_router(gate.settings))
    app.add_middleware(AuthenticationMiddleware, backend=HeaderAuthBackend())
    app.add_middleware(
        FakeSessionMiddleware, store=session_store if session_store is not None else {}
    )
    return app


@pytest.fixture
def session_store() -> dict[str, Any]:
    return {}


@pytest.fixture
def app(gate: Gate, session_store: dict[str, Any]) -> FastAPI:
    return create_gallery_app(gate, session_store)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, raise_server_exceptions=True)
