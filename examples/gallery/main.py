"""Gallery example for gallery-gate.

Run with: uvicorn main:app --reload
(needs the "examples" extra: pip install -e ".[examples]")

Log in by sending an X-User header, or open /s/demo-token for the public link.
/s/locked-token asks for a password ("demo") once per browser session.
"""
from fastapi import FastAPI, Request
from starlette.authentication import AuthCredentials, AuthenticationBackend, SimpleUser
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.sessions import SessionMiddleware

from gallery_gate import (
    Capability,
    Gate,
    Share,
    create_error_router,
    create_gated_router,
    hash_password,
    route,
)


class DemoShares:
    def __init__(self) -> None:
        self._shares = {
            "demo-token": Share(token="demo-token", owner_id="demo", root="photos", share_id="1"),
            "locked-token": Share(
                token="locked-token",
                owner_id="demo",
                root="private",
                share_id="2",
                password_hash=hash_password("demo"),
            ),
        }

    def get_share(self, token: str) -> Share | None:
        return self._shares.get(token)


class DemoIdentities:
    def user_exists(self, user_id: str) -> bool:
        return user_id == "demo"


class HeaderAuth(AuthenticationBackend):
    async def authenticate(self, conn):
        user_id = conn.headers.get("x-user")
        return (AuthCredentials(["authenticated"]), SimpleUser(user_id)) if user_id else None


class browse(route):  # noqa: N801
    public = True

    async def handler(token: str, request: Request) -> dict:
        """Browse a shared folder."""
        return {"folder": str(request.state.access_context.target)}


class remove(route):  # noqa: N801
    requires = Capability.DELETE

    async def handler(request: Request) -> None:
        return None


async def my_files(request: Request) -> dict:
    return {"home": str(request.state.access_context.root)}


gate = Gate(DemoShares(), DemoIdentities())

app = FastAPI(title="Gallery Example")
app.include_router(
    create_gated_router(gate, {"/s/{token}": {"get": browse}, "/files": {"get": my_files, "delete": remove}})
)
app.include_router(create_error_router(gate.settings))
app.add_middleware(AuthenticationMiddleware, backend=HeaderAuth())
# Remembers share links unlocked by password
app.add_middleware(SessionMiddleware, secret_key="change-me")
