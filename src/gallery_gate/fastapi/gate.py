"""FastAPI adapter for the check pipeline.

Converts Starlette requests into GateRequests, runs the pipeline in front
of the handler and renders response variants into Starlette responses.
"""

import html
import logging
from collections.abc import Callable, Iterator, Mapping, MutableMapping, MutableSet
from http import HTTPStatus
from typing import Any, Protocol

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from gallery_gate.config import GateSettings
from gallery_gate.core.gate import Gate
from gallery_gate.core.middleware import RouteRequirements
from gallery_gate.core.request import GateRequest, Headers, extract_token
from gallery_gate.core.responder import (
    RedirectTo,
    RenderedForm,
    ResponseVariant,
    StructuredError,
)
from gallery_gate.exceptions import CheckException

logger = logging.getLogger(__name__)

SHARE_SESSION_KEY = "gallery_gate.shares"

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class TemplateRenderer(Protocol):
    """Renders a named template with parameters inside a layout."""

    def render(
        self, template_name: str, params: Mapping[str, Any], layout: str, *, method: str = "GET"
    ) -> str: ...


class GuestFormRenderer:
    """Minimal guest-layout renderer for the authentication form.

    The form resubmits to the page that failed, with the method of the
    failed request (GET stays GET, anything else posts). It carries every
    original parameter as a hidden field, plus a password field.
    """

    def __init__(self, password_param: str = "password") -> None:
        self._password_param = password_param

    def render(
        self, template_name: str, params: Mapping[str, Any], layout: str, *, method: str = "GET"
    ) -> str:
        form_method = "get" if method.upper() in ("GET", "HEAD") else "post"
        hidden = "\n".join(
            f'    <input type="hidden" name="{html.escape(str(key))}" '
            f'value="{html.escape(str(value))}">'
            for key, value in params.items()
            if key != self._password_param
        )
        return (
            "<!DOCTYPE html>\n"
            f'<html><body class="layout-{html.escape(layout)}">\n'
            f'<form method="{form_method}" class="{html.escape(template_name)}">\n'
            f"{hidden}\n"
            f'    <input type="password" name="{html.escape(self._password_param)}">\n'
            '    <input type="submit" value="Submit">\n'
            "</form>\n"
            "</body></html>\n"
        )


class StarletteUrlGenerator:
    """UrlGenerator resolving route names against the current request."""

    def __init__(self, request: Request) -> None:
        self._request = request

    def link_to_route(self, name: str, params: Mapping[str, Any]) -> str:
        url = self._request.url_for(name)
        return str(url.include_query_params(**{k: str(v) for k, v in params.items()}))


class SessionShareSet(MutableSet[str]):
    """Share ids unlocked by password, stored in the Starlette session."""

    def __init__(self, session: MutableMapping[str, Any], key: str = SHARE_SESSION_KEY) -> None:
        self._session = session
        self._key = key

    def _ids(self) -> list[str]:
        return list(self._session.get(self._key, []))

    def __contains__(self, value: object) -> bool:
        return value in self._ids()

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids())

    def __len__(self) -> int:
        return len(self._ids())

    def add(self, value: str) -> None:
        ids = self._ids()
        if value not in ids:
            ids.append(value)
            self._session[self._key] = ids

    def discard(self, value: str) -> None:
        ids = self._ids()
        if value in ids:
            ids.remove(value)
            self._session[self._key] = ids


def session_identity(request: Request) -> str | None:
    """Read the logged-in account from Starlette's authentication scope."""
    user = request.scope.get("user")
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "username", None) or user.display_name or None


async def build_gate_request(
    request: Request,
    settings: GateSettings,
    *,
    identity: Callable[[Request], str | None] = session_identity,
) -> GateRequest:
    """Collect what the gate needs from a Starlette request.

    Parameters are merged query, then form, then path. A form field wins
    over a query parameter of the same name, and the path parameters the
    handler receives win over both, so the token the gate checks is the
    token the handler serves.
    """
    params: dict[str, Any] = dict(request.query_params)

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        params.update({k: v for k, v in form.items() if isinstance(v, str)})
    params.update(request.path_params)

    session = request.scope.get("session")
    share_session: MutableSet[str] = (
        SessionShareSet(session) if isinstance(session, MutableMapping) else set()
    )

    return GateRequest(
        headers=Headers(dict(request.headers)),
        params=params,
        user_id=identity(request),
        token=extract_token(params, request.headers, token_param=settings.token_param),
        path=str(params.get(settings.path_param) or ""),
        share_session=share_session,
        method=request.method,
    )


def render_variant(variant: ResponseVariant, renderer: TemplateRenderer) -> Response:
    """Turn a response variant into a Starlette response."""
    if isinstance(variant, StructuredError):
        return JSONResponse(variant.body(), status_code=variant.code)
    if isinstance(variant, RedirectTo):
        return RedirectResponse(variant.url, status_code=HTTPStatus.SEE_OTHER)
    if isinstance(variant, RenderedForm):
        return HTMLResponse(
            renderer.render(
                variant.template_name, variant.params, variant.layout, method=variant.method
            ),
            status_code=variant.status_code,
        )
    raise TypeError(f"Unknown response variant {type(variant).__name__}")


def gate_middleware(
    gate: Gate,
    requirements: RouteRequirements,
    *,
    renderer: TemplateRenderer | None = None,
    identity: Callable[[Request], str | None] = session_identity,
) -> Callable[..., Any]:
    """Build the (request, call_next) middleware guarding one route.

    Each request gets fresh check units. Once they pass, the resolved
    AccessContext is available to the handler as request.state.access_context.
    A CheckException raised by a unit or by the handler is rendered by the
    responder; any other exception propagates.
    """
    form_renderer = renderer or GuestFormRenderer(gate.settings.password_param)

    async def check_middleware(request: Request, call_next: Any) -> Any:
        gate_request = await build_gate_request(request, gate.settings, identity=identity)
        environment = gate.environment_for(gate_request, requirements)
        pipeline = gate.checks_for(environment, requirements)
        outcome = await run_in_threadpool(pipeline.run, gate_request)

        failure: CheckException | None = outcome.failure
        if failure is None:
            request.state.access_context = environment.get()
            try:
                return await call_next(request)
            except CheckException as exc:
                failure = exc

        logger.debug(
            "Rendering check failure",
            extra={"path": request.url.path, "code": failure.code},
        )
        responder = gate.responder(StarletteUrlGenerator(request))
        return render_variant(responder.respond(gate_request, failure), form_renderer)

    check_middleware.__name__ = "check_middleware"
    return check_middleware


def create_error_router(settings: GateSettings, *, prefix: str = "") -> APIRouter:
    """Router holding the error-display page failures redirect to."""
    router = APIRouter(prefix=prefix)

    async def error_page(message: str = "", code: int = 500):
        status_code = code if 400 <= code < 600 else HTTPStatus.INTERNAL_SERVER_ERROR
        return HTMLResponse(
            "<!DOCTYPE html>\n"
            f'<html><body class="error"><p class="code">{int(status_code)}</p>'
            f'<p class="message">{html.escape(message)}</p></body></html>\n',
            status_code=status_code,
        )

    router.add_api_route(
        "/error_page",
        error_page,
        methods=["GET"],
        name=settings.error_route_name,
        response_class=HTMLResponse,
    )
    return router
