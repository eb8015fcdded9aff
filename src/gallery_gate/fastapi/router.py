"""Router factory for gated routes.

Registers handlers on a FastAPI APIRouter with the check pipeline in front
of each of them.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from fastapi import APIRouter
from fastapi.routing import APIRoute

from gallery_gate.core.gate import Gate
from gallery_gate.core.middleware import (
    RouteConfig,
    RouteRequirements,
    build_middleware_chain,
)
from gallery_gate.exceptions import GateConfigurationError
from gallery_gate.fastapi.gate import TemplateRenderer, gate_middleware

logger = logging.getLogger(__name__)

HTTP_METHODS = frozenset({"get", "post", "put", "patch", "delete", "head", "options"})

# Convention-based default status codes by HTTP method
DEFAULT_STATUS_CODES: dict[str, int] = {
    "post": 201,  # Created
    "delete": 204,  # No Content
}

Handler = Callable[..., Any] | RouteConfig


def create_gated_router(
    gate: Gate,
    routes: Mapping[str, Mapping[str, Handler]],
    *,
    prefix: str = "",
    renderer: TemplateRenderer | None = None,
) -> APIRouter:
    """Create a FastAPI APIRouter whose routes all sit behind the gate.

    Args:
        gate: The gate holding the shared collaborators.
        routes: Path -> {method: handler}. A handler is either a plain
            callable (private, read access) or a `route` declaration.
        prefix: Optional URL prefix for all routes.
        renderer: Renderer for the guest authentication form.

    Returns:
        A FastAPI APIRouter with every route registered.

    Raises:
        GateConfigurationError: If a method is unknown or a handler is not callable.

    Example:
        from fastapi import FastAPI
        from gallery_gate import Gate, create_gated_router

        app = FastAPI()
        app.include_router(create_gated_router(gate, {"/files": {"get": list_files}}))
    """
    router = APIRouter(prefix=prefix)

    count = 0
    for path, handlers in routes.items():
        for method, handler in handlers.items():
            add_gated_route(router, gate, path, method, handler, renderer=renderer)
            count += 1

    logger.info(
        "Gated route registration complete",
        extra={"route_count": count, "prefix": prefix or "(none)"},
    )
    return router


def add_gated_route(
    router: APIRouter,
    gate: Gate,
    path: str,
    method: str,
    handler: Handler,
    *,
    renderer: TemplateRenderer | None = None,
) -> None:
    """Register one handler behind the gate.

    The gate middleware is outermost; middleware declared on a `route`
    handler only runs once every check passed.

    Raises:
        GateConfigurationError: If the method is unknown or the handler is not callable.
    """
    method = method.lower()
    if method not in HTTP_METHODS:
        raise GateConfigurationError(f"Unknown HTTP method {method!r} for {path}")
    if not callable(handler):
        raise GateConfigurationError(
            f"Handler for {method.upper()} {path} must be callable, got {type(handler).__name__}"
        )

    requirements = RouteRequirements()
    handler_fn: Callable[..., Any] = handler
    handler_mw: tuple[Callable[..., Any], ...] = ()
    tags = _derive_tags(path)
    summary: str | None = None
    status_code = DEFAULT_STATUS_CODES.get(method)

    if isinstance(handler, RouteConfig):
        requirements = handler.requirements
        handler_fn = handler.handler
        handler_mw = tuple(handler.middleware)
        if handler.tags is not None:
            tags = list(handler.tags)
        summary = handler.summary
        if handler.status_code is not None:
            status_code = handler.status_code

    middleware = (gate_middleware(gate, requirements, renderer=renderer), *handler_mw)

    _add_route(
        router=router,
        path=path,
        method=method,
        handler=handler_fn,
        tags=tags,
        summary=summary,
        status_code=status_code,
        route_class=_make_middleware_route(middleware),
    )

    logger.debug(
        "Registered gated route",
        extra={
            "method": method.upper(),
            "path": path,
            "public": requirements.public,
            "requires": sorted(c.value for c in requirements.capabilities),
        },
    )


def _add_route(
    router: APIRouter,
    path: str,
    method: str,
    handler: Callable[..., Any],
    tags: list[str],
    summary: str | None = None,
    status_code: int | None = None,
    route_class: type[APIRoute] | None = None,
) -> None:
    """Add an HTTP route to the router with metadata.

    Args:
        router: The APIRouter to add the route to.
        path: The URL path for the route.
        method: The HTTP method (lowercase).
        handler: The handler function.
        tags: List of OpenAPI tags.
        summary: Optional OpenAPI summary.
        status_code: Optional HTTP status code override.
        route_class: Optional custom APIRoute subclass for middleware wrapping.
    """
    kwargs: dict[str, Any] = {
        "tags": tags,
        "description": handler.__doc__,
    }
    if summary is not None:
        kwargs["summary"] = summary
    if status_code is not None:
        kwargs["status_code"] = status_code
    if route_class is not None:
        kwargs["route_class_override"] = route_class

    router.add_api_route(
        path=path,
        endpoint=handler,
        methods=[method.upper()],
        **kwargs,
    )


def _derive_tags(path: str) -> list[str]:
    """Derive OpenAPI tags from a URL path.

    Takes the first non-parameter segment from the path.

    Examples:
        /files/{path:path} -> ["files"]
        /s/{token} -> ["s"]
        /{token} -> ["root"]
    """
    parts = [p for p in path.split("/") if p and not p.startswith("{")]
    return [parts[0]] if parts else ["root"]


def _make_middleware_route(
    middleware_stack: Sequence[Callable[..., Any]],
) -> type[APIRoute]:
    """Create a custom APIRoute subclass that wraps handlers with middleware.

    The wrapping happens in get_route_handler(), so the middleware chain
    receives the Starlette request before FastAPI resolves the handler's
    parameters, and a short-circuit skips that resolution entirely.
    """

    class GatedRoute(APIRoute):
        def get_route_handler(self) -> Callable[..., Any]:
            original_handler = super().get_route_handler()
            return build_middleware_chain(original_handler, middleware_stack)

    return GatedRoute
