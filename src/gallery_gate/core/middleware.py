"""Route declaration primitives and middleware chain assembly.

Provides RouteConfig, the route metaclass, RouteRequirements and the
middleware chain used to put the gate in front of a handler.
Zero framework dependencies.
"""

import inspect
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from gallery_gate.core.context import Capability
from gallery_gate.exceptions import GateConfigurationError

DEFAULT_REQUIREMENTS: frozenset[Capability] = frozenset({Capability.READ})


@dataclass(frozen=True)
class RouteRequirements:
    """What a handler asks of the caller.

    Attributes:
        public: Whether the handler may be reached with a share token.
        capabilities: Capabilities the resolved context must grant.
    """

    public: bool = False
    capabilities: frozenset[Capability] = DEFAULT_REQUIREMENTS


@dataclass(frozen=True)
class RouteConfig:
    """A gated route handler with its requirements and middleware.

    Created by the _RouteMeta metaclass when a class inherits from route.
    Callable; delegates to the wrapped handler function.

    Attributes:
        handler: The actual handler function (async def or def).
        requirements: Access the handler requires.
        middleware: Handler-level middleware, run after the gate passed.
        tags: Optional OpenAPI tags override.
        summary: Optional OpenAPI summary override.
        status_code: Optional HTTP status code override.
    """

    handler: Callable[..., Any]
    requirements: RouteRequirements = RouteRequirements()
    middleware: Sequence[Callable[..., Any]] = ()
    tags: tuple[str, ...] | None = None
    summary: str | None = None
    status_code: int | None = None

    def __post_init__(self) -> None:
        """Preserve handler metadata for FastAPI introspection."""
        object.__setattr__(self, "__wrapped__", self.handler)
        object.__setattr__(self, "__name__", getattr(self.handler, "__name__", "handler"))
        object.__setattr__(self, "__doc__", getattr(self.handler, "__doc__", None))
        object.__setattr__(self, "__annotations__", getattr(self.handler, "__annotations__", {}))
        object.__setattr__(self, "__module__", getattr(self.handler, "__module__", __name__))

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """Delegate to the wrapped handler."""
        return self.handler(*args, **kwargs)


def normalize_capabilities(
    requires_attr: Any,
    *,
    source: str = "",
) -> frozenset[Capability]:
    """Normalize a requires attribute to a frozenset of capabilities.

    Accepts: None (default read access), a single capability or its
    string value, or an iterable of those.

    Raises:
        GateConfigurationError: If a value is not a known capability.
    """
    if requires_attr is None:
        return DEFAULT_REQUIREMENTS
    if isinstance(requires_attr, (str, Capability)):
        requires_attr = (requires_attr,)
    if not isinstance(requires_attr, Iterable):
        raise GateConfigurationError(
            f"{source + ': ' if source else ''}requires must be a capability or a list of "
            f"capabilities, got {type(requires_attr).__name__}"
        )

    capabilities: set[Capability] = set()
    for value in requires_attr:
        try:
            capabilities.add(Capability(value))
        except ValueError as exc:
            raise GateConfigurationError(
                f"{source + ': ' if source else ''}unknown capability {value!r}"
            ) from exc
    return frozenset(capabilities)


def normalize_middleware(
    middleware_attr: Any,
    *,
    source: str = "",
) -> tuple[Callable[..., Any], ...]:
    """Normalize a middleware attribute to a tuple of async callables.

    Accepts: None, single callable, list, or tuple.
    Returns: tuple of callables (empty if None).

    Raises:
        GateConfigurationError: If middleware_attr is not a valid type, or
            an entry is not an async callable.
    """
    prefix = f"{source + ': ' if source else ''}"
    if middleware_attr is None:
        return ()
    if callable(middleware_attr) and not isinstance(middleware_attr, (list, tuple)):
        middleware = (middleware_attr,)
    elif isinstance(middleware_attr, (list, tuple)):
        middleware = tuple(middleware_attr)
    else:
        raise GateConfigurationError(
            f"{prefix}middleware must be a list or callable, got {type(middleware_attr).__name__}"
        )

    for i, mw in enumerate(middleware):
        if not callable(mw):
            raise GateConfigurationError(f"{prefix}non-callable middleware at index {i}")
        if not inspect.iscoroutinefunction(mw):
            raise GateConfigurationError(
                f"{prefix}middleware at index {i} must be async, "
                f"got sync function {getattr(mw, '__name__', mw)!r}"
            )
    return middleware


class _RouteMeta(type):
    """Metaclass that intercepts class body and returns RouteConfig.

    When a class inherits from `route`, this metaclass:
    1. Extracts `handler` function from the class body
    2. Extracts `public` and `requires` into RouteRequirements
    3. Extracts `middleware` (list or single callable)
    4. Extracts metadata (tags, summary, status_code)
    5. Returns a RouteConfig instance instead of a class
    """

    def __new__(
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
    ) -> Any:  # Returns RouteConfig, not type
        """Create a new class or return RouteConfig based on inheritance."""
        # The `route` base class itself
        if not bases:
            return super().__new__(mcs, name, bases, namespace)

        source = f"class {name}(route)"
        handler = namespace.get("handler")

        if handler is None:
            raise GateConfigurationError(f"{source} must define a handler(...) function")
        if not callable(handler):
            raise GateConfigurationError(
                f"{source}: handler must be a callable, got {type(handler).__name__}"
            )

        requirements = RouteRequirements(
            public=bool(namespace.get("public", False)),
            capabilities=normalize_capabilities(namespace.get("requires"), source=source),
        )
        middleware = normalize_middleware(namespace.get("middleware"), source=source)

        raw_tags = namespace.get("tags")
        return RouteConfig(
            handler=handler,
            requirements=requirements,
            middleware=middleware,
            tags=tuple(raw_tags) if raw_tags else None,
            summary=namespace.get("summary"),
            status_code=namespace.get("status_code"),
        )


class route(metaclass=_RouteMeta):  # noqa: N801
    """Base class for gated route handlers.

    Use `class handler_name(route):` to declare what a handler requires.
    The metaclass intercepts the class body and returns a RouteConfig
    instead of a class.

    Example:
        from gallery_gate import Capability, route

        class get(route):
            public = True
            requires = [Capability.READ]

            async def handler(token: str) -> dict:
                return {"files": []}

        class delete(route):
            requires = Capability.DELETE

            async def handler(path: str) -> None: ...
    """


def build_middleware_chain(
    handler: Callable[..., Any],
    middleware_stack: Sequence[Callable[..., Any]],
) -> Callable[..., Any]:
    """Wrap a handler function with a middleware chain.

    Composes middleware in order so that the first middleware in the list
    is the outermost (executes first). Each middleware receives (request, call_next)
    where call_next invokes the next middleware or handler. A middleware that
    returns without calling call_next short-circuits everything after it.

    Args:
        handler: The route handler function.
        middleware_stack: Ordered sequence of middleware (outermost first).

    Returns:
        A wrapped handler function that executes the middleware chain.
        If middleware_stack is empty, returns the handler unchanged.
    """
    if not middleware_stack:
        return handler

    # Build chain from inside out (last middleware wraps handler first)
    chain = handler
    for mw in reversed(middleware_stack):
        chain = _wrap_with_middleware(chain, mw)
    return chain


def _wrap_with_middleware(
    next_handler: Callable[..., Any],
    middleware: Callable[..., Any],
) -> Callable[..., Any]:
    """Wrap a handler with a single middleware function."""

    async def wrapped(request: Any) -> Any:
        async def call_next(req: Any) -> Any:
            return await next_handler(req)

        return await middleware(request, call_next)

    # Preserve metadata for debugging
    wrapped.__name__ = (
        f"{getattr(middleware, '__name__', 'middleware')}_wrapping_"
        f"{getattr(next_handler, '__name__', 'handler')}"
    )
    wrapped.__qualname__ = wrapped.__name__

    return wrapped
