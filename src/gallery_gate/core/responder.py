"""Failure responder.

Turns a CheckException into exactly one response variant, chosen from the
caller's Accept header and the failure code. Variants are plain values;
the FastAPI adapter renders them.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Protocol

from gallery_gate.config import GateSettings
from gallery_gate.core.negotiation import NegotiatedFormat, negotiate
from gallery_gate.core.request import GateRequest
from gallery_gate.exceptions import CheckException

logger = logging.getLogger(__name__)


class UrlGenerator(Protocol):
    """Builds application URLs from route names."""

    def link_to_route(self, name: str, params: Mapping[str, Any]) -> str: ...


@dataclass(frozen=True)
class StructuredError:
    """Machine-readable error body for API callers."""

    message: str
    code: int
    success: bool = False

    def body(self) -> dict[str, Any]:
        return {"message": self.message, "success": self.success}


@dataclass(frozen=True)
class RedirectTo:
    """Redirect to the error-display route."""

    url: str


@dataclass(frozen=True)
class RenderedForm:
    """Guest page rendered in place of the failing route.

    method is the method of the failed request, which the form resubmits with.
    """

    template_name: str
    params: Mapping[str, Any] = field(default_factory=dict)
    layout: str = "guest"
    status_code: int = HTTPStatus.UNAUTHORIZED
    method: str = "GET"


ResponseVariant = StructuredError | RedirectTo | RenderedForm


class Responder:
    """Shape the response for a failed request.

    Args:
        settings: Names of the app, error route, template and layout.
        url_generator: Resolves the error route to a URL.
        log: Logger receiving the failure records.
    """

    def __init__(
        self,
        settings: GateSettings,
        url_generator: UrlGenerator,
        log: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._url_generator = url_generator
        self._log = log or logger

    def respond(self, request: GateRequest, exception: BaseException) -> ResponseVariant:
        """Build the response variant for a failure.

        Raises:
            BaseException: The exception itself, unchanged, when it is not
                a CheckException.
        """
        if not isinstance(exception, CheckException):
            raise exception

        app_name = self._settings.app_name
        message = exception.message
        code = exception.code

        self._log.debug(
            "[CheckException] %s (%s)",
            message,
            code,
            extra={"app": app_name, "failure_message": message, "code": code},
        )

        if negotiate(request.accept) is NegotiatedFormat.STRUCTURED:
            self._log.debug("[CheckException] JSON response", extra={"app": app_name})
            return StructuredError(message=message, code=code)

        self._log.debug("[CheckException] HTML response", extra={"app": app_name})

        if code == HTTPStatus.UNAUTHORIZED:
            params = dict(request.params)
            logged = {k: v for k, v in params.items() if k != self._settings.password_param}
            self._log.debug(
                "[CheckException] Unauthorised request params: %s",
                logged,
                extra={"app": app_name, "params": logged},
            )
            # The login form replaces the route, it is never a redirect
            return RenderedForm(
                template_name=self._settings.auth_template,
                params=params,
                layout=self._settings.guest_layout,
                method=request.method,
            )

        url = self._url_generator.link_to_route(
            self._settings.error_route_name,
            {"message": message, "code": code},
        )
        return RedirectTo(url=url)
