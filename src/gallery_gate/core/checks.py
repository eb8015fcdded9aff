"""Check units.

A check unit is one authorization rule. It either returns, letting the
pipeline move on, or raises a CheckException. Units never build responses.
"""

import logging
from typing import Protocol

from gallery_gate.core.context import AccessContext, AccessOrigin
from gallery_gate.core.middleware import RouteRequirements
from gallery_gate.core.passwords import PasswordChecker
from gallery_gate.core.request import GateRequest
from gallery_gate.core.resolver import RequestEnvironment
from gallery_gate.exceptions import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)


class CheckUnit(Protocol):
    """A single authorization rule run by the pipeline."""

    def apply(self, request: GateRequest) -> None: ...


class SharingConfig(Protocol):
    """Read access to the system-wide sharing switch."""

    def is_sharing_enabled(self) -> bool: ...


class SharingCheck:
    """Reject token-based flows while public sharing is switched off.

    Applies to public routes reached with a token. Never looks the token
    up, so it stays the cheapest rejection in the pipeline.
    """

    def __init__(self, config: SharingConfig, requirements: RouteRequirements) -> None:
        self._config = config
        self._requirements = requirements

    def apply(self, request: GateRequest) -> None:
        if not (self._requirements.public and request.token):
            return
        if not self._config.is_sharing_enabled():
            raise ForbiddenError("Public sharing is disabled")


class EnvironmentCheck:
    """Resolve the access context and match it against the route.

    Capabilities are matched first. Password-protected links must then
    have been unlocked in this session, or the request must carry the
    right password. A successful password is
    remembered in the request's share session.
    """

    def __init__(
        self,
        environment: RequestEnvironment,
        requirements: RouteRequirements,
        passwords: PasswordChecker,
        *,
        password_param: str = "password",
    ) -> None:
        self._environment = environment
        self._requirements = requirements
        self._passwords = passwords
        self._password_param = password_param

    def apply(self, request: GateRequest) -> None:
        context = self._environment.get()

        missing = context.missing(self._requirements.capabilities)
        if missing:
            logger.debug(
                "Access context lacks required capabilities",
                extra={
                    "origin": context.origin.value,
                    "missing": [c.value for c in missing],
                },
            )
            raise ForbiddenError(
                "You are not allowed to perform this action: "
                + ", ".join(c.value for c in missing)
            )

        if context.origin is AccessOrigin.SHARE:
            self._check_share_password(context, request)

    def _check_share_password(self, context: AccessContext, request: GateRequest) -> None:
        share = context.share
        if share is None or not share.is_password_protected:
            return

        session_key = share.share_id or share.token
        if session_key in request.share_session:
            return

        password = request.param(self._password_param)
        if not password:
            raise UnauthorizedError("This link is password protected")
        if not self._passwords.verify(str(password), share.password_hash or b""):
            raise UnauthorizedError("Wrong password")

        request.share_session.add(session_key)
