"""Gate assembly.

A Gate holds the long-lived collaborators and builds the short-lived
per-request objects: the request environment, the check units and the
pipeline that runs them.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from gallery_gate.config import GateSettings, get_settings
from gallery_gate.core.checks import CheckUnit, EnvironmentCheck, SharingCheck
from gallery_gate.core.middleware import RouteRequirements
from gallery_gate.core.passwords import BcryptPasswordChecker, PasswordChecker
from gallery_gate.core.pipeline import CheckPipeline
from gallery_gate.core.request import GateRequest
from gallery_gate.core.resolver import (
    AccessContextResolver,
    IdentityLookup,
    RequestEnvironment,
    ShareLookup,
    utcnow,
)
from gallery_gate.core.responder import Responder, UrlGenerator


class Gate:
    """Collaborators shared by all gated routes of an application.

    Nothing request-specific is stored on the gate; every request gets its
    own environment from environment_for() and its units and pipeline
    from checks_for().

    Args:
        shares: Lookup for share tokens.
        identities: Lookup confirming session identities.
        settings: Gate settings; defaults to the environment-loaded ones.
        passwords: Verifier for protected links.
        clock: Current time, for share expiry.
        log: Logger handed to responders.
    """

    def __init__(
        self,
        shares: ShareLookup,
        identities: IdentityLookup,
        *,
        settings: GateSettings | None = None,
        passwords: PasswordChecker | None = None,
        clock: Callable[[], datetime] = utcnow,
        log: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.resolver = AccessContextResolver(shares, identities, clock=clock)
        self.passwords = passwords or BcryptPasswordChecker()
        self.log = log

    def environment_for(
        self, request: GateRequest, requirements: RouteRequirements
    ) -> RequestEnvironment:
        return RequestEnvironment(self.resolver, request, allow_token=requirements.public)

    def units_for(
        self, environment: RequestEnvironment, requirements: RouteRequirements
    ) -> list[CheckUnit]:
        """Fresh check units, in execution order."""
        return [
            SharingCheck(self.settings, requirements),
            EnvironmentCheck(
                environment,
                requirements,
                self.passwords,
                password_param=self.settings.password_param,
            ),
        ]

    def checks_for(
        self, environment: RequestEnvironment, requirements: RouteRequirements
    ) -> CheckPipeline:
        return CheckPipeline(self.units_for(environment, requirements))

    def responder(self, url_generator: UrlGenerator) -> Responder:
        return Responder(self.settings, url_generator, self.log)
