"""Tests for the sharing and environment check units."""

import pytest
from conftest import NOW, SHARE_PASSWORD, InMemoryIdentities, InMemoryShares

from gallery_gate.config import GateSettings
from gallery_gate.core.checks import EnvironmentCheck, SharingCheck
from gallery_gate.core.context import Capability
from gallery_gate.core.middleware import RouteRequirements
from gallery_gate.core.passwords import BcryptPasswordChecker
from gallery_gate.core.resolver import AccessContextResolver, RequestEnvironment
from gallery_gate.exceptions import ForbiddenError, UnauthorizedError

PUBLIC_READ = RouteRequirements(public=True, capabilities=frozenset({Capability.READ}))
PUBLIC_WRITE = RouteRequirements(public=True, capabilities=frozenset({Capability.WRITE}))
PRIVATE_READ = RouteRequirements()


@pytest.fixture
def environment_check(shares: InMemoryShares, identities: InMemoryIdentities):
    """Build an EnvironmentCheck for a request and requirements."""
    resolver = AccessContextResolver(shares, identities, clock=lambda: NOW)

    def _create(request, requirements=PUBLIC_READ) -> EnvironmentCheck:
        environment = RequestEnvironment(resolver, request, allow_token=requirements.public)
        return EnvironmentCheck(environment, requirements, BcryptPasswordChecker())

    return _create


class TestSharingCheck:
    def test_passes_when_sharing_enabled(self, make_request) -> None:
        check = SharingCheck(GateSettings(sharing_enabled=True), PUBLIC_READ)
        check.apply(make_request(token="folder-token"))

    def test_disabled_sharing_is_forbidden(self, make_request) -> None:
        check = SharingCheck(GateSettings(sharing_enabled=False), PUBLIC_READ)
        with pytest.raises(ForbiddenError, match="sharing is disabled") as exc_info:
            check.apply(make_request(token="folder-token"))
        assert exc_info.value.code == 403

    def test_disabled_sharing_fails_for_unknown_tokens_too(self, make_request) -> None:
        check = SharingCheck(GateSettings(sharing_enabled=False), PUBLIC_READ)
        with pytest.raises(ForbiddenError):
            check.apply(make_request(token="abc123"))

    def test_never_fails_without_token(self, make_request) -> None:
        """No token means no token flow, whatever the switch says."""
        for enabled in (True, False):
            SharingCheck(GateSettings(sharing_enabled=enabled), PUBLIC_READ).apply(make_request())

    def test_skipped_for_private_routes(self, make_request) -> None:
        check = SharingCheck(GateSettings(sharing_enabled=False), PRIVATE_READ)
        check.apply(make_request(token="folder-token", user_id="alice"))

    def test_reads_switch_through_config_accessor(self, make_request) -> None:
        calls: list[bool] = []

        class Config:
            def is_sharing_enabled(self) -> bool:
                calls.append(True)
                return True

        SharingCheck(Config(), PUBLIC_READ).apply(make_request(token="t"))
        assert calls == [True]


class TestEnvironmentCheck:
    def test_no_token_no_session_is_unauthorized(self, environment_check, make_request) -> None:
        with pytest.raises(UnauthorizedError) as exc_info:
            environment_check(make_request()).apply(make_request())
        assert exc_info.value.code == 401

    def test_read_only_share_reaches_read_handler(self, environment_check, make_request) -> None:
        request = make_request(token="folder-token", path="summer")
        environment_check(request, PUBLIC_READ).apply(request)

    def test_read_only_share_cannot_reach_write_handler(
        self, environment_check, make_request
    ) -> None:
        request = make_request(token="folder-token", path="summer")
        with pytest.raises(ForbiddenError, match="write") as exc_info:
            environment_check(request, PUBLIC_WRITE).apply(request)
        assert exc_info.value.code == 403

    def test_session_reaches_write_handler(self, environment_check, make_request) -> None:
        request = make_request(user_id="alice")
        environment_check(request, PUBLIC_WRITE).apply(request)

    def test_private_route_ignores_token(self, environment_check, make_request, shares) -> None:
        request = make_request(token="folder-token")
        with pytest.raises(UnauthorizedError):
            environment_check(request, PRIVATE_READ).apply(request)
        assert shares.lookups == []

    def test_no_requirements_only_needs_a_context(self, environment_check, make_request) -> None:
        request = make_request(token="folder-token")
        environment_check(request, RouteRequirements(public=True, capabilities=frozenset())).apply(
            request
        )


class TestProtectedShares:
    def test_missing_password_is_unauthorized(self, environment_check, make_request) -> None:
        request = make_request(token="protected-token")
        with pytest.raises(UnauthorizedError, match="password protected"):
            environment_check(request).apply(request)

    def test_wrong_password_is_unauthorized(self, environment_check, make_request) -> None:
        request = make_request(token="protected-token", params={"password": "guess"})
        with pytest.raises(UnauthorizedError, match="Wrong password"):
            environment_check(request).apply(request)

    def test_right_password_unlocks_and_is_remembered(
        self, environment_check, make_request
    ) -> None:
        session: set[str] = set()
        request = make_request(
            token="protected-token", params={"password": SHARE_PASSWORD}, share_session=session
        )

        environment_check(request).apply(request)

        assert session == {"4"}

    def test_unlocked_share_needs_no_password(self, environment_check, make_request) -> None:
        request = make_request(token="protected-token", share_session={"4"})
        environment_check(request).apply(request)

    def test_capabilities_checked_before_password(self, environment_check, make_request) -> None:
        session: set[str] = set()
        request = make_request(
            token="protected-token", params={"password": SHARE_PASSWORD}, share_session=session
        )
        with pytest.raises(ForbiddenError, match="not allowed"):
            environment_check(request, PUBLIC_WRITE).apply(request)
        assert session == set()
