"""Access context resolution.

Turns a session identity or a share token into an AccessContext. The
resolver only reads from its lookups; it never changes share or session
state.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Protocol

from gallery_gate.core.context import (
    SESSION_CAPABILITIES,
    SHARE_CAPABILITIES,
    AccessContext,
    AccessOrigin,
    Share,
    ShareItemType,
)
from gallery_gate.core.request import GateRequest
from gallery_gate.exceptions import ForbiddenError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)


class ShareLookup(Protocol):
    """Finds the public link a token denotes."""

    def get_share(self, token: str) -> Share | None: ...


class IdentityLookup(Protocol):
    """Confirms that a session identity still maps to an account."""

    def user_exists(self, user_id: str) -> bool: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_path(path: str) -> PurePosixPath:
    """Normalize a requested path to a relative POSIX path.

    Collapses "." and ".." segments. A path that climbs above its
    starting point keeps its leading ".." so callers can reject it.

    Examples:
        "a/./b/../c" -> a/c
        "/a/b/" -> a/b
        "../x" -> ../x
        "" -> .
    """
    parts: list[str] = []
    for part in PurePosixPath(path.strip("/") or ".").parts:
        if part == ".":
            continue
        if part == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            else:
                parts.append(part)
            continue
        parts.append(part)
    return PurePosixPath(*parts) if parts else PurePosixPath(".")


class AccessContextResolver:
    """Resolve the access context of a request.

    Args:
        shares: Lookup for share tokens.
        identities: Lookup confirming session identities.
        clock: Returns the current time, compared against share expiry.
    """

    def __init__(
        self,
        shares: ShareLookup,
        identities: IdentityLookup,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._shares = shares
        self._identities = identities
        self._clock = clock

    def resolve(self, request: GateRequest, *, allow_token: bool = True) -> AccessContext:
        """Resolve the context for a request.

        A token takes precedence over a session identity. Routes that do
        not accept public links pass allow_token=False so only the session
        counts.

        Raises:
            NotFoundError: If the token is unknown, expired or incomplete.
            ForbiddenError: If the token does not cover the requested path.
            UnauthorizedError: If neither a token nor a valid session exists.
        """
        if allow_token and request.token:
            return self._resolve_token(request.token, request.path)
        if request.user_id:
            return self._resolve_session(request.user_id, request.path)
        raise UnauthorizedError("You need to be logged in or use a valid link to access this page")

    def _resolve_token(self, token: str, requested: str) -> AccessContext:
        share = self._shares.get_share(token)
        if share is None:
            raise NotFoundError("The share token is invalid")
        if share.is_expired(self._clock()):
            raise NotFoundError("The share has expired")
        if not share.owner_id or not share.root:
            logger.debug(
                "Share record is missing its owner or root",
                extra={"share_id": share.share_id},
            )
            raise NotFoundError("The share token is valid but points to a missing resource")

        root = PurePosixPath("/", share.root.strip("/"))
        target = self._scope_to_share(share, root, requested)

        return AccessContext(
            owner_id=share.owner_id,
            root=root,
            target=target,
            origin=AccessOrigin.SHARE,
            capabilities=SHARE_CAPABILITIES,
            share=share,
        )

    def _scope_to_share(
        self, share: Share, root: PurePosixPath, requested: str
    ) -> PurePosixPath:
        relative = normalize_path(requested)
        if relative.parts and relative.parts[0] == "..":
            raise ForbiddenError("The requested path is outside of the shared folder")

        if share.item_type is ShareItemType.FILE:
            # A file link only covers the file itself
            if relative != PurePosixPath(".") and relative != PurePosixPath(root.name):
                raise ForbiddenError("The link does not give access to the requested path")
            return root

        if relative == PurePosixPath("."):
            return root
        return root / relative

    def _resolve_session(self, user_id: str, requested: str) -> AccessContext:
        if not self._identities.user_exists(user_id):
            raise UnauthorizedError("Your session has expired")

        root = PurePosixPath("/", user_id)
        relative = normalize_path(requested)
        if relative.parts and relative.parts[0] == "..":
            raise ForbiddenError("The requested path is outside of your files")

        return AccessContext(
            owner_id=user_id,
            root=root,
            target=root if relative == PurePosixPath(".") else root / relative,
            origin=AccessOrigin.SESSION,
            capabilities=SESSION_CAPABILITIES,
        )


class RequestEnvironment:
    """Request-scoped, memoised access to the resolved context.

    Build one per request. The first successful resolution is kept for the
    rest of the request; a failed resolution is not cached, the failure
    propagates and ends the request.
    """

    def __init__(
        self,
        resolver: AccessContextResolver,
        request: GateRequest,
        *,
        allow_token: bool = True,
    ) -> None:
        self._resolver = resolver
        self._request = request
        self._allow_token = allow_token
        self._context: AccessContext | None = None

    @property
    def request(self) -> GateRequest:
        return self._request

    @property
    def is_resolved(self) -> bool:
        return self._context is not None

    def get(self) -> AccessContext:
        if self._context is None:
            self._context = self._resolver.resolve(self._request, allow_token=self._allow_token)
        return self._context
