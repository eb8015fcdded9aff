"""Access context data model.

Defines what a caller may do once the request has been resolved: the
capabilities, the share records a token can point to, and the resolved
AccessContext passed to check units.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath


class Capability(str, Enum):
    """Operations a handler can require from the caller."""

    READ = "read"
    DOWNLOAD = "download"
    WRITE = "write"
    DELETE = "delete"
    SHARE = "share"


class AccessOrigin(str, Enum):
    """How the access context was established."""

    SESSION = "session"
    SHARE = "share"


class ShareItemType(str, Enum):
    """What a public link points to."""

    FOLDER = "folder"
    FILE = "file"


# Session access is full account access
SESSION_CAPABILITIES: frozenset[Capability] = frozenset(Capability)

# Public links are read-only
SHARE_CAPABILITIES: frozenset[Capability] = frozenset({Capability.READ, Capability.DOWNLOAD})


@dataclass(frozen=True)
class Share:
    """A public link as stored by the sharing backend.

    Attributes:
        token: Opaque token identifying the link.
        owner_id: Account that created the link.
        root: Path of the shared item inside the owner's storage.
        item_type: Whether the link points to a folder or a single file.
        share_id: Backend identifier, used to remember password logins.
        expires_at: Optional expiry; the link is dead from that instant on.
        password_hash: Optional bcrypt hash protecting the link.
    """

    token: str
    owner_id: str | None
    root: str | None
    item_type: ShareItemType = ShareItemType.FOLDER
    share_id: str = ""
    expires_at: datetime | None = None
    password_hash: bytes | None = None

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password_hash)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass(frozen=True)
class AccessContext:
    """Resolved authorization scope of a single request.

    Only ever built fully resolved; a request whose context cannot be
    resolved has already failed.
    """

    owner_id: str
    root: PurePosixPath
    target: PurePosixPath
    origin: AccessOrigin
    capabilities: frozenset[Capability] = field(default_factory=frozenset)
    share: Share | None = None

    @property
    def is_read_only(self) -> bool:
        return not self.can(Capability.WRITE) and not self.can(Capability.DELETE)

    @property
    def token(self) -> str | None:
        return self.share.token if self.share else None

    def can(self, capability: Capability | str) -> bool:
        """Check if the context grants a single capability."""
        if isinstance(capability, str):
            try:
                capability = Capability(capability)
            except ValueError:
                return False
        return capability in self.capabilities

    def covers(self, capabilities: Iterable[Capability | str]) -> bool:
        """Check if the context grants ALL of the capabilities."""
        return all(self.can(c) for c in capabilities)

    def missing(self, capabilities: Iterable[Capability]) -> list[Capability]:
        """Capabilities from the given set the context does not grant, sorted by name."""
        return sorted((c for c in capabilities if not self.can(c)), key=lambda c: c.value)
