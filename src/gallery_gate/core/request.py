"""Framework-neutral view of an inbound request.

Check units and the responder only ever see a GateRequest; the FastAPI
adapter builds one from a Starlette request.
"""

from collections.abc import Mapping, MutableSet
from dataclasses import dataclass, field
from typing import Any


class Headers(Mapping[str, str]):
    """Read-only header map with case-insensitive lookup."""

    def __init__(self, raw: Mapping[str, str] | None = None) -> None:
        self._items = {key.lower(): value for key, value in (raw or {}).items()}

    def __getitem__(self, key: str) -> str:
        return self._items[key.lower()]

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


@dataclass(frozen=True)
class GateRequest:
    """Everything the gate reads from a request.

    Attributes:
        headers: Request headers; only Accept is used for negotiation.
        params: Merged query, form and path parameters; a path parameter
            wins over a query or form field of the same name.
        user_id: Identity of the logged-in account, if any.
        token: Share token extracted from the request, if any.
        path: Requested resource path, relative to the context root.
        share_session: Ids of password-protected shares this session
            already authenticated against.
        method: HTTP method of the request, upper case.
    """

    headers: Headers = field(default_factory=Headers)
    params: Mapping[str, Any] = field(default_factory=dict)
    user_id: str | None = None
    token: str | None = None
    path: str = ""
    share_session: MutableSet[str] = field(default_factory=set)
    method: str = "GET"

    @property
    def accept(self) -> str:
        return self.headers.get("accept", "")

    def param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)


def extract_token(
    params: Mapping[str, Any],
    headers: Mapping[str, str],
    *,
    token_param: str = "token",
) -> str | None:
    """Read a share token from the request parameters or a Bearer header.

    The parameter wins over the header. Blank values count as absent.
    """
    token = params.get(token_param)
    if isinstance(token, str) and token.strip():
        return token.strip()

    authorization = headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    return None
