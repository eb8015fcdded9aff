"""Exception hierarchy for gallery gate errors."""

from http import HTTPStatus


class GalleryGateError(Exception):
    """Base exception for all gallery gate errors.

    This is the parent class for all exceptions raised by the
    gallery-gate package. Catching this exception will catch both
    authorization failures and configuration errors.

    Example:
        try:
            router = create_gated_router(gate, routes)
        except GalleryGateError as e:
            logger.error(f"Failed to create router: {e}")
    """


class GateConfigurationError(GalleryGateError):
    """Raised when a gated route is declared incorrectly.

    This exception is raised at startup, never while serving a request:
        - A route declaration has no handler, or a non-callable one
        - A requirement names an unknown capability
        - Handler-level middleware is not async

    Example:
        GateConfigurationError(
            "class get(route): unknown capability 'publish'"
        )
    """


class CheckException(GalleryGateError):
    """An authorization failure that short-circuits the check pipeline.

    This is the only error family the pipeline intercepts. Every instance
    carries a status code from a closed set (401, 403, 404) and a
    human-readable message. Use one of the concrete kinds rather than
    this class directly.

    Attributes:
        code: HTTP status code the failure maps to.
        message: Message shown to the caller.
        cause: Optional underlying error that triggered the failure.
    """

    ALLOWED_CODES = frozenset(
        {
            HTTPStatus.UNAUTHORIZED,
            HTTPStatus.FORBIDDEN,
            HTTPStatus.NOT_FOUND,
        }
    )

    def __init__(self, message: str, code: int, cause: BaseException | None = None) -> None:
        if code not in self.ALLOWED_CODES:
            raise ValueError(f"Unsupported check failure code {code}")
        super().__init__(message)
        self.message = message
        self.code = int(code)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, code={self.code})"


class UnauthorizedError(CheckException):
    """No usable identity or token is present, or the session expired.

    Browser callers receive the guest authentication form for this kind,
    never a redirect.

    Example:
        UnauthorizedError("You need to be logged in to access this page")
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, HTTPStatus.UNAUTHORIZED, cause)


class ForbiddenError(CheckException):
    """Sharing is disabled, or the context lacks a required capability.

    Example:
        ForbiddenError("Public sharing is disabled")
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, HTTPStatus.FORBIDDEN, cause)


class NotFoundError(CheckException):
    """The share token, or the resource it points to, does not exist.

    Example:
        NotFoundError("The share token is invalid")
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, HTTPStatus.NOT_FOUND, cause)
