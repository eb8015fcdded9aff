"""Request-time authorization gate for gallery browsing APIs."""

from gallery_gate.config import GateSettings, get_settings
from gallery_gate.core.checks import CheckUnit, EnvironmentCheck, SharingCheck
from gallery_gate.core.context import (
    AccessContext,
    AccessOrigin,
    Capability,
    Share,
    ShareItemType,
)
from gallery_gate.core.gate import Gate
from gallery_gate.core.middleware import RouteConfig, RouteRequirements, route
from gallery_gate.core.negotiation import NegotiatedFormat, negotiate
from gallery_gate.core.passwords import BcryptPasswordChecker, hash_password
from gallery_gate.core.pipeline import CheckOutcome, CheckPipeline, PipelineState
from gallery_gate.core.request import GateRequest
from gallery_gate.core.resolver import AccessContextResolver, RequestEnvironment
from gallery_gate.core.responder import (
    RedirectTo,
    RenderedForm,
    Responder,
    StructuredError,
)

# Exceptions
from gallery_gate.exceptions import (
    CheckException,
    ForbiddenError,
    GalleryGateError,
    GateConfigurationError,
    NotFoundError,
    UnauthorizedError,
)
from gallery_gate.fastapi.gate import create_error_router
from gallery_gate.fastapi.router import create_gated_router

__all__ = [
    # Primary API
    "Gate",
    "create_gated_router",
    "create_error_router",
    "route",
    "GateSettings",
    "get_settings",
    # Core types
    "AccessContext",
    "AccessContextResolver",
    "AccessOrigin",
    "BcryptPasswordChecker",
    "Capability",
    "CheckOutcome",
    "CheckPipeline",
    "CheckUnit",
    "EnvironmentCheck",
    "GateRequest",
    "NegotiatedFormat",
    "PipelineState",
    "RedirectTo",
    "RenderedForm",
    "RequestEnvironment",
    "Responder",
    "RouteConfig",
    "RouteRequirements",
    "Share",
    "ShareItemType",
    "SharingCheck",
    "StructuredError",
    "hash_password",
    "negotiate",
    # Exceptions
    "CheckException",
    "ForbiddenError",
    "GalleryGateError",
    "GateConfigurationError",
    "NotFoundError",
    "UnauthorizedError",
]

__version__ = "1.0.0"
