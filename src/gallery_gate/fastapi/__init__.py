"""FastAPI adapter for the gallery gate."""

from gallery_gate.fastapi.gate import (
    GuestFormRenderer,
    create_error_router,
    gate_middleware,
)
from gallery_gate.fastapi.router import add_gated_route, create_gated_router

__all__ = [
    "GuestFormRenderer",
    "add_gated_route",
    "create_error_router",
    "create_gated_router",
    "gate_middleware",
]
