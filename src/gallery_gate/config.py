"""Gate configuration.

Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class GateSettings(BaseSettings):
    """Settings shared by every gated route of one application."""

    model_config = SettingsConfigDict(env_prefix="GALLERY_GATE_")

    # Application name, used as the route name prefix and in log context
    app_name: str = "gallery"

    # Administrative switch for public links
    sharing_enabled: bool = True

    # Request parameters
    token_param: str = "token"
    password_param: str = "password"
    path_param: str = "path"

    # Browser-facing failure pages
    auth_template: str = "authenticate"
    guest_layout: str = "guest"
    error_route: str = "page.error_page"

    def is_sharing_enabled(self) -> bool:
        """Whether public share links may be used at all."""
        return self.sharing_enabled

    @property
    def error_route_name(self) -> str:
        """Fully qualified name of the error-display route."""
        return f"{self.app_name}.{self.error_route}"


@lru_cache
def get_settings() -> GateSettings:
    """Get cached settings instance."""
    return GateSettings()
