"""Metabase-Tenancy configuration via pydantic-settings."""

import warnings
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "metabase_secret": "insecure-embedding-secret-change-me",
    "api_key": "insecure-admin-key-change-me",
}


class TenancySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TENANCY_")

    environment: str = "development"
    log_level: str = "INFO"

    # Metabase
    metabase_url: str = "https://analytics.soffront.com"
    metabase_api_key: str = ""
    metabase_secret: str = "insecure-embedding-secret-change-me"
    metabase_timeout: float = 30.0

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/tenancy.db"

    # API
    api_title: str = "Metabase-Tenancy"
    api_version: str = "0.1.0"
    api_key: str = "insecure-admin-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8989
    api_prefix: str = ""
    cors_origins: list[str] = ["*"]

    # Provisioning layout
    root_collection_id: int = 162
    collection_color: str = "#509EE3"
    all_users_group_id: int = 1
    group_name_prefix: str = "Tenant_"

    # Template group whose data permissions and sandboxes are cloned into
    # every tenant group. Cloning is disabled when unset.
    template_group_id: Optional[int] = None
    resync_template_permissions: bool = True

    # Delete the tenant collection and group in Metabase together with the
    # local mapping.
    cascade_remote_delete: bool = False

    # Module name -> template dashboard id, e.g.
    # TENANCY_MODULE_TEMPLATES='{"Sales": 71, "Marketing": 176}'
    module_templates: dict[str, int] = {
        "Sales": 71,
        "Marketing": 176,
        "Operations": 106,
    }
    default_module: str = "Management"

    # Permission graph writes re-applied on revision conflicts
    graph_write_attempts: int = 3

    # Embedding tokens
    token_ttl: int = 86400  # 24 hours
    token_default_first_name: str = "User"
    token_default_last_name: str = "Soffront"

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"TENANCY_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}."
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys — set TENANCY_METABASE_SECRET and "
                "TENANCY_API_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> TenancySettings:
    settings = TenancySettings()
    settings.validate_for_production()
    return settings
