"""Member Policy — application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from member_policy.fields.catalog import PolicyCatalog, load_catalog
from member_policy.fields.resolver import PermissionResolver


class PolicySettings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_prefix": "MEMBER_POLICY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # ── Policy sources ─────────────────────────────────────────
    catalog_path: str | None = None  # JSON catalog replacing the built-in one
    task_policy_path: str | None = None

    # ── Logging ────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"


def build_resolver(config: PolicySettings | None = None) -> PermissionResolver:
    """Build a resolver over the configured catalog, or the built-in one."""
    config = config or settings
    if config.catalog_path:
        catalog = load_catalog(config.catalog_path)
    else:
        catalog = PolicyCatalog.default()
    return PermissionResolver(catalog)


settings = PolicySettings()
