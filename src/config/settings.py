"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from two sources (in priority order):
#
#   1. **Environment variables** - e.g., WP_GRAPHQL_ENDPOINT=https://cms/graphql
#   2. **.env file** - key=value lines in the project root .env file
#
# Field `pool_max_bound` maps to env var `POOL_MAX_BOUND`.  Defaults below
# are used when neither source sets a value.
#
# The pool_* fields drive the escalating fetch size used by the aggregator:
#   size = min(pool_max_bound, max(pool_min_batch, offset + first * pool_size_multiplier))
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Discovery engine settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Content-query API (WPGraphQL) ===
    wp_graphql_endpoint: str = ""
    wp_auth_user: str = ""
    wp_auth_app_password: str = ""  # WordPress application password, not the login password
    wp_revalidate_seconds: int = 600
    wp_verbose_errors: bool = False
    wp_request_timeout: float = 30.0
    revalidate_secret: str = ""  # empty disables POST /api/v1/revalidate

    # === Pool fetch sizing ===
    pool_min_batch: int = 60
    pool_max_bound: int = 200
    pool_size_multiplier: int = 3
    pool_cache_max_size: int = 256

    # === Paging / query policy ===
    page_size_default: int = 24
    page_size_max: int = 50
    min_query_length: int = 2

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @field_validator("pool_min_batch", "pool_max_bound", "pool_size_multiplier", "page_size_max")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    def has_basic_auth(self) -> bool:
        """Return True when both basic-auth credentials are configured."""
        return bool(self.wp_auth_user and self.wp_auth_app_password)
