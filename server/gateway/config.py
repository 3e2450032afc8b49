# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway configuration sourced from environment variables.

    Frozen after construction: build one at startup and hand it to
    create_app(), the middlewares and the pool factory.
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", frozen=True)

    # ── Server ───────────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000

    # ── Database ─────────────────────────────────────────────────────────────
    db_host: str = "localhost"
    db_port: int = 5432
    db_username: str = "postgres"
    db_password: SecretStr = SecretStr("")
    db_database: str = "postgres"
    db_pool_size: int = 5
    db_command_timeout: float = 30.0

    # ── Security ─────────────────────────────────────────────────────────────
    # Shared static key: authenticates /v1 routes and exempts its holder from
    # rate limiting. Empty string = auth disabled (local dev / test).
    api_key: SecretStr = SecretStr("")
    api_key_header: str = "x-api-key"

    # Proxy-supplied real client IP (Cloudflare). Falls back to the peer address.
    client_ip_header: str = "cf-connecting-ip"

    # Comma-separated origins for CORS. Empty string = deny all cross-origin requests.
    allowed_origins: str = ""

    # Echo driver error details in 500 bodies (compatibility with old clients).
    expose_backend_errors: bool = False

    # ── Rate limiting ────────────────────────────────────────────────────────
    # `limits` notation, e.g. "10/minute". Fixed window, keyed by client IP.
    rate_limit: str = "10/minute"
    # In-process counters only; RateLimiter refuses network storages.
    rate_limit_storage_uri: str = "memory://"

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def dsn(self) -> str:
        """Connection string without the password (passed separately to asyncpg)."""
        return f"postgresql://{self.db_username}@{self.db_host}:{self.db_port}/{self.db_database}"


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
