# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_api_keys(raw: str) -> frozenset[str]:
    """Split a comma-separated key list. Blank entries are dropped."""
    return frozenset(key.strip() for key in raw.split(",") if key.strip())


class Settings(BaseSettings):
    """Gateway configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    # ── Server ───────────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000

    # Sole allowed cross-origin source.
    application_url: str = "http://localhost:3000"

    # ── Security ─────────────────────────────────────────────────────────────
    # Comma-separated allow-list. Empty string = every key is rejected.
    api_keys: str = ""

    # Requests per identity (API key, else client address) per 15-minute window.
    max_request_per_15_minutes: int = 10

    # ── Backend ──────────────────────────────────────────────────────────────
    # SecretStr keeps the service key out of logs and repr().
    supabase_url: str = ""
    supabase_key: SecretStr = SecretStr("")

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def api_key_set(self) -> frozenset[str]:
        return parse_api_keys(self.api_keys)

    @property
    def rate_limit(self) -> str:
        """Limit string in `limits` notation, e.g. "10 per 15 minutes"."""
        return f"{self.max_request_per_15_minutes} per 15 minutes"

    @property
    def backend_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key.get_secret_value())


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
