"""Client configuration.

Hey future me - every field can come from the environment with the ODESLI_ prefix
(ODESLI_API_KEY, ODESLI_TIMEOUT, ...). Keyword arguments to Odesli(...) win over the
environment, see Odesli.__init__.

All durations are SECONDS. The upstream docs talk in milliseconds; we don't.
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.song.link"
DEFAULT_API_VERSION = "v1-alpha.1"


class OdesliSettings(BaseSettings):
    """Settings for the Odesli client."""

    model_config = SettingsConfigDict(
        env_prefix="ODESLI_",
        extra="ignore",
    )

    api_key: str | None = Field(
        default=None,
        description="Optional API key; without one the service allows 10 requests/minute",
    )
    version: str = Field(default=DEFAULT_API_VERSION, description="API version path segment")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Lookup service host")
    cache: bool = Field(default=True, description="Cache successful responses for 5 minutes")
    timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=3, ge=1, description="Attempts per request, including the first")
    retry_delay: float = Field(
        default=1.0, ge=0, description="Base backoff delay in seconds (doubles per attempt)"
    )
    retry_server_errors: bool = Field(
        default=True, description="Retry upstream 5xx answers like transport failures"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra request headers (win over defaults)"
    )
    validate_params: bool = Field(
        default=True, description="Validate url/platform/type/country before requesting"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize base URL so path joining never doubles slashes."""
        return value.rstrip("/")

    @field_validator("api_key", mode="before")
    @classmethod
    def empty_key_is_none(cls, value: str | None) -> str | None:
        """Treat an empty API key (e.g. ODESLI_API_KEY=) as no key."""
        return value or None


@dataclass(frozen=True)
class FetchOptions:
    """Per-call options shared by fetch, get_by_params, get_by_id and fetch_batch.

    Attributes:
        country: ISO 3166-1 alpha-2 country for region-specific results
        skip_cache: Bypass the response cache for this call (never part of the cache key)
        timeout: Override the client timeout (seconds) for this call
        concurrency: Batch only - lookups in flight per chunk
    """

    country: str = "US"
    skip_cache: bool = False
    timeout: float | None = None
    concurrency: int = 5


@lru_cache
def get_settings() -> OdesliSettings:
    """Get settings loaded from the environment (cached)."""
    return OdesliSettings()
