import os
from datetime import timedelta

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from gateway.services.orchestrator import RetryPolicy

load_dotenv()

DEFAULT_OVERPASS_ENDPOINTS = (
    "https://overpass-api.de/api/interpreter,"
    "https://lz4.overpass-api.de/api/interpreter,"
    "https://overpass.openstreetmap.ru/api/interpreter"
)


class Settings(BaseModel):
    # HTTP Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    # Overpass Configuration
    overpass_endpoints: str = Field(
        default=DEFAULT_OVERPASS_ENDPOINTS, alias="OVERPASS_ENDPOINTS"
    )
    overpass_max_attempts: int = Field(default=3, ge=1, alias="OVERPASS_MAX_ATTEMPTS")
    overpass_base_backoff: float = Field(
        default=0.5, ge=0, alias="OVERPASS_BASE_BACKOFF"
    )
    overpass_request_timeout: float = Field(
        default=60.0, gt=0, alias="OVERPASS_REQUEST_TIMEOUT"
    )
    user_agent: str = Field(
        default="Khalil-Hospitals-App/1.0 (contact@yourmail.com)", alias="USER_AGENT"
    )
    accept_language: str = Field(default="en", alias="ACCEPT_LANGUAGE")
    referer: str = Field(default="http://localhost", alias="REFERER")

    # Cache Configuration
    cache_ttl_seconds: int = Field(default=1800, gt=0, alias="CACHE_TTL_SECONDS")
    cache_max_size: int = Field(default=500, ge=1, alias="CACHE_MAX_SIZE")
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")

    # Inbound Rate Limiting
    rate_limit_requests: int = Field(default=30, ge=1, alias="RATE_LIMIT_REQUESTS")
    rate_limit_window_seconds: float = Field(
        default=60.0, gt=0, alias="RATE_LIMIT_WINDOW_SECONDS"
    )

    # Result Limits
    default_limit: int = Field(default=200, ge=1, alias="DEFAULT_LIMIT")
    max_limit: int = Field(default=1000, ge=1, alias="MAX_LIMIT")

    @field_validator("overpass_endpoints")
    @classmethod
    def _require_endpoint(cls, value: str) -> str:
        if not any(part.strip() for part in value.split(",")):
            raise ValueError("OVERPASS_ENDPOINTS must name at least one endpoint")
        return value

    @property
    def endpoints(self) -> tuple[str, ...]:
        return tuple(part.strip() for part in self.overpass_endpoints.split(",") if part.strip())

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts_per_endpoint=self.overpass_max_attempts,
            base_backoff=self.overpass_base_backoff,
            request_timeout=self.overpass_request_timeout,
        )

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @property
    def request_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept-Language": self.accept_language,
            "Referer": self.referer,
        }


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from environment variables (unknown keys are ignored)."""
    return Settings.model_validate(dict(os.environ if environ is None else environ))


global_settings = load_settings()
