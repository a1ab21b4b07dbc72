"""FastAPI server exposing the hospitals gateway."""

from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import HTMLResponse
from loguru import logger

from gateway.datasource.overpass import HospitalsResponse, OverpassHospitalSource
from gateway.exceptions import (
    ApiError,
    RateLimitExceededError,
    UpstreamUnavailableError,
    api_error_handler,
)
from gateway.services.cache import ResponseCache
from gateway.services.errors import OrchestratorError
from gateway.services.orchestrator import FetchOrchestrator
from gateway.services.rate_limiter import RateLimiter
from gateway.settings import Settings, global_settings

UPSTREAM_FAILURE_NOTE = (
    "This usually means the Overpass servers are overloaded or your query timed out. "
    "Try again in a minute or reduce the bounding box."
)

INDEX_HTML = (
    "<h3>Algeria Hospitals API</h3>"
    "<p>Use <code>/api/hospitals?wilaya=16</code></p>"
)


class GatewayServer:
    """HTTP server for the hospitals API.

    When no source is given, one is built from settings at startup and its
    HTTP client is closed at shutdown.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        source: OverpassHospitalSource | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.settings = settings or global_settings
        self.source = source
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=self.settings.rate_limit_requests,
            time_window=self.settings.rate_limit_window_seconds,
        )
        self._http_client: httpx.AsyncClient | None = None

        self.app = FastAPI(
            title="Algeria Hospitals API",
            lifespan=self.lifespan,
            dependencies=[Depends(self.enforce_rate_limit)],
        )
        self.app.add_exception_handler(ApiError, api_error_handler)

        # Register routes
        self.app.get(
            "/api/hospitals",
            response_model=HospitalsResponse,
        )(self.get_hospitals)
        self.app.get("/", response_class=HTMLResponse)(self.index)
        self.app.get("/health")(self.health_check)

    def build_source(self) -> OverpassHospitalSource:
        """Wire the orchestrator and cache from settings."""
        self._http_client = httpx.AsyncClient(follow_redirects=True)
        orchestrator = FetchOrchestrator(
            self._http_client,
            headers=self.settings.request_headers,
            service_id=OverpassHospitalSource.SERVICE_ID,
        )
        cache = ResponseCache(
            ttl=self.settings.cache_ttl,
            max_size=self.settings.cache_max_size,
            debug=self.settings.cache_debug,
        )
        return OverpassHospitalSource(
            orchestrator,
            cache,
            self.settings.endpoints,
            policy=self.settings.retry_policy,
            default_limit=self.settings.default_limit,
            max_limit=self.settings.max_limit,
        )

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        if self.source is None:
            self.source = self.build_source()
            logger.info(
                f"Gateway ready with {len(self.source.endpoints)} Overpass endpoints"
            )
        try:
            yield
        finally:
            if self._http_client is not None:
                await self._http_client.aclose()
                self._http_client = None
                self.source = None
                logger.info("Gateway HTTP client closed")

    async def enforce_rate_limit(self, request: Request, response: Response) -> None:
        client_id = request.client.host if request.client else "anonymous"
        decision = await self.rate_limiter.check(client_id)
        headers = {
            "RateLimit-Limit": str(decision.limit),
            "RateLimit-Remaining": str(decision.remaining),
            "RateLimit-Reset": str(int(decision.reset_after + 0.999)),
        }
        if not decision.allowed:
            headers["Retry-After"] = headers["RateLimit-Reset"]
            raise RateLimitExceededError(decision.reset_after, headers=headers)
        response.headers.update(headers)

    async def get_hospitals(
        self,
        wilaya: str | None = None,
        limit: str | None = None,
    ) -> HospitalsResponse:
        """Hospitals for a wilaya, e.g. ``/api/hospitals?wilaya=16&limit=50``."""
        try:
            return await self.source.get_hospitals(wilaya, limit)
        except OrchestratorError as e:
            logger.error(f"[API] Overpass failed for wilaya {wilaya}: {e}")
            raise UpstreamUnavailableError(
                "Failed to fetch hospitals from Overpass",
                details=str(e),
                note=UPSTREAM_FAILURE_NOTE,
            ) from e
        except ApiError:
            raise
        except Exception as e:
            logger.exception(f"[API] Unexpected error for wilaya {wilaya}")
            raise ApiError(500, "Internal server error", details=str(e)) from e

    async def index(self) -> str:
        return INDEX_HTML

    async def health_check(self) -> dict:
        if self.source is None:
            return {"status": "starting"}
        return {
            "status": "ok",
            "endpoints": list(self.source.endpoints),
            "cache": self.source.cache.get_stats().to_dict(),
        }


def create_app(
    settings: Settings | None = None,
    source: OverpassHospitalSource | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    return GatewayServer(settings, source, rate_limiter).app
