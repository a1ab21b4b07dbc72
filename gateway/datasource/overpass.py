"""
Overpass API data source for hospitals in a wilaya.

API Documentation: https://wiki.openstreetmap.org/wiki/Overpass_API
Public instances are frequently overloaded, so requests go through the
FetchOrchestrator and successful results are cached.
"""

import re
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from gateway.datasource.regions import BoundingBox, resolve_region
from gateway.services.cache import ResponseCache
from gateway.services.orchestrator import FetchOrchestrator, RetryPolicy

DEFAULT_LIMIT = 200
MAX_LIMIT = 1000

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Hospital(BaseModel):
    """A hospital as returned to API callers."""

    name: str | None = None
    lat: float | None = None
    lon: float | None = None
    tags: dict[str, Any] = Field(default_factory=dict)
    osm_type: str | None = None
    osm_id: int | None = None


class HospitalsResponse(BaseModel):
    """Success payload of the hospitals endpoint."""

    wilaya: str
    bounding_box: BoundingBox
    count: int
    hospitals: list[Hospital]
    queried_at: str


def parse_limit(
    raw: str | int | None,
    default: int = DEFAULT_LIMIT,
    maximum: int = MAX_LIMIT,
) -> int:
    """Parse a requested result limit, falling back to ``default`` and capping at ``maximum``."""
    if isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INT.match(raw or "")
        value = int(match.group(1)) if match else 0
    if value <= 0:
        value = default
    return min(value, maximum)


def cache_key(wilaya: str, limit: int) -> str:
    return f"wilaya:{wilaya}:{limit}"


def build_overpass_query(bbox: BoundingBox, limit: int) -> str:
    """Overpass QL for every hospital node, way and relation inside ``bbox``."""
    area = bbox.as_overpass()
    return (
        "[out:json][timeout:60];\n"
        "(\n"
        f'  node["amenity"="hospital"]({area});\n'
        f'  way["amenity"="hospital"]({area});\n'
        f'  relation["amenity"="hospital"]({area});\n'
        ");\n"
        f"out center {limit};\n"
    )


def normalize_element(element: dict[str, Any]) -> Hospital:
    tags = element.get("tags") or {}
    center = element.get("center") or {}
    lat = element.get("lat")
    lon = element.get("lon")
    return Hospital(
        name=tags.get("name") or tags.get("name:en") or None,
        lat=lat if lat is not None else center.get("lat"),
        lon=lon if lon is not None else center.get("lon"),
        tags=tags,
        osm_type=element.get("type"),
        osm_id=element.get("id"),
    )


def normalize_elements(data: Any, limit: int) -> list[Hospital]:
    """Turn a raw Overpass JSON body into at most ``limit`` hospitals."""
    elements = data.get("elements") if isinstance(data, dict) else None
    return [normalize_element(el) for el in (elements or [])[:limit]]


class OverpassHospitalSource:
    """
    Hospitals per wilaya, fetched from Overpass with caching.

    Concurrent misses for the same key are not coalesced: each one runs
    its own orchestration and the last successful write wins.
    """

    SERVICE_ID = "overpass"

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        cache: ResponseCache,
        endpoints: Sequence[str],
        policy: RetryPolicy | None = None,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ):
        if not endpoints:
            raise ValueError("at least one Overpass endpoint is required")
        self.orchestrator = orchestrator
        self.cache = cache
        self.endpoints = tuple(endpoints)
        self.policy = policy or RetryPolicy()
        self.default_limit = default_limit
        self.max_limit = max_limit

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def get_hospitals(
        self,
        wilaya: str | int | None,
        limit: str | int | None = None,
    ) -> HospitalsResponse:
        """
        Hospitals inside a wilaya's bounding box.

        Raises:
            ValidationError: If the wilaya code is unknown (before any I/O)
            OrchestratorError: If every Overpass endpoint failed
        """
        code, bbox = resolve_region(wilaya)
        limit = parse_limit(limit, self.default_limit, self.max_limit)
        key = cache_key(code, limit)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Serving wilaya {code} (limit {limit}) from cache")
            return cached

        data = await self.orchestrator.fetch(
            build_overpass_query(bbox, limit), self.endpoints, self.policy
        )
        hospitals = normalize_elements(data, limit)

        payload = HospitalsResponse(
            wilaya=code,
            bounding_box=bbox,
            count=len(hospitals),
            hospitals=hospitals,
            queried_at=datetime.now(timezone.utc).isoformat(),
        )
        await self.cache.put(key, payload)
        logger.info(f"Fetched {payload.count} hospitals for wilaya {code}")
        return payload
