"""
Data sources backed by external services.
"""

from gateway.datasource.overpass import (
    Hospital,
    HospitalsResponse,
    OverpassHospitalSource,
    build_overpass_query,
)
from gateway.datasource.regions import WILAYAS, BoundingBox, resolve_region

__all__ = [
    "BoundingBox",
    "Hospital",
    "HospitalsResponse",
    "OverpassHospitalSource",
    "WILAYAS",
    "build_overpass_query",
    "resolve_region",
]
