import asyncio
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

ENDPOINT_A = "https://a.overpass.test/api/interpreter"
ENDPOINT_B = "https://b.overpass.test/api/interpreter"
ENDPOINT_C = "https://c.overpass.test/api/interpreter"

SAMPLE_OVERPASS_BODY = {
    "elements": [
        {
            "type": "node",
            "id": 1,
            "lat": 36.75,
            "lon": 3.05,
            "tags": {"amenity": "hospital", "name": "CHU Mustapha"},
        },
        {
            "type": "way",
            "id": 2,
            "center": {"lat": 36.7, "lon": 3.1},
            "tags": {"amenity": "hospital", "name:en": "Beni Messous Hospital"},
        },
        {"type": "relation", "id": 3},
    ]
}


def run_async(coro):
    return asyncio.run(coro)


class ScriptedUpstream:
    """Mock Overpass servers that answer from a per-endpoint script.

    A step is an HTTP status (int), a JSON body (dict, served with 200),
    a raw text body (str, served with 200), or one of the markers
    ``"!connect"`` / ``"!timeout"`` / ``"!hang"``. The last step repeats.
    """

    def __init__(self, scripts: dict[str, list[Any]]):
        self.scripts = scripts
        self.calls: dict[str, int] = defaultdict(int)
        self.requests: list[httpx.Request] = []

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls[url] += 1
        self.requests.append(request)
        script = self.scripts[url]
        step = script[min(self.calls[url], len(script)) - 1]

        if step == "!connect":
            raise httpx.ConnectError("connection refused", request=request)
        if step == "!timeout":
            raise httpx.ReadTimeout("read timed out", request=request)
        if step == "!hang":
            await asyncio.sleep(60)
        if isinstance(step, int):
            return httpx.Response(step, text=f"upstream said {step}")
        if isinstance(step, str):
            return httpx.Response(200, text=step)
        return httpx.Response(200, json=step)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
