"""
FetchOrchestrator - Ordered multi-endpoint delivery with retry and backoff.

Each endpoint is tried strictly in order. Within an endpoint:
- Success returns immediately; later endpoints are never contacted
- A client error (4xx other than 429) abandons the endpoint at once
- Anything else is retried after an exponential backoff until the
  endpoint's attempt budget is spent, then the next endpoint is tried

When every endpoint is exhausted an OrchestratorError is raised.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from loguru import logger

from gateway.services.errors import EndpointFailure, OrchestratorError


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and timing for one orchestration run."""

    max_attempts_per_endpoint: int = 3
    base_backoff: float = 0.5  # seconds
    request_timeout: float = 60.0  # seconds, per attempt

    def __post_init__(self) -> None:
        if self.max_attempts_per_endpoint < 1:
            raise ValueError("max_attempts_per_endpoint must be a positive integer")
        if self.base_backoff < 0:
            raise ValueError("base_backoff must not be negative")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")


def backoff_delay(attempt: int, base_backoff: float) -> float:
    """Delay to sleep after failed attempt number ``attempt`` (1-indexed)."""
    return base_backoff * 2 ** (attempt - 1)


class OutcomeKind(str, Enum):
    """Classification of a single attempt."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one network call to one endpoint."""

    kind: OutcomeKind
    payload: Any = None
    reason: str | None = None
    status_code: int | None = None

    @classmethod
    def success(cls, payload: Any, status_code: int | None = None) -> "AttemptOutcome":
        return cls(OutcomeKind.SUCCESS, payload=payload, status_code=status_code)

    @classmethod
    def retryable(cls, reason: str, status_code: int | None = None) -> "AttemptOutcome":
        return cls(OutcomeKind.RETRYABLE, reason=reason, status_code=status_code)

    @classmethod
    def fatal(cls, reason: str, status_code: int | None = None) -> "AttemptOutcome":
        return cls(OutcomeKind.FATAL, reason=reason, status_code=status_code)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


def classify_status(status_code: int) -> OutcomeKind:
    """Map an HTTP status code to an outcome kind."""
    if 200 <= status_code < 300:
        return OutcomeKind.SUCCESS
    if 400 <= status_code < 500 and status_code != 429:
        return OutcomeKind.FATAL
    return OutcomeKind.RETRYABLE


class FetchOrchestrator:
    """
    Delivers a query to the first healthy endpoint of an ordered list.

    The orchestrator holds no per-run state, so a single instance can be
    shared by concurrent requests.

    Usage:
        async with httpx.AsyncClient() as http:
            orchestrator = FetchOrchestrator(http, headers={"User-Agent": "..."})
            data = await orchestrator.fetch(query, endpoints, RetryPolicy())
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        headers: dict[str, str] | None = None,
        content_type: str = "text/plain",
        service_id: str | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._client = client
        self._headers = {**(headers or {}), "Content-Type": content_type}
        self._service_id = service_id
        self._sleep = sleep

    async def fetch(
        self,
        query: str,
        endpoints: Sequence[str],
        policy: RetryPolicy,
    ) -> Any:
        """
        Submit ``query`` to ``endpoints`` in order under ``policy``.

        Returns:
            Decoded JSON body of the first successful response

        Raises:
            ValueError: If ``endpoints`` is empty
            OrchestratorError: If every endpoint failed
        """
        endpoints = tuple(endpoints)
        if not endpoints:
            raise ValueError("at least one endpoint is required")

        failures: list[EndpointFailure] = []
        max_attempts = policy.max_attempts_per_endpoint

        for endpoint in endpoints:
            for attempt in range(1, max_attempts + 1):
                outcome = await self.attempt(endpoint, query, policy)
                if outcome.is_success:
                    return outcome.payload

                logger.warning(
                    f"[Orchestrator] endpoint={endpoint} attempt={attempt} "
                    f"status={outcome.status_code or 'ERR'} message={outcome.reason}"
                )

                if outcome.kind is OutcomeKind.FATAL:
                    logger.warning(
                        f"[Orchestrator] non-retriable status {outcome.status_code} on {endpoint}"
                    )
                    failures.append(
                        EndpointFailure(endpoint, attempt, outcome.reason or "", fatal=True)
                    )
                    break

                if attempt >= max_attempts:
                    logger.warning(
                        f"[Orchestrator] exhausted attempts for {endpoint}, switching to next endpoint"
                    )
                    failures.append(EndpointFailure(endpoint, attempt, outcome.reason or ""))
                    break

                await self._sleep(backoff_delay(attempt, policy.base_backoff))

        error = OrchestratorError(endpoints, failures, service_id=self._service_id)
        logger.error(f"[Orchestrator] {error}")
        raise error

    async def attempt(
        self,
        endpoint: str,
        query: str,
        policy: RetryPolicy,
    ) -> AttemptOutcome:
        """Issue one request and classify it. Never raises for upstream faults."""
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    endpoint,
                    content=query,
                    headers=self._headers,
                    timeout=policy.request_timeout,
                ),
                timeout=policy.request_timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return AttemptOutcome.retryable(
                f"timed out after {policy.request_timeout}s"
            )
        except httpx.RequestError as e:
            return AttemptOutcome.retryable(f"{type(e).__name__}: {e}")

        status = response.status_code
        kind = classify_status(status)

        if kind is OutcomeKind.SUCCESS:
            try:
                return AttemptOutcome.success(response.json(), status_code=status)
            except ValueError:
                return AttemptOutcome.retryable(
                    f"endpoint returned status {status} with a non-JSON body",
                    status_code=status,
                )

        reason = f"endpoint returned status {status}"
        body = response.text[:200].strip()
        if body:
            reason += f": {body}"
        if kind is OutcomeKind.FATAL:
            return AttemptOutcome.fatal(reason, status_code=status)
        return AttemptOutcome.retryable(reason, status_code=status)
