"""
Service layer exceptions.
"""

from dataclasses import dataclass


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


@dataclass(frozen=True)
class EndpointFailure:
    """Why a single endpoint was given up on."""

    endpoint: str
    attempts: int
    reason: str
    fatal: bool = False

    def describe(self) -> str:
        kind = "fatal" if self.fatal else "exhausted"
        return f"{self.endpoint} ({kind} after {self.attempts} attempt(s): {self.reason})"


class OrchestratorError(ServiceError):
    """Every endpoint was tried and none returned a usable response."""

    def __init__(
        self,
        endpoints: tuple[str, ...],
        failures: list[EndpointFailure],
        service_id: str | None = None,
    ):
        self.endpoints = tuple(endpoints)
        self.failures = list(failures)
        tried = ", ".join(self.endpoints)
        message = f"All endpoints failed (tried: {tried})"
        if self.failures:
            message += f"; last error: {self.failures[-1].reason}"
        super().__init__(message, service_id=service_id)

    @property
    def total_attempts(self) -> int:
        return sum(f.attempts for f in self.failures)
