"""Typed failures surfaced by the wrapper."""

from __future__ import annotations

from typing import Optional


class APIError(Exception):
    """Base class for every failure a wrapper call can raise."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransportFailure(APIError):
    """Connection-level failure; no HTTP status was received."""


class RateLimited(APIError):
    """Server answered 429. Absorbed by the scheduler, never surfaced."""

    def __init__(self, reset_at: float) -> None:
        super().__init__("Server rate limit exceeded (HTTP 429)")
        self.reset_at = reset_at


class ClientError(APIError):
    """4xx response other than 429, or an error envelope."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    def __str__(self) -> str:
        prefix = f"{self.code}: " if self.code else ""
        return f"HTTP {self.status_code} {prefix}{self.message}"


class ServerError(APIError):
    """5xx response that persisted through every retry."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"HTTP {self.status_code} {self.message}"


class RequestCancelled(APIError):
    """The caller stopped waiting for its request."""


class SchedulerClosed(APIError):
    """The wrapper was closed while the request was pending."""

    def __init__(self, message: str = "Scheduler is closed") -> None:
        super().__init__(message)


class HealthCheckError(APIError):
    """The health endpoint did not answer "ok"."""
