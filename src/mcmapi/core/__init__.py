"""Core utilities and models."""

from .config import APIToken, AppConfig, TokenKind
from .errors import (
    APIError,
    ClientError,
    HealthCheckError,
    RateLimited,
    RequestCancelled,
    SchedulerClosed,
    ServerError,
    TransportFailure,
)
from .models import RequestKind, SortOptions
from .rate_limit import RateBudget

__all__ = [
    "APIToken",
    "AppConfig",
    "TokenKind",
    "APIError",
    "ClientError",
    "HealthCheckError",
    "RateLimited",
    "RequestCancelled",
    "SchedulerClosed",
    "ServerError",
    "TransportFailure",
    "RequestKind",
    "SortOptions",
    "RateBudget",
]
