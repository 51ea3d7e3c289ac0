"""Asynchronous, rate-limited client for MC-Market's HTTP API."""

from .core.config import APIToken, AppConfig, TokenKind
from .core.errors import (
    APIError,
    ClientError,
    HealthCheckError,
    RequestCancelled,
    SchedulerClosed,
    ServerError,
    TransportFailure,
)
from .core.models import SortOptions
from .services.wrapper import APIWrapper

__all__ = [
    "APIToken",
    "APIWrapper",
    "AppConfig",
    "TokenKind",
    "APIError",
    "ClientError",
    "HealthCheckError",
    "RequestCancelled",
    "SchedulerClosed",
    "ServerError",
    "TransportFailure",
    "SortOptions",
]
