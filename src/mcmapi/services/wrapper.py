"""Top-level API wrapper wiring the scheduler and resource helpers."""

from __future__ import annotations

import asyncio
import time
from typing import Any, List, Optional, Tuple

from ..core.config import AppConfig
from ..core.errors import APIError, ClientError, HealthCheckError, RequestCancelled
from ..core.models import MetricsSnapshot, RequestKind, SortOptions
from ..core.rate_limit import RateBudget
from .alerts import AlertsHelper
from .conversations import ConversationsHelper
from .members import MembersHelper
from .resources import ResourceHelper
from .scheduler import RequestScheduler
from .threads import ThreadsHelper
from .transport import HttpxTransport, HTTPRequest, HTTPResponse, RateLimitHeaders, Transport

_UNSET: Any = object()


class APIWrapper:
    """Entry point for MC-Market API calls.

    All requests made through one wrapper share a single scheduler and rate
    budget. Separate wrappers (for example, one per token) are independent.
    """

    def __init__(
        self,
        config: AppConfig,
        transport: Transport,
        scheduler: RequestScheduler,
    ) -> None:
        self.config = config
        self._transport = transport
        self._scheduler = scheduler
        self.members = MembersHelper(self)
        self.resources = ResourceHelper(self)
        self.alerts = AlertsHelper(self)
        self.conversations = ConversationsHelper(self)
        self.threads = ThreadsHelper(self)

    @classmethod
    def build(
        cls,
        config: Optional[AppConfig] = None,
        transport: Optional[Transport] = None,
        headers: Optional[RateLimitHeaders] = None,
    ) -> "APIWrapper":
        cfg = config or AppConfig.load()
        transport = transport or HttpxTransport(cfg)
        scheduler = RequestScheduler(
            transport,
            max_attempts=cfg.max_attempts,
            backoff_base=cfg.backoff_base,
            backoff_max=cfg.backoff_max,
            allowance=cfg.assumed_allowance,
            headers=headers,
        )
        return cls(cfg, transport, scheduler)

    @classmethod
    async def connect(
        cls,
        config: Optional[AppConfig] = None,
        transport: Optional[Transport] = None,
        headers: Optional[RateLimitHeaders] = None,
    ) -> "APIWrapper":
        """Build a wrapper and confirm the API is reachable.

        A failing health check closes the wrapper and re-raises; later calls
        would be expected to fail the same way.
        """

        wrapper = cls.build(config, transport, headers)
        try:
            await wrapper.health()
        except BaseException:
            await wrapper.aclose()
            raise
        return wrapper

    @property
    def scheduler(self) -> RequestScheduler:
        return self._scheduler

    def budget(self, kind: RequestKind = RequestKind.READ) -> RateBudget:
        return self._scheduler.budget(kind)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[List[Tuple[str, str]]] = None,
        body: Any = None,
        timeout: Optional[float] = _UNSET,
    ) -> Any:
        """Schedule a call and return the decoded ``data`` field of the reply."""

        wait = self.config.request_timeout if timeout is _UNSET else timeout
        descriptor = self._scheduler.submit(HTTPRequest(method=method.upper(), path=path, params=params, body=body))
        try:
            response = await asyncio.wait_for(descriptor.future, wait)
        except asyncio.TimeoutError as exc:
            descriptor.cancel()
            raise RequestCancelled(f"{method.upper()} {path} timed out after {wait}s") from exc
        return _unwrap(response)

    async def get(self, path: str, sort: Optional[SortOptions] = None, **kwargs: Any) -> Any:
        params = sort.to_params() if sort else None
        return await self.request("GET", path, params=params or None, **kwargs)

    async def post(self, path: str, body: Any, **kwargs: Any) -> Any:
        return await self.request("POST", path, body=body, **kwargs)

    async def patch(self, path: str, body: Any, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, body=body, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def health(self) -> None:
        """Schedule an empty request which should always succeed."""

        data = await self.get("/health")
        if data != "ok":
            raise HealthCheckError(f"{data!r} != 'ok'")

    async def ping(self) -> float:
        """Seconds taken by a health check, including any local stalling."""

        start = time.perf_counter()
        await self.health()
        return time.perf_counter() - start

    async def metrics(self) -> MetricsSnapshot:
        """Metrics from the prior minute; staff only."""

        return MetricsSnapshot.from_payload(await self.get("/metrics"))

    async def aclose(self) -> None:
        """Close any underlying resources."""

        await self._scheduler.aclose()
        await self._transport.aclose()

    async def __aenter__(self) -> "APIWrapper":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _unwrap(response: HTTPResponse) -> Any:
    try:
        payload = response.json()
    except ValueError as exc:
        raise APIError(f"Malformed response body (HTTP {response.status_code})") from exc
    if not isinstance(payload, dict) or "result" not in payload:
        return payload
    if payload.get("result") == "success":
        return payload.get("data")
    error = payload.get("error")
    if isinstance(error, dict):
        raise ClientError(response.status_code, str(error.get("message", "")), error.get("code"))
    raise ClientError(response.status_code, str(error) if error else "Unknown API error")
