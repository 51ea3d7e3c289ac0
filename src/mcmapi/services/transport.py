"""HTTP transport boundary used by the request scheduler."""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

import httpx

from ..core.config import AppConfig
from ..core.errors import TransportFailure

DEFAULT_RETRY_DELAY = 1.0


@dataclass(slots=True)
class HTTPRequest:
    """Method, path and payload of one outbound API call."""

    method: str
    path: str
    params: Optional[List[Tuple[str, str]]] = None
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class HTTPResponse:
    """Status, headers and raw body returned by the transport."""

    status_code: int
    headers: httpx.Headers
    content: bytes = b""
    received_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if not self.content:
            return None
        return json.loads(self.content)

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@dataclass(slots=True)
class RateLimitHeaders:
    """Header names carrying rate-limit metadata.

    ``reset`` is an absolute epoch timestamp in seconds. ``retry_after`` is
    a delay in milliseconds, as sent by MC-Market with 429 responses.
    """

    remaining: str = "X-RateLimit-Remaining"
    reset: str = "X-RateLimit-Reset"
    retry_after: str = "Retry-After"

    def budget(self, response: HTTPResponse) -> Optional[Tuple[int, float]]:
        """Return (remaining, reset_at) when both headers are present."""

        remaining = _parse_number(response.headers.get(self.remaining))
        reset_at = _parse_number(response.headers.get(self.reset))
        if remaining is None or reset_at is None:
            return None
        return int(remaining), reset_at

    def reset_after_limit(self, response: HTTPResponse) -> float:
        """Return when a 429 response says requests may resume."""

        retry_after = _parse_number(response.headers.get(self.retry_after))
        if retry_after is not None:
            return response.received_at + retry_after / 1000.0
        reset_at = _parse_number(response.headers.get(self.reset))
        if reset_at is not None and reset_at > response.received_at:
            return reset_at
        return response.received_at + DEFAULT_RETRY_DELAY


class Transport(Protocol):
    async def send(self, request: HTTPRequest) -> HTTPResponse:
        ...

    async def aclose(self) -> None:
        ...


class HttpxTransport:
    """Sends requests through a shared ``httpx.AsyncClient``."""

    def __init__(self, config: AppConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout)

    def _headers(self, extra: Mapping[str, str]) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        authorization = self._config.token.as_header()
        if authorization:
            headers["Authorization"] = authorization
        headers.update(extra)
        return headers

    async def send(self, request: HTTPRequest) -> HTTPResponse:
        kwargs: Dict[str, Any] = {"params": request.params, "headers": self._headers(request.headers)}
        if request.body is not None:
            kwargs["json"] = request.body
        try:
            response = await self._client.request(request.method, request.path, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportFailure(f"{request.method} {request.path} failed: {exc}") from exc
        return HTTPResponse(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def error_details(response: HTTPResponse) -> Tuple[Optional[str], str]:
    """Extract (code, message) from an error envelope, falling back to the body."""

    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return error.get("code"), str(error.get("message", ""))
    text = response.text().strip()
    return None, text or f"HTTP {response.status_code}"


def _parse_number(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None
