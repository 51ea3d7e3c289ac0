import asyncio
import json

import httpx
import pytest

from mcmapi.core.config import APIToken, AppConfig
from mcmapi.core.errors import TransportFailure
from mcmapi.services.transport import (
    DEFAULT_RETRY_DELAY,
    HttpxTransport,
    HTTPRequest,
    HTTPResponse,
    RateLimitHeaders,
    error_details,
)


def _transport(handler, token: APIToken = APIToken()) -> HttpxTransport:
    config = AppConfig(token=token)
    client = httpx.AsyncClient(base_url=config.base_url, transport=httpx.MockTransport(handler))
    return HttpxTransport(config, client)


def test_send_attaches_private_token_and_json_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["authorization"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": "success", "data": 5}, headers={"X-RateLimit-Remaining": "4"})

    async def scenario():
        transport = _transport(handler, APIToken.private("secret"))
        try:
            return await transport.send(HTTPRequest("POST", "/threads/1/replies", body={"message": "hi"}))
        finally:
            await transport.aclose()

    response = asyncio.run(scenario())

    assert seen["url"] == "https://api.mc-market.org/v1/threads/1/replies"
    assert seen["authorization"] == "Private secret"
    assert seen["body"] == {"message": "hi"}
    assert response.status_code == 200
    assert response.headers["x-ratelimit-remaining"] == "4"
    assert response.json()["data"] == 5


def test_public_token_sends_no_authorization_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["authorization"] = request.headers.get("Authorization")
        seen["query"] = request.url.params.multi_items()
        return httpx.Response(200, json={"result": "success", "data": []})

    async def scenario():
        transport = _transport(handler)
        try:
            await transport.send(HTTPRequest("GET", "/threads", params=[("page", "2")]))
        finally:
            await transport.aclose()

    asyncio.run(scenario())

    assert seen["authorization"] is None
    assert seen["query"] == [("page", "2")]


def test_status_errors_are_returned_not_raised():
    async def scenario():
        transport = _transport(lambda request: httpx.Response(503, text="maintenance"))
        try:
            return await transport.send(HTTPRequest("GET", "/health"))
        finally:
            await transport.aclose()

    response = asyncio.run(scenario())

    assert response.status_code == 503
    assert error_details(response) == (None, "maintenance")


def test_connection_errors_become_transport_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def scenario():
        transport = _transport(handler)
        try:
            await transport.send(HTTPRequest("GET", "/health"))
        finally:
            await transport.aclose()

    with pytest.raises(TransportFailure, match="GET /health failed"):
        asyncio.run(scenario())


def test_budget_headers_require_both_fields():
    headers = RateLimitHeaders()

    complete = HTTPResponse(200, {"X-RateLimit-Remaining": "7", "X-RateLimit-Reset": "1700000000.5"})
    partial = HTTPResponse(200, {"X-RateLimit-Remaining": "7"})
    garbled = HTTPResponse(200, {"X-RateLimit-Remaining": "many", "X-RateLimit-Reset": "1700000000"})

    assert headers.budget(complete) == (7, 1700000000.5)
    assert headers.budget(partial) is None
    assert headers.budget(garbled) is None


def test_reset_after_limit_prefers_retry_after_milliseconds():
    headers = RateLimitHeaders()

    retry = HTTPResponse(429, {"Retry-After": "1500"}, received_at=100.0)
    reset = HTTPResponse(429, {"X-RateLimit-Reset": "130"}, received_at=100.0)
    bare = HTTPResponse(429, {}, received_at=100.0)

    assert headers.reset_after_limit(retry) == pytest.approx(101.5)
    assert headers.reset_after_limit(reset) == 130.0
    assert headers.reset_after_limit(bare) == 100.0 + DEFAULT_RETRY_DELAY


def test_custom_header_names():
    headers = RateLimitHeaders(remaining="RateLimit-Remaining", reset="RateLimit-Reset")
    response = HTTPResponse(200, {"RateLimit-Remaining": "1", "RateLimit-Reset": "42"})

    assert headers.budget(response) == (1, 42.0)


def test_error_details_reads_envelope():
    body = json.dumps({"result": "error", "error": {"code": "ForbiddenError", "message": "no access"}}).encode()
    response = HTTPResponse(403, {}, body)

    assert error_details(response) == ("ForbiddenError", "no access")


@pytest.mark.parametrize("value", ["nan", "inf", "-inf"])
def test_non_finite_header_values_are_ignored(value):
    headers = RateLimitHeaders()
    limits = {"X-RateLimit-Remaining": value, "X-RateLimit-Reset": value, "Retry-After": value}
    response = HTTPResponse(429, limits, received_at=100.0)

    assert headers.budget(response) is None
    assert headers.reset_after_limit(response) == 100.0 + DEFAULT_RETRY_DELAY
