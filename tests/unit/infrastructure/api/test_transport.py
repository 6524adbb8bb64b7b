from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from pdcli.domain.models.common import Credential
from pdcli.domain.models.outcome import Classification
from pdcli.domain.models.request import RequestDescriptor
from pdcli.infrastructure.api.transport import (
    ACCEPT_HEADER, HttpTransport, auth_header, create_client, parse_retry_after,
)


def make_transport(handler) -> HttpTransport:
    return HttpTransport(create_client("https://api.example.test", 5.0, httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_success_decodes_json_and_sends_headers(credential):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"user": {"id": "PABC123", "name": "Ann"}})

    transport = make_transport(handler)
    descriptor = RequestDescriptor.put("/users/PABC123", {"user": {"name": "Ann"}})
    raw = await transport.execute(descriptor, credential)
    await transport.client.aclose()

    assert raw.classification is Classification.SUCCESS
    assert raw.status_code == 200
    assert raw.payload == {"user": {"id": "PABC123", "name": "Ann"}}
    request = seen["request"]
    assert request.method == "PUT"
    assert request.url.path == "/users/PABC123"
    assert request.headers["Accept"] == ACCEPT_HEADER
    assert request.headers["Authorization"] == f"Bearer {credential}"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_query_params_are_sent(credential):
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(204)

    transport = make_transport(handler)
    raw = await transport.execute(RequestDescriptor.get("/users", {"query": "ann@example.com"}), credential)

    assert raw.classification is Classification.SUCCESS
    assert raw.payload is None
    assert seen["params"] == {"query": "ann@example.com"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status, expected", [
    (400, Classification.CLIENT_ERROR),
    (401, Classification.CLIENT_ERROR),
    (403, Classification.CLIENT_ERROR),
    (404, Classification.CLIENT_ERROR),
    (429, Classification.RATE_LIMITED),
    (500, Classification.SERVER_ERROR),
    (503, Classification.SERVER_ERROR),
])
async def test_status_classification(credential, status, expected):
    transport = make_transport(lambda request: httpx.Response(status))
    raw = await transport.execute(RequestDescriptor.get("/users"), credential)
    assert raw.classification is expected
    assert raw.status_code == status


@pytest.mark.asyncio
async def test_error_envelope_is_included_in_message(credential):
    body = {"error": {"message": "Invalid Input Provided", "code": 2001, "errors": ["Time zone is invalid"]}}
    transport = make_transport(lambda request: httpx.Response(400, json=body))
    raw = await transport.execute(RequestDescriptor.put("/users/PABC123", {}), credential)

    assert raw.message == "Bad Request: Invalid Input Provided (Time zone is invalid)"


@pytest.mark.asyncio
async def test_rate_limit_carries_retry_hint(credential):
    transport = make_transport(lambda request: httpx.Response(429, headers={"Retry-After": "12"}))
    raw = await transport.execute(RequestDescriptor.get("/users"), credential)

    assert raw.classification is Classification.RATE_LIMITED
    assert raw.retry_after == 12.0
    assert "Too Many Requests" in raw.message


@pytest.mark.asyncio
async def test_timeout_is_a_network_error(credential):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    raw = await make_transport(handler).execute(RequestDescriptor.get("/users"), credential)
    assert raw.classification is Classification.NETWORK_ERROR
    assert raw.status_code is None
    assert "timed out" in raw.message


@pytest.mark.asyncio
async def test_connection_failure_is_a_network_error(credential):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    raw = await make_transport(handler).execute(RequestDescriptor.get("/users"), credential)
    assert raw.classification is Classification.NETWORK_ERROR
    assert "ConnectError" in raw.message


def test_legacy_api_keys_use_token_scheme():
    assert auth_header(Credential("y_NbAkKc66ryYTWUXYEu")) == "Token token=y_NbAkKc66ryYTWUXYEu"
    assert auth_header(Credential("pdus+_0XBPWQQ_long_oauth_token")).startswith("Bearer ")


def test_retry_after_http_date():
    now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    headers = httpx.Headers({"Retry-After": format_datetime(now + timedelta(seconds=30), usegmt=True)})
    assert parse_retry_after(headers, now=now) == pytest.approx(30.0)


def test_retry_after_falls_back_to_ratelimit_reset():
    assert parse_retry_after(httpx.Headers({"ratelimit-reset": "4"})) == 4.0


def test_retry_after_missing_or_garbage():
    assert parse_retry_after(httpx.Headers({})) is None
    assert parse_retry_after(httpx.Headers({"Retry-After": "soon"})) is None


@pytest.mark.parametrize("value", ["inf", "nan", "-inf", "1e9", "-5", "+3", "0x10"])
def test_retry_after_rejects_non_delta_seconds(value):
    assert parse_retry_after(httpx.Headers({"Retry-After": value})) is None


def test_retry_after_accepts_fractional_seconds():
    assert parse_retry_after(httpx.Headers({"Retry-After": "0.25"})) == 0.25
