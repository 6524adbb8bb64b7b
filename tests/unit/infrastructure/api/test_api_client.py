import httpx
import pytest

from pdcli.domain.errors import ApiRequestError
from pdcli.infrastructure.api.client import PAGE_LIMIT, PagerDutyClient
from pdcli.infrastructure.resilience.retry_policy import RetryPolicy


def make_client(handler) -> PagerDutyClient:
    return PagerDutyClient(
        base_url="https://api.example.test",
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0.01, jitter=0.0),
        http_transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_fetch_all_follows_pagination(credential):
    seen_offsets = []

    def handler(request):
        offset = int(request.url.params["offset"])
        seen_offsets.append(offset)
        assert request.url.params["limit"] == str(PAGE_LIMIT)
        assert request.url.params["query"] == "pay"
        if offset == 0:
            return httpx.Response(200, json={"services": [{"id": "PSVC001"}, {"id": "PSVC002"}], "more": True})
        return httpx.Response(200, json={"services": [{"id": "PSVC003"}], "more": False})

    items = await make_client(handler).fetch_all("services", credential, {"query": "pay"})

    assert [i["id"] for i in items] == ["PSVC001", "PSVC002", "PSVC003"]
    assert seen_offsets == [0, 2]


@pytest.mark.asyncio
async def test_fetch_all_retries_transient_errors(credential):
    responses = [httpx.Response(503), httpx.Response(200, json={"users": [{"id": "PAAAAAA"}], "more": False})]

    items = await make_client(lambda request: responses.pop(0)).fetch_all("users", credential)

    assert items == [{"id": "PAAAAAA"}]


@pytest.mark.asyncio
async def test_fetch_all_raises_on_client_error(credential):
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Unauthorized"}})

    with pytest.raises(ApiRequestError) as exc_info:
        await make_client(handler).fetch_all("users", credential)

    assert exc_info.value.status_code == 401
    assert exc_info.value.endpoint == "/users"
    assert "Unauthorized" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_all_rejects_unexpected_bodies(credential):
    with pytest.raises(ApiRequestError, match="Unexpected response body"):
        await make_client(lambda request: httpx.Response(200, json=["not", "a", "page"])).fetch_all("users", credential)
