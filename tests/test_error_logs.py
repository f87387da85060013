import httpx
import pytest

from gateway_e2e.error_logs import clear_error_logs, fetch_error_logs, wait_for_log_entry
from gateway_e2e.retry import RetryPolicy

pytestmark = pytest.mark.asyncio

QUICK_POLL = RetryPolicy(max_attempts=3, delay=0)


def _client(handler):
    return httpx.AsyncClient(base_url="http://gateway.test", transport=httpx.MockTransport(handler))


async def test_failed_request_is_logged(api_request, gateway_state):
    await clear_error_logs(api_request)

    await api_request.get("/api/v1/does-not-exist")
    entries = await wait_for_log_entry(
        api_request, lambda e: e["path"] == "/api/v1/does-not-exist", policy=QUICK_POLL
    )

    assert len(entries) == 1
    assert entries[0]["status"] == 404


async def test_clear_empties_store(api_request, gateway_state):
    await api_request.get("/api/v1/nothing-here")
    assert await fetch_error_logs(api_request)

    await clear_error_logs(api_request)

    assert await fetch_error_logs(api_request) == []


async def test_no_match_returns_empty_list(api_request, gateway_state):
    entries = await wait_for_log_entry(api_request, lambda e: e["status"] == 418, policy=QUICK_POLL)

    assert entries == []


@pytest.mark.parametrize("response", [
    httpx.Response(503, json={"error": "starting"}),
    httpx.Response(200, json={"logs": []}),
    httpx.Response(200, text="not json"),
])
async def test_unreadable_store_is_none(response):
    async with _client(lambda request: response) as client:
        assert await fetch_error_logs(client) is None


async def test_unreachable_store_is_none():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(refuse) as client:
        assert await fetch_error_logs(client) is None


async def test_polls_until_entry_appears(monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr("gateway_e2e.error_logs.anyio.sleep", fake_sleep)
    answers = iter([
        httpx.Response(503),
        httpx.Response(200, json=[]),
        httpx.Response(200, json=[{"path": "/x", "status": 500}]),
    ])

    async with _client(lambda request: next(answers)) as client:
        entries = await wait_for_log_entry(
            client, lambda e: e["status"] == 500, policy=RetryPolicy(max_attempts=5, delay=0.5)
        )

    assert entries == [{"path": "/x", "status": 500}]
    assert sleeps == [0.5, 0.5]


async def test_clear_accepts_missing_store():
    async with _client(lambda request: httpx.Response(404)) as client:
        await clear_error_logs(client)

    async with _client(lambda request: httpx.Response(500)) as client:
        with pytest.raises(AssertionError, match="Clearing error logs failed"):
            await clear_error_logs(client)
