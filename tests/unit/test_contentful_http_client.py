"""
Tests unitarios para el cliente HTTP de Contentful (reintentos ante 429).
"""
from __future__ import annotations

import httpx
import pytest

from content_sync.infrastructure.contentful.http_client import RATE_LIMIT_HEADER, ContentfulHttpClient
from content_sync.shared.exceptions import ContentfulApiError, RateLimitExceededError


class _Recorder:
    """Transporte simulado: responde en orden y registra las peticiones."""

    def __init__(self, responses: list[httpx.Response]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        template = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        return httpx.Response(template.status_code, headers=template.headers, content=template.content)


def _client(recorder: _Recorder, sleeps: list[float], **kwargs) -> ContentfulHttpClient:
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return ContentfulHttpClient(
        base_url="https://api.test",
        token="secret-token",
        client=httpx.AsyncClient(transport=httpx.MockTransport(recorder), base_url="https://api.test"),
        sleep=fake_sleep,
        jitter=lambda: 0.0,
        **kwargs,
    )


def _rate_limited(remaining: str = "2") -> httpx.Response:
    return httpx.Response(429, headers={RATE_LIMIT_HEADER: remaining})


@pytest.mark.asyncio
async def test_retries_after_rate_limit_then_succeeds():
    recorder = _Recorder([_rate_limited(), _rate_limited(), httpx.Response(200, json={"ok": True})])
    sleeps: list[float] = []
    client = _client(recorder, sleeps, max_retries=5, additional_delay_s=1.0)

    data = await client.get_json("/spaces/s1/entries/e1")

    assert data == {"ok": True}
    assert len(recorder.requests) == 3
    assert sleeps == [3.0, 3.0]


@pytest.mark.asyncio
async def test_rate_limit_budget_exhausted():
    recorder = _Recorder([_rate_limited("1")])
    sleeps: list[float] = []
    client = _client(recorder, sleeps, max_retries=3)

    with pytest.raises(RateLimitExceededError) as exc_info:
        await client.get_json("/spaces/s1/entries")

    assert len(recorder.requests) == 4
    assert len(sleeps) == 3
    assert exc_info.value.retries == 3
    assert exc_info.value.upstream_status == 429


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    recorder = _Recorder([httpx.Response(404, json={"sys": {"id": "NotFound"}})])
    sleeps: list[float] = []
    client = _client(recorder, sleeps)

    with pytest.raises(ContentfulApiError) as exc_info:
        await client.get_json("/spaces/s1/entries/missing")

    assert exc_info.value.upstream_status == 404
    assert len(recorder.requests) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_server_errors_are_not_retried():
    recorder = _Recorder([httpx.Response(503)])
    sleeps: list[float] = []
    client = _client(recorder, sleeps)

    with pytest.raises(ContentfulApiError):
        await client.get_json("/spaces/s1/entries")

    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_bearer_token_and_extra_headers_are_sent():
    recorder = _Recorder([httpx.Response(200, json={})])
    client = _client(recorder, [])

    await client.request("GET", "/entries/e1", headers={"X-Contentful-Request-Id": "7"})

    request = recorder.requests[0]
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["X-Contentful-Request-Id"] == "7"


def test_retry_delay_without_header_uses_bounded_exponential():
    client = _client(_Recorder([httpx.Response(200)]), [], min_backoff_s=1.0, max_backoff_s=5.0)
    response = httpx.Response(429)

    assert client.retry_delay(response, 0) == 1.0
    assert client.retry_delay(response, 2) == 4.0
    assert client.retry_delay(response, 6) == 5.0


@pytest.mark.asyncio
async def test_zero_remaining_hint_still_backs_off():
    recorder = _Recorder([_rate_limited("0")])
    sleeps: list[float] = []
    client = _client(recorder, sleeps, max_retries=4, min_backoff_s=1.0, max_backoff_s=60.0)

    with pytest.raises(RateLimitExceededError):
        await client.get_json("/spaces/s1/entries")

    assert sleeps == [1.0, 2.0, 4.0, 8.0]
    assert len(recorder.requests) == 5


def test_retry_delay_keeps_larger_server_hint():
    client = _client(_Recorder([httpx.Response(200)]), [], min_backoff_s=1.0, max_backoff_s=5.0)

    assert client.retry_delay(_rate_limited("3"), 0) == 3.0
    assert client.retry_delay(_rate_limited("3"), 3) == 5.0
    assert client.retry_delay(_rate_limited("no-es-numero"), 1) == 2.0


def test_retry_delay_adds_jitter_up_to_ten_percent():
    client = ContentfulHttpClient(
        base_url="https://api.test",
        token="t",
        client=httpx.AsyncClient(base_url="https://api.test"),
        jitter=lambda: 1.0,
    )

    assert client.retry_delay(_rate_limited("10"), 0) == pytest.approx(11.0)


@pytest.mark.asyncio
async def test_iter_collection_pages_with_limit_and_skip():
    recorder = _Recorder(
        [
            httpx.Response(200, json={"items": [{"n": 1}, {"n": 2}], "total": 3}),
            httpx.Response(200, json={"items": [{"n": 3}], "total": 3}),
        ]
    )
    client = _client(recorder, [])

    items = [item async for item in client.iter_collection("/entries", params={"locale": "*"}, page_size=2)]

    assert [i["n"] for i in items] == [1, 2, 3]
    assert [r.url.params["skip"] for r in recorder.requests] == ["0", "2"]
    assert all(r.url.params["limit"] == "2" for r in recorder.requests)
    assert recorder.requests[0].url.params["locale"] == "*"


@pytest.mark.asyncio
async def test_iter_collection_stops_on_empty_page():
    recorder = _Recorder([httpx.Response(200, json={"items": [], "total": 10})])
    client = _client(recorder, [])

    items = [item async for item in client.iter_collection("/entries")]

    assert items == []
    assert len(recorder.requests) == 1
