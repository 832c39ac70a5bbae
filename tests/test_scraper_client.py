"""
Scraping service client tests (HTTP mocked with httpx.MockTransport).
"""

import json

import httpx
import pytest

from app.services.linkedin.scraper_client import (
    LinkedInScraperClient,
    ScraperRun,
    ScraperServiceError,
)


async def _no_sleep(seconds: float) -> None:
    return None


def _client(handler, **kwargs) -> LinkedInScraperClient:
    return LinkedInScraperClient(
        api_token="token-123",
        base_url="https://apify.test/v2",
        actor_id="actor~scraper",
        poll_interval=0,
        transport=httpx.MockTransport(handler),
        sleep=_no_sleep,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_scrape_happy_path():
    calls = []
    statuses = iter(["RUNNING", "RUNNING", "SUCCEEDED"])

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        assert request.url.params["token"] == "token-123"

        if request.method == "POST":
            body = json.loads(request.content)
            assert body["urls"] == [{"url": "https://linkedin.com/in/a"}]
            return httpx.Response(
                201, json={"data": {"id": "run-1", "defaultDatasetId": "ds-1", "status": "READY"}}
            )
        if request.url.path.endswith("/runs/run-1"):
            return httpx.Response(200, json={"data": {"status": next(statuses)}})
        return httpx.Response(200, json=[{"firstName": "A"}])

    items = await _client(handler).scrape(["https://linkedin.com/in/a"])

    assert items == [{"firstName": "A"}]
    assert calls[0] == ("POST", "/v2/acts/actor~scraper/runs")
    assert calls.count(("GET", "/v2/acts/actor~scraper/runs/run-1")) == 3
    assert calls[-1] == ("GET", "/v2/datasets/ds-1/items")


@pytest.mark.asyncio
async def test_wait_gives_up_after_max_attempts():
    polls = []

    def handler(request: httpx.Request) -> httpx.Response:
        polls.append(request.url.path)
        return httpx.Response(200, json={"data": {"status": "RUNNING"}})

    client = _client(handler, max_attempts=4)

    with pytest.raises(ScraperServiceError, match="RUNNING"):
        await client.wait_for_run(ScraperRun(run_id="run-1", dataset_id="ds-1"))

    assert len(polls) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["FAILED", "ABORTED", "TIMED-OUT"])
async def test_wait_fails_on_terminal_status(status):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"status": status}})

    with pytest.raises(ScraperServiceError):
        await _client(handler).wait_for_run(ScraperRun(run_id="run-1", dataset_id="ds-1"))


@pytest.mark.asyncio
async def test_http_error_becomes_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"type": "user-or-token-not-found"}})

    with pytest.raises(ScraperServiceError, match="401"):
        await _client(handler).start_run(["https://linkedin.com/in/a"])


@pytest.mark.asyncio
async def test_dataset_must_be_a_list():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"items": []})

    with pytest.raises(ScraperServiceError):
        await _client(handler).fetch_items(ScraperRun(run_id="run-1", dataset_id="ds-1"))


def test_is_configured():
    assert LinkedInScraperClient(api_token="x").is_configured
    assert not LinkedInScraperClient(api_token="").is_configured


@pytest.mark.asyncio
async def test_dataset_read_retried_on_connection_error():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.url.path)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200, json=[{"firstName": "A"}])

    items = await _client(handler).fetch_items(ScraperRun(run_id="run-1", dataset_id="ds-1"))

    assert items == [{"firstName": "A"}]
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_status_poll_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.method)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ScraperServiceError, match="Could not reach"):
        await _client(handler).get_run_status("run-1")

    assert attempts == ["GET"]


@pytest.mark.asyncio
async def test_start_run_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.method)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ScraperServiceError, match="Could not reach"):
        await _client(handler).start_run(["https://linkedin.com/in/a"])

    assert attempts == ["POST"]
