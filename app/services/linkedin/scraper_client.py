"""
Client for the Apify LinkedIn profile scraper actor.

Flow: start an actor run with the profile URLs, poll the run at a fixed
interval until it reports SUCCEEDED, then read the run's default dataset.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.services.linkedin.schemas import PENDING_RUN_STATUSES, RunStatus

logger = structlog.get_logger(__name__)


class ScraperServiceError(Exception):
    """The scraping service could not be reached or did not complete the run."""


@dataclass
class ScraperRun:
    """Handle on a started actor run."""
    run_id: str
    dataset_id: str
    status: str = RunStatus.RUNNING.value


class LinkedInScraperClient:
    """
    Thin async wrapper around the Apify REST API.

    Args:
        api_token: Apify API token
        base_url: API root, e.g. https://api.apify.com/v2
        actor_id: Actor to run
        poll_interval: Seconds between status checks
        max_attempts: Status checks before giving up
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests)
        sleep: Coroutine used to wait between polls
    """

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        actor_id: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.api_token = api_token if api_token is not None else settings.apify_api_key
        self.base_url = (base_url or settings.apify_base_url).rstrip("/")
        self.actor_id = actor_id or settings.apify_actor_id
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.scraper_poll_interval_seconds
        )
        self.max_attempts = max_attempts or settings.scraper_max_poll_attempts
        self.timeout = timeout or settings.scraper_http_timeout_seconds
        self._transport = transport
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self.api_token)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            params={"token": self.api_token},
            transport=self._transport,
        )

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        async with self._client() as client:
            return await client.request(method, path, **kwargs)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.scraper_max_retries),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        reraise=True,
    )
    async def _send_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self._send(method, path, **kwargs)

    async def _request(self, method: str, path: str, retry_transport: bool = False, **kwargs) -> Any:
        send = self._send_with_retry if retry_transport else self._send
        try:
            response = await send(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Scraping service returned an error",
                path=path,
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            raise ScraperServiceError(
                f"LinkedIn scraping service failed: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.error("Failed to reach scraping service", path=path, error=str(e))
            raise ScraperServiceError(f"Could not reach scraping service: {e}") from e
        except ValueError as e:
            raise ScraperServiceError("Scraping service returned invalid JSON") from e

    async def start_run(self, urls: list[str]) -> ScraperRun:
        """Start an actor run for the given profile URLs."""
        body = {
            "urls": [{"url": url} for url in urls],
            "findContacts.contactCompassToken": "",
        }
        payload = await self._request("POST", f"/acts/{self.actor_id}/runs", json=body)

        data = (payload or {}).get("data") or {}
        if not data.get("id"):
            raise ScraperServiceError("Scraping service did not return a run id")

        run = ScraperRun(
            run_id=data["id"],
            dataset_id=data.get("defaultDatasetId", ""),
            status=data.get("status") or RunStatus.RUNNING.value,
        )
        logger.info("Scraper run started", run_id=run.run_id, profiles=len(urls))
        return run

    async def get_run_status(self, run_id: str) -> str:
        payload = await self._request("GET", f"/acts/{self.actor_id}/runs/{run_id}")
        return ((payload or {}).get("data") or {}).get("status", "")

    async def wait_for_run(self, run: ScraperRun) -> ScraperRun:
        """
        Poll until the run leaves the pending states or attempts run out.

        Raises:
            ScraperServiceError: run ended in any status other than SUCCEEDED,
                or was still pending after max_attempts checks
        """
        status = RunStatus.RUNNING.value
        attempts = 0

        while status in PENDING_RUN_STATUSES and attempts < self.max_attempts:
            await self._sleep(self.poll_interval)
            status = await self.get_run_status(run.run_id)
            attempts += 1
            logger.debug("Scraping status", run_id=run.run_id, status=status, attempt=attempts)

        run.status = status
        if status != RunStatus.SUCCEEDED.value:
            logger.warning(
                "Scraper run did not succeed",
                run_id=run.run_id,
                status=status,
                attempts=attempts,
            )
            raise ScraperServiceError(f"Scraping failed with status: {status}")

        return run

    async def fetch_items(self, run: ScraperRun) -> list[dict]:
        """Read the scraped profiles from the run's dataset."""
        # The run has finished, so re-reading its dataset is safe
        payload = await self._request("GET", f"/datasets/{run.dataset_id}/items", retry_transport=True)
        if not isinstance(payload, list):
            raise ScraperServiceError("Unexpected dataset response from scraping service")

        logger.info("Scraped profiles received", run_id=run.run_id, count=len(payload))
        return payload

    async def scrape(self, urls: list[str]) -> list[dict]:
        """Submit, wait and fetch in one call."""
        run = await self.start_run(urls)
        await self.wait_for_run(run)
        return await self.fetch_items(run)
