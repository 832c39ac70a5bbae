"""
LinkedIn scrape orchestrator.

Drives one batch through VALIDATING -> SUBMITTING -> POLLING -> FETCHING ->
PROCESSING -> DONE. Any failure of the external stage (submit, poll, fetch)
moves the batch to FAILED and marks every item failed; the caller still gets
a complete batch result. Items are processed one after another and a failing
item never stops the rest.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

import structlog

from app.core.config import settings
from app.services.dashboard_service import DashboardService, dashboard_service
from app.services.linkedin.normalizer import (
    InsufficientProfileData,
    NormalizationError,
    build_contact,
)
from app.services.linkedin.schemas import (
    ProfileInput,
    ScrapeBatchResult,
    ScrapeState,
)
from app.services.linkedin.scraper_client import LinkedInScraperClient
from app.services.linkedin.sinks import ContactPersistError, ContactSink, default_sink
from app.utils.linkedin import is_linkedin_profile_url, profile_url_key

logger = structlog.get_logger(__name__)

SERVICE_FAILED_MESSAGE = "LinkedIn scraping service failed"
ECHOED_URL_FIELDS = ("inputUrl", "url", "linkedinUrl")


class ScrapeValidationError(ValueError):
    """The batch request is unusable; nothing was sent anywhere."""


class ScraperNotConfiguredError(RuntimeError):
    """No API token is configured for the scraping service."""


@dataclass
class ScrapeOutcome:
    """What a finished batch reports back."""
    batch_id: str
    state: ScrapeState
    results: ScrapeBatchResult
    points_earned: int = 0


def validate_profiles(profiles_data: Any, user_id: Optional[str]) -> list[ProfileInput]:
    """
    Keep the descriptors that carry a LinkedIn profile URL.

    Raises:
        ScrapeValidationError: empty input, missing user id, or no usable URL
    """
    if not profiles_data or not isinstance(profiles_data, list):
        raise ScrapeValidationError("ProfilesData array is required and cannot be empty")

    if not user_id:
        raise ScrapeValidationError("User ID is required")

    profiles = [
        ProfileInput.model_validate(item)
        for item in profiles_data
        if isinstance(item, dict) and is_linkedin_profile_url(item.get("url"))
    ]

    if not profiles:
        raise ScrapeValidationError("No valid LinkedIn URLs found")

    return profiles


def _echoed_key(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    for field in ECHOED_URL_FIELDS:
        key = profile_url_key(item.get(field))
        if key:
            return key
    return None


def pair_results(
    profiles: list[ProfileInput],
    items: list[Any],
) -> list[tuple[ProfileInput, Optional[dict]]]:
    """
    Match scraped items to submitted profiles.

    Items are matched on the URL they echo back. An item that echoes no URL
    is paired with the profile at the same position.
    """
    keyed: dict[str, dict] = {}
    for item in items:
        key = _echoed_key(item)
        if key:
            keyed.setdefault(key, item)

    pairs = []
    for index, profile in enumerate(profiles):
        match = keyed.get(profile_url_key(profile.url) or "")
        if match is None and index < len(items):
            positional = items[index]
            if isinstance(positional, dict) and _echoed_key(positional) is None:
                match = positional
        pairs.append((profile, match))
    return pairs


class ScrapeOrchestrator:
    """
    Runs scrape batches against the scraping service.

    Args:
        client: Scraping service client
        sink: Where normalized contacts are saved
        ledger: Dashboard service used to credit earned points
        today: Reference date for experience calculation (tests)
    """

    def __init__(
        self,
        client: Optional[LinkedInScraperClient] = None,
        sink: Optional[ContactSink] = None,
        ledger: Optional[DashboardService] = None,
        today: Optional[date] = None,
    ):
        self.client = client or LinkedInScraperClient()
        self.sink = sink or default_sink()
        self.ledger = ledger or dashboard_service
        self.today = today
        self.state = ScrapeState.VALIDATING

    def _transition(self, state: ScrapeState, batch_id: str) -> None:
        logger.debug("Scrape batch state", batch_id=batch_id, previous=self.state.value, state=state.value)
        self.state = state

    async def run(self, profiles_data: Any, user_id: Optional[str]) -> ScrapeOutcome:
        """
        Scrape, normalize and save a batch of LinkedIn profiles for a user.

        Raises:
            ScrapeValidationError: request rejected before any outbound call
            ScraperNotConfiguredError: no scraping service token configured
        """
        batch_id = str(uuid.uuid4())
        self.state = ScrapeState.VALIDATING
        profiles = validate_profiles(profiles_data, user_id)

        if not self.client.is_configured:
            raise ScraperNotConfiguredError("LinkedIn scraping service not configured")

        results = ScrapeBatchResult(total=len(profiles))
        log = logger.bind(batch_id=batch_id, user_id=user_id)
        log.info("Starting LinkedIn scraping", profiles=len(profiles))

        try:
            self._transition(ScrapeState.SUBMITTING, batch_id)
            run = await self.client.start_run([p.url for p in profiles])

            self._transition(ScrapeState.POLLING, batch_id)
            await self.client.wait_for_run(run)

            self._transition(ScrapeState.FETCHING, batch_id)
            items = await self.client.fetch_items(run)
        except Exception as e:
            log.error("Scraping service error", state=self.state.value, error=str(e))
            self._transition(ScrapeState.FAILED, batch_id)
            for profile in profiles:
                results.record_failure(profile.url, SERVICE_FAILED_MESSAGE)
            return ScrapeOutcome(batch_id=batch_id, state=self.state, results=results)

        self._transition(ScrapeState.PROCESSING, batch_id)
        for profile, raw in pair_results(profiles, items):
            await self._process_item(profile, raw, user_id, results, log)

        points = await self._award_points(batch_id, user_id, results.successful, log)

        self._transition(ScrapeState.DONE, batch_id)
        log.info(
            "LinkedIn scraping finished",
            total=results.total,
            successful=results.successful,
            failed=results.failed,
            points_earned=points,
        )
        return ScrapeOutcome(batch_id=batch_id, state=self.state, results=results, points_earned=points)

    async def _process_item(
        self,
        profile: ProfileInput,
        raw: Optional[dict],
        user_id: str,
        results: ScrapeBatchResult,
        log,
    ) -> None:
        try:
            contact = build_contact(raw, user_id, profile, self.today)
            await self.sink.save(contact, user_id)
        except InsufficientProfileData as e:
            log.info("Profile skipped due to insufficient data", url=profile.url)
            results.record_failure(profile.url, str(e))
            return
        except (NormalizationError, ContactPersistError) as e:
            log.warning("Profile not saved", url=profile.url, error=str(e))
            results.record_failure(profile.url, str(e))
            return
        except Exception as e:
            log.error("Unexpected error processing profile", url=profile.url, error=str(e))
            results.record_failure(profile.url, str(e))
            return

        results.record_success(
            profile.url,
            {
                "name": contact.name,
                "jobTitle": contact.job_title,
                "company": contact.company,
                "phone": contact.phone,
            },
        )
        log.info("Successfully processed profile", url=profile.url, name=contact.name)

    async def _award_points(self, batch_id: str, user_id: str, successful: int, log) -> int:
        points = successful * settings.scrape_points_per_profile
        if points <= 0:
            return 0

        noun = "profile" if successful == 1 else "profiles"
        try:
            await self.ledger.credit(
                user_id,
                points,
                reason=f"Imported {successful} LinkedIn {noun}",
                reference=f"scrape:{batch_id}",
            )
        except Exception as e:
            log.error("Error updating user points", points=points, error=str(e))

        return points
