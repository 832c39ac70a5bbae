"""
Pydantic schemas for the LinkedIn scrape flow.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ScrapeState(str, Enum):
    """Stages a scrape batch moves through."""
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    POLLING = "polling"
    FETCHING = "fetching"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Actor run statuses reported by the scraping service."""
    READY = "READY"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMING_OUT = "TIMING-OUT"
    TIMED_OUT = "TIMED-OUT"
    ABORTING = "ABORTING"
    ABORTED = "ABORTED"


# Statuses in which the run is still making progress
PENDING_RUN_STATUSES = {RunStatus.READY.value, RunStatus.RUNNING.value}


class ProfileInput(BaseModel):
    """
    One profile submitted for scraping.

    Phone, email and extra links stay on our side and are merged into the
    scraped result; only the URL is sent to the scraping service.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str = ""
    phone: str = ""
    email: str = ""
    extra_links: list[str] = Field(default_factory=list)

    @field_validator("url", "phone", "email", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("extra_links", mode="before")
    @classmethod
    def clean_links(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(link).strip() for link in v if link and str(link).strip()]


class ScrapeRequest(BaseModel):
    """Body of POST /api/scrape-linkedin."""

    model_config = ConfigDict(populate_by_name=True)

    profiles_data: Optional[Any] = Field(default=None, alias="profilesData")
    user_id: Optional[str] = Field(default=None, alias="userId")


class ScrapeItemResult(BaseModel):
    """Outcome for one submitted profile."""
    url: str
    status: Literal["success", "failed"]
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class ScrapeBatchResult(BaseModel):
    """Aggregate outcome of a scrape batch."""
    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    results: list[ScrapeItemResult] = Field(default_factory=list)

    def record_success(self, url: str, data: dict[str, Any]) -> None:
        self.processed += 1
        self.successful += 1
        self.results.append(ScrapeItemResult(url=url, status="success", data=data))

    def record_failure(self, url: str, error: str) -> None:
        self.processed += 1
        self.failed += 1
        self.results.append(ScrapeItemResult(url=url, status="failed", error=error))


class ScrapeResponse(BaseModel):
    """Response of POST /api/scrape-linkedin."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    batch_id: str = Field(alias="batchId")
    results: ScrapeBatchResult
    points_earned: int = Field(default=0, alias="pointsEarned")
