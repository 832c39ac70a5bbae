"""LinkedIn profile ingestion: scraping client, normalization and batch orchestration."""

from app.services.linkedin.normalizer import (
    InsufficientProfileData,
    NormalizationError,
    build_contact,
    normalize_profile,
)
from app.services.linkedin.orchestrator import (
    ScrapeOrchestrator,
    ScrapeOutcome,
    ScraperNotConfiguredError,
    ScrapeValidationError,
)
from app.services.linkedin.schemas import ScrapeBatchResult, ScrapeRequest, ScrapeResponse, ScrapeState
from app.services.linkedin.scraper_client import LinkedInScraperClient, ScraperServiceError

__all__ = [
    "InsufficientProfileData",
    "NormalizationError",
    "build_contact",
    "normalize_profile",
    "ScrapeOrchestrator",
    "ScrapeOutcome",
    "ScraperNotConfiguredError",
    "ScrapeValidationError",
    "ScrapeBatchResult",
    "ScrapeRequest",
    "ScrapeResponse",
    "ScrapeState",
    "LinkedInScraperClient",
    "ScraperServiceError",
]
