"""
LinkedIn scraping route.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_optional_user_id, server_error
from app.services.linkedin import (
    ScrapeOrchestrator,
    ScrapeRequest,
    ScrapeResponse,
    ScrapeValidationError,
    ScraperNotConfiguredError,
)
from app.services.linkedin.orchestrator import validate_profiles
from app.services.user_service import user_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["scraper"])


def get_orchestrator() -> ScrapeOrchestrator:
    return ScrapeOrchestrator()


@router.post("/scrape-linkedin")
async def scrape_linkedin(
    request: ScrapeRequest,
    auth_user_id: Optional[str] = Depends(get_optional_user_id),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> dict:
    """
    Scrape a batch of LinkedIn profiles and save them as contacts.

    The owning user comes from the body and falls back to the bearer token.
    An authenticated caller may only import into their own account, and the
    owning user must exist. Per-profile failures are reported in the results,
    not as an HTTP error.
    """
    if auth_user_id and request.user_id and request.user_id != auth_user_id:
        logger.warning("Scrape for another user rejected", user_id=auth_user_id, target=request.user_id)
        raise HTTPException(status_code=403, detail="Access denied")

    user_id = request.user_id or auth_user_id

    try:
        validate_profiles(request.profiles_data, user_id)
        if not await user_service.get_user(user_id):
            raise HTTPException(status_code=404, detail="User not found")

        outcome = await orchestrator.run(request.profiles_data, user_id)
    except HTTPException:
        raise
    except ScrapeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ScraperNotConfiguredError as e:
        logger.error("Scraper not configured")
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error("LinkedIn scraping error", error=str(e), user_id=user_id)
        raise server_error(e)

    response = ScrapeResponse(
        batch_id=outcome.batch_id,
        results=outcome.results,
        points_earned=outcome.points_earned,
    )
    return response.model_dump(by_alias=True)
