"""Utility functions and helpers"""

from app.utils.linkedin import extract_linkedin_id, is_linkedin_profile_url, profile_url_key

__all__ = [
    "extract_linkedin_id",
    "is_linkedin_profile_url",
    "profile_url_key",
]
