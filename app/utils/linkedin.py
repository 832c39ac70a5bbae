"""
LinkedIn URL helpers.
"""

import re
from typing import Any, Optional

# Slug after linkedin.com/in/, terminated by "/", "?" or end of string
LINKEDIN_ID_PATTERN = re.compile(r"linkedin\.com/in/([\w\-%.0-9]+)(?:[/?]|$)", re.IGNORECASE)

PROFILE_PATH_MARKERS = ("linkedin.com/in/", "linkedin.com/pub/")


def extract_linkedin_id(url: Any) -> Optional[str]:
    """
    Derive the canonical lowercase identifier from a LinkedIn profile URL.

    Returns None for empty, non-string or non-profile input; never raises.

    >>> extract_linkedin_id("https://www.linkedin.com/in/Jane-Doe/?trk=x")
    'jane-doe'
    """
    if not url or not isinstance(url, str):
        return None

    match = LINKEDIN_ID_PATTERN.search(url)
    return match.group(1).lower() if match else None


def is_linkedin_profile_url(url: Any) -> bool:
    """True when the URL points at a /in/ or /pub/ LinkedIn profile."""
    if not url or not isinstance(url, str):
        return False
    lowered = url.lower()
    return any(marker in lowered for marker in PROFILE_PATH_MARKERS)


def profile_url_key(url: Any) -> Optional[str]:
    """
    Key used to pair scraped results with submitted URLs.

    Prefers the LinkedIn identifier; otherwise a lowercased URL without
    scheme, query string or trailing slash.
    """
    linkedin_id = extract_linkedin_id(url)
    if linkedin_id:
        return linkedin_id
    if not url or not isinstance(url, str):
        return None

    key = url.strip().lower().split("?", 1)[0].split("#", 1)[0]
    key = re.sub(r"^https?://(www\.)?", "", key)
    return key.rstrip("/") or None
