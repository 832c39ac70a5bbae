"""
Maps a scraped LinkedIn profile payload onto a ContactData record.

The payload is loosely structured: any field may be missing, some come under
alternate names, and list entries may be plain strings or objects. Values the
user supplied with the submission (phone, email, extra links, URL) win over
whatever the payload carries.
"""

from datetime import date
from typing import Any, Iterable, Optional

from app.models.contact import SeniorityLevel
from app.services.contact_service import ContactData, clean_skills
from app.services.linkedin.schemas import ProfileInput

DEFAULT_AVATAR_URL = (
    "https://images.pexels.com/photos/771742/pexels-photo-771742.jpeg"
    "?auto=compress&cs=tinysrgb&w=150&h=150&fit=crop"
)
DEFAULT_INDUSTRY = "Other"

MAX_CERTIFICATIONS = 10
POSITION_SEPARATOR = "\n\n---\n\n"
EDUCATION_SEPARATOR = "; "

# Checked in order; the first rule with a matching keyword wins
SENIORITY_KEYWORDS: list[tuple[SeniorityLevel, tuple[str, ...]]] = [
    (SeniorityLevel.C_LEVEL, ("ceo", "cto", "cfo", "chief")),
    (SeniorityLevel.VP, ("vp", "vice president")),
    (SeniorityLevel.DIRECTOR, ("director", "manager")),
    (SeniorityLevel.SENIOR, ("senior", "lead", "principal")),
]
ENTRY_LEVEL_MAX_YEARS = 2


class NormalizationError(Exception):
    """The payload could not be turned into a contact."""


class InsufficientProfileData(NormalizationError):
    """The normalized contact lacks a name or any professional detail."""

    def __init__(self, message: str = (
        "Insufficient profile data - profile must have a name and either "
        "experience, company, or job title"
    )):
        super().__init__(message)


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _positions(raw: dict) -> list[dict]:
    return [p for p in _list(raw.get("positions")) if isinstance(p, dict)]


def _format_month_year(point: dict) -> str:
    year = _text(point.get("year"))
    month = _text(point.get("month"))
    if month and year:
        return f"{month.rjust(2, '0')}/{year}"
    return year


def format_position(position: dict) -> str:
    """Render one position as "<title> at <company> (<start> - <end>) - <location>"."""
    title = _text(position.get("title"))
    company = _text(position.get("companyName")) or _text(_dict(position.get("company")).get("name"))
    description = _text(position.get("description"))
    location = _text(position.get("locationName"))

    date_range = ""
    period = _dict(position.get("timePeriod"))
    start = _dict(period.get("startDate"))
    if start:
        end = _dict(period.get("endDate"))
        end_str = _format_month_year(end) if end else "Present"
        date_range = f" ({_format_month_year(start)} - {end_str})"

    text = f"{title} at {company}{date_range}"
    if location:
        text += f" - {location}"
    if description:
        text += f"\n{description}"
    return text


def format_work_experience(raw: dict) -> str:
    return POSITION_SEPARATOR.join(format_position(p) for p in _positions(raw))


def _entry_names(entries: Iterable[Any]) -> list[str]:
    names = []
    for entry in entries:
        if isinstance(entry, str):
            name = entry
        elif isinstance(entry, dict):
            name = entry.get("name") or entry.get("title") or ""
        else:
            continue
        name = _text(name)
        if name:
            names.append(name)
    return names


def extract_skills(raw: dict) -> list[str]:
    """Skills, then course names, then up to 10 certifications; deduplicated and capped."""
    skills = _entry_names(_list(raw.get("skills")))
    skills += _entry_names(_list(raw.get("courses")))
    skills += _entry_names(_list(raw.get("certifications")))[:MAX_CERTIFICATIONS]
    return clean_skills(skills)


def format_education_entry(entry: dict) -> str:
    degree = _text(entry.get("degreeName"))
    field = _text(entry.get("fieldOfStudy"))
    school = _text(entry.get("schoolName"))

    if degree and field:
        text = f"{degree} in {field}"
    else:
        text = degree or field

    if school:
        text = f"{text} at {school}" if text else school

    period = _dict(entry.get("timePeriod"))
    start = _text(_dict(period.get("startDate")).get("year"))
    end = _text(_dict(period.get("endDate")).get("year"))
    if start and end:
        text += f" ({start}-{end})"
    elif start or end:
        text += f" ({start or end})"

    return text.strip()


def format_education(raw: dict) -> str:
    entries = [e for e in _list(raw.get("educations")) if isinstance(e, dict)]
    rendered = (format_education_entry(e) for e in entries)
    return EDUCATION_SEPARATOR.join(text for text in rendered if text)


def derive_industry(raw: dict) -> str:
    industry = _text(raw.get("industryName"))
    if industry and industry != DEFAULT_INDUSTRY:
        return industry

    positions = _positions(raw)
    if positions:
        industries = _list(_dict(positions[0].get("company")).get("industries"))
        if industries and _text(industries[0]):
            return _text(industries[0])

    return industry or DEFAULT_INDUSTRY


def experience_years(raw: dict, today: Optional[date] = None) -> int:
    """Years since the earliest position start, floored at 0."""
    start_years = []
    for position in _positions(raw):
        year = _dict(_dict(position.get("timePeriod")).get("startDate")).get("year")
        try:
            if year:
                start_years.append(int(year))
        except (TypeError, ValueError):
            continue

    if not start_years:
        return 0

    current_year = (today or date.today()).year
    return max(0, current_year - min(start_years))


def effective_job_title(raw: dict) -> str:
    positions = _positions(raw)
    first_title = positions[0].get("title") if positions else None
    return _text(raw.get("jobTitle")) or _text(raw.get("occupation")) or _text(first_title)


def classify_seniority(job_title: str, years: int) -> SeniorityLevel:
    title = (job_title or "").lower()
    for level, keywords in SENIORITY_KEYWORDS:
        if any(keyword in title for keyword in keywords):
            return level
    if "junior" in title or years < ENTRY_LEVEL_MAX_YEARS:
        return SeniorityLevel.ENTRY_LEVEL
    return SeniorityLevel.MID_LEVEL


def derive_company_size(raw: dict) -> str:
    positions = _positions(raw)
    if not positions:
        return ""
    size_range = _dict(_dict(positions[0].get("company")).get("employeeCountRange"))
    start, end = size_range.get("start"), size_range.get("end")
    if start in (None, "") or end in (None, ""):
        return ""
    return f"{start}-{end} employees"


def derive_location(raw: dict) -> str:
    positions = _positions(raw)
    first_location = positions[0].get("locationName") if positions else None
    return (
        _text(raw.get("geoLocationName"))
        or _text(raw.get("geoCountryName"))
        or _text(first_location)
    )


def derive_name(raw: dict) -> str:
    name = f"{_text(raw.get('firstName'))} {_text(raw.get('lastName'))}".strip()
    return name or _text(raw.get("fullName"))


def has_minimum_data(contact: ContactData) -> bool:
    """A contact needs a name plus experience, a company or a job title."""
    return bool(contact.name) and (
        contact.experience > 0 or bool(contact.company) or bool(contact.job_title)
    )


def normalize_profile(
    raw: Optional[dict],
    user_id: str,
    profile_input: ProfileInput,
    today: Optional[date] = None,
) -> ContactData:
    """
    Map a raw scraped profile plus the user's overrides to a ContactData.

    Raises:
        NormalizationError: no payload was received
    """
    if not raw or not isinstance(raw, dict):
        raise NormalizationError("No profile data received")

    positions = _positions(raw)
    years = experience_years(raw, today)
    job_title = effective_job_title(raw)
    first_company = positions[0].get("companyName") if positions else None

    return ContactData(
        name=derive_name(raw),
        job_title=job_title,
        company=_text(raw.get("companyName")) or _text(first_company),
        location=derive_location(raw),
        industry=derive_industry(raw),
        experience=years,
        seniority_level=classify_seniority(job_title, years).value,
        skills=extract_skills(raw),
        education=format_education(raw),
        work_experience=format_work_experience(raw),
        email=profile_input.email or _text(raw.get("email")),
        phone=profile_input.phone or _text(raw.get("phone")),
        avatar=_text(raw.get("pictureUrl")) or _text(raw.get("profilePicture")) or DEFAULT_AVATAR_URL,
        uploaded_by=user_id,
        company_size=derive_company_size(raw),
        linkedin_url=(
            _text(raw.get("inputUrl"))
            or _text(raw.get("url"))
            or _text(raw.get("linkedinUrl"))
            or profile_input.url
        ),
        extra_links=list(profile_input.extra_links),
    )


def build_contact(
    raw: Optional[dict],
    user_id: str,
    profile_input: ProfileInput,
    today: Optional[date] = None,
) -> ContactData:
    """
    Normalize and enforce the minimum-data rule.

    Raises:
        NormalizationError: no payload
        InsufficientProfileData: contact would be too thin to be useful
    """
    contact = normalize_profile(raw, user_id, profile_input, today)
    if not has_minimum_data(contact):
        raise InsufficientProfileData()
    return contact
