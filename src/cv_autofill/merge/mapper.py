"""Maps CV extraction output into profile shape and validates the result."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from cv_autofill.core.models import (
    AddressFragment,
    ExtractedProfileData,
    PersonalInfoFragment,
    ProfileFragment,
    WorkExperience,
    WorkInfoFragment,
    utc_now,
)
from cv_autofill.core.validation import (
    clean_text,
    is_valid_email,
    is_valid_phone,
    is_valid_url,
    normalize_phone,
)

MAX_MAPPED_SKILLS = 20

_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m", "%Y/%m", "%m/%Y", "%b %Y", "%B %Y", "%Y")
_PRESENT_WORDS = {"present", "current", "now", "today"}


@dataclass
class ValidationReport:
    """Errors block use of the data; warnings are informational."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def parse_cv_date(value: Optional[str], now: datetime) -> Optional[datetime]:
    """Parse the loose date formats CVs use; "Present" resolves to ``now``."""
    if not value:
        return None
    text = value.strip()
    if text.lower() in _PRESENT_WORDS:
        return now
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def total_experience_years(jobs: List[WorkExperience], now: Optional[datetime] = None) -> float:
    """Sum of whole months per job, in years rounded to one decimal."""
    now = now or utc_now()
    total_months = 0
    for job in jobs:
        start = parse_cv_date(job.start_date, now)
        if start is None:
            continue
        end = now if job.current else (parse_cv_date(job.end_date, now) or now)
        months = (end.year - start.year) * 12 + (end.month - start.month)
        total_months += max(0, months)
    return round(total_months / 12, 1)


def experience_summary(jobs: List[WorkExperience], now: Optional[datetime] = None) -> str:
    """E.g. "4.5 years of experience at companies including Acme, Globex"."""
    if not jobs:
        return ""
    years = total_experience_years(jobs, now)
    summary = f"{years:g} years of experience"

    companies: List[str] = []
    for job in jobs:
        if job.company and job.company not in companies:
            companies.append(job.company)
    if companies:
        summary += f" at companies including {', '.join(companies[:3])}"
    return summary


def map_extracted_to_profile(data: ExtractedProfileData, now: Optional[datetime] = None) -> ProfileFragment:
    """
    Convert extraction output into a profile fragment.

    Text is whitespace-normalised, emails and phones are kept only when
    valid, phones are normalised and skills are capped.
    """
    fragment = ProfileFragment()
    info = data.personal_info

    personal = PersonalInfoFragment()
    if info.first_name:
        personal.first_name = clean_text(info.first_name)
    if info.last_name:
        personal.last_name = clean_text(info.last_name)
    if info.email and is_valid_email(info.email):
        personal.email = info.email.strip().lower()
    if info.phone and is_valid_phone(info.phone):
        personal.phone = normalize_phone(info.phone)
    if info.address is not None:
        personal.address = AddressFragment(**{
            key: clean_text(value) if value else ""
            for key, value in info.address.model_dump().items()
        })
    if personal.model_dump(exclude_none=True):
        fragment.personal_info = personal

    if data.work_experience or data.skills:
        work = WorkInfoFragment()
        if data.work_experience:
            current_job = next((job for job in data.work_experience if job.current), data.work_experience[0])
            if current_job.job_title:
                work.current_title = clean_text(current_job.job_title)
            work.experience = experience_summary(data.work_experience, now)
        if data.skills:
            skills = [clean_text(skill) for skill in data.skills]
            work.skills = [skill for skill in skills if skill][:MAX_MAPPED_SKILLS]
        if info.linkedin_url:
            work.linkedin_url = info.linkedin_url
        if info.portfolio_url:
            work.portfolio_url = info.portfolio_url
        if work.model_dump(exclude_none=True):
            fragment.work_info = work

    return fragment


def validate_mapped_data(fragment: ProfileFragment) -> ValidationReport:
    """Check a mapped fragment for format problems and missing essentials."""
    report = ValidationReport()

    personal = fragment.personal_info
    if personal is not None:
        if personal.email and not is_valid_email(personal.email):
            report.errors.append("Invalid email format")
        if personal.phone and not is_valid_phone(personal.phone):
            report.warnings.append("Phone number format may be invalid")
        if not personal.first_name:
            report.warnings.append("First name not extracted")
        if not personal.last_name:
            report.warnings.append("Last name not extracted")

    work = fragment.work_info
    if work is not None:
        if work.linkedin_url and not is_valid_url(work.linkedin_url):
            report.warnings.append("LinkedIn URL format may be invalid")
        if work.portfolio_url and not is_valid_url(work.portfolio_url):
            report.warnings.append("Portfolio URL format may be invalid")
        if not work.skills:
            report.warnings.append("No skills extracted")

    return report
