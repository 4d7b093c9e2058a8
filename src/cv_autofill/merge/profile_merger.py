"""Profile merge engine: reconciles CV-extracted data with the stored profile."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from cv_autofill.core.models import (
    Address,
    AddressFragment,
    ExtractedProfileData,
    PersonalInfo,
    PersonalInfoFragment,
    Profile,
    ProfileFragment,
    WorkInfo,
    WorkInfoFragment,
    utc_now,
)
from cv_autofill.core.validation import is_valid_email, is_valid_phone
from cv_autofill.merge.mapper import map_extracted_to_profile
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)

MAX_MERGED_SKILLS = 30

_ADDRESS_KEYS = ("street", "city", "state", "post_code", "country")
_WORK_TEXT_KEYS = ("current_title", "experience", "linkedin_url", "portfolio_url")


class MergeStrategy(str, Enum):
    """Conflict resolution for personal and work fields."""
    PRESERVE_EXISTING = "preserve_existing"
    PREFER_EXTRACTED = "prefer_extracted"
    MERGE_INTELLIGENT = "merge_intelligent"


class SkillsStrategy(str, Enum):
    """Conflict resolution for the skill list."""
    REPLACE = "replace"
    MERGE = "merge"
    PRESERVE_EXISTING = "preserve_existing"


@dataclass
class MergePolicy:
    personal_info: MergeStrategy = MergeStrategy.PRESERVE_EXISTING
    work_info: MergeStrategy = MergeStrategy.MERGE_INTELLIGENT
    skills: SkillsStrategy = SkillsStrategy.MERGE


@dataclass
class MergeOptions:
    """Merge policy plus the switches that modify it."""
    policy: MergePolicy = field(default_factory=MergePolicy)
    preserve_user_modifications: bool = True
    # Extracted categories below this confidence are ignored; None disables the gate
    confidence_threshold: Optional[float] = None
    max_skills: int = MAX_MERGED_SKILLS


def choose_better_value(existing: Optional[str], extracted: Optional[str]) -> str:
    """Keep ``existing`` unless ``extracted`` is more than 20% longer."""
    if not existing and not extracted:
        return ""
    if not existing:
        return extracted or ""
    if not extracted:
        return existing
    if len(extracted) > len(existing) * 1.2:
        return extracted
    return existing


def _better_spelling(current: str, candidate: str) -> str:
    """Longer wins, then more capitals, then lexical order."""
    def rank(skill: str):
        return (-len(skill), -sum(1 for ch in skill if ch.isupper()), skill)

    return min(current, candidate, key=rank)


def merge_skills(existing: Iterable[str], extracted: Iterable[str], limit: int = MAX_MERGED_SKILLS) -> List[str]:
    """
    Case-insensitive union of two skill lists.

    Keeps one spelling per skill, drops single-character entries and caps the
    result at ``limit``. Order follows first appearance.
    """
    best: Dict[str, str] = {}
    for skill in [*existing, *extracted]:
        cleaned = skill.strip()
        key = cleaned.lower()
        if not key:
            continue
        best[key] = _better_spelling(best[key], cleaned) if key in best else cleaned

    return [skill for skill in best.values() if len(skill) > 1][:limit]


class ProfileMerger:
    """
    Merges a profile fragment into a stored profile under a MergePolicy.

    The stored profile is never modified; a new Profile is returned with its
    last-updated time set to the merge time.
    """

    def __init__(self, options: Optional[MergeOptions] = None, clock: Callable[[], datetime] = utc_now):
        self.options = options or MergeOptions()
        self.clock = clock
        self.logger = logger.bind(component="profile_merger")

    def merge(
        self,
        existing: Profile,
        extracted: ProfileFragment,
        options: Optional[MergeOptions] = None,
    ) -> Profile:
        """
        Merge ``extracted`` into a copy of ``existing``.

        Args:
            existing: Stored profile
            extracted: Profile-shaped data derived from a CV
            options: Overrides the merger's default options

        Returns:
            The merged profile
        """
        options = options or self.options
        merged = existing.model_copy(deep=True)

        if extracted.personal_info is not None:
            merged.personal_info = self._merge_personal(
                extracted.personal_info,
                merged.personal_info,
                options.policy.personal_info,
                options.preserve_user_modifications,
            )

        if extracted.work_info is not None:
            merged.work_info = self._merge_work(extracted.work_info, merged.work_info, options)

        merged.preferences.last_updated = self.clock()
        self.logger.info(
            "Profile merged",
            personal_strategy=options.policy.personal_info.value,
            work_strategy=options.policy.work_info.value,
            skills_strategy=options.policy.skills.value,
            skills=len(merged.work_info.skills),
        )
        return merged

    def merge_extracted(
        self,
        existing: Profile,
        data: ExtractedProfileData,
        options: Optional[MergeOptions] = None,
    ) -> Profile:
        """
        Map extracted CV data into profile shape, gate by confidence, then merge.

        LinkedIn and portfolio URLs come from the extracted personal details, so
        they are dropped together with them.
        """
        options = options or self.options
        fragment = map_extracted_to_profile(data, now=self.clock())

        threshold = options.confidence_threshold
        if threshold is not None:
            confidence = data.confidence
            if confidence.personal_info < threshold:
                fragment.personal_info = None
                if fragment.work_info is not None:
                    fragment.work_info.linkedin_url = None
                    fragment.work_info.portfolio_url = None
            if fragment.work_info is not None:
                if confidence.work_experience < threshold:
                    fragment.work_info.current_title = None
                    fragment.work_info.experience = None
                if confidence.skills < threshold:
                    fragment.work_info.skills = None
            self.logger.debug("Applied extraction confidence gate", threshold=threshold)

        return self.merge(existing, fragment, options)

    def _merge_personal(
        self,
        extracted: PersonalInfoFragment,
        existing: PersonalInfo,
        strategy: MergeStrategy,
        preserve: bool,
    ) -> PersonalInfo:
        merged = existing.model_copy(deep=True)
        ext_address = extracted.address or AddressFragment()

        if strategy == MergeStrategy.PRESERVE_EXISTING:
            for name in ("first_name", "last_name", "email", "phone"):
                value = getattr(extracted, name)
                if not getattr(existing, name) and value:
                    setattr(merged, name, value)
            if extracted.address is not None:
                merged.address = Address(**{
                    key: getattr(existing.address, key) or getattr(ext_address, key) or ""
                    for key in _ADDRESS_KEYS
                })
            return merged

        if strategy == MergeStrategy.PREFER_EXTRACTED:
            def prefer(current: str, value: Optional[str], valid: bool = True) -> str:
                if value and valid and (not preserve or not current):
                    return value
                return current

            merged.first_name = prefer(existing.first_name, extracted.first_name)
            merged.last_name = prefer(existing.last_name, extracted.last_name)
            merged.email = prefer(existing.email, extracted.email, is_valid_email(extracted.email or ""))
            merged.phone = prefer(existing.phone, extracted.phone, is_valid_phone(extracted.phone or ""))
            merged.address = Address(**{
                key: prefer(getattr(existing.address, key), getattr(ext_address, key))
                for key in _ADDRESS_KEYS
            })
            return merged

        def longer(current: str, value: Optional[str]) -> str:
            return value if value and (not current or len(value) > len(current)) else current

        merged.first_name = longer(existing.first_name, extracted.first_name)
        merged.last_name = longer(existing.last_name, extracted.last_name)
        if extracted.email and is_valid_email(extracted.email) and not is_valid_email(existing.email):
            merged.email = extracted.email
        if extracted.phone and is_valid_phone(extracted.phone) and (
            not existing.phone or len(extracted.phone) > len(existing.phone)
        ):
            merged.phone = extracted.phone
        merged.address = Address(**{
            key: choose_better_value(getattr(existing.address, key), getattr(ext_address, key))
            for key in _ADDRESS_KEYS
        })
        return merged

    def _merge_work(self, extracted: WorkInfoFragment, existing: WorkInfo, options: MergeOptions) -> WorkInfo:
        merged = existing.model_copy(deep=True)
        strategy = options.policy.work_info

        for key in _WORK_TEXT_KEYS:
            current = getattr(existing, key)
            value = getattr(extracted, key)
            if strategy == MergeStrategy.PRESERVE_EXISTING:
                if not current and value:
                    setattr(merged, key, value)
            elif strategy == MergeStrategy.PREFER_EXTRACTED:
                if value and (not options.preserve_user_modifications or not current):
                    setattr(merged, key, value)
            else:
                setattr(merged, key, choose_better_value(current, value))

        if extracted.skills:
            skills_strategy = options.policy.skills
            if skills_strategy == SkillsStrategy.REPLACE:
                merged.skills = list(extracted.skills)
            elif skills_strategy == SkillsStrategy.PRESERVE_EXISTING:
                if not existing.skills:
                    merged.skills = list(extracted.skills)
            else:
                merged.skills = merge_skills(existing.skills, extracted.skills, options.max_skills)

        return merged


def create_profile_merger(
    personal_info: MergeStrategy = MergeStrategy.PRESERVE_EXISTING,
    work_info: MergeStrategy = MergeStrategy.MERGE_INTELLIGENT,
    skills: SkillsStrategy = SkillsStrategy.MERGE,
    preserve_user_modifications: bool = True,
) -> ProfileMerger:
    """Create a merger with the given policy."""
    return ProfileMerger(MergeOptions(
        policy=MergePolicy(personal_info=personal_info, work_info=work_info, skills=skills),
        preserve_user_modifications=preserve_user_modifications,
    ))
