"""Merging CV-extracted data into the stored profile."""

from cv_autofill.merge.mapper import map_extracted_to_profile, validate_mapped_data
from cv_autofill.merge.profile_merger import (
    MergeOptions,
    MergePolicy,
    MergeStrategy,
    ProfileMerger,
    SkillsStrategy,
    create_profile_merger,
)

__all__ = [
    "ProfileMerger", "create_profile_merger",
    "MergeOptions", "MergePolicy", "MergeStrategy", "SkillsStrategy",
    "map_extracted_to_profile", "validate_mapped_data",
]
