"""
CV Autofill: detect, classify and fill job application forms from a stored profile.

The engine inventories the fields of a page, maps them to profile data with
weighted heuristics, writes and verifies each value, and uploads the stored CV
to matching file inputs.
"""

__version__ = "0.1.0"

from cv_autofill.core.models import AutofillPayload, CVRecord, FillRunResult, Profile
from cv_autofill.engine import AutofillEngine, create_engine
from cv_autofill.merge.profile_merger import ProfileMerger, create_profile_merger
from cv_autofill.service import AutofillService

__all__ = [
    "AutofillEngine", "create_engine",
    "AutofillService",
    "ProfileMerger", "create_profile_merger",
    "AutofillPayload", "CVRecord", "FillRunResult", "Profile",
]
