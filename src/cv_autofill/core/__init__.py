"""Core records, errors and collaborator ports shared by every component."""

from cv_autofill.core.errors import (
    AutofillDisabledError,
    AutofillError,
    CommunicationError,
    CVTooLargeError,
    ProfileMissingError,
    TablesConfigError,
    TargetUnreachableError,
)
from cv_autofill.core.models import (
    AutofillPayload,
    CVRecord,
    ExtractedProfileData,
    FieldMapping,
    FieldType,
    FileUploadMapping,
    FileUploadType,
    FillRunResult,
    FillState,
    Profile,
)
from cv_autofill.core.ports import (
    AutomationChannel,
    DocumentSource,
    ProfileStore,
    RunNotifier,
    WritePort,
)

__all__ = [
    "AutofillError", "CommunicationError", "TargetUnreachableError",
    "AutofillDisabledError", "ProfileMissingError", "TablesConfigError", "CVTooLargeError",
    "AutofillPayload", "CVRecord", "ExtractedProfileData", "Profile",
    "FieldMapping", "FieldType", "FileUploadMapping", "FileUploadType",
    "FillRunResult", "FillState",
    "AutomationChannel", "DocumentSource", "ProfileStore", "RunNotifier", "WritePort",
]
