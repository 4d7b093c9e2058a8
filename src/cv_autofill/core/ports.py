"""Interfaces between the engine and its collaborators."""

from typing import List, Optional, Protocol, runtime_checkable

from cv_autofill.core.models import AutofillPayload, CVRecord, FillRunResult, Profile
from cv_autofill.dom.snapshot import DocumentSnapshot


@runtime_checkable
class DocumentSource(Protocol):
    """Supplies the current element tree of the automation target."""

    async def snapshot(self) -> DocumentSnapshot:
        ...


@runtime_checkable
class WritePort(Protocol):
    """Write-and-verify access to live elements, addressed by reference."""

    async def is_fillable(self, ref: str) -> bool:
        ...

    async def read_value(self, ref: str) -> str:
        ...

    async def write_value(self, ref: str, value: str) -> None:
        """Focus, clear, set, dispatch input/change/blur/keydown/keyup, blur."""
        ...

    async def restore_value(self, ref: str, value: str) -> None:
        ...

    async def is_upload_ready(self, ref: str) -> bool:
        ...

    async def attach_file(self, ref: str, file_name: str, mime_type: str, data: bytes) -> None:
        """Assign a single file and dispatch change/input/blur/focus."""
        ...

    async def read_file_names(self, ref: str) -> List[str]:
        ...

    async def apply_feedback(self, ref: str, success: bool) -> None:
        ...

    async def show_summary(self, message: str, success: bool) -> None:
        ...


@runtime_checkable
class AutomationChannel(Protocol):
    """Request/response channel to the automation target."""

    async def ping(self) -> None:
        """Raise CommunicationError if the target does not answer."""
        ...

    async def reestablish(self) -> None:
        """Re-inject the automation logic into the target."""
        ...

    async def trigger_autofill(self, payload: AutofillPayload) -> FillRunResult:
        ...


@runtime_checkable
class RunNotifier(Protocol):
    """Tells the owning process how a run ended."""

    async def run_completed(self, result: FillRunResult) -> None:
        ...

    async def run_failed(self, message: str) -> None:
        ...


@runtime_checkable
class ProfileStore(Protocol):
    """Persistent storage of the profile, the CV and the autofill flag."""

    async def get_profile(self) -> Optional[Profile]:
        ...

    async def set_profile(self, profile: Profile) -> None:
        ...

    async def get_cv(self) -> Optional[CVRecord]:
        ...

    async def set_cv(self, cv: CVRecord) -> None:
        ...

    async def get_autofill_enabled(self) -> bool:
        ...

    async def set_autofill_enabled(self, enabled: bool) -> None:
        ...
