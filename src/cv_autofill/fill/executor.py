"""Fill executor: writes classified values and files into the page and verifies them."""

import asyncio
from typing import Iterable, List, Optional, Sequence

from cv_autofill.core.models import (
    CVRecord,
    FieldMapping,
    FileUploadMapping,
    FileUploadType,
    FillOutcome,
    FillRunResult,
    FillState,
)
from cv_autofill.core.ports import WritePort
from cv_autofill.detection.uploads import FileUploadClassifier
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CV_UPLOAD_PURPOSES = (FileUploadType.CV_RESUME, FileUploadType.OTHER)


def summary_message(filled: int, error_count: int) -> str:
    if error_count == 0:
        return f"Successfully filled {filled} fields"
    return f"Filled {filled} fields with {error_count} errors"


class FillExecutor:
    """
    Per-item state machine over a write port.

    Fields: Pending -> Filling -> Verifying -> Success | RolledBack, or
    Skipped when there is nothing to write, or Failed on an unexpected error.
    Uploads: Pending -> Uploading -> Verifying -> Success | Failed.
    """

    def __init__(
        self,
        port: WritePort,
        upload_classifier: FileUploadClassifier,
        fill_delay: float = 0.05,
        cv_upload_purposes: Sequence[FileUploadType] = DEFAULT_CV_UPLOAD_PURPOSES,
    ):
        """
        Initialize the executor.

        Args:
            port: Write-and-verify access to the page
            upload_classifier: Used for compatibility checks and upload ordering
            fill_delay: Pause in seconds after each field write
            cv_upload_purposes: Upload purposes the stored CV may be attached to
        """
        self.port = port
        self.upload_classifier = upload_classifier
        self.fill_delay = fill_delay
        self.cv_upload_purposes = tuple(cv_upload_purposes)
        self.logger = logger.bind(component="fill_executor")

    async def fill_field(self, mapping: FieldMapping) -> FillOutcome:
        """Write one value and verify it, restoring the original on mismatch or error."""
        outcome = FillOutcome(
            ref=mapping.ref,
            target=mapping.field_type.value,
            state=FillState.PENDING,
            history=[FillState.PENDING],
        )
        field_name = mapping.field_type.value
        original_value: Optional[str] = None

        try:
            if not mapping.value or not mapping.value.strip():
                self.logger.debug("Skipping field without value", field_type=field_name)
                return self._finish(outcome, FillState.SKIPPED)

            if not await self.port.is_fillable(mapping.ref):
                self.logger.debug("Skipping field no longer fillable", field_type=field_name)
                return self._finish(outcome, FillState.SKIPPED)

            self._advance(outcome, FillState.FILLING)
            original_value = await self.port.read_value(mapping.ref)
            await self.port.write_value(mapping.ref, mapping.value)

            self._advance(outcome, FillState.VERIFYING)
            actual_value = await self.port.read_value(mapping.ref)
            if actual_value == mapping.value:
                await self._feedback(mapping.ref, True)
                return self._finish(outcome, FillState.SUCCESS)

            self.logger.warning(
                "Fill verification failed",
                field_type=field_name,
                expected_length=len(mapping.value),
                actual_length=len(actual_value),
            )
            await self.port.restore_value(mapping.ref, original_value)
            await self._feedback(mapping.ref, False)
            return self._finish(outcome, FillState.ROLLED_BACK, f"Failed to fill {field_name} field")

        except Exception as e:
            self.logger.error("Error filling field", field_type=field_name, error=str(e))
            if original_value is not None:
                await self._restore(mapping.ref, original_value, field_name)
            await self._feedback(mapping.ref, False)
            return self._finish(outcome, FillState.FAILED, f"Error filling {field_name}: {e}")

    async def upload_file(self, mapping: FileUploadMapping, cv: Optional[CVRecord]) -> FillOutcome:
        """Attach the stored CV to one upload field and verify the file list."""
        outcome = FillOutcome(
            ref=mapping.ref,
            target=mapping.purpose.value,
            state=FillState.PENDING,
            history=[FillState.PENDING],
        )
        purpose = mapping.purpose.value

        if cv is None or mapping.purpose not in self.cv_upload_purposes:
            return self._finish(outcome, FillState.SKIPPED)

        compatibility = self.upload_classifier.check_compatibility(mapping, cv)
        if not compatibility:
            self.logger.info("CV not compatible with upload field", purpose=purpose, reason=compatibility.reason)
            return self._finish(outcome, FillState.FAILED, compatibility.reason)

        try:
            if not await self.port.is_upload_ready(mapping.ref):
                return self._finish(outcome, FillState.SKIPPED)

            self._advance(outcome, FillState.UPLOADING)
            await self.port.attach_file(mapping.ref, cv.file_name, cv.mime_type, cv.content())

            self._advance(outcome, FillState.VERIFYING)
            names = await self.port.read_file_names(mapping.ref)
            if names == [cv.file_name]:
                await self._feedback(mapping.ref, True)
                return self._finish(outcome, FillState.SUCCESS)

            await self._feedback(mapping.ref, False)
            return self._finish(outcome, FillState.FAILED, f"Failed to upload CV to {purpose} field")

        except Exception as e:
            self.logger.error("Error uploading file", purpose=purpose, error=str(e))
            await self._feedback(mapping.ref, False)
            return self._finish(outcome, FillState.FAILED, f"Error uploading {purpose}: {e}")

    async def execute(
        self,
        mappings: Iterable[FieldMapping],
        uploads: Iterable[FileUploadMapping] = (),
        cv: Optional[CVRecord] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> FillRunResult:
        """
        Fill fields sequentially, then uploads (CV first, then by confidence).

        Args:
            mappings: Write-eligible field mappings, in fill order
            uploads: Upload mappings to attempt
            cv: Stored CV to attach, if any
            cancel: When set, no further writes are started

        Returns:
            Aggregate counts, errors and per-item outcomes
        """
        result = FillRunResult()

        for mapping in mappings:
            if cancel is not None and cancel.is_set():
                result.cancelled = True
                break
            self._record(result, await self.fill_field(mapping), upload=False)
            await asyncio.sleep(self.fill_delay)

        if not result.cancelled:
            for mapping in self.upload_classifier.upload_order(uploads):
                if cancel is not None and cancel.is_set():
                    result.cancelled = True
                    break
                self._record(result, await self.upload_file(mapping, cv), upload=True)

        if result.cancelled:
            self.logger.info("Fill run cancelled", filled=result.filled, uploaded=result.uploaded)

        try:
            await self.port.show_summary(summary_message(result.filled, len(result.errors)), not result.errors)
        except Exception as e:
            self.logger.warning("Could not show completion summary", error=str(e))

        return result

    @staticmethod
    def _record(result: FillRunResult, outcome: FillOutcome, upload: bool) -> None:
        result.outcomes.append(outcome)
        if outcome.state == FillState.SUCCESS:
            if upload:
                result.uploaded += 1
            else:
                result.filled += 1
        elif outcome.error:
            result.errors.append(outcome.error)

    @staticmethod
    def _advance(outcome: FillOutcome, state: FillState) -> None:
        outcome.state = state
        outcome.history.append(state)

    def _finish(self, outcome: FillOutcome, state: FillState, error: Optional[str] = None) -> FillOutcome:
        self._advance(outcome, state)
        outcome.error = error
        return outcome

    async def _restore(self, ref: str, value: str, field_name: str) -> None:
        try:
            await self.port.restore_value(ref, value)
        except Exception as e:
            self.logger.warning("Could not restore original value", field_type=field_name, error=str(e))

    async def _feedback(self, ref: str, success: bool) -> None:
        try:
            await self.port.apply_feedback(ref, success)
        except Exception as e:
            self.logger.warning("Could not apply visual feedback", ref=ref, error=str(e))


def create_fill_executor(
    port: WritePort,
    upload_classifier: FileUploadClassifier,
    fill_delay_ms: int = 50,
) -> FillExecutor:
    """Create an executor with the delay given in milliseconds."""
    return FillExecutor(port, upload_classifier, fill_delay=fill_delay_ms / 1000)
