"""Owner-side autofill flow: checks preferences, loads data, triggers with recovery."""

from typing import Optional

from cv_autofill.config import Settings, settings as default_settings
from cv_autofill.core.errors import (
    AutofillError,
    AutofillDisabledError,
    CVTooLargeError,
    ProfileMissingError,
)
from cv_autofill.core.models import AutofillPayload, CVRecord, ExtractedProfileData, FillRunResult, Profile
from cv_autofill.core.ports import AutomationChannel, ProfileStore, RunNotifier
from cv_autofill.merge.profile_merger import MergeOptions, ProfileMerger
from cv_autofill.recovery import RecoveryOrchestrator
from cv_autofill.utils.logging import get_logger, log_run_summary

logger = get_logger(__name__)


class LoggingNotifier:
    """RunNotifier that reports through the structured log."""

    def __init__(self):
        self.logger = logger.bind(component="run_notifier")

    async def run_completed(self, result: FillRunResult) -> None:
        if result.success:
            self.logger.info("Autofill completed", **log_run_summary(result))
        else:
            self.logger.warning("Autofill finished without filling", errors=result.errors)

    async def run_failed(self, message: str) -> None:
        self.logger.error("Autofill failed", error=message)


class AutofillService:
    """
    Entry point used by the process that owns the stored profile.

    Triggering checks the autofill flag, requires a stored profile, and hands
    the profile and CV to the target through the recovery orchestrator.
    """

    def __init__(
        self,
        store: ProfileStore,
        channel: Optional[AutomationChannel] = None,
        notifier: Optional[RunNotifier] = None,
        config: Optional[Settings] = None,
        merger: Optional[ProfileMerger] = None,
    ):
        self.config = config or default_settings
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.orchestrator = (
            RecoveryOrchestrator(channel, ping_timeout=self.config.ping_timeout_seconds)
            if channel is not None
            else None
        )
        self.merger = merger or ProfileMerger()
        self.logger = logger.bind(component="autofill_service")

    async def trigger_autofill(self) -> FillRunResult:
        """
        Run autofill on the target with the stored profile and CV.

        Every failure is reported to the notifier before it propagates.

        Raises:
            AutofillDisabledError: autofill is switched off
            ProfileMissingError: no profile has been stored yet
            TargetUnreachableError: the page could not be reached after one retry
        """
        try:
            result = await self._trigger()
        except AutofillError as e:
            await self.notifier.run_failed(str(e))
            raise
        except Exception as e:
            self.logger.exception("Unexpected autofill failure", error=str(e))
            await self.notifier.run_failed(f"Autofill failed: {e}")
            raise

        await self.notifier.run_completed(result)
        return result

    async def _trigger(self) -> FillRunResult:
        if not await self.store.get_autofill_enabled():
            self.logger.info("Autofill is disabled, ignoring trigger")
            raise AutofillDisabledError()

        if self.orchestrator is None:
            raise AutofillError("No automation target attached")

        profile = await self.store.get_profile()
        if profile is None:
            self.logger.warning("No user profile found, cannot autofill")
            raise ProfileMissingError()

        cv = await self.store.get_cv()
        payload = AutofillPayload(user_profile=profile, cv_data=cv)
        return await self.orchestrator.trigger(payload)

    async def store_cv(self, cv: CVRecord) -> None:
        """Persist a CV after enforcing the size limit."""
        if cv.file_size > self.config.max_cv_file_size:
            raise CVTooLargeError(
                f"{cv.file_name} is {cv.file_size} bytes; the limit is {self.config.max_cv_file_size} bytes"
            )
        await self.store.set_cv(cv)
        self.logger.info("CV stored", file_name=cv.file_name, size=cv.file_size)

    async def import_extracted(
        self,
        data: ExtractedProfileData,
        options: Optional[MergeOptions] = None,
    ) -> Profile:
        """Merge CV-extracted data into the stored profile and persist the result."""
        existing = await self.store.get_profile() or Profile()
        merged = self.merger.merge_extracted(existing, data, options)
        await self.store.set_profile(merged)
        return merged

    async def set_autofill_enabled(self, enabled: bool) -> None:
        await self.store.set_autofill_enabled(enabled)
        self.logger.info("Autofill toggled", enabled=enabled)
