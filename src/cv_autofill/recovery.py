"""Recovery orchestrator: one re-establishment and retry on communication failure."""

import asyncio
from typing import Optional

from cv_autofill.core.errors import CommunicationError, TargetUnreachableError
from cv_autofill.core.models import AutofillPayload, FillRunResult
from cv_autofill.core.ports import AutomationChannel
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class RecoveryOrchestrator:
    """
    Pings the automation target before triggering a fill.

    On a communication failure the target is re-established once and the
    ping plus trigger are retried once. A second failure raises
    TargetUnreachableError. Per-field failures inside a run are never retried.
    """

    def __init__(self, channel: AutomationChannel, ping_timeout: Optional[float] = 5.0):
        self.channel = channel
        self.ping_timeout = ping_timeout
        self.logger = logger.bind(component="recovery_orchestrator")

    async def check_liveness(self) -> None:
        """Liveness check; timeouts count as communication failures."""
        try:
            await asyncio.wait_for(self.channel.ping(), timeout=self.ping_timeout)
        except asyncio.TimeoutError as e:
            raise CommunicationError("Liveness ping timed out") from e

    async def trigger(self, payload: AutofillPayload) -> FillRunResult:
        """
        Deliver a trigger command with a single recovery attempt.

        Args:
            payload: Profile and CV to fill with

        Returns:
            Run result reported by the target

        Raises:
            TargetUnreachableError: if the retry after re-establishment also fails
        """
        try:
            return await self._ping_and_trigger(payload)
        except CommunicationError as first_error:
            self.logger.warning(
                "Communication with page failed, re-establishing",
                error=str(first_error),
            )

        try:
            await self.channel.reestablish()
            result = await self._ping_and_trigger(payload)
        except CommunicationError as e:
            self.logger.error("Page unreachable after re-establishing", error=str(e))
            raise TargetUnreachableError() from e

        self.logger.info("Autofill succeeded after re-establishing page")
        return result

    async def _ping_and_trigger(self, payload: AutofillPayload) -> FillRunResult:
        await self.check_liveness()
        return await self.channel.trigger_autofill(payload)
