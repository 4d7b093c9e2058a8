"""Autofill engine: scan, classify and fill one automation target."""

import asyncio
from typing import Optional

from cv_autofill.config import Settings, settings as default_settings
from cv_autofill.core.models import AutofillPayload, FillRunResult, Profile
from cv_autofill.core.ports import DocumentSource, WritePort
from cv_autofill.detection.analyzer import FormAnalyzer, ScanResult
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.dom.snapshot import DocumentSnapshot
from cv_autofill.fill.executor import FillExecutor, create_fill_executor
from cv_autofill.scheduling import Debouncer, PeriodicTimer
from cv_autofill.utils.logging import get_logger, log_run_summary

logger = get_logger(__name__)

NO_FIELDS_ERROR = "No fillable fields detected on this page"


class AutofillEngine:
    """
    Owns the tables, classifiers and executor for one target.

    At most one scan runs at a time; a scan requested while another is in
    flight waits for and returns that scan's result.
    """

    def __init__(
        self,
        source: DocumentSource,
        port: WritePort,
        tables: Optional[ClassifierTables] = None,
        config: Optional[Settings] = None,
        executor: Optional[FillExecutor] = None,
    ):
        self.config = config or default_settings
        self.source = source
        self.port = port

        self.analyzer = FormAnalyzer(tables, self.config)
        self.tables = self.analyzer.tables
        self.classifier = self.analyzer.classifier
        self.upload_classifier = self.analyzer.upload_classifier
        self.executor = executor or create_fill_executor(
            port, self.upload_classifier, fill_delay_ms=self.config.field_fill_delay_ms
        )

        self.last_scan: Optional[ScanResult] = None
        self.watch_profile: Optional[Profile] = None
        self._scan_task: Optional[asyncio.Task] = None
        self.debouncer = Debouncer(self.config.rescan_debounce_seconds, self._rescan)
        self.timer = PeriodicTimer(self.config.scan_interval_seconds, self._rescan)
        self.logger = logger.bind(component="autofill_engine")

    @property
    def is_scanning(self) -> bool:
        return self._scan_task is not None and not self._scan_task.done()

    def analyze(self, snapshot: DocumentSnapshot, profile: Optional[Profile]) -> ScanResult:
        """Inventory, filter and classify a snapshot; no I/O."""
        return self.analyzer.analyze(snapshot, profile)

    async def scan(self, profile: Optional[Profile] = None) -> ScanResult:
        """Scan the target, joining a scan that is already running."""
        if self.is_scanning:
            self.logger.debug("Scan in progress, awaiting its result")
            return await asyncio.shield(self._scan_task)

        self._scan_task = asyncio.ensure_future(self._scan(profile))
        try:
            return await asyncio.shield(self._scan_task)
        finally:
            if self._scan_task is not None and self._scan_task.done():
                self._scan_task = None

    async def run(self, payload: AutofillPayload, cancel: Optional[asyncio.Event] = None) -> FillRunResult:
        """
        Scan with the payload's profile and fill everything write-eligible.

        Args:
            payload: Profile and optional CV to fill with
            cancel: When set, stops further writes; completed writes are kept

        Returns:
            Run result with counts, errors and per-item outcomes
        """
        profile = payload.user_profile
        result_scan = await self.scan(profile)
        if result_scan.profile is not profile:
            result_scan = self.analyze(result_scan.snapshot, profile)
            self.last_scan = result_scan

        writable = self.classifier.writable(result_scan.mappings)
        uploads = self.upload_classifier.eligible(result_scan.uploads)
        if not result_scan.mappings and not uploads:
            self.logger.info("No fillable fields detected", fields_detected=result_scan.fields_detected)
            return FillRunResult(
                success=False,
                fields_detected=result_scan.fields_detected,
                errors=[NO_FIELDS_ERROR],
            )

        self.logger.info(
            "Starting fill run",
            writable=len(writable),
            uploads=len(uploads),
            fields_detected=result_scan.fields_detected,
        )
        result = await self.executor.execute(writable, uploads, payload.cv_data, cancel)
        result.fields_detected = result_scan.fields_detected
        self.logger.info("Fill run finished", **log_run_summary(result))
        return result

    def on_mutation(self) -> None:
        """Structural change signal from the target; coalesced into one rescan."""
        self.debouncer.signal()

    async def start_watching(self, profile: Optional[Profile] = None) -> ScanResult:
        """Initial scan, then periodic and mutation-driven rescans."""
        self.watch_profile = profile
        result = await self.scan(profile)
        self.timer.start()
        self.logger.info("Watching for form changes", interval=self.timer.interval)
        return result

    async def stop_watching(self) -> None:
        self.debouncer.cancel()
        await self.timer.stop()
        await self.debouncer.drain()
        self.logger.info("Stopped watching for form changes")

    async def _rescan(self) -> None:
        await self.scan(self.watch_profile)

    async def _scan(self, profile: Optional[Profile]) -> ScanResult:
        snapshot = await self.source.snapshot()
        result = self.analyze(snapshot, profile)
        self.last_scan = result
        self.logger.debug(
            "Scan complete",
            elements=len(snapshot),
            fields_detected=result.fields_detected,
            mappings=len(result.mappings),
            uploads=len(result.uploads),
        )
        return result


def create_engine(
    source: DocumentSource,
    port: WritePort,
    config: Optional[Settings] = None,
) -> AutofillEngine:
    """Create an engine with tables loaded from the configured path."""
    return AutofillEngine(source, port, config=config)
