"""Playwright page as the engine's document source, write port and automation channel."""

from typing import Any, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from cv_autofill.browser.agent_script import AGENT_GLOBAL, AGENT_SCRIPT, NOTIFY_BINDING
from cv_autofill.config import Settings, settings as default_settings
from cv_autofill.core.errors import CommunicationError
from cv_autofill.core.models import AutofillPayload, FillRunResult
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.dom.snapshot import DocumentSnapshot
from cv_autofill.engine import AutofillEngine
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class PageTarget:
    """
    One browser page driven through the injected agent.

    Element references are the agent's ``data-autofill-ref`` stamps, so a
    reference stays valid for as long as the element stays in the page.
    """

    def __init__(
        self,
        page: Page,
        config: Optional[Settings] = None,
        tables: Optional[ClassifierTables] = None,
    ):
        self.page = page
        self.config = config or default_settings
        self.engine = AutofillEngine(self, self, tables=tables, config=self.config)
        self._binding_exposed = False
        self.logger = logger.bind(component="page_target")

    async def install(self) -> None:
        """Inject the agent now and into every future document of the page."""
        if not self._binding_exposed:
            await self.page.expose_function(NOTIFY_BINDING, self._on_page_mutation)
            await self.page.add_init_script(AGENT_SCRIPT)
            self._binding_exposed = True
        await self._evaluate(AGENT_SCRIPT)
        self.logger.debug("Page agent installed", url=self.page.url)

    # AutomationChannel

    async def ping(self) -> None:
        answer = await self._evaluate(f"() => window.{AGENT_GLOBAL} ? window.{AGENT_GLOBAL}.ping() : null")
        if answer != "pong":
            raise CommunicationError("Page agent did not answer the liveness ping")

    async def reestablish(self) -> None:
        self.logger.info("Re-injecting page agent", url=self.page.url)
        await self.install()

    async def trigger_autofill(self, payload: AutofillPayload) -> FillRunResult:
        return await self.engine.run(payload)

    # DocumentSource

    async def snapshot(self) -> DocumentSnapshot:
        data = await self._call("snapshot")
        return DocumentSnapshot.from_payload(data["root"], url=data.get("url", ""))

    # WritePort

    async def is_fillable(self, ref: str) -> bool:
        return bool(await self._call("isFillable", ref))

    async def read_value(self, ref: str) -> str:
        return await self._call("readValue", ref)

    async def write_value(self, ref: str, value: str) -> None:
        await self._call("writeValue", ref, value)

    async def restore_value(self, ref: str, value: str) -> None:
        await self._call("restoreValue", ref, value)

    async def is_upload_ready(self, ref: str) -> bool:
        return bool(await self._call("isUploadReady", ref))

    async def attach_file(self, ref: str, file_name: str, mime_type: str, data: bytes) -> None:
        locator = self.page.locator(f'[data-autofill-ref="{ref}"]')
        await locator.set_input_files(
            {"name": file_name, "mimeType": mime_type, "buffer": data},
            timeout=self.config.browser_timeout * 1000,
        )
        await self._call("afterFileAttach", ref)

    async def read_file_names(self, ref: str) -> List[str]:
        return list(await self._call("fileNames", ref))

    async def apply_feedback(self, ref: str, success: bool) -> None:
        await self._call("feedback", ref, success, self.config.feedback_duration_ms)

    async def show_summary(self, message: str, success: bool) -> None:
        await self._call("summary", message, success, self.config.feedback_duration_ms * 2)

    async def _call(self, method: str, *args: Any) -> Any:
        script = f"(args) => window.{AGENT_GLOBAL}.{method}(...args)"
        return await self._evaluate(script, list(args))

    async def _evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except PlaywrightError as e:
            raise CommunicationError(str(e)) from e

    def _on_page_mutation(self) -> None:
        self.engine.on_mutation()
