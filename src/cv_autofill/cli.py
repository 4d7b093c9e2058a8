"""Command-line interface for CV Autofill."""

import asyncio
import json
import mimetypes
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cv_autofill.config import settings
from cv_autofill.core.errors import AutofillError
from cv_autofill.core.models import CVRecord, ExtractedProfileData, FillRunResult, Profile
from cv_autofill.detection.analyzer import FormAnalyzer, ScanResult
from cv_autofill.dom.snapshot import DocumentSnapshot
from cv_autofill.merge.profile_merger import MergeOptions, MergePolicy, MergeStrategy, SkillsStrategy
from cv_autofill.service import AutofillService
from cv_autofill.storage import JsonProfileStore
from cv_autofill.utils.logging import configure_logging

app = typer.Typer(
    name="cv-autofill",
    help="CV Autofill - detect and fill job application forms from a stored profile",
    add_completion=False,
)
console = Console()


def _print_scan(result: ScanResult) -> None:
    table = Table(title=f"Detected fields ({result.fields_detected} fillable)")
    table.add_column("Ref", style="cyan")
    table.add_column("Field Type", style="green")
    table.add_column("Confidence", justify="right")
    table.add_column("Strategy")
    table.add_column("Value")
    for mapping in result.mappings:
        table.add_row(
            mapping.ref,
            mapping.field_type.value,
            f"{mapping.confidence:.2f}",
            mapping.strategy,
            mapping.value,
        )
    console.print(table)

    if result.uploads:
        uploads = Table(title="File inputs")
        uploads.add_column("Ref", style="cyan")
        uploads.add_column("Purpose", style="green")
        uploads.add_column("Confidence", justify="right")
        uploads.add_column("Accepts")
        uploads.add_column("Max Size", justify="right")
        for upload in result.uploads:
            uploads.add_row(
                upload.ref,
                upload.purpose.value,
                f"{upload.confidence:.2f}",
                ", ".join(upload.accepted_types) or "any",
                str(upload.max_size or "-"),
            )
        console.print(uploads)


def _print_run(result: FillRunResult) -> None:
    status = "✅" if result.success else "❌"
    console.print(
        f"{status} Filled {result.filled} fields, uploaded {result.uploaded} files "
        f"({result.fields_detected} detected)"
    )
    for error in result.errors:
        console.print(f"  ⚠️  {error}")


def _store(store_path: Optional[Path]) -> JsonProfileStore:
    return JsonProfileStore(store_path or Path(settings.store_path))


def _load_profile(store: JsonProfileStore) -> Optional[Profile]:
    return asyncio.run(store.get_profile())


@app.command()
def scan(
    url: Optional[str] = typer.Argument(None, help="Page to scan in a browser"),
    html: Optional[Path] = typer.Option(None, "--html", help="Scan a saved HTML file instead"),
    store_path: Optional[Path] = typer.Option(None, "--store", help="Profile store file"),
) -> None:
    """Show how the fields of a form would be classified."""
    configure_logging()
    profile = _load_profile(_store(store_path))

    if html is not None:
        snapshot = DocumentSnapshot.from_html(html.read_text(encoding="utf-8"), url=html.as_uri())
        _print_scan(FormAnalyzer(config=settings).analyze(snapshot, profile))
        return

    if not url:
        console.print("❌ Provide a URL or --html file")
        raise typer.Exit(code=1)

    async def _scan() -> ScanResult:
        from cv_autofill.browser.session import create_browser_session

        async with create_browser_session(settings) as session:
            target = await session.open_target(url)
            return await target.engine.scan(profile)

    _print_scan(asyncio.run(_scan()))


@app.command()
def fill(
    url: str = typer.Argument(..., help="Page holding the application form"),
    store_path: Optional[Path] = typer.Option(None, "--store", help="Profile store file"),
    hold: float = typer.Option(0.0, help="Seconds to keep the browser open after filling"),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window"),
) -> None:
    """Open a page and fill it from the stored profile and CV."""
    from cv_autofill.browser.session import BrowserSession

    configure_logging()
    store = _store(store_path)

    async def _fill() -> FillRunResult:
        session = BrowserSession(
            headless=settings.browser_headless and not headed,
            viewport_size=(settings.viewport_width, settings.viewport_height),
            timeout_seconds=settings.browser_timeout,
            config=settings,
        )
        async with session:
            target = await session.open_target(url)
            service = AutofillService(store, target, config=settings)
            result = await service.trigger_autofill()
            if hold > 0:
                await asyncio.sleep(hold)
            return result

    try:
        result = asyncio.run(_fill())
    except AutofillError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(code=1)

    _print_run(result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def merge(
    extracted: Path = typer.Argument(..., help="JSON file with data extracted from a CV"),
    store_path: Optional[Path] = typer.Option(None, "--store", help="Profile store file"),
    personal: MergeStrategy = typer.Option(MergeStrategy.PRESERVE_EXISTING, help="Personal info strategy"),
    work: MergeStrategy = typer.Option(MergeStrategy.MERGE_INTELLIGENT, help="Work info strategy"),
    skills: SkillsStrategy = typer.Option(SkillsStrategy.MERGE, help="Skills strategy"),
    overwrite: bool = typer.Option(False, help="Let extracted values replace user edits"),
    min_confidence: Optional[float] = typer.Option(None, help="Skip extraction below this confidence"),
) -> None:
    """Merge CV-extracted data into the stored profile."""

    configure_logging()
    store = _store(store_path)
    data = ExtractedProfileData.model_validate_json(extracted.read_text(encoding="utf-8"))
    options = MergeOptions(
        policy=MergePolicy(personal_info=personal, work_info=work, skills=skills),
        preserve_user_modifications=not overwrite,
        confidence_threshold=min_confidence,
    )

    service = AutofillService(store, config=settings)
    merged = asyncio.run(service.import_extracted(data, options))
    console.print_json(merged.model_dump_json(by_alias=True))


@app.command()
def profile(
    load: Optional[Path] = typer.Option(None, "--load", help="Replace the stored profile with this JSON file"),
    cv: Optional[Path] = typer.Option(None, "--cv", help="Store this file as the CV"),
    enable: Optional[bool] = typer.Option(None, "--enable/--disable", help="Switch autofill on or off"),
    store_path: Optional[Path] = typer.Option(None, "--store", help="Profile store file"),
) -> None:
    """Show or update the stored profile, CV and autofill switch."""

    configure_logging()
    store = _store(store_path)
    service = AutofillService(store, config=settings)

    async def _update() -> None:
        if load is not None:
            await store.set_profile(Profile.model_validate_json(load.read_text(encoding="utf-8")))
        if cv is not None:
            mime_type = mimetypes.guess_type(cv.name)[0] or "application/octet-stream"
            await service.store_cv(CVRecord.from_bytes(cv.name, mime_type, cv.read_bytes()))
        if enable is not None:
            await service.set_autofill_enabled(enable)

    try:
        asyncio.run(_update())
    except AutofillError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(code=1)

    stored = _load_profile(store)
    stored_cv = asyncio.run(store.get_cv())
    enabled = asyncio.run(store.get_autofill_enabled())

    console.print(f"Autofill: {'enabled' if enabled else 'disabled'}")
    if stored_cv:
        console.print(f"CV: {stored_cv.file_name} ({stored_cv.file_size} bytes)")
    if stored:
        console.print_json(json.dumps(stored.model_dump(mode="json", by_alias=True)))
    else:
        console.print("No profile stored")


@app.command()
def config() -> None:
    """Show current configuration."""
    table = Table(title="CV Autofill Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Log Level", settings.log_level)
    table.add_row("Min Mapping Confidence", str(settings.min_field_mapping_confidence))
    table.add_row("Min Autofill Confidence", str(settings.min_autofill_confidence))
    table.add_row("Min Upload Confidence", str(settings.min_file_upload_confidence))
    table.add_row("Tables Path", settings.tables_path or "built-in")
    table.add_row("Fill Delay (ms)", str(settings.field_fill_delay_ms))
    table.add_row("Scan Interval (s)", str(settings.scan_interval_seconds))
    table.add_row("Store Path", settings.store_path)
    table.add_row("Browser Headless", str(settings.browser_headless))

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from cv_autofill import __version__
    console.print(f"CV Autofill v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
