"""CLI commands for the manual editor.

Local commands:
- preview: Render a manual JSON file per beneficiary in one language
- check: Run save-time validation on a manual JSON file
- draft show / draft discard: Inspect or drop the autosaved draft

API commands (token from $MANUALS_API_TOKEN):
- list: List manuals
- services: List services
- create-service: Create a service
- push: Save a manual JSON file through the editor
"""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from manual_editor.api.client import ApiRequestError, ManualsApiClient
from manual_editor.config.app_config import EditorConfig, load_app_config
from manual_editor.core.document_validator import ensure_document_valid
from manual_editor.core.draft_persistence import (
    AsyncioScheduler,
    DraftPersistenceManager,
    FileDraftStore,
    MemoryDraftStore,
)
from manual_editor.core.editor import DocumentEditorController
from manual_editor.core.errors import (
    DocumentValidationError,
    ManualEditorError,
    StructuralInvariantViolation,
    TransientError,
    ValidationError,
)
from manual_editor.core.image_validator import ImageAttachmentValidator
from manual_editor.core.models import BeneficiaryType, Lang, ManualDocument
from manual_editor.core.preview import (
    AudienceView,
    Preview,
    PreviewKind,
    PreviewStep,
    compose_preview,
)

app = typer.Typer(
    name="manuals",
    help="Author bilingual service manuals.",
    no_args_is_help=True,
)
draft_app = typer.Typer(help="Inspect or discard the autosaved draft.", no_args_is_help=True)
app.add_typer(draft_app, name="draft")

console = Console()


def _load_document_or_exit(file: str) -> ManualDocument:
    """Read a manual JSON file, or exit with a helpful error."""
    path = Path(file).expanduser()
    if not path.exists():
        console.print(f"[red]✗ File not found: {path}[/red]")
        raise typer.Exit(code=1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ManualDocument.from_dict(data)
    except (json.JSONDecodeError, KeyError, ValueError, TypeError, StructuralInvariantViolation) as e:
        console.print(f"[red]✗ Invalid manual file {path.name}: {e}[/red]")
        raise typer.Exit(code=1)


def _draft_manager(config: EditorConfig) -> DraftPersistenceManager:
    return DraftPersistenceManager(
        store=FileDraftStore(Path(config.drafts.state_dir)),
        scheduler=AsyncioScheduler(),
        debounce_seconds=config.drafts.debounce_seconds,
        key=config.drafts.key,
    )


def _parse_lang_or_exit(lang: str) -> Lang:
    try:
        return Lang(lang.lower())
    except ValueError:
        console.print(f"[red]✗ Unknown language '{lang}' (use ar or en)[/red]")
        raise typer.Exit(code=1)


def _parse_beneficiaries_or_exit(values: list[str] | None) -> list[BeneficiaryType] | None:
    if not values:
        return None
    result = []
    for value in values:
        try:
            result.append(BeneficiaryType(value.upper()))
        except ValueError:
            valid = ", ".join(b.value for b in BeneficiaryType)
            console.print(f"[red]✗ Unknown beneficiary '{value}' (use {valid})[/red]")
            raise typer.Exit(code=1)
    return result


def _render_steps(heading: str, steps: list[PreviewStep]) -> None:
    if not steps:
        return
    console.print(f"\n[cyan]{heading}[/cyan]")
    for step in steps:
        console.print(f"  {step.number}. {step.title}")
        if step.body:
            console.print(f"     [dim]{step.body}[/dim]")
        for image in step.images:
            console.print(f"     🖼  {image.alt or image.url}")


def _render_view(view: AudienceView) -> None:
    console.print(f"[bold]{view.title}[/bold]")
    if view.overview:
        console.print(view.overview)
    if view.is_empty:
        console.print("[dim]—[/dim]")
        return
    _render_steps(view.shared_heading, view.shared_steps)
    _render_steps(view.label, view.beneficiary_steps)


def _render_preview(preview: Preview) -> None:
    if preview.kind is PreviewKind.EMPTY:
        console.print(f"[yellow]⚠ {preview.placeholder}[/yellow]")
        return
    for view in preview.views:
        if preview.kind is PreviewKind.TABS:
            console.print(Panel(f"[bold]{view.label}[/bold]", expand=False))
        _render_view(view)
        console.print()


# =============================================================================
# LOCAL COMMANDS
# =============================================================================


@app.command()
def preview(
    file: str = typer.Argument(..., help="Path to manual JSON file"),
    lang: str = typer.Option("ar", "--lang", "-l", help="Preview language: ar, en"),
    beneficiary: list[str] | None = typer.Option(
        None, "--beneficiary", "-b", help="Beneficiary to preview (repeatable)"
    ),
) -> None:
    """Render a manual as each selected beneficiary would read it."""
    document = _load_document_or_exit(file)
    preview_lang = _parse_lang_or_exit(lang)
    beneficiaries = _parse_beneficiaries_or_exit(beneficiary)

    result = compose_preview(document, preview_lang, beneficiaries=beneficiaries)
    _render_preview(result)


@app.command()
def check(
    file: str = typer.Argument(..., help="Path to manual JSON file"),
    lang: str = typer.Option("en", "--lang", "-l", help="Message language: ar, en"),
) -> None:
    """Check whether a manual is ready to save."""
    document = _load_document_or_exit(file)
    config = load_app_config()
    try:
        ensure_document_valid(
            document, lang=_parse_lang_or_exit(lang), max_images=config.images.max_images
        )
    except DocumentValidationError as e:
        table = Table(title=f"{len(e.issues)} issue(s)")
        table.add_column("Field", style="cyan")
        table.add_column("Problem")
        for issue in e.issues:
            table.add_row(issue.field, issue.message)
        console.print(table)
        raise typer.Exit(code=1)

    console.print("[green]✓ Manual is ready to save[/green]")


@draft_app.command("show")
def draft_show() -> None:
    """Show the autosaved draft, if any."""
    config = load_app_config()
    draft = _draft_manager(config).load()
    if draft is None:
        console.print("[dim]No draft saved[/dim]")
        return

    document = draft.document
    console.print("[green]✓ Draft found[/green]")
    console.print(f"  [dim]updated:[/dim]  {draft.updated_at}")
    console.print(f"  [dim]title ar:[/dim] {document.title.ar or '—'}")
    console.print(f"  [dim]title en:[/dim] {document.title.en or '—'}")
    console.print(f"  [dim]steps:[/dim]    {len(document.steps)}")
    if document.selected_beneficiaries:
        selected = ", ".join(b.value for b in document.selected_beneficiaries)
        console.print(f"  [dim]audience:[/dim] {selected}")


@draft_app.command("discard")
def draft_discard(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete the autosaved draft."""
    if not yes and not typer.confirm("Discard the autosaved draft?"):
        raise typer.Exit(code=0)
    config = load_app_config()
    _draft_manager(config).clear()
    console.print("[green]✓ Draft discarded[/green]")


# =============================================================================
# API COMMANDS
# =============================================================================


@app.command(name="list")
def list_manuals() -> None:
    """List manuals from the API."""

    async def _run():
        async with ManualsApiClient() as client:
            return await client.list_manuals()

    try:
        manuals = asyncio.run(_run())
    except (TransientError, ApiRequestError) as e:
        console.print(f"[red]✗ Failed to load manuals: {e}[/red]")
        raise typer.Exit(code=1)

    if not manuals:
        console.print("[dim]No manuals[/dim]")
        return

    table = Table(title="Service Manuals")
    table.add_column("ID", style="cyan")
    table.add_column("Service")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Updated")
    for manual in manuals:
        table.add_row(
            manual.id,
            f"{manual.service_code} {manual.service_name}".strip(),
            manual.version,
            manual.status,
            manual.updated_at,
        )
    console.print(table)


@app.command()
def services() -> None:
    """List services from the API."""

    async def _run():
        async with ManualsApiClient() as client:
            return await client.list_services()

    try:
        rows = asyncio.run(_run())
    except (TransientError, ApiRequestError) as e:
        console.print(f"[red]✗ Failed to load services: {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Services")
    table.add_column("Code", style="cyan")
    table.add_column("Name (ar)")
    table.add_column("Name (en)")
    for service in rows:
        table.add_row(service.code, service.name_ar, service.name_en)
    console.print(table)


@app.command(name="create-service")
def create_service(
    code: str = typer.Argument(..., help="Service code, e.g. SRV-001"),
    name_ar: str = typer.Option(..., "--name-ar", help="Arabic name"),
    name_en: str = typer.Option(..., "--name-en", help="English name"),
) -> None:
    """Create a service."""

    async def _run():
        async with ManualsApiClient() as client:
            return await client.create_service(code.upper(), name_ar, name_en)

    try:
        asyncio.run(_run())
    except ValidationError as e:
        console.print(f"[red]✗ {e.field}: {e.code}[/red]")
        raise typer.Exit(code=1)
    except (TransientError, ApiRequestError) as e:
        console.print(f"[red]✗ Failed to create service: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Service {code.upper()} created[/green]")


@app.command()
def push(
    file: str = typer.Argument(..., help="Path to manual JSON file"),
) -> None:
    """Validate and save a manual through the API."""
    document = _load_document_or_exit(file)
    config = load_app_config()

    async def _run():
        async with ManualsApiClient(config.api) as client:
            # Own slot so a push never touches the interactive autosave draft.
            drafts = DraftPersistenceManager(
                store=MemoryDraftStore(),
                scheduler=AsyncioScheduler(),
                debounce_seconds=config.drafts.debounce_seconds,
            )
            controller = DocumentEditorController(
                draft_manager=drafts,
                api_client=client,
                image_validator=ImageAttachmentValidator(
                    max_images=config.images.max_images,
                    max_file_size=config.images.max_file_size_bytes,
                    allowed_mime_types=config.images.allowed_mime_types,
                ),
                ui_lang=config.ui_lang,
            )
            controller.open_document(document)
            return await controller.save()

    try:
        outcome = asyncio.run(_run())
    except ManualEditorError as e:
        console.print(f"[red]✗ Save rejected: {e}[/red]")
        raise typer.Exit(code=1)

    if outcome is None or not outcome.success:
        if outcome is not None and outcome.issues:
            for issue in outcome.issues:
                console.print(f"[red]✗ {issue.field}: {issue.message}[/red]")
        elif outcome is not None and outcome.error:
            console.print(f"[yellow]⚠ {outcome.error} (retry later)[/yellow]")
        raise typer.Exit(code=1)

    console.print("[green]✓ Manual saved[/green]")
    console.print(f"  [dim]id:[/dim] {outcome.manual_id}")


if __name__ == "__main__":
    app()
