"""Command line interface for Notevault using Rich and Typer."""

import json
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from notevault.config import get_settings
from notevault.dependencies import (
    VaultClient,
    VaultConfigError,
    VaultNotFoundError,
    VaultSecurityError,
    get_vault_root,
    setup_logging,
)
from notevault.notes.models import (
    BatchOutcome,
    CreateNoteRequest,
    ErrorKind,
    NoteChanges,
    TemplateNoteRequest,
)
from notevault.notes.tools import create_from_template, create_note, delete_notes, modify_notes
from notevault.search.models import (
    Operator,
    PropertyValuePair,
    SearchCriteria,
    SearchRequest,
    SearchResult,
)
from notevault.search.store import ResultStore
from notevault.search.tools import search_notes

app = typer.Typer(
    name="notevault",
    help="Search, modify and delete notes in a markdown vault.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def open_vault() -> tuple[VaultClient, ResultStore]:
    """Resolve the configured vault and result store, or exit."""
    settings = get_settings()
    try:
        root = get_vault_root(settings)
    except VaultConfigError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    return VaultClient(vault_path=root), ResultStore(settings.state_file)


def parse_pairs(raw_pairs: list[str], option: str) -> list[PropertyValuePair]:
    """Parse ``name,value`` options, warning about malformed ones."""
    pairs = []
    for raw in raw_pairs:
        pair = PropertyValuePair.parse(raw)
        if pair is None:
            err_console.print(f"[yellow]Ignoring {option} '{raw}': expected name,value[/yellow]")
            continue
        pairs.append(pair)
    return pairs


def print_results_table(results: list[SearchResult]) -> None:
    """Print search results as a table."""
    if not results:
        console.print("No results found.")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Path", style="green")
    table.add_column("Title")
    table.add_column("Last Modified")

    for item in results:
        table.add_row(
            str(item.index),
            item.relative_path,
            item.title or "(no title)",
            item.last_modification_date or "N/A",
        )
    console.print(table)


def report_batch(outcome: BatchOutcome, as_json: bool, success_text: str = "Success") -> None:
    """Print a batch outcome and exit non-zero on failure."""
    if as_json:
        payload: dict = {"success": outcome.success}
        if outcome.errors:
            payload["errors"] = outcome.errors
        typer.echo(json.dumps(payload, indent=4))
    elif outcome.success:
        console.print(f"[green]{success_text}[/green]")
    else:
        for error in outcome.errors:
            err_console.print(f"[red]{escape(error)}[/red]")

    if not outcome.success:
        raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Notevault CLI."""
    if verbose:
        setup_logging("DEBUG")


@app.command()
def search(
    operator: Operator = typer.Option(
        Operator.AND, "--operator", case_sensitive=False, help="Combine criteria with AND or OR"
    ),
    path: Optional[list[str]] = typer.Option(
        None, "--path", help="Relative path(s) from vault root (exact or folder prefix)"
    ),
    path_contains: Optional[list[str]] = typer.Option(
        None, "--path-contains", "--pathContains", help="Substring of the relative path"
    ),
    without_path_contains: Optional[list[str]] = typer.Option(
        None,
        "--without-path-contains",
        "--withoutPathContains",
        help="Exclude notes whose path contains this",
    ),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Frontmatter tag"),
    without_tag: Optional[list[str]] = typer.Option(
        None, "--without-tag", "--withoutTag", help="Exclude notes with this tag"
    ),
    prop: Optional[list[str]] = typer.Option(
        None, "--property", help="Frontmatter property that must exist"
    ),
    without_property: Optional[list[str]] = typer.Option(
        None, "--without-property", "--withoutProperty", help="Exclude notes with this property"
    ),
    property_value: Optional[list[str]] = typer.Option(
        None, "--property-value", "--propertyValue", help="name,value pair"
    ),
    without_property_value: Optional[list[str]] = typer.Option(
        None,
        "--without-property-value",
        "--withoutPropertyValue",
        help="Exclude notes with this name,value pair",
    ),
    title: Optional[list[str]] = typer.Option(None, "--title", help="Substring of the title"),
    content: Optional[list[str]] = typer.Option(None, "--content", help="Substring of the body"),
    modified_before: Optional[str] = typer.Option(
        None, "--modified-before", "--modifiedBefore", help="YYYY-MM-DD, inclusive"
    ),
    modified_after: Optional[str] = typer.Option(
        None, "--modified-after", "--modifiedAfter", help="YYYY-MM-DD, inclusive"
    ),
    last: Optional[int] = typer.Option(None, "--last", help="Only the N most recently modified"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output results as JSON"),
) -> None:
    """Search notes and remember the results for modify/delete."""
    vault, store = open_vault()

    try:
        request = SearchRequest(
            criteria=SearchCriteria(
                path=path or [],
                path_contains=path_contains or [],
                tags=tag or [],
                properties=prop or [],
                property_value=parse_pairs(property_value or [], "--property-value"),
                title=title or [],
                content=content or [],
                without_path_contains=without_path_contains or [],
                without_tags=without_tag or [],
                without_properties=without_property or [],
                without_property_value=parse_pairs(
                    without_property_value or [], "--without-property-value"
                ),
            ),
            operator=operator,
            modified_before=modified_before,
            modified_after=modified_after,
            last=last,
        )
    except ValidationError as e:
        err_console.print(f"[red]Invalid search options:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    if request.criteria.is_empty and not as_json:
        err_console.print("[yellow]No search criteria provided. Listing all notes in vault.[/yellow]")

    try:
        results = search_notes(vault, request, store)
    except OSError as e:
        err_console.print(f"[red]Failed to save search results: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(
            json.dumps(
                [r.model_dump(mode="json", by_alias=True) for r in results.results],
                indent=4,
                ensure_ascii=False,
            )
        )
    else:
        print_results_table(results.results)


@app.command()
def modify(
    ids: list[str] = typer.Argument(..., help="ID(s) from the latest search result"),
    property_value: Optional[list[str]] = typer.Option(
        None, "--property-value", "--propertyValue", help="name,value (more commas make a list)"
    ),
    add_tag: Optional[list[str]] = typer.Option(None, "--add-tag", "--addTag"),
    set_tag: Optional[str] = typer.Option(
        None, "--set-tag", "--setTag", help="Replace all tags with a single tag"
    ),
    remove_tag: Optional[list[str]] = typer.Option(None, "--remove-tag", "--removeTag"),
    content: Optional[str] = typer.Option(None, "--content", help="New body content"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output result as JSON"),
) -> None:
    """Modify notes by their ID from the latest search result."""
    vault, store = open_vault()
    changes = NoteChanges(
        property_values=property_value or [],
        add_tags=add_tag or [],
        set_tag=set_tag,
        remove_tags=remove_tag or [],
        content=content,
    )
    report_batch(modify_notes(ids, changes, store, vault), as_json)


@app.command()
def delete(
    ids: list[str] = typer.Argument(..., help="ID(s) from the latest search result"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output result as JSON"),
) -> None:
    """Delete notes by their ID from the latest search result."""
    vault, store = open_vault()

    def confirm(targets: list[SearchResult]) -> bool:
        err_console.print("[yellow]The following notes will be deleted:[/yellow]")
        for item in targets:
            err_console.print(f"  - {item.relative_path} ({item.title or '(no title)'})")
        return Confirm.ask("Are you sure you want to delete these notes?", default=False)

    outcome = delete_notes(ids, store, vault, confirm=None if yes else confirm)

    if outcome.error is ErrorKind.CANCELLED:
        if as_json:
            typer.echo(json.dumps({"success": False, "error": outcome.message}))
        else:
            console.print(outcome.message)
        return

    if not as_json:
        for item in outcome.outcomes:
            if item.ok:
                console.print(f"[green]{item.message}[/green]")
    report_batch(outcome, as_json, success_text=f"Deleted {len(outcome.outcomes)} note(s)")


@app.command()
def create(
    folder: str = typer.Argument(..., help="Folder relative to the vault root"),
    title: str = typer.Argument(..., help="Title of the note, also used as filename"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag to apply"),
    property_value: Optional[list[str]] = typer.Option(
        None, "--property-value", "--propertyValue", help="name,value (repeat to build a list)"
    ),
    content: str = typer.Option("", "--content", help="Body content"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output result as JSON"),
) -> None:
    """Create a new note."""
    vault, _ = open_vault()
    try:
        request = CreateNoteRequest(
            folder=folder,
            title=title,
            tags=tag or [],
            property_values=property_value or [],
            content=content,
        )
    except ValidationError:
        err_console.print("[red]Title must not be blank.[/red]")
        raise typer.Exit(code=1)
    try:
        outcome = create_note(vault, request)
    except VaultSecurityError:
        err_console.print("[red]Invalid path: cannot create notes outside the vault.[/red]")
        raise typer.Exit(code=1)
    except OSError as e:
        err_console.print(f"[red]Failed to create note: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(outcome.model_dump(mode="json"), indent=4))
    else:
        console.print(f"[green]Note created: {outcome.relative_path}[/green]")


@app.command("from-template")
def from_template(
    folder: str = typer.Argument(..., help="Folder relative to the vault root"),
    title: str = typer.Argument(..., help="Title of the note; the filename is its slug"),
    template: str = typer.Argument(..., help="Template file, absolute or relative to the vault"),
    replace: Optional[list[str]] = typer.Option(
        None, "--replace", help="name,value: replaces {{name}} with value"
    ),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output result as JSON"),
) -> None:
    """Create a new note from a template file."""
    vault, _ = open_vault()

    def fail(message: str) -> NoReturn:
        if as_json:
            typer.echo(json.dumps({"success": False, "error": message}))
        else:
            err_console.print(f"[red]{escape(message)}[/red]")
        raise typer.Exit(code=1)

    try:
        request = TemplateNoteRequest(
            folder=folder, title=title, template=template, replacements=replace or []
        )
    except ValidationError:
        fail("Title and template must not be blank.")

    try:
        outcome = create_from_template(vault, request)
    except VaultNotFoundError as e:
        fail(str(e))
    except VaultSecurityError:
        fail("Invalid path: template and note must stay inside the vault.")
    except (OSError, UnicodeDecodeError) as e:
        fail(f"Failed to create note: {e}")

    if as_json:
        payload = {"success": True, "path": outcome.relative_path, "slug": outcome.slug}
        typer.echo(json.dumps(payload, indent=4))
    else:
        console.print(f"[green]Note created: {outcome.relative_path}[/green]")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: PORT)"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"Starting Notevault API on {host}:{port}")
    uvicorn.run("notevault.main:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    app()
