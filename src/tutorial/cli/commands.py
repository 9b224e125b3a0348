"""CLI commands for the tutorial toolkit.

Commands:
- chapters: List chapters in narrative order
- show: Print a chapter to the terminal
- render: Render a chapter to HTML
- build: Build the static site
- quiz: Show the quiz of a chapter
- check: Run content integrity checks
- tags: Show the tag index
"""

import logging
import sys
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tutorial.config.app_config import load_app_config
from tutorial.core.chapter_parser import ChapterFormatError
from tutorial.core.content_store import (
    AmbiguousChapterIdError,
    ChapterNotFoundError,
    ContentStore,
    ContentStoreError,
    resolve_chapter_id,
)
from tutorial.core.integrity import check_book, check_directory
from tutorial.core.models import Chapter
from tutorial.core.quiz_extractor import MalformedQuizError, extract_quiz
from tutorial.core.renderer import RenderError, build_site, render, render_console

app = typer.Typer(
    name="book",
    help="Read, render and check the Dracula EdgeQL tutorial book.",
    no_args_is_help=True,
)

console = Console()

BookDirOption = typer.Option(
    None, "--book-dir", "-b", help="Book directory (defaults to config paths.book_dir)"
)


def _setup_logging(verbose: bool) -> None:
    """Send structlog output to stderr so stdout only carries command output."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs on stderr"),
) -> None:
    """Read, render and check the Dracula EdgeQL tutorial book."""
    _setup_logging(verbose)


def _load_store_or_exit(book_dir: Path | None) -> ContentStore:
    """Load the content store, or exit with a helpful error."""
    config = load_app_config()
    store = ContentStore(book_dir or config.paths.book_dir)
    try:
        store.load()
    except ChapterFormatError as e:
        console.print(f"[red]✗ Malformed chapter: {e}[/red]")
        raise typer.Exit(code=1)
    except ContentStoreError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    return store


def _get_chapter_or_exit(store: ContentStore, chapter_id: str) -> Chapter:
    """Resolve chapter id prefix to a chapter, or exit with helpful error."""
    try:
        return store.get(chapter_id)
    except ChapterNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        if e.available:
            console.print("\nAvailable chapters:")
            for c in e.available:
                console.print(f"  - {c}")
        raise typer.Exit(code=1)
    except AmbiguousChapterIdError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def chapters(book_dir: Path | None = BookDirOption) -> None:
    """List chapters in narrative order."""
    store = _load_store_or_exit(book_dir)

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", width=4)
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Tags", style="dim")
    table.add_column("Quiz", justify="center", width=6)

    for chapter in store.list_chapters():
        table.add_row(
            str(chapter.ordinal),
            chapter.chapter_id,
            chapter.title,
            ", ".join(chapter.tags),
            "[green]✓[/green]" if chapter.has_quiz else "-",
        )

    console.print(table)
    console.print(f"\n[dim]{len(store.chapters)} chapters in {store.book_dir}[/dim]")


@app.command()
def show(
    chapter_id: str = typer.Argument(..., help="Chapter ID (e.g., 'chapter14') or unique prefix"),
    book_dir: Path | None = BookDirOption,
) -> None:
    """Print a chapter to the terminal."""
    store = _load_store_or_exit(book_dir)
    chapter = _get_chapter_or_exit(store, chapter_id)
    render_console(chapter, console, labels=load_app_config().site.languages)

    following = store.next(chapter)
    if following is not None:
        console.print(f"\n[dim]Next:[/dim] Chapter {following.ordinal} - {following.title}")


@app.command(name="render")
def render_chapter(
    chapter_id: str = typer.Argument(..., help="Chapter ID (e.g., 'chapter14') or unique prefix"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write HTML to this file"),
    book_dir: Path | None = BookDirOption,
) -> None:
    """Render a chapter to an HTML page."""
    config = load_app_config()
    store = _load_store_or_exit(book_dir)
    chapter = _get_chapter_or_exit(store, chapter_id)

    try:
        page = render(
            chapter,
            store=store,
            site_title=config.site.title,
            labels=config.site.languages,
        )
    except RenderError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(page.html)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(page.html, encoding="utf-8")
    console.print(f"[green]✓ Rendered {chapter.chapter_id}[/green]")
    console.print(f"  [dim]output:[/dim]      {output}")
    console.print(f"  [dim]code blocks:[/dim] {page.code_block_count}")


@app.command()
def build(
    output: Path | None = typer.Option(None, "--output", "-o", help="Site output directory"),
    book_dir: Path | None = BookDirOption,
) -> None:
    """Build the static site for the whole book."""
    config = load_app_config()
    store = _load_store_or_exit(book_dir)
    out_dir = output or config.paths.site_dir

    console.print(f"[blue]Building site from {store.book_dir}...[/blue]")

    try:
        result = build_site(
            store,
            out_dir,
            site_title=config.site.title,
            labels=config.site.languages,
        )
    except RenderError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Site built: {result.chapters} chapters, {len(result.files)} files[/green]")
    console.print(f"  [dim]output:[/dim] {result.out_dir}")


@app.command()
def quiz(
    chapter_id: str = typer.Argument(..., help="Chapter ID (e.g., 'chapter14') or unique prefix"),
    book_dir: Path | None = BookDirOption,
) -> None:
    """Show the practice questions of a chapter."""
    store = _load_store_or_exit(book_dir)
    chapter = _get_chapter_or_exit(store, chapter_id)

    try:
        result = extract_quiz(chapter)
    except MalformedQuizError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if result is None:
        console.print(f"[yellow]⚠ {chapter.chapter_id} has no quiz[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[bold]Practice time - Chapter {chapter.ordinal}[/bold]\n")
    for question in result.questions:
        console.print(f"  {question.number}. {escape(question.text)}")
        for block in question.code:
            console.print(f"[dim]{escape(block.text)}[/dim]", highlight=False)
    console.print(f"\n[dim]Answers:[/dim] {result.answers_link.target}")


@app.command()
def check(
    chapter_id: str | None = typer.Argument(None, help="Only check this chapter"),
    book_dir: Path | None = BookDirOption,
) -> None:
    """Check content integrity (titles, fences, quiz, sibling documents)."""
    config = load_app_config()
    store = ContentStore(book_dir or config.paths.book_dir)

    # Chapters are checked as files so one broken document does not hide the others
    try:
        if chapter_id:
            chapter_dirs = {d.name: d for d in store.chapter_dirs()}
            resolved = resolve_chapter_id(chapter_id, list(chapter_dirs))
            reports = {resolved: check_directory(chapter_dirs[resolved])}
        else:
            reports = check_book(store)
    except ContentStoreError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    failing = 0
    for cid, report in reports.items():
        if report.ok:
            console.print(f"[green]✓ {cid}[/green]")
            continue
        failing += 1
        console.print(f"[red]✗ {cid}[/red]")
        for issue in report.issues:
            where = f" (line {issue.line})" if issue.line else ""
            console.print(f"  [yellow]• {issue.code}{where}: {escape(issue.message)}[/yellow]")

    if failing:
        console.print(f"\n[red]{failing} of {len(reports)} chapters have issues[/red]")
        raise typer.Exit(code=1)


@app.command()
def tags(book_dir: Path | None = BookDirOption) -> None:
    """Show which chapters carry each tag."""
    store = _load_store_or_exit(book_dir)
    index = store.tags()

    if not index:
        console.print("[yellow]⚠ No tags found[/yellow]")
        return

    for tag, chapter_ids in index.items():
        console.print(f"[cyan]{escape(tag)}[/cyan]: {', '.join(chapter_ids)}", highlight=False)


if __name__ == "__main__":
    app()
