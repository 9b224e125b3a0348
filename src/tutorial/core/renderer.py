"""Chapter rendering.

Responsibilities:
- Turn a parsed chapter into a standalone HTML page
- Keep block typing visible: prose goes through markdown, code blocks are
  emitted literally with their language tag as a CSS class
- Wrap the quiz region in its own <section>
- Rewrite inter-document links (answers, code so far, other chapters) to
  the pages produced by build_site()
- Print a chapter to a rich console
- Build a static site for a whole ContentStore
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import markdown
import structlog
from bs4 import BeautifulSoup
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.syntax import Syntax

from tutorial.core.chapter_parser import (
    QUIZ_END_MARKER,
    QUIZ_START_MARKER,
    ChapterFormatError,
    parse_chapter,
)
from tutorial.core.content_store import ContentStore
from tutorial.core.models import Chapter, CodeBlock, CodeLanguage, RenderedPage
from tutorial.core.quiz_extractor import MalformedQuizError, extract_quiz

logger = structlog.get_logger(__name__)

DEFAULT_SITE_TITLE = "Learn EdgeQL with Dracula"
DEFAULT_LABELS = {
    "sdl": "Schema",
    "edgeql": "EdgeQL",
    "edgeql-repl": "EdgeQL REPL",
    "plain": "Output",
}
# sane_lists keeps the real start number of a list split by a code block
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]
CHAPTER_LINK_PATTERN = re.compile(r"^(?:\.\./)*(?:\./)?(chapter\d+)/?(?:index\.md)?$")

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title} | {site_title}</title>
</head>
<body>
<article class="chapter" id="{chapter_id}">
{body}
</article>
{nav}
</body>
</html>
"""


class RenderError(Exception):
    """Raised when a chapter cannot be rendered."""

    def __init__(self, chapter_id: str, reason: str):
        self.chapter_id = chapter_id
        self.reason = reason
        super().__init__(f"Cannot render '{chapter_id}': {reason}")


@dataclass
class BuildResult:
    """Result of a static site build."""

    out_dir: Path
    files: list[Path] = field(default_factory=list)
    chapters: int = 0


def render(
    chapter: Chapter,
    store: ContentStore | None = None,
    site_title: str = DEFAULT_SITE_TITLE,
    labels: dict[str, str] | None = None,
) -> RenderedPage:
    """Render a chapter into a displayable HTML page.

    Args:
        chapter: Parsed chapter
        store: When given, previous/next navigation is added
        site_title: Title shown in the page <title>
        labels: Display label per fence tag (defaults to DEFAULT_LABELS)

    Returns:
        RenderedPage with the HTML and the rewritten link targets

    Raises:
        RenderError: If the quiz region is malformed
    """
    labels = labels or DEFAULT_LABELS

    try:
        quiz = extract_quiz(chapter)
    except MalformedQuizError as e:
        raise RenderError(chapter.chapter_id, str(e)) from e

    parts = [f"<h1>Chapter {chapter.ordinal} - {html.escape(chapter.title)}</h1>"]
    if chapter.tags:
        items = "".join(f"<li>{html.escape(tag)}</li>" for tag in chapter.tags)
        parts.append(f'<ul class="tags">{items}</ul>')

    for block in chapter.blocks:
        if isinstance(block, CodeBlock):
            parts.append(render_code_block(block, labels))
        else:
            parts.append(_render_prose(block.text))

    body = "\n".join(parts)
    if quiz is not None:
        body = body.replace(QUIZ_START_MARKER, '<section class="quiz">')
        body = body.replace(QUIZ_END_MARKER, "</section>")

    nav = _render_nav(chapter, store) if store is not None else ""

    page = PAGE_TEMPLATE.format(
        title=html.escape(f"Chapter {chapter.ordinal} - {chapter.title}"),
        site_title=html.escape(site_title),
        chapter_id=chapter.chapter_id,
        body=body,
        nav=nav,
    )
    page, links = rewrite_links(page, chapter.chapter_id)

    logger.debug(
        "renderer.page",
        chapter_id=chapter.chapter_id,
        code_blocks=len(chapter.code_blocks),
        links=len(links),
        has_quiz=quiz is not None,
    )

    return RenderedPage(
        chapter_id=chapter.chapter_id,
        title=chapter.title,
        html=page,
        links=links,
        code_block_count=len(chapter.code_blocks),
    )


def render_text(text: str, chapter_id: str, **kwargs) -> RenderedPage:
    """Parse and render a chapter document in one step.

    Raises:
        RenderError: If the document is malformed (e.g. unterminated code block)
    """
    try:
        chapter = parse_chapter(text, chapter_id)
    except ChapterFormatError as e:
        raise RenderError(chapter_id, str(e)) from e
    return render(chapter, **kwargs)


def render_code_block(block: CodeBlock, labels: dict[str, str] | None = None) -> str:
    """Emit a code block literally, tagged with its language."""
    labels = labels or DEFAULT_LABELS
    kind = block.kind.value
    language = block.language or CodeLanguage.PLAIN.value
    label = labels.get(kind, kind)
    return (
        f'<div class="code-block">'
        f'<span class="code-label">{html.escape(label)}</span>'
        f'<pre><code class="language-{html.escape(language)}" data-block="{kind}">'
        f"{html.escape(block.text)}"
        f"</code></pre></div>"
    )


def render_sibling(
    chapter: Chapter,
    which: str,
    site_title: str = DEFAULT_SITE_TITLE,
) -> str:
    """Render the answers or "code so far" document of a chapter.

    Args:
        chapter: Chapter owning the document
        which: "answers" or "code"

    Raises:
        RenderError: If the chapter has no such document
    """
    if which == "answers":
        text, heading = chapter.answers, "Answers"
    elif which == "code":
        text, heading = chapter.code_so_far, "Code so far"
    else:
        raise RenderError(chapter.chapter_id, f"unknown document '{which}'")

    if text is None:
        raise RenderError(chapter.chapter_id, f"chapter has no {heading.lower()} document")

    body = markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
    page = PAGE_TEMPLATE.format(
        title=html.escape(f"Chapter {chapter.ordinal} - {heading}"),
        site_title=html.escape(site_title),
        chapter_id=f"{chapter.chapter_id}-{which}",
        body=body,
        nav=f'<nav class="chapter-nav"><a rel="up" href="../{chapter.chapter_id}.html">'
        f"Back to Chapter {chapter.ordinal}</a></nav>",
    )
    page, _ = rewrite_links(page, chapter.chapter_id, prefix="../")
    return page


def rewrite_links(page: str, chapter_id: str, prefix: str = "") -> tuple[str, list[str]]:
    """Point markdown document links at the generated HTML pages.

    - answers.md -> <chapter_id>/answers.html
    - code.md -> <chapter_id>/code.html
    - ../chapterN/index.md -> chapterN.html
    - index.md -> <chapter_id>.html

    Args:
        page: HTML page
        chapter_id: Chapter the page belongs to
        prefix: Prefix to reach the site root from the page

    Returns:
        Tuple of (rewritten HTML, list of all link targets on the page)
    """
    soup = BeautifulSoup(page, "lxml")
    targets: list[str] = []

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if not href.startswith(("http://", "https://", "#", "mailto:")):
            path, _, fragment = href.partition("#")
            name = PurePosixPath(path).name
            chapter_match = CHAPTER_LINK_PATTERN.match(path)
            if name == "answers.md":
                owner = _owning_chapter(path, chapter_id)
                href = f"{prefix}{owner}/answers.html"
            elif name == "code.md":
                owner = _owning_chapter(path, chapter_id)
                href = f"{prefix}{owner}/code.html"
            elif chapter_match:
                href = f"{prefix}{chapter_match.group(1)}.html"
            elif path in ("index.md", "./index.md"):
                href = f"{prefix}{chapter_id}.html"
            if fragment and "#" not in href:
                href = f"{href}#{fragment}"
            anchor["href"] = href
        targets.append(href)

    return str(soup), targets


def render_console(
    chapter: Chapter,
    console: Console | None = None,
    labels: dict[str, str] | None = None,
) -> None:
    """Print a chapter to the terminal."""
    console = console or Console()
    labels = labels or DEFAULT_LABELS

    console.print(Rule(f"Chapter {chapter.ordinal} - {chapter.title}"))
    if chapter.tags:
        console.print(f"[dim]tags:[/dim] {', '.join(chapter.tags)}")

    for block in chapter.blocks:
        if isinstance(block, CodeBlock):
            kind = block.kind.value
            lexer = block.language if block.language and kind != "plain" else "text"
            console.print(
                Panel(
                    Syntax(block.text, lexer, word_wrap=True),
                    title=labels.get(kind, kind),
                    title_align="left",
                )
            )
        else:
            console.print(Markdown(block.text))


def build_site(
    store: ContentStore,
    out_dir: Path,
    site_title: str = DEFAULT_SITE_TITLE,
    labels: dict[str, str] | None = None,
) -> BuildResult:
    """Render every chapter of a store into a static site.

    Writes:
    - index.html (table of contents with tags)
    - chapterN.html per chapter
    - chapterN/answers.html and chapterN/code.html when present

    Returns:
        BuildResult listing the written files
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    result = BuildResult(out_dir=out_dir)

    logger.info("build_site.start", out_dir=str(out_dir), chapters=len(store.chapters))

    for chapter in store.list_chapters():
        page = render(chapter, store=store, site_title=site_title, labels=labels)
        result.files.append(_write(out_dir / f"{chapter.chapter_id}.html", page.html))

        for which, text in (("answers", chapter.answers), ("code", chapter.code_so_far)):
            if text is None:
                continue
            sibling = render_sibling(chapter, which, site_title=site_title)
            result.files.append(
                _write(out_dir / chapter.chapter_id / f"{which}.html", sibling)
            )
        result.chapters += 1

    result.files.insert(0, _write(out_dir / "index.html", _render_index(store, site_title)))

    logger.info("build_site.done", out_dir=str(out_dir), files=len(result.files))
    return result


def _render_prose(text: str) -> str:
    # Markers need blank lines around them to survive as raw HTML blocks
    for marker in (QUIZ_START_MARKER, QUIZ_END_MARKER):
        text = re.sub(
            rf"^[ \t]*{re.escape(marker)}[ \t]*$",
            f"\n{marker}\n",
            text,
            flags=re.MULTILINE,
        )
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def _render_nav(chapter: Chapter, store: ContentStore) -> str:
    links = []
    previous = store.previous(chapter)
    following = store.next(chapter)
    if previous is not None:
        links.append(
            f'<a rel="prev" href="../{previous.chapter_id}/index.md">'
            f"Chapter {previous.ordinal} - {html.escape(previous.title)}</a>"
        )
    if following is not None:
        links.append(
            f'<a rel="next" href="../{following.chapter_id}/index.md">'
            f"Chapter {following.ordinal} - {html.escape(following.title)}</a>"
        )
    if not links:
        return ""
    return '<nav class="chapter-nav">' + " ".join(links) + "</nav>"


def _render_index(store: ContentStore, site_title: str) -> str:
    rows = []
    for chapter in store.list_chapters():
        tags = ", ".join(html.escape(t) for t in chapter.tags)
        rows.append(
            f'<li><a href="{chapter.chapter_id}.html">Chapter {chapter.ordinal} - '
            f"{html.escape(chapter.title)}</a>"
            + (f' <span class="tags">{tags}</span>' if tags else "")
            + "</li>"
        )
    return PAGE_TEMPLATE.format(
        title="Contents",
        site_title=html.escape(site_title),
        chapter_id="contents",
        body=f"<h1>{html.escape(site_title)}</h1>\n<ol class=\"toc\">{''.join(rows)}</ol>",
        nav="",
    )


def _owning_chapter(path: str, default: str) -> str:
    match = re.search(r"(chapter\d+)/", path)
    return match.group(1) if match else default


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
