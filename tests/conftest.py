"""Pytest configuration for phased testing.

Tests are organized by phase (f1, f2, ..., f6).
Only tests for the current phase and completed phases should run.
Future phase tests are automatically skipped.
"""

from pathlib import Path

import pytest
import structlog

# Current implementation phase
CURRENT_PHASE = 6

# Book shipped with the repository
BUNDLED_BOOK_DIR = Path(__file__).resolve().parent.parent / "data" / "book"


def pytest_collection_modifyitems(config, items):
    """Skip tests from phases that haven't been implemented yet."""
    for item in items:
        # Extract phase from path (tests/f2/... -> 2)
        parts = item.fspath.strpath.split("/")
        for part in parts:
            if part.startswith("f") and part[1:].isdigit():
                test_phase = int(part[1:])
                if test_phase > CURRENT_PHASE:
                    item.add_marker(
                        pytest.mark.skip(
                            reason=f"Phase F{test_phase} not yet implemented (current: F{CURRENT_PHASE})"
                        )
                    )
                break


CHAPTER_WITH_QUIZ = """---
tags: Constraint Delegation, $ Parameters
---

# Chapter 2 - The boxes of earth

> The heroes search London for the boxes.

Some prose with a [link elsewhere](https://example.com).

```sdl
type BoxOfEarth {
  required property number -> int16;
}
```

```edgeql-repl
db> SELECT City {name} FILTER .name = 'London';
{default::City {name: 'London'}}
```

```
error: InvalidTypeError: operator '+' cannot be applied to operands of type 'std::int64' and 'std::str'
```

## Practice

<!-- quiz-start -->

1. How many boxes
   are there?

2. Write a query:

   ```edgeql
   SELECT BoxOfEarth;
   ```

<!-- quiz-end -->

[Here are the answers.](answers.md)

__Up next:__ The hunt
continues.

[Code so far](code.md)
"""

CHAPTER_WITHOUT_QUIZ = """---
tags: Introspection
---

# Chapter 1 - Jonathan Harker travels

Jonathan takes the train to Bistritz.

```edgeql
SELECT City;
```

Go on to [Chapter 2](../chapter2/index.md).
"""

CHAPTER_LAST = """# Chapter 3 - Varna

No header here, and no quiz. Back to [Chapter 2](../chapter2/index.md).
"""


def write_chapter(
    book_dir: Path,
    chapter_id: str,
    text: str,
    answers: str | None = None,
    code: str | None = None,
) -> Path:
    """Write a chapter directory with optional sibling documents."""
    chapter_dir = book_dir / chapter_id
    chapter_dir.mkdir(parents=True, exist_ok=True)
    (chapter_dir / "index.md").write_text(text, encoding="utf-8")
    if answers is not None:
        (chapter_dir / "answers.md").write_text(answers, encoding="utf-8")
    if code is not None:
        (chapter_dir / "code.md").write_text(code, encoding="utf-8")
    return chapter_dir


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI configures structlog globally; restore the defaults after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def bundled_book_dir() -> Path:
    """The book shipped under data/book."""
    return BUNDLED_BOOK_DIR


@pytest.fixture
def sample_book(tmp_path) -> Path:
    """A three-chapter book in a temporary directory."""
    book_dir = tmp_path / "book"
    write_chapter(book_dir, "chapter1", CHAPTER_WITHOUT_QUIZ)
    write_chapter(
        book_dir,
        "chapter2",
        CHAPTER_WITH_QUIZ,
        answers="# Answers\n\n1. Fifty.\n\n[Back](index.md)\n",
        code="# Code so far\n\n```sdl\ntype BoxOfEarth;\n```\n",
    )
    write_chapter(book_dir, "chapter3", CHAPTER_LAST)
    return book_dir


@pytest.fixture
def quiz_chapter_text() -> str:
    return CHAPTER_WITH_QUIZ


@pytest.fixture
def plain_chapter_text() -> str:
    return CHAPTER_WITHOUT_QUIZ


@pytest.fixture
def make_chapter():
    """Return the helper that writes a chapter directory."""
    return write_chapter
