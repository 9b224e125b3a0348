"""Core tutorial content modules.

- models: Chapter, blocks, links, quiz
- chapter_parser: Markdown chapter -> Chapter
- content_store: Read-only chapter store
- renderer: HTML pages, terminal output, static site
- quiz_extractor: Quiz region extraction
- integrity: Content integrity checks
"""

__all__ = [
    "models",
    "chapter_parser",
    "content_store",
    "renderer",
    "quiz_extractor",
    "integrity",
]
