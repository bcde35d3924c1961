"""Markdown rendering for question text and explanations shown in attempt reviews.

Math is left as ``$...$`` source; the review page loads MathJax to typeset it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts instructor-authored markdown into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str | None) -> str:
        """Render a markdown string into an HTML fragment."""
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return ""
        return self._markdown.render(sanitized)


# MarkdownIt is safe to share for read-only renders.
renderer = MarkdownRenderer()
