from __future__ import annotations

from dataclasses import dataclass

import markdown
from markdown.extensions import Extension

HTML_FORMAT = "org.matrix.custom.html"


@dataclass(frozen=True)
class ChatMessage:
    """A reply for a chat room: a plain body with an optional HTML rendering."""

    plain: str
    html: str | None = None

    @classmethod
    def text(cls, plain: str) -> ChatMessage:
        return cls(plain=plain)

    @classmethod
    def from_html(cls, plain: str, html: str) -> ChatMessage:
        return cls(plain=plain, html=html)

    @classmethod
    def from_markdown(cls, md: str) -> ChatMessage:
        return cls(plain=md, html=render_markdown(md))

    def to_content(self, message_type: str) -> dict[str, str]:
        content = {"msgtype": message_type, "body": self.plain}
        if self.html is not None:
            content["format"] = HTML_FORMAT
            content["formatted_body"] = self.html
        return content


class _EscapeRawHtml(Extension):
    """Treat raw HTML in the source as text."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:  # noqa: N802
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")


def render_markdown(md: str) -> str:
    extensions = ["fenced_code", "tables", "sane_lists", _EscapeRawHtml()]
    return markdown.markdown(md, extensions=extensions).strip()
