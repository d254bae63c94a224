"""Decode marker-encoded inline text left behind by the old editor.

Older stored content carries formatting as literal markers inside plain
text (``**bold**``, ``*italic*``, ```code```, ``[text](href)``). The
markdown-it inline tokenizer turns those back into structured spans.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List

from markdown_it import MarkdownIt

from .model import InlineText

_MARKER_HINT = re.compile(r"[*_`\[]")


@lru_cache(maxsize=1)
def _markdown() -> MarkdownIt:
    # Raw HTML stays literal text; it was already parsed once.
    return MarkdownIt("commonmark", {"html": False})


def has_markers(text: str) -> bool:
    return bool(_MARKER_HINT.search(text))


def decode_markers(text: str, base: InlineText | None = None) -> List[InlineText]:
    """Split ``text`` into spans, applying ``base`` marks to every span."""
    base = base or InlineText("")
    if not text or not has_markers(text):
        return [InlineText(text).with_marks(base.bold, base.italic, base.code, base.href)]

    tokens = _markdown().parseInline(text)
    children = tokens[0].children if tokens else None
    spans = _spans_from_tokens(children or [])
    return [span.with_marks(base.bold, base.italic, base.code, base.href) for span in spans]


def _spans_from_tokens(children: Iterable) -> List[InlineText]:
    result: List[InlineText] = []
    bold = 0
    italic = 0
    href: str | None = None
    for tok in children:
        if tok.type == "text":
            result.append(InlineText(tok.content, bold=bold > 0, italic=italic > 0, href=href))
        elif tok.type == "softbreak":
            result.append(InlineText(" ", bold=bold > 0, italic=italic > 0, href=href))
        elif tok.type == "hardbreak":
            result.append(InlineText("\n"))
        elif tok.type == "strong_open":
            bold += 1
        elif tok.type == "strong_close":
            bold = max(0, bold - 1)
        elif tok.type == "em_open":
            italic += 1
        elif tok.type == "em_close":
            italic = max(0, italic - 1)
        elif tok.type == "code_inline":
            result.append(InlineText(tok.content, bold=bold > 0, italic=italic > 0, code=True, href=href))
        elif tok.type == "link_open":
            href = str(tok.attrGet("href") or "") or None
        elif tok.type == "link_close":
            href = None
        elif tok.type == "image":
            if tok.content:
                result.append(InlineText(tok.content, bold=bold > 0, italic=italic > 0, href=href))
        elif tok.content:
            result.append(InlineText(tok.content, bold=bold > 0, italic=italic > 0, href=href))
    return result
