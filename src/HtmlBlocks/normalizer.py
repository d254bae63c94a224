"""Edge-case policies applied while building the Document Tree.

The serializer and the host editor both rely on what these establish:
every root child is a block, empty source elements survive as
``EmptyBlock``, lists with any text have at least one item, and an image
wrapped in a link is a single ``ImageBlock``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Iterable, List
from urllib.parse import urlparse

from bs4 import Tag

from .model import Block, ImageBlock, InlineRun, InlineText, Paragraph, inline_plain_text

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")
_INLINE_WS = re.compile(r"[^\S\n]+")
_LIST_MARKER = re.compile(r"^\s*(?:[•\-*–]|\d{1,3}[.)])\s+")
_DANGEROUS_SCHEMES = frozenset({"javascript", "vbscript", "data"})


def collapse_whitespace(text: str) -> str:
    return _WS.sub(" ", text)


def normalize_code_text(text: str) -> str:
    lines = [_INLINE_WS.sub(" ", line).strip() for line in text.strip().splitlines()]
    return "\n".join(line for line in lines if line)


def normalize_inline(run: Iterable[InlineText]) -> InlineRun:
    """Collapse whitespace, trim the run, drop empty spans, merge equal marks.

    ``"\\n"`` characters are forced line breaks and are kept, without the
    spaces around them.
    """
    out: InlineRun = []
    at_break = True
    for span in _merge(run):
        text = _INLINE_WS.sub(" ", span.text)
        text = text.replace(" \n", "\n").replace("\n ", "\n")
        if not out:
            text = text.lstrip(" \n")
        elif at_break:
            text = text.lstrip(" ")
        if text.startswith("\n") and out and out[-1].text.endswith(" "):
            out[-1] = replace(out[-1], text=out[-1].text.rstrip(" "))
        if not text:
            continue
        out.append(replace(span, text=text))
        at_break = text.endswith((" ", "\n"))

    while out:
        trimmed = out[-1].text.rstrip(" \n")
        if trimmed:
            out[-1] = replace(out[-1], text=trimmed)
            break
        out.pop()
    return _merge(span for span in out if span.text)


def _merge(run: Iterable[InlineText]) -> InlineRun:
    merged: InlineRun = []
    for span in run:
        if not span.text:
            continue
        if merged and merged[-1].same_marks(span):
            merged[-1] = replace(merged[-1], text=merged[-1].text + span.text)
        else:
            merged.append(replace(span))
    return merged


def strip_list_marker(run: InlineRun) -> InlineRun:
    """Drop a typed ``"• "`` / ``"1. "`` prefix from a synthesized list item."""
    if not run or run[0].code:
        return run
    stripped = _LIST_MARKER.sub("", run[0].text, count=1)
    if stripped == run[0].text:
        return run
    head = [replace(run[0], text=stripped)] if stripped else []
    return head + run[1:]


def find_link_href(img: Tag) -> str | None:
    link = img.find_parent("a")
    if link is None:
        return None
    return sanitize_url(str(link.get("href") or "")) or None


def fold_linked_image(img: Tag, link_href: str | None = None) -> ImageBlock | None:
    """Build one ``ImageBlock`` from an ``<img>``, folding in its link."""
    raw_src = str(img.get("src") or img.get("data-src") or "").strip()
    if not raw_src:
        logger.debug("Skipping image without a source")
        return None
    src = sanitize_url(raw_src, allow_data=True)
    if not src:
        return None
    if link_href is None:
        link_href = find_link_href(img)
    return ImageBlock(
        src=src,
        alt=str(img.get("alt") or ""),
        width=_dimension(img.get("width")),
        height=_dimension(img.get("height")),
        link_href=link_href or None,
    )


def _dimension(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def ensure_blocks(items: Iterable[Any]) -> List[Block]:
    """Wrap stray inline content so every root child is a block."""
    blocks: List[Block] = []
    pending: InlineRun = []

    def flush() -> None:
        run = normalize_inline(pending)
        if inline_plain_text(run):
            blocks.append(Paragraph(inline=run))
        pending.clear()

    for item in items:
        if isinstance(item, Block):
            flush()
            blocks.append(item)
        elif isinstance(item, InlineText):
            pending.append(item)
        elif isinstance(item, str):
            pending.append(InlineText(item))
        else:
            logger.warning("Dropping non-block root child of type %s", type(item).__name__)
    flush()
    return blocks


def sanitize_url(url: str | None, allow_data: bool = False) -> str:
    """Return ``url`` stripped, or ``""`` when it uses a script-capable scheme.

    ``allow_data`` lets ``data:image/...`` through for image sources.
    """
    if not url or not url.strip():
        return ""
    cleaned = url.strip()
    lowered = "".join(cleaned.lower().split())
    if lowered.startswith("#"):
        if any(f"{scheme}:" in lowered for scheme in _DANGEROUS_SCHEMES):
            logger.warning("Blocked fragment link with unsafe scheme: %s", cleaned[:100])
            return ""
        return cleaned
    try:
        scheme = urlparse(lowered).scheme
    except ValueError:
        logger.warning("Dropping unparseable URL: %s", cleaned[:100])
        return ""
    if scheme in _DANGEROUS_SCHEMES:
        if allow_data and lowered.startswith("data:image/"):
            return cleaned
        logger.warning("Blocked URL with unsafe scheme: %s", cleaned[:100])
        return ""
    return cleaned
