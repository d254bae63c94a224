from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape
from typing import Iterable, List

from . import normalizer
from .config import SerializeOptions
from .model import (
    Block,
    CodeSpanBlock,
    Document,
    EmptyBlock,
    Heading,
    ImageBlock,
    InlineRun,
    LinkBlock,
    ListBlock,
    Paragraph,
    Quote,
    inline_plain_text,
)

logger = logging.getLogger(__name__)

UNORDERED_MARKER = "• "


@dataclass
class RenderState:
    options: SerializeOptions
    parts: List[str]


def serialize_document(document: Document | Iterable[Block] | None, options: SerializeOptions | None = None) -> str:
    """Serialize a Document Tree to HTML. Never raises."""
    state = RenderState(options=options or SerializeOptions(), parts=[])
    if document is None:
        return ""
    blocks = document.blocks if isinstance(document, Document) else list(document)

    for block in normalizer.ensure_blocks(blocks):
        try:
            _dispatch_block(block, state)
        except Exception:
            logger.warning("Could not serialize %s block, skipping it", type(block).__name__, exc_info=True)
    return "".join(state.parts)


def _dispatch_block(block: Block, state: RenderState) -> None:
    if isinstance(block, Heading):
        _render_heading(block, state)
    elif isinstance(block, Paragraph):
        state.parts.append(f"<p>{render_inline(block.inline)}</p>")
    elif isinstance(block, ListBlock):
        _render_list(block, state)
    elif isinstance(block, Quote):
        _render_quote(block, state)
    elif isinstance(block, CodeSpanBlock):
        state.parts.append(f"<p>`{_escape_text(block.text)}`</p>")
    elif isinstance(block, ImageBlock):
        _render_image(block, state)
    elif isinstance(block, LinkBlock):
        _render_link(block, state)
    elif isinstance(block, EmptyBlock):
        state.parts.append("<p></p>")
    else:
        logger.warning("Unknown block type %s, skipping it", type(block).__name__)


def _render_heading(heading: Heading, state: RenderState) -> None:
    inline = render_inline(heading.inline)
    if state.options.heading_mode == "heading":
        state.parts.append(f"<h{heading.level}>{inline}</h{heading.level}>")
    else:
        state.parts.append(f"<p>{inline}</p>")


def _render_list(block: ListBlock, state: RenderState) -> None:
    tag = "ol" if block.ordered else "ul"
    lines: List[str] = []
    for idx, item in enumerate(block.items, start=1):
        if state.options.list_mode == "items":
            lines.append(f"<li>{render_inline(item)}</li>")
        else:
            prefix = f"{idx}. " if block.ordered else UNORDERED_MARKER
            lines.append(f"<p>{prefix}{render_inline(item)}</p>")
    state.parts.append(f"<{tag}>{''.join(lines)}</{tag}>")


def _render_quote(block: Quote, state: RenderState) -> None:
    inline = render_inline(block.inline)
    if state.options.quote_mode == "blockquote":
        state.parts.append(f"<blockquote>{inline}</blockquote>")
    else:
        state.parts.append(f"<p>&gt; {inline}</p>")


def _render_image(block: ImageBlock, state: RenderState) -> None:
    src = normalizer.sanitize_url(block.src, allow_data=True)
    if not src:
        logger.warning("Dropping image with unsafe source")
        return
    attrs = [f'src="{escape(src)}"', f'alt="{escape(block.alt or "")}"']
    if block.width:
        attrs.append(f'width="{escape(str(block.width))}"')
    if block.height:
        attrs.append(f'height="{escape(str(block.height))}"')
    if state.options.image_class:
        attrs.append(f'class="{escape(state.options.image_class)}"')
    img = f"<img {' '.join(attrs)}>"

    href = normalizer.sanitize_url(block.link_href) if block.link_href else ""
    if href:
        img = (
            f'<a href="{escape(href)}" target="{escape(state.options.link_target)}" '
            f'rel="{escape(state.options.link_rel)}">{img}</a>'
        )
    state.parts.append(img)


def _render_link(block: LinkBlock, state: RenderState) -> None:
    href = normalizer.sanitize_url(block.href)
    text = block.text or block.href
    if state.options.link_mode == "markdown":
        state.parts.append(f"<p>[{_escape_text(text)}]({_escape_text(href)})</p>")
    elif href:
        state.parts.append(f'<p><a href="{escape(href)}">{_escape_text(text)}</a></p>')
    else:
        state.parts.append(f"<p>{_escape_text(text)}</p>")


def render_inline(inline: InlineRun) -> str:
    """Render spans as ``<a>``/``<strong>``/``<em>``/``<code>`` markup."""
    parts: List[str] = []
    for span in inline:
        segments = span.text.split("\n")
        rendered: List[str] = []
        for segment in segments:
            if not segment:
                rendered.append("")
                continue
            html = escape(segment, quote=False)
            if span.code:
                html = f"<code>{html}</code>"
            if span.italic:
                html = f"<em>{html}</em>"
            if span.bold:
                html = f"<strong>{html}</strong>"
            href = normalizer.sanitize_url(span.href) if span.href else ""
            if href:
                html = f'<a href="{escape(href)}">{html}</a>'
            rendered.append(html)
        parts.append("<br>".join(rendered))
    return "".join(parts)


def _escape_text(text: str) -> str:
    return escape(text, quote=False).replace("\n", "<br>")


def document_to_text(document: Document) -> str:
    """Plain-text projection: one line per block or list item."""
    lines: List[str] = []
    for block in document.blocks:
        if isinstance(block, (Paragraph, Heading)):
            lines.append(inline_plain_text(block.inline))
        elif isinstance(block, Quote):
            lines.append(f"> {inline_plain_text(block.inline)}")
        elif isinstance(block, ListBlock):
            for idx, item in enumerate(block.items, start=1):
                prefix = f"{idx}. " if block.ordered else UNORDERED_MARKER
                lines.append(prefix + inline_plain_text(item))
        elif isinstance(block, CodeSpanBlock):
            lines.append(f"`{block.text}`")
        elif isinstance(block, ImageBlock):
            lines.append(block.alt or block.src)
        elif isinstance(block, LinkBlock):
            lines.append(block.text or block.href)
        elif isinstance(block, EmptyBlock):
            lines.append("")
    return "\n".join(lines)
