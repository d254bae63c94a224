from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

from . import normalizer
from .builder import DocumentBuilder, NodeBuilder
from .config import ParseOptions
from .markers import decode_markers
from .model import (
    CodeSpanBlock,
    Document,
    EmptyBlock,
    Heading,
    ImageBlock,
    InlineRun,
    InlineText,
    LinkBlock,
    ListBlock,
    Paragraph,
    Quote,
)

logger = logging.getLogger(__name__)

DROP_TAGS = frozenset(
    {"script", "style", "template", "head", "noscript", "iframe", "object", "embed", "meta", "link", "title"}
)
LIST_TAGS = frozenset({"ul", "ol"})
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
CONTAINER_TAGS = frozenset({"div", "section", "article", "main", "header", "footer", "figure", "aside", "nav"})
# Descendants that make a container recurse child by child.
BLOCK_DESCENDANTS = ["p", *sorted(HEADING_TAGS), "ul", "ol", "li", "blockquote", "img", "a", "pre", "table", *sorted(CONTAINER_TAGS)]
# Block-level elements met during inline extraction are separated by a space.
_INLINE_BREAKING = frozenset({"p", "li", "tr", "td", "th", "blockquote", "pre", "table"} | HEADING_TAGS | CONTAINER_TAGS)
_BOLD_TAGS = frozenset({"strong", "b"})
_ITALIC_TAGS = frozenset({"em", "i"})
_CODE_TAGS = frozenset({"code", "kbd", "samp", "tt"})


@dataclass
class ParseState:
    builder: NodeBuilder
    options: ParseOptions = field(default_factory=ParseOptions)


@dataclass
class _InlineResult:
    spans: List[InlineText] = field(default_factory=list)
    images: List[ImageBlock] = field(default_factory=list)


def parse_html(html: str | None, options: ParseOptions | None = None, builder: NodeBuilder | None = None) -> Document:
    """Parse an HTML string into a Document Tree. Never raises."""
    options = options or ParseOptions()
    builder = builder if builder is not None else DocumentBuilder()
    state = ParseState(builder=builder, options=options)
    html = "" if html is None else str(html)
    logger.debug("Parsing %d chars of HTML", len(html))

    if not html.strip():
        builder.append(EmptyBlock())
        return builder.build()

    if "<" not in html and "&" not in html:
        for line in html.splitlines():
            run = _text_run(line, state)
            if run:
                builder.append(Paragraph(inline=run))
        if not len(builder):
            builder.append(EmptyBlock())
        return builder.build()

    try:
        soup = BeautifulSoup(html, options.features)
        root = soup.body or soup
        for child in list(root.children):
            _walk(child, state)
        if not len(builder):
            _emit_fallback(root, state)
    except Exception:
        logger.warning("HTML parsing failed, keeping input as one paragraph", exc_info=True)
        if not len(builder):
            builder.append(Paragraph(inline=[InlineText(html.strip())]))

    document = builder.build()
    logger.debug("Parsed %d root blocks", len(document.blocks))
    return document


def _walk(node: PageElement, state: ParseState) -> None:
    if isinstance(node, PreformattedString):
        return
    if isinstance(node, NavigableString):
        run = _text_run(str(node), state)
        if run:
            state.builder.append(Paragraph(inline=run))
        return
    if not isinstance(node, Tag):
        return

    name = (node.name or "").lower()
    if name in DROP_TAGS:
        return
    handler = _HANDLERS.get(name, _handle_other)
    try:
        handler(node, state)
    except Exception:
        logger.warning("Could not convert <%s>, keeping its text", name, exc_info=True)
        text = normalizer.collapse_whitespace(_visible_text(node)).strip()
        if text:
            state.builder.append(Paragraph(inline=[InlineText(text)]))


def _walk_children(tag: Tag, state: ParseState) -> None:
    for child in list(tag.children):
        _walk(child, state)


def _emit_fallback(root: Tag, state: ParseState) -> None:
    text = normalizer.collapse_whitespace(_visible_text(root)).strip()
    if text:
        state.builder.append(Paragraph(inline=[InlineText(text)]))
    else:
        state.builder.append(EmptyBlock())


def _handle_paragraph(tag: Tag, state: ParseState) -> None:
    result = _inline_run(tag, state)
    if result.spans:
        state.builder.append(Paragraph(inline=result.spans))
    elif not result.images:
        state.builder.append(EmptyBlock())
    _emit_images(result.images, state)


def _handle_heading(tag: Tag, state: ParseState) -> None:
    result = _inline_run(tag, state)
    if result.spans:
        state.builder.append(Heading(level=int(tag.name[1]), inline=result.spans))
    elif not result.images:
        state.builder.append(EmptyBlock())
    _emit_images(result.images, state)


def _handle_list(tag: Tag, state: ParseState) -> None:
    ordered = tag.name == "ol"
    images: List[ImageBlock] = []
    if tag.find("li") is not None:
        items = _items_from_li(tag, state, images)
    else:
        items = _synthesized_items(tag, state, images)
    if items:
        state.builder.append(ListBlock(items=items, ordered=ordered))
    _emit_images(images, state)


def _items_from_li(tag: Tag, state: ParseState, images: List[ImageBlock]) -> List[InlineRun]:
    items: List[InlineRun] = []
    for li in tag.find_all("li"):
        result = _inline_run(li, state, skip=LIST_TAGS)
        images.extend(result.images)
        if result.spans:
            items.append(result.spans)
    return items


def _synthesized_items(tag: Tag, state: ParseState, images: List[ImageBlock]) -> List[InlineRun]:
    """Items for a list container without ``<li>`` children.

    Lines of bare text, ``<br>``-separated runs and block children each
    become one item, minus any typed list marker.
    """
    items: List[InlineRun] = []
    current: List[InlineText] = []

    def flush() -> None:
        run = normalizer.normalize_inline(current)
        run = normalizer.normalize_inline(normalizer.strip_list_marker(run))
        if run:
            items.append(run)
        current.clear()

    for child in tag.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            lines = str(child).split("\n")
            for idx, line in enumerate(lines):
                if idx:
                    flush()
                current.extend(_text_spans(normalizer.collapse_whitespace(line), InlineText(""), state))
            continue
        if not isinstance(child, Tag) or child.name in DROP_TAGS:
            continue
        if child.name == "br":
            flush()
        elif child.name in _INLINE_BREAKING:
            flush()
            result = _inline_run(child, state)
            images.extend(result.images)
            current.extend(result.spans)
            flush()
        else:
            result = _InlineResult()
            _collect_inline(child, InlineText(""), state, result, frozenset())
            images.extend(result.images)
            current.extend(result.spans)
    flush()
    return items


def _handle_list_item(tag: Tag, state: ParseState) -> None:
    result = _inline_run(tag, state, skip=LIST_TAGS)
    if result.spans:
        state.builder.append(ListBlock(items=[result.spans], ordered=False))
    _emit_images(result.images, state)
    for nested in tag.find_all(list(LIST_TAGS), recursive=False):
        _handle_list(nested, state)


def _handle_quote(tag: Tag, state: ParseState) -> None:
    result = _inline_run(tag, state)
    if result.spans:
        state.builder.append(Quote(inline=result.spans))
    _emit_images(result.images, state)


def _handle_code(tag: Tag, state: ParseState) -> None:
    text = normalizer.normalize_code_text(tag.get_text())
    if text:
        state.builder.append(CodeSpanBlock(text=text))


def _handle_image(tag: Tag, state: ParseState) -> None:
    block = normalizer.fold_linked_image(tag)
    if block is not None:
        state.builder.append(block)


def _handle_link(tag: Tag, state: ParseState) -> None:
    href = normalizer.sanitize_url(str(tag.get("href") or ""))
    folded = 0
    for img in tag.find_all("img"):
        block = normalizer.fold_linked_image(img, link_href=href or None)
        if block is not None:
            state.builder.append(block)
            folded += 1
    if folded:
        return

    text = normalizer.collapse_whitespace(_visible_text(tag)).strip()
    if href:
        state.builder.append(LinkBlock(href=href, text=text or href))
    elif text:
        _handle_inline(tag, state)


def _handle_inline(tag: Tag, state: ParseState) -> None:
    result = _InlineResult()
    _collect_inline(tag, InlineText(""), state, result, frozenset())
    run = normalizer.normalize_inline(result.spans)
    if run:
        state.builder.append(Paragraph(inline=run))
    _emit_images(result.images, state)


def _handle_break(tag: Tag, state: ParseState) -> None:
    state.builder.append(EmptyBlock())


def _handle_container(tag: Tag, state: ParseState) -> None:
    if tag.find(BLOCK_DESCENDANTS) is not None:
        _walk_children(tag, state)
        return
    result = _inline_run(tag, state)
    if result.spans:
        # No recursion here: the run already holds every child's text.
        state.builder.append(Paragraph(inline=result.spans))
    else:
        # Covers <div><br></div> blank lines.
        _walk_children(tag, state)


def _handle_table(tag: Tag, state: ParseState) -> None:
    for row in tag.find_all("tr"):
        cells = [normalizer.collapse_whitespace(cell.get_text(" ")).strip() for cell in row.find_all(["td", "th"])]
        # Blank cells are dropped so the joined row has no dangling separators.
        run = normalizer.normalize_inline([InlineText(" | ".join(cell for cell in cells if cell))])
        if run:
            state.builder.append(Paragraph(inline=run))


def _handle_other(tag: Tag, state: ParseState) -> None:
    _walk_children(tag, state)


def _emit_images(images: List[ImageBlock], state: ParseState) -> None:
    for image in images:
        state.builder.append(image)


def _inline_run(tag: Tag, state: ParseState, skip: frozenset[str] = frozenset()) -> _InlineResult:
    """Flatten a block element's content into one normalized inline run."""
    result = _InlineResult()
    base = InlineText("")
    for child in tag.children:
        _collect_inline(child, base, state, result, skip)
    result.spans = normalizer.normalize_inline(result.spans)
    return result


def _collect_inline(
    node: PageElement,
    base: InlineText,
    state: ParseState,
    result: _InlineResult,
    skip: frozenset[str],
) -> None:
    if isinstance(node, PreformattedString):
        return
    if isinstance(node, NavigableString):
        result.spans.extend(_text_spans(normalizer.collapse_whitespace(str(node)), base, state))
        return
    if not isinstance(node, Tag):
        return

    name = (node.name or "").lower()
    if name in DROP_TAGS or name in skip:
        return
    if name == "br":
        result.spans.append(InlineText("\n"))
        return
    if name == "img":
        block = normalizer.fold_linked_image(node)
        if block is not None:
            result.images.append(block)
        return

    marks = base
    if name in _BOLD_TAGS:
        marks = base.with_marks(bold=True)
    elif name in _ITALIC_TAGS:
        marks = base.with_marks(italic=True)
    elif name in _CODE_TAGS or name == "pre":
        marks = base.with_marks(code=True)
    elif name == "a":
        href = normalizer.sanitize_url(str(node.get("href") or ""))
        if href:
            marks = base.with_marks(href=href)

    breaking = name in _INLINE_BREAKING
    if breaking:
        result.spans.append(InlineText(" "))
    for child in node.children:
        _collect_inline(child, marks, state, result, skip)
    if breaking:
        result.spans.append(InlineText(" "))


def _text_spans(text: str, base: InlineText, state: ParseState) -> List[InlineText]:
    if not text:
        return []
    if state.options.legacy_markers and not base.code:
        return decode_markers(text, base)
    return [InlineText(text).with_marks(base.bold, base.italic, base.code, base.href)]


def _text_run(text: str, state: ParseState) -> InlineRun:
    return normalizer.normalize_inline(_text_spans(normalizer.collapse_whitespace(text), InlineText(""), state))


def _visible_text(tag: Tag) -> str:
    parts: List[str] = []
    for text in tag.find_all(string=True):
        if isinstance(text, PreformattedString):
            continue
        if any(parent.name in DROP_TAGS for parent in text.parents if isinstance(parent, Tag)):
            continue
        parts.append(str(text))
    return " ".join(parts)


_HANDLERS: Dict[str, Callable[[Tag, ParseState], None]] = {
    "p": _handle_paragraph,
    **{name: _handle_heading for name in HEADING_TAGS},
    "ul": _handle_list,
    "ol": _handle_list,
    "li": _handle_list_item,
    "blockquote": _handle_quote,
    "code": _handle_code,
    "pre": _handle_code,
    "img": _handle_image,
    "a": _handle_link,
    "strong": _handle_inline,
    "b": _handle_inline,
    "em": _handle_inline,
    "i": _handle_inline,
    "span": _handle_inline,
    "u": _handle_inline,
    "font": _handle_inline,
    "br": _handle_break,
    "hr": _handle_break,
    "table": _handle_table,
    **{name: _handle_container for name in CONTAINER_TAGS},
}
