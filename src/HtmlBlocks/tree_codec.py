from __future__ import annotations

from typing import Any, List

import yaml

from .errors import TreeFormatError
from .model import (
    Block,
    CodeSpanBlock,
    Document,
    EmptyBlock,
    Heading,
    ImageBlock,
    InlineRun,
    InlineText,
    LinkBlock,
    ListBlock,
    NodeKind,
    Paragraph,
    Quote,
)


def document_to_dict(doc: Document) -> dict[str, Any]:
    data: dict[str, Any] = {"body": [block_to_dict(block) for block in doc.blocks]}
    if doc.metadata:
        data["metadata"] = dict(doc.metadata)
    return data


def block_to_dict(block: Block) -> dict[str, Any]:
    entry: dict[str, Any] = {"type": block.kind.value}
    if isinstance(block, Heading):
        entry["level"] = block.level
        entry["inline"] = _inline_to_list(block.inline)
    elif isinstance(block, (Paragraph, Quote)):
        entry["inline"] = _inline_to_list(block.inline)
    elif isinstance(block, ListBlock):
        entry["ordered"] = block.ordered
        entry["items"] = [_inline_to_list(item) for item in block.items]
    elif isinstance(block, CodeSpanBlock):
        entry["text"] = block.text
    elif isinstance(block, ImageBlock):
        entry["src"] = block.src
        entry["alt"] = block.alt
        for key in ("width", "height", "link_href"):
            value = getattr(block, key)
            if value:
                entry[key] = value
    elif isinstance(block, LinkBlock):
        entry["href"] = block.href
        entry["text"] = block.text
    return entry


def _inline_to_list(inline: InlineRun) -> list[dict[str, Any]]:
    spans = []
    for span in inline:
        entry: dict[str, Any] = {"text": span.text}
        for key in ("bold", "italic", "code", "href"):
            value = getattr(span, key)
            if value:
                entry[key] = value
        spans.append(entry)
    return spans


def document_from_dict(data: Any) -> Document:
    """Build a Document from the dict form produced by ``document_to_dict``.

    ``body`` entries may also use the shorthand accepted by YAML fixtures:
    a bare string is a paragraph, ``{"heading": ..., "level": n}``,
    ``{"bullet_list": [...]}``, ``{"ordered_list": [...]}``,
    ``{"quote": ...}``, ``{"code": ...}``, ``{"image": {...}}``,
    ``{"link": {...}}`` and ``{"empty": true}``.
    """
    if not isinstance(data, dict):
        raise TreeFormatError("Document root must be a mapping with a 'body' list.")
    body = data.get("body")
    if body is None:
        body = []
    if not isinstance(body, list):
        raise TreeFormatError("'body' must be a list of blocks.")
    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise TreeFormatError("'metadata' must be a mapping.")
    blocks = [_parse_body_entry(entry, idx) for idx, entry in enumerate(body)]
    return Document(blocks=blocks, metadata=metadata)


def document_to_yaml(doc: Document) -> str:
    return yaml.safe_dump(document_to_dict(doc), allow_unicode=True, sort_keys=False)


def document_from_yaml(text: str) -> Document:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise TreeFormatError(f"Invalid YAML: {exc}") from exc
    return document_from_dict(data)


def _parse_body_entry(entry: Any, idx: int) -> Block:
    if isinstance(entry, str):
        return Paragraph(inline=[InlineText(entry)])
    if not isinstance(entry, dict):
        raise TreeFormatError(f"Block #{idx} must be a string or a mapping.")
    if "type" in entry:
        return _block_from_typed(entry, idx)

    if "heading" in entry:
        return Heading(level=_int(entry.get("level", 1), idx), inline=_inline_from(entry["heading"], idx))
    if "paragraph" in entry:
        return Paragraph(inline=_inline_from(entry["paragraph"], idx))
    if "bullet_list" in entry:
        return ListBlock(items=_items_from(entry["bullet_list"], idx), ordered=False)
    if "ordered_list" in entry:
        return ListBlock(items=_items_from(entry["ordered_list"], idx), ordered=True)
    if "quote" in entry:
        return Quote(inline=_inline_from(entry["quote"], idx))
    if "code" in entry:
        return CodeSpanBlock(text=str(entry["code"]))
    if "image" in entry:
        return _image_from(entry["image"], idx)
    if "link" in entry:
        link = entry["link"]
        if isinstance(link, str):
            return LinkBlock(href=link, text=link)
        if isinstance(link, dict) and link.get("href"):
            return LinkBlock(href=str(link["href"]), text=str(link.get("text") or link["href"]))
        raise TreeFormatError(f"Block #{idx}: link needs an href.")
    if "empty" in entry:
        return EmptyBlock()
    raise TreeFormatError(f"Block #{idx}: unrecognised block keys {sorted(entry)}.")


def _block_from_typed(entry: dict, idx: int) -> Block:
    try:
        kind = NodeKind(entry["type"])
    except ValueError:
        raise TreeFormatError(f"Block #{idx}: unknown block type {entry['type']!r}.") from None

    if kind is NodeKind.PARAGRAPH:
        return Paragraph(inline=_inline_from(entry.get("inline", []), idx))
    if kind is NodeKind.HEADING:
        return Heading(level=_int(entry.get("level", 1), idx), inline=_inline_from(entry.get("inline", []), idx))
    if kind is NodeKind.LIST:
        return ListBlock(items=_items_from(entry.get("items", []), idx), ordered=bool(entry.get("ordered", False)))
    if kind is NodeKind.QUOTE:
        return Quote(inline=_inline_from(entry.get("inline", []), idx))
    if kind is NodeKind.CODE:
        return CodeSpanBlock(text=str(entry.get("text", "")))
    if kind is NodeKind.IMAGE:
        return _image_from(entry, idx)
    if kind is NodeKind.LINK:
        href = str(entry.get("href") or "")
        return LinkBlock(href=href, text=str(entry.get("text") or href))
    return EmptyBlock()


def _image_from(value: Any, idx: int) -> ImageBlock:
    if isinstance(value, str):
        return ImageBlock(src=value)
    if not isinstance(value, dict) or not value.get("src"):
        raise TreeFormatError(f"Block #{idx}: image needs a src.")
    return ImageBlock(
        src=str(value["src"]),
        alt=str(value.get("alt") or ""),
        width=_optional_str(value.get("width")),
        height=_optional_str(value.get("height")),
        link_href=_optional_str(value.get("link_href")),
    )


def _items_from(value: Any, idx: int) -> List[InlineRun]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [_inline_from(item, idx) for item in value]


def _inline_from(value: Any, idx: int) -> InlineRun:
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        return [InlineText(str(value))]
    if not isinstance(value, list):
        raise TreeFormatError(f"Block #{idx}: inline content must be a string or a list of spans.")
    spans: InlineRun = []
    for span in value:
        if isinstance(span, str):
            spans.append(InlineText(span))
        elif isinstance(span, dict) and "text" in span:
            spans.append(
                InlineText(
                    str(span["text"]),
                    bold=bool(span.get("bold")),
                    italic=bool(span.get("italic")),
                    code=bool(span.get("code")),
                    href=_optional_str(span.get("href")),
                )
            )
        else:
            raise TreeFormatError(f"Block #{idx}: malformed inline span {span!r}.")
    return spans


def _int(value: Any, idx: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise TreeFormatError(f"Block #{idx}: expected an integer, got {value!r}.") from None


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
