from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, List, Optional


class NodeKind(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST = "list"
    QUOTE = "quote"
    CODE = "code"
    IMAGE = "image"
    LINK = "link"
    EMPTY = "empty"


@dataclass
class InlineText:
    """A run of text sharing one set of formatting marks."""

    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    href: str | None = None

    def same_marks(self, other: InlineText) -> bool:
        return (
            self.bold == other.bold
            and self.italic == other.italic
            and self.code == other.code
            and self.href == other.href
        )

    def with_marks(
        self,
        bold: bool = False,
        italic: bool = False,
        code: bool = False,
        href: str | None = None,
    ) -> InlineText:
        return InlineText(
            self.text,
            bold=self.bold or bold,
            italic=self.italic or italic,
            code=self.code or code,
            href=self.href or href,
        )


InlineRun = List[InlineText]


@dataclass
class Block:
    """Base class for block-level nodes."""

    kind: ClassVar[NodeKind]


@dataclass
class Document:
    blocks: List[Block] = field(default_factory=list)
    metadata: dict[str, Any] | None = None


@dataclass
class Paragraph(Block):
    kind: ClassVar[NodeKind] = NodeKind.PARAGRAPH

    inline: InlineRun = field(default_factory=list)


@dataclass
class Heading(Block):
    kind: ClassVar[NodeKind] = NodeKind.HEADING

    level: int = 1
    inline: InlineRun = field(default_factory=list)

    def __post_init__(self) -> None:
        self.level = min(6, max(1, int(self.level)))


@dataclass
class ListBlock(Block):
    kind: ClassVar[NodeKind] = NodeKind.LIST

    items: List[InlineRun] = field(default_factory=list)
    ordered: bool = False


@dataclass
class Quote(Block):
    kind: ClassVar[NodeKind] = NodeKind.QUOTE

    inline: InlineRun = field(default_factory=list)


@dataclass
class CodeSpanBlock(Block):
    kind: ClassVar[NodeKind] = NodeKind.CODE

    text: str = ""


@dataclass
class ImageBlock(Block):
    kind: ClassVar[NodeKind] = NodeKind.IMAGE

    src: str = ""
    alt: str = ""
    width: Optional[str] = None
    height: Optional[str] = None
    link_href: Optional[str] = None


@dataclass
class LinkBlock(Block):
    kind: ClassVar[NodeKind] = NodeKind.LINK

    href: str = ""
    text: str = ""


@dataclass
class EmptyBlock(Block):
    """Placeholder for a structurally empty source element."""

    kind: ClassVar[NodeKind] = NodeKind.EMPTY


def inline_plain_text(inline: InlineRun) -> str:
    return "".join(span.text for span in inline)
