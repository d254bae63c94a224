from __future__ import annotations

from typing import List, Protocol

from .model import Block, Document


class NodeBuilder(Protocol):
    """Capability the parser needs from whoever owns the tree."""

    def append(self, block: Block) -> None: ...

    def __len__(self) -> int: ...

    def build(self, metadata: dict | None = None) -> Document: ...


class DocumentBuilder:
    """Accumulates root blocks during one parse walk."""

    def __init__(self) -> None:
        self._blocks: List[Block] = []

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def blocks(self) -> List[Block]:
        return self._blocks

    def append(self, block: Block) -> None:
        if not isinstance(block, Block):
            raise TypeError(f"Only block nodes can be root children, got {type(block).__name__}")
        self._blocks.append(block)

    def build(self, metadata: dict | None = None) -> Document:
        return Document(blocks=list(self._blocks), metadata=metadata)
