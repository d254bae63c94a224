from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

OUTPUT_SUFFIXES = {"html": ".html", "yaml": ".yaml", "text": ".txt"}


def configure_logging(verbose: bool = False) -> None:
    """Configure a simple console logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s %(message)s",
    )


def resolve_output_path(input_path: Path, output: Optional[str], fmt: str) -> Path | None:
    """Output file for ``fmt``. None means write to stdout."""
    if not output:
        return None
    out_path = Path(output)
    if out_path.is_dir():
        suffix = OUTPUT_SUFFIXES[fmt]
        name = f"{input_path.stem}.normalized{suffix}" if suffix == input_path.suffix else f"{input_path.stem}{suffix}"
        out_path = out_path / name
    return out_path


def read_html(path: Path) -> str:
    return path.read_text(encoding="utf-8")
