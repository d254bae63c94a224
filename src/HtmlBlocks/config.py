"""Parse/serialize options with YAML + env var overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from bs4.builder import builder_registry

from .errors import ConfigError

logger = logging.getLogger(__name__)

HEADING_MODES = ("paragraph", "heading")
LIST_MODES = ("marker", "items")
QUOTE_MODES = ("marker", "blockquote")
LINK_MODES = ("anchor", "markdown")
PARSER_FEATURES = ("html.parser", "lxml", "html5lib")


@dataclass
class ParseOptions:
    legacy_markers: bool = False
    features: str = "html.parser"

    def __post_init__(self) -> None:
        _check_choice("features", self.features, PARSER_FEATURES)
        if builder_registry.lookup(self.features) is None:
            raise ConfigError(f"HTML parser backend {self.features!r} is not installed")


@dataclass
class SerializeOptions:
    heading_mode: str = "paragraph"  # paragraph | heading
    list_mode: str = "marker"  # marker | items
    quote_mode: str = "marker"  # marker | blockquote
    link_mode: str = "anchor"  # anchor | markdown
    image_class: str | None = None
    link_target: str = "_blank"
    link_rel: str = "noopener noreferrer"

    def __post_init__(self) -> None:
        _check_choice("heading_mode", self.heading_mode, HEADING_MODES)
        _check_choice("list_mode", self.list_mode, LIST_MODES)
        _check_choice("quote_mode", self.quote_mode, QUOTE_MODES)
        _check_choice("link_mode", self.link_mode, LINK_MODES)


@dataclass
class HtmlBlocksConfig:
    parse: ParseOptions = field(default_factory=ParseOptions)
    serialize: SerializeOptions = field(default_factory=SerializeOptions)


# Mapping: env var name -> (section, field)
_ENV_MAPPING: dict[str, tuple[str, str]] = {
    "HTMLBLOCKS_HEADING_MODE": ("serialize", "heading_mode"),
    "HTMLBLOCKS_LIST_MODE": ("serialize", "list_mode"),
    "HTMLBLOCKS_QUOTE_MODE": ("serialize", "quote_mode"),
    "HTMLBLOCKS_LINK_MODE": ("serialize", "link_mode"),
    "HTMLBLOCKS_IMAGE_CLASS": ("serialize", "image_class"),
    "HTMLBLOCKS_LEGACY_MARKERS": ("parse", "legacy_markers"),
    "HTMLBLOCKS_PARSER": ("parse", "features"),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> HtmlBlocksConfig:
    """Load configuration with priority: defaults < YAML < env vars.

    Args:
        config_path: Path to a YAML file with ``parse:`` / ``serialize:``
            sections. None to skip.
        env: Environment mapping, ``os.environ`` when omitted.
    """
    config = HtmlBlocksConfig()

    if config_path:
        _apply_yaml(config, Path(config_path))

    _apply_env_vars(config, os.environ if env is None else env)

    # Re-run the choice checks after all layers were applied.
    config.parse.__post_init__()
    config.serialize.__post_init__()
    return config


def _apply_yaml(config: HtmlBlocksConfig, path: Path) -> None:
    if not path.is_file():
        logger.warning("Config file not found: %s, using defaults", path)
        return

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    for section_name, section_data in data.items():
        section = getattr(config, section_name, None) if section_name in ("parse", "serialize") else None
        if section is None:
            logger.warning("Unknown config section: %s", section_name)
            continue
        if not isinstance(section_data, dict):
            raise ConfigError(f"Config section '{section_name}' must be a mapping")
        _set_section_fields(section, section_data)

    logger.debug("Loaded config from %s", path)


def _apply_env_vars(config: HtmlBlocksConfig, env: Mapping[str, str]) -> None:
    for env_name, (section_name, field_name) in _ENV_MAPPING.items():
        value = env.get(env_name)
        if value is None:
            continue
        _set_field_value(getattr(config, section_name), field_name, value)


def _set_section_fields(section: Any, data: dict[str, Any]) -> None:
    section_fields = {f.name for f in fields(section)}
    for key, value in data.items():
        if key not in section_fields:
            logger.warning("Unknown config key: %s", key)
            continue
        _set_field_value(section, key, value)


def _set_field_value(obj: Any, field_name: str, value: Any) -> None:
    field_info = {f.name: f for f in fields(obj)}[field_name]
    setattr(obj, field_name, _coerce_value(value, field_info.type))


def _coerce_value(value: Any, type_hint: Any) -> Any:
    if value is None:
        return None

    type_str = str(type_hint)
    if "bool" in type_str:
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
        raise ConfigError(f"Expected a boolean, got {value!r}")
    if isinstance(value, str) and "None" in type_str and value.strip() == "":
        return None
    return str(value)


def _check_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ConfigError(f"Invalid {name} {value!r}; expected one of: {', '.join(choices)}")
