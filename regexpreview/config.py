"""Load regexpreview settings and parse problem matcher declarations."""

from __future__ import annotations

import dataclasses
import json
import logging
import pathlib
import tomllib
import types
import typing

from regexpreview.matchers import base

logger = logging.getLogger(__name__)

DEFAULT_MAX_INPUT_CHARS = 1_000_000

_FIELD_KEYS: frozenset[str] = frozenset(field.value for field in base.DiagnosticField)
_PATTERN_KEYS: frozenset[str] = _FIELD_KEYS | {"regexp", "loop", "kind"}


class ConfigError(ValueError):
    """A matcher declaration is structurally malformed."""


@dataclasses.dataclass(frozen=True)
class Config:
    """Resolved regexpreview settings.

    Attributes:
        auto_inject_global_multiline: Add missing global and multiline modes
            to previewed patterns.
        max_input_chars: Sample text is truncated to this many characters
            before it reaches the engine.
        sample: Default sample text file, if configured.
    """

    auto_inject_global_multiline: bool = True
    max_input_chars: int = DEFAULT_MAX_INPUT_CHARS
    sample: pathlib.Path | None = None

    def bound(self, text: str) -> str:
        """Return *text* cut to ``max_input_chars``."""
        return text[: self.max_input_chars]


def _find_pyproject(start: pathlib.Path) -> pathlib.Path | None:
    """Walk up from *start* to find the nearest pyproject.toml."""
    for directory in [start, *start.parents]:
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def load_config(start: pathlib.Path | None = None) -> Config:
    """Return the Config from the nearest pyproject.toml, or defaults.

    Reads ``[tool.regexpreview]`` from the first ``pyproject.toml`` found by
    walking up from *start* (defaults to ``Path.cwd()``). Values of the wrong
    type are ignored.

    Args:
        start: Directory to begin the upward search. Defaults to cwd.

    Returns:
        A Config reflecting the section's values, if present.
    """
    search_root = start if start is not None else pathlib.Path.cwd()
    pyproject = _find_pyproject(search_root)
    if pyproject is None:
        return Config()

    try:
        with pyproject.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable %s: %s", pyproject, e)
        return Config()

    section = data.get("tool", {}).get("regexpreview", {})
    inject = section.get(
        "autoInjectGlobalMultiline", section.get("auto-inject-global-multiline")
    )
    max_chars = section.get("max-input-chars")
    sample = section.get("sample")
    if isinstance(max_chars, bool) or not isinstance(max_chars, int) or max_chars <= 0:
        max_chars = DEFAULT_MAX_INPUT_CHARS
    return Config(
        auto_inject_global_multiline=inject if isinstance(inject, bool) else True,
        max_input_chars=max_chars,
        sample=pyproject.parent / sample if isinstance(sample, str) else None,
    )


def _label(raw: dict[str, object], index: int) -> str:
    name = raw.get("name")
    return f"matcher {name!r}" if isinstance(name, str) else f"matcher #{index}"


def _parse_offsets(
    raw: dict[str, object],
    where: str,
    *,
    allowed: frozenset[str],
) -> dict[base.DiagnosticField, int]:
    """Read the field -> group index entries of a declaration object."""
    unknown = sorted(set(raw) - allowed)
    if unknown:
        msg = f"{where}: unknown key(s) {', '.join(unknown)}"
        raise ConfigError(msg)
    offsets: dict[base.DiagnosticField, int] = {}
    for key in sorted(set(raw) & _FIELD_KEYS):
        value = raw[key]
        if not isinstance(value, int) or isinstance(value, bool):
            msg = f"{where}: {key!r} must be an integer group index, got {value!r}"
            raise ConfigError(msg)
        offsets[base.DiagnosticField(key)] = value
    return offsets


def _parse_fragment(raw: object, where: str) -> base.PatternFragment:
    if isinstance(raw, str):
        return base.PatternFragment(raw)
    if not isinstance(raw, dict):
        msg = f"{where}: expected a pattern object, got {type(raw).__name__}"
        raise ConfigError(msg)
    source = raw.get("regexp")
    if not isinstance(source, str):
        msg = f"{where}: 'regexp' must be a string"
        raise ConfigError(msg)
    loop = raw.get("loop", False)
    if not isinstance(loop, bool):
        msg = f"{where}: 'loop' must be a boolean"
        raise ConfigError(msg)
    offsets = _parse_offsets(raw, where, allowed=_PATTERN_KEYS)
    return base.PatternFragment(source, types.MappingProxyType(offsets), loop)


def parse_matcher(raw: object, index: int = 0) -> base.Matcher:
    """Parse one problem matcher object.

    A string or object ``pattern`` is a single-pattern matcher over the
    default offset table; a list is a chain with an empty base table. An
    optional ``defaults`` object replaces entries of the base table.

    Raises:
        ConfigError: If the declaration is structurally malformed.
    """
    if not isinstance(raw, dict):
        msg = f"matcher #{index}: expected an object, got {type(raw).__name__}"
        raise ConfigError(msg)
    label = _label(raw, index)
    pattern = raw.get("pattern")
    if isinstance(pattern, list):
        if not pattern:
            msg = f"{label}: 'pattern' list is empty"
            raise ConfigError(msg)
        fragments = tuple(
            _parse_fragment(item, f"{label}, pattern #{position}")
            for position, item in enumerate(pattern)
        )
        defaults: dict[base.DiagnosticField, int] = {}
    elif isinstance(pattern, str | dict):
        fragments = (_parse_fragment(pattern, f"{label}, pattern"),)
        defaults = dict(base.DEFAULT_OFFSETS)
    else:
        msg = f"{label}: 'pattern' must be a string, an object, or a list"
        raise ConfigError(msg)

    raw_defaults = raw.get("defaults", {})
    if not isinstance(raw_defaults, dict):
        msg = f"{label}: 'defaults' must be an object"
        raise ConfigError(msg)
    defaults.update(
        _parse_offsets(raw_defaults, f"{label}, defaults", allowed=_FIELD_KEYS)
    )
    name = raw.get("name")
    return base.Matcher(
        fragments=fragments,
        defaults=base.freeze_offsets(defaults),
        name=name if isinstance(name, str) else f"#{index}",
        chained=isinstance(pattern, list),
    )


def parse_matchers(data: object) -> list[base.Matcher]:
    """Parse every problem matcher in a decoded configuration document.

    Accepts a ``package.json``-style object (``contributes.problemMatchers``),
    an object with a top-level ``problemMatchers`` list, or a bare list.

    Raises:
        ConfigError: If the container or any matcher is malformed.
    """
    declarations: object = data
    if isinstance(data, dict):
        contributes = data.get("contributes", data)
        if not isinstance(contributes, dict):
            msg = "'contributes' must be an object"
            raise ConfigError(msg)
        declarations = contributes.get("problemMatchers", [])
    if not isinstance(declarations, list):
        msg = "'problemMatchers' must be a list"
        raise ConfigError(msg)
    return [parse_matcher(raw, index) for index, raw in enumerate(declarations)]


def load_matchers(path: pathlib.Path) -> list[base.Matcher]:
    """Read and parse the matcher declarations of a JSON file.

    Raises:
        ConfigError: If the file is not valid JSON or a matcher is malformed.
        OSError: If the file cannot be read.
    """
    try:
        data: typing.Any = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        msg = f"{path}: invalid JSON: {e}"
        raise ConfigError(msg) from e
    return parse_matchers(data)
