"""Batch scan of a whole document and location of matcher declarations."""

from __future__ import annotations

import dataclasses
import json
import logging
import re
import typing

from regexpreview.matchers import base, compiler, extractor

if typing.TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# Declaration lines longer than this are only scanned up to this column.
_MAX_LINE_CHARS = 1000

# Matches:  "regexp": "^(.*):(\\d+)$",
_REGEXP_DECL_PAT = re.compile(r'^(\s*)("regexp":)\s*"(.+)",?$')

# Matches:  "pattern": [
_CHAIN_DECL_PAT = re.compile(r'^(\s*)"pattern":\s*\[')


@dataclasses.dataclass(frozen=True)
class Declaration:
    """Where a matcher pattern is declared in a configuration document.

    Attributes:
        line: 0-indexed line of the declaration.
        col: 0-indexed column where the declaration starts.
        end_col: Column just past the declaration.
        source: The regex source for a single ``regexp`` declaration, with JSON
            escapes undone. ``None`` for the start of a chained ``pattern`` list.
    """

    line: int
    col: int
    end_col: int
    source: str | None = None

    @property
    def is_chain(self) -> bool:
        return self.source is None


def _unescape(raw: str) -> str:
    """Undo JSON string escaping of a regexp value, keeping it raw on failure."""
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw.replace("\\\\", "\\")


def find_declarations(text: str) -> list[Declaration]:
    """Return every single-regexp and chained-pattern declaration in *text*.

    Declarations are returned in document order, so the n-th chain
    declaration corresponds to the n-th chained matcher in the parsed
    configuration.
    """
    declarations: list[Declaration] = []
    for lineno, line_text in enumerate(text.splitlines()):
        line_text = line_text[:_MAX_LINE_CHARS]
        regexp_match = _REGEXP_DECL_PAT.search(line_text)
        if regexp_match:
            declarations.append(
                Declaration(
                    line=lineno,
                    col=len(regexp_match.group(1)),
                    end_col=regexp_match.end(),
                    source=_unescape(regexp_match.group(3)),
                )
            )
            continue
        chain_match = _CHAIN_DECL_PAT.search(line_text)
        if chain_match:
            declarations.append(
                Declaration(
                    line=lineno,
                    col=len(chain_match.group(1)),
                    end_col=chain_match.end(),
                )
            )
    return declarations


def scan_matcher(
    compiled: base.CompiledMatcher,
    text: str,
) -> tuple[re.Match[str] | None, base.Diagnostic | None]:
    """Attempt one match of a compiled matcher against *text*.

    Returns:
        The match (or None) and the diagnostic extracted from it (or None).
    """
    if compiled.regex is None:
        return None, None
    match = compiled.regex.search(text)
    if match is None:
        return None, None
    return match, extractor.extract(match, compiled.offsets)


def scan_document(text: str, matchers: Sequence[base.Matcher]) -> list[base.Diagnostic]:
    """Run every matcher once against *text*, in declaration order.

    Each matcher contributes at most one diagnostic. Matchers that do not
    match, and matches missing a mandatory field, contribute nothing.

    Args:
        text: The tool output to scan.
        matchers: Parsed matcher declarations.

    Returns:
        Diagnostics in the order their matchers were declared.
    """
    diagnostics: list[base.Diagnostic] = []
    for matcher in matchers:
        _, diagnostic = scan_matcher(compiler.compile_matcher(matcher), text)
        if diagnostic is not None:
            diagnostics.append(diagnostic)
        else:
            logger.debug("Matcher %r produced no diagnostic", matcher.name)
    return diagnostics
