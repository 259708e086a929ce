"""Evaluate a single ad-hoc pattern against sample text, match by match."""

from __future__ import annotations

import bisect
import dataclasses
import logging
import re
from collections.abc import Iterator

from regexpreview.matchers import base, extractor

logger = logging.getLogger(__name__)

_FLAG_LETTERS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


@dataclasses.dataclass(frozen=True)
class LivePattern:
    """A compiled regex plus the matching modes Python's ``re`` has no flag for.

    Attributes:
        regex: The compiled pattern.
        is_global: Keep searching after the first match.
        offsets: Group offsets used to extract diagnostics from each match.
    """

    regex: re.Pattern[str]
    is_global: bool = False
    offsets: base.FieldOffsets = dataclasses.field(
        default_factory=lambda: base.DEFAULT_OFFSETS, hash=False
    )

    @property
    def is_multiline(self) -> bool:
        return bool(self.regex.flags & re.MULTILINE)

    @classmethod
    def from_source(
        cls,
        source: str,
        flags: str = "",
        offsets: base.FieldOffsets = base.DEFAULT_OFFSETS,
    ) -> LivePattern | None:
        """Compile *source* with regex-literal flag letters (g, m, i, s).

        Returns None if the source does not compile. Unknown flag letters are
        ignored.
        """
        re_flags = re.RegexFlag(0)
        for letter in flags:
            re_flags |= _FLAG_LETTERS.get(letter, re.RegexFlag(0))
        try:
            regex = re.compile(source, re_flags)
        except re.error as e:
            logger.debug("Pattern %r does not compile: %s", source, e)
            return None
        return cls(regex=regex, is_global="g" in flags, offsets=offsets)


@dataclasses.dataclass(frozen=True)
class LiveMatch:
    """One match: text offsets of the matched span and its diagnostic, if any."""

    start: int
    end: int
    diagnostic: base.Diagnostic | None


def normalize_flags(pattern: LivePattern, *, inject: bool) -> LivePattern:
    """Add global and multiline modes the pattern lacks when *inject* is set.

    Flags the pattern already has are never removed.
    """
    if not inject or (pattern.is_global and pattern.is_multiline):
        return pattern
    regex = pattern.regex
    if not pattern.is_multiline:
        regex = re.compile(regex.pattern, regex.flags | re.MULTILINE)
    return dataclasses.replace(pattern, regex=regex, is_global=True)


def iter_matches(
    pattern: LivePattern,
    text: str,
    *,
    inject: bool = True,
) -> Iterator[LiveMatch]:
    """Yield matches of *pattern* in *text* one at a time.

    The caller stops a long evaluation by not advancing the iterator.
    Non-global patterns yield at most one match. A zero-width match moves
    the search position forward by one character so the loop always ends.
    Iteration also stops once that step reaches the end of the text, so a
    zero-width match at ``len(text)`` following another zero-width match is
    not reported (``$`` over ``"a\\n"`` yields only ``(1, 1)``).
    """
    pattern = normalize_flags(pattern, inject=inject)
    regex = pattern.regex
    cursor = 0
    while True:
        match = regex.search(text, cursor)
        if match is None:
            return
        yield LiveMatch(
            start=match.start(),
            end=match.end(),
            diagnostic=extractor.extract(match, pattern.offsets),
        )
        if not pattern.is_global:
            return
        cursor = match.end()
        if cursor == match.start():
            cursor += 1
            if cursor >= len(text):
                return


def run(
    pattern: LivePattern,
    text: str,
    *,
    inject: bool = True,
) -> tuple[list[tuple[int, int]], list[base.Diagnostic]]:
    """Evaluate *pattern* over all of *text*.

    Returns:
        The ``(start, end)`` offsets of every match, and the diagnostics
        extracted from the matches that had all mandatory fields.
    """
    ranges: list[tuple[int, int]] = []
    diagnostics: list[base.Diagnostic] = []
    for live_match in iter_matches(pattern, text, inject=inject):
        ranges.append((live_match.start, live_match.end))
        if live_match.diagnostic is not None:
            diagnostics.append(live_match.diagnostic)
    return ranges, diagnostics


def position_at(text: str, offset: int) -> tuple[int, int]:
    """Translate a text offset into a 0-based ``(line, column)`` pair."""
    starts = line_starts(text)
    line = bisect.bisect_right(starts, offset) - 1
    return line, offset - starts[line]


def line_starts(text: str) -> list[int]:
    """Return the offset at which each line of *text* begins."""
    return [0, *(index + 1 for index, char in enumerate(text) if char == "\n")]
