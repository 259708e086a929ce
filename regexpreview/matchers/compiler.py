"""Compile a fragment chain into one composite multi-line regex."""

from __future__ import annotations

import logging
import re

from regexpreview.matchers import base

logger = logging.getLogger(__name__)

# Fragments are joined by a regex-escaped newline, one fragment per line.
_JOIN = r"\n"


def strip_anchors(source: str) -> str:
    """Remove one leading ``^`` and one unescaped trailing ``$``.

    Fragment anchors only make sense before joining; the composite regex
    re-anchors each fragment on the newline separator.
    """
    if source.startswith("^"):
        source = source[1:]
    if source.endswith("$") and not _is_escaped(source, len(source) - 1):
        source = source[:-1]
    return source


def _is_escaped(source: str, index: int) -> bool:
    """Return True if the character at *index* follows an odd run of backslashes."""
    backslashes = 0
    while index > backslashes and source[index - backslashes - 1] == "\\":
        backslashes += 1
    return backslashes % 2 == 1


def loop_source(source: str) -> str:
    """Wrap *source* so it matches one or more consecutive lines."""
    return "(" + source + r"\n?)+"


def _group_count(source: str) -> int | None:
    """Return the capture group count of *source*, or None if it does not compile."""
    try:
        return re.compile(source).groups
    except re.error:
        return None


def compile_matcher(matcher: base.Matcher) -> base.CompiledMatcher:
    """Join a matcher's fragments and resolve its absolute group offsets.

    Each fragment's declared offsets are shifted by the number of groups in
    the fragments before it. A field declared by several fragments takes the
    offset from the last one. A fragment whose regex does not compile
    contributes no groups and an empty pattern, so the rest of the chain
    still compiles.

    If the last fragment loops, its wrapper adds one capture group in front of
    the fragment's own groups. Every offset pointing into that fragment,
    declared or inherited from the base table, is shifted past it.

    Args:
        matcher: The matcher to compile.

    Returns:
        The compiled matcher. Its ``regex`` is None if no fragment compiled.
    """
    offsets: dict[base.DiagnosticField, int] = dict(matcher.defaults)
    sources: list[str] = []
    cumulative = 0
    usable = 0
    last = len(matcher.fragments) - 1

    for position, fragment in enumerate(matcher.fragments):
        source = strip_anchors(fragment.source)
        groups = _group_count(source)
        if groups is None:
            logger.debug(
                "Fragment %d of matcher %r does not compile: %r",
                position,
                matcher.name,
                fragment.source,
            )
            sources.append("")
            continue

        usable += 1
        looped = position == last and fragment.loop
        if looped:
            source = loop_source(source)
            # The wrapper group precedes the fragment's own groups.
            wrapper = cumulative + 1
            offsets = {
                field: index + 1 if index >= wrapper else index
                for field, index in offsets.items()
            }
            cumulative += 1

        for field, local in fragment.fields.items():
            if local < 0:
                offsets.pop(field, None)
            else:
                offsets[field] = local + cumulative
        cumulative += groups
        sources.append(source)

    composite = _JOIN.join(sources)
    regex: re.Pattern[str] | None = None
    if usable:
        try:
            regex = re.compile(composite, re.MULTILINE)
        except re.error as e:
            # e.g. a named group repeated across fragments
            logger.debug(
                "Composite regex of matcher %r does not compile: %s", matcher.name, e
            )
    return base.CompiledMatcher(
        source=composite,
        group_count=cumulative,
        offsets=base.freeze_offsets(offsets),
        regex=regex,
    )
