"""Build a Diagnostic from the mapped capture groups of a match."""

from __future__ import annotations

import logging
import re
import uuid

from regexpreview.matchers import base

logger = logging.getLogger(__name__)

_SEVERITIES: dict[str, base.Severity] = {
    "error": base.Severity.ERROR,
    "warning": base.Severity.WARNING,
    "info": base.Severity.INFORMATION,
    "information": base.Severity.INFORMATION,
    "hint": base.Severity.HINT,
}

# Prefix of codes synthesized for diagnostics that captured none.
PLACEHOLDER_CODE_PREFIX = "regexpreview-"


def _group(
    match: re.Match[str],
    offsets: base.FieldOffsets,
    field: base.DiagnosticField,
) -> str | None:
    """Return the text captured for *field*, or None if it is unresolvable."""
    index = offsets.get(field, -1)
    if index < 0 or index > match.re.groups:
        return None
    return match.group(index)


def parse_location(text: str) -> tuple[int, int, int, int] | None:
    """Parse a comma-separated location capture into a range.

    ``"5"`` and ``"5,10"`` are points; ``"5,10,8,20"`` is a full range.
    Any other number of values is unresolved and returns None.

    Raises:
        ValueError: If a value is not an integer.
    """
    parts = text.split(",")
    if len(parts) not in (1, 2, 4):
        return None
    values = [int(part) for part in parts]
    if len(values) == 1:
        return (values[0], 0, values[0], 0)
    if len(values) == 2:
        return (values[0], values[1], values[0], values[1])
    return (values[0], values[1], values[2], values[3])


def _discrete_range(
    match: re.Match[str],
    offsets: base.FieldOffsets,
) -> tuple[int, int, int, int] | None:
    line = _group(match, offsets, base.DiagnosticField.LINE)
    column = _group(match, offsets, base.DiagnosticField.COLUMN)
    if not line or not column:
        return None
    end_line = _group(match, offsets, base.DiagnosticField.END_LINE) or line
    end_column = _group(match, offsets, base.DiagnosticField.END_COLUMN) or column
    return (int(line), int(column), int(end_line), int(end_column))


def parse_severity(text: str | None) -> base.Severity:
    """Map captured severity text to a Severity, defaulting to ERROR."""
    if not text:
        return base.Severity.ERROR
    return _SEVERITIES.get(text.strip().lower(), base.Severity.ERROR)


def extract(match: re.Match[str], offsets: base.FieldOffsets) -> base.Diagnostic | None:
    """Build a Diagnostic from a match, or None if it is incomplete.

    The range comes from the ``location`` group when it resolves, otherwise
    from ``line``/``column`` with ``endLine``/``endColumn`` defaulting to
    them. ``file`` and ``message`` are mandatory. A diagnostic without a
    ``code`` gets a unique placeholder code.

    Never raises: a non-numeric position or a bad group index drops only this
    diagnostic.

    Args:
        match: A successful match of the matcher's regex.
        offsets: Absolute group offsets for that regex.

    Returns:
        The diagnostic, or None if a mandatory part is missing or malformed.
    """
    try:
        file = _group(match, offsets, base.DiagnosticField.FILE)
        message = _group(match, offsets, base.DiagnosticField.MESSAGE)
        if not file or not message:
            logger.debug("Discarding match at %d: no file or message", match.start())
            return None

        span = None
        location = _group(match, offsets, base.DiagnosticField.LOCATION)
        if location:
            span = parse_location(location)
        if span is None:
            span = _discrete_range(match, offsets)
        if span is None:
            logger.debug("Discarding match at %d: no position", match.start())
            return None
        code = _group(match, offsets, base.DiagnosticField.CODE)
    except (IndexError, ValueError) as e:
        logger.debug("Discarding match at %d: %s", match.start(), e)
        return None

    line, col, end_line, end_col = span
    return base.Diagnostic(
        file=file,
        message=message,
        code=code or f"{PLACEHOLDER_CODE_PREFIX}{uuid.uuid4().hex}",
        line=line,
        col=col,
        end_line=end_line,
        end_col=end_col,
        severity=parse_severity(_group(match, offsets, base.DiagnosticField.SEVERITY)),
    )
