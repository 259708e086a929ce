"""Data model shared by the matcher compiler, extractor, and live engine."""

from __future__ import annotations

import dataclasses
import re
import types
from collections.abc import Mapping
from enum import Enum


class DiagnosticField(Enum):
    """Diagnostic fields a capture group can supply.

    Values are the keys used in problem matcher declarations.
    """

    LINE = "line"
    COLUMN = "column"
    END_LINE = "endLine"
    END_COLUMN = "endColumn"
    SEVERITY = "severity"
    CODE = "code"
    FILE = "file"
    LOCATION = "location"
    MESSAGE = "message"


# Field -> capture group index. Absent (or -1) means "not supplied".
FieldOffsets = Mapping[DiagnosticField, int]

DEFAULT_OFFSETS: FieldOffsets = types.MappingProxyType(
    {
        DiagnosticField.LINE: 1,
        DiagnosticField.COLUMN: 3,
        DiagnosticField.MESSAGE: 4,
        DiagnosticField.FILE: 1,
    }
)


def freeze_offsets(offsets: Mapping[DiagnosticField, int]) -> FieldOffsets:
    """Return a read-only copy of *offsets* with unset (-1) entries dropped."""
    return types.MappingProxyType(
        {field: index for field, index in offsets.items() if index >= 0}
    )


class Severity(Enum):
    """LSP diagnostic severity levels."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclasses.dataclass(frozen=True)
class PatternFragment:
    """One regex of a matcher with its fragment-local group offsets.

    Attributes:
        source: Regex source text.
        fields: Group indices relative to this fragment alone. A value of -1
            removes the field from the matcher's base table.
        loop: Repeat this fragment one or more times. Only honoured on the
            last fragment of a chain.
    """

    source: str
    fields: FieldOffsets = dataclasses.field(
        default_factory=lambda: types.MappingProxyType({}), hash=False
    )
    loop: bool = False


@dataclasses.dataclass(frozen=True)
class Matcher:
    """An ordered chain of one or more fragments describing one diagnostic shape.

    Attributes:
        fragments: Fragments in the order their lines appear in the output.
        defaults: Base offset table the fragments' declared fields are laid
            over. Single-pattern matchers use ``DEFAULT_OFFSETS``; chains
            start empty.
        name: Human-readable label, used in error messages and CLI filters.
        chained: Declared as a list of patterns, even if it has one entry.
    """

    fragments: tuple[PatternFragment, ...]
    defaults: FieldOffsets = dataclasses.field(
        default_factory=lambda: types.MappingProxyType({}), hash=False
    )
    name: str = ""
    chained: bool = False

    @classmethod
    def single(
        cls,
        source: str,
        fields: Mapping[DiagnosticField, int] | None = None,
        name: str = "",
    ) -> Matcher:
        """Build a one-fragment matcher over the default offset table."""
        fragment = PatternFragment(source, types.MappingProxyType(dict(fields or {})))
        return cls(
            fragments=(fragment,),
            defaults=DEFAULT_OFFSETS,
            name=name,
        )


@dataclasses.dataclass(frozen=True)
class CompiledMatcher:
    """Composite regex plus the absolute offset table for its groups.

    ``regex`` is None when no fragment compiled; such a matcher never matches.
    """

    source: str
    group_count: int
    offsets: FieldOffsets = dataclasses.field(hash=False)
    regex: re.Pattern[str] | None = dataclasses.field(default=None, compare=False)


@dataclasses.dataclass(frozen=True)
class Diagnostic:
    """A single diagnostic extracted from a match.

    Positions are the captured values as written in the tool output.
    """

    file: str
    message: str
    code: str
    line: int
    col: int
    end_line: int
    end_col: int
    severity: Severity = Severity.ERROR

    @property
    def range(self) -> tuple[int, int, int, int]:
        return (self.line, self.col, self.end_line, self.end_col)
