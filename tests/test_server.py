"""Tests for the LSP glue: preview arguments and declaration resolution."""

import json
import textwrap

from regexpreview import config as rp_config
from regexpreview import scanner, server
from regexpreview.matchers import base, compiler, live

_PACKAGE_JSON = textwrap.dedent("""\
    {
      "contributes": {
        "problemMatchers": [
          {
            "name": "gcc",
            "pattern": {
              "regexp": "^([\\\\w.]+):(\\\\d+):(\\\\d+): (error|warning): (.*)$",
              "file": 1,
              "line": 2,
              "column": 3,
              "severity": 4,
              "message": 5
            }
          },
          {
            "name": "eslint-stylish",
            "pattern": [
              {
                "regexp": "^([^\\\\s].*)$",
                "file": 1
              },
              {
                "regexp": "^\\\\s+(\\\\d+):(\\\\d+)\\\\s+(error|warning)\\\\s+(.*)$",
                "line": 1,
                "column": 2,
                "severity": 3,
                "message": 4,
                "loop": true
              }
            ]
          }
        ]
      }
    }
""")


F = base.DiagnosticField


def _resolve(
    index: int, matchers: list[base.Matcher] | None = None
) -> live.LivePattern | None:
    declarations = scanner.find_declarations(_PACKAGE_JSON)
    if matchers is None:
        matchers = rp_config.parse_matchers(json.loads(_PACKAGE_JSON))
    return server._pattern_for(declarations[index], declarations, matchers)


# ---------------------------------------------------------------------------
# Preview command arguments
# ---------------------------------------------------------------------------


class TestPreviewTarget:
    def test_positional_arguments(self) -> None:
        assert server._preview_target(("file:///x.json", 3)) == ("file:///x.json", 3)

    def test_single_array_argument(self) -> None:
        assert server._preview_target((["file:///x.json", 3],)) == ("file:///x.json", 3)

    def test_missing_line_rejected(self) -> None:
        assert server._preview_target(("file:///x.json",)) is None

    def test_no_arguments_rejected(self) -> None:
        assert server._preview_target(()) is None

    def test_non_integer_line_rejected(self) -> None:
        assert server._preview_target(("file:///x.json", "3")) is None

    def test_unpack_flattens_single_list(self) -> None:
        assert server._unpack((["file:///x.json", 3],)) == ("file:///x.json", 3)


# ---------------------------------------------------------------------------
# Declaration resolution
# ---------------------------------------------------------------------------


class TestPatternFor:
    def test_single_regexp_uses_declared_offsets(self) -> None:
        pattern = _resolve(0)
        assert pattern is not None
        assert dict(pattern.offsets) == {
            F.FILE: 1,
            F.LINE: 2,
            F.COLUMN: 3,
            F.SEVERITY: 4,
            F.MESSAGE: 5,
        }

    def test_single_regexp_without_matcher_uses_defaults(self) -> None:
        pattern = _resolve(0, matchers=[])
        assert pattern is not None
        assert dict(pattern.offsets) == dict(base.DEFAULT_OFFSETS)

    def test_chain_uses_composite_regex(self) -> None:
        matchers = rp_config.parse_matchers(json.loads(_PACKAGE_JSON))
        compiled = compiler.compile_matcher(matchers[1])
        pattern = _resolve(1, matchers)
        assert pattern is not None
        assert pattern.regex.pattern == compiled.source
        assert dict(pattern.offsets) == dict(compiled.offsets)

    def test_chain_without_matcher_is_none(self) -> None:
        assert _resolve(1, matchers=[]) is None
