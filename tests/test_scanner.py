"""Tests for regexpreview.scanner: declaration lookup and batch scans."""

import json
import textwrap

from regexpreview import config as rp_config
from regexpreview import scanner
from regexpreview.matchers import base, compiler

F = base.DiagnosticField

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


# ---------------------------------------------------------------------------
# find_declarations
# ---------------------------------------------------------------------------


class TestFindDeclarations:
    def test_finds_regexps_and_chain_start(self) -> None:
        declarations = scanner.find_declarations(_PACKAGE_JSON)
        assert [decl.line for decl in declarations] == [6, 16, 18, 22]
        assert [decl.is_chain for decl in declarations] == [False, True, False, False]

    def test_regexp_source_unescaped(self) -> None:
        first = scanner.find_declarations(_PACKAGE_JSON)[0]
        assert first.source == r"^([\w.]+):(\d+):(\d+): (error|warning): (.*)$"

    def test_columns_cover_declaration(self) -> None:
        first = scanner.find_declarations(_PACKAGE_JSON)[0]
        assert first.col == 10
        assert first.end_col > first.col

    def test_chain_has_no_source(self) -> None:
        chain = scanner.find_declarations(_PACKAGE_JSON)[1]
        assert chain.source is None

    def test_no_declarations(self) -> None:
        assert scanner.find_declarations('{"name": "x"}') == []

    def test_long_line_truncated(self) -> None:
        text = '"regexp": "' + "a" * 2000 + '",'
        assert scanner.find_declarations(text) == []


# ---------------------------------------------------------------------------
# scan_document
# ---------------------------------------------------------------------------


class TestScanDocument:
    def test_each_matcher_yields_one_diagnostic(self) -> None:
        matchers = rp_config.parse_matchers(json.loads(_PACKAGE_JSON))
        text = textwrap.dedent("""\
            main.c:3:7: warning: unused variable
            util.c:9:1: error: missing return
            src/app.js
              4:2  error  Unexpected console
        """)
        diagnostics = scanner.scan_document(text, matchers)
        assert [(diag.file, diag.line, diag.severity) for diag in diagnostics] == [
            ("main.c", 3, base.Severity.WARNING),
            ("src/app.js", 4, base.Severity.ERROR),
        ]

    def test_non_matching_matcher_omitted(self) -> None:
        matchers = [base.Matcher.single(r"^nothing (\d+)$")]
        assert scanner.scan_document("some text", matchers) == []

    def test_incomplete_match_omitted(self) -> None:
        # matches, but the default table points file/message at missing groups
        matchers = [base.Matcher.single(r"(\w+)")]
        assert scanner.scan_document("word", matchers) == []

    def test_never_matching_matcher(self) -> None:
        matchers = [base.Matcher(fragments=(base.PatternFragment("("),), chained=True)]
        assert scanner.scan_document("(", matchers) == []

    def test_declaration_order_preserved(self) -> None:
        offsets = {F.FILE: 1, F.LINE: 2, F.COLUMN: 2, F.MESSAGE: 3}
        matchers = [
            base.Matcher.single(r"^(b):(\d+) (.*)$", offsets, name="b"),
            base.Matcher.single(r"^(a):(\d+) (.*)$", offsets, name="a"),
        ]
        diagnostics = scanner.scan_document("a:1 first\nb:2 second\n", matchers)
        assert [diag.file for diag in diagnostics] == ["b", "a"]

    def test_scan_matcher_returns_match(self) -> None:
        compiled = compiler.compile_matcher(base.Matcher.single(r"(\d+)"))
        match, diagnostic = scanner.scan_matcher(compiled, "abc 42")
        assert match is not None
        assert match.group(1) == "42"
        assert diagnostic is None
