"""pygls LSP server for regexpreview."""

import dataclasses
import json
import logging
import pathlib

from lsprotocol import types
from pygls.lsp import server as pygls_server

from regexpreview import config as rp_config
from regexpreview import scanner
from regexpreview.matchers import base, compiler, live

logger = logging.getLogger(__name__)

PREVIEW_COMMAND = "regexpreview.preview"
TOGGLE_INJECT_COMMAND = "regexpreview.toggleInject"

server = pygls_server.LanguageServer("regexpreview", "v0.1.0")


@dataclasses.dataclass
class _Session:
    config: rp_config.Config = dataclasses.field(default_factory=rp_config.load_config)
    inject: bool | None = None

    @property
    def is_injecting(self) -> bool:
        if self.inject is None:
            return self.config.auto_inject_global_multiline
        return self.inject


session = _Session()


def _to_lsp(diag: base.Diagnostic) -> types.Diagnostic:
    """Convert a regexpreview Diagnostic to an LSP Diagnostic."""
    severity_map = {
        base.Severity.ERROR: types.DiagnosticSeverity.Error,
        base.Severity.WARNING: types.DiagnosticSeverity.Warning,
        base.Severity.INFORMATION: types.DiagnosticSeverity.Information,
        base.Severity.HINT: types.DiagnosticSeverity.Hint,
    }
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=max(diag.line, 0), character=max(diag.col, 0)),
            end=types.Position(
                line=max(diag.end_line, 0), character=max(diag.end_col, 0)
            ),
        ),
        message=f"{diag.file}: {diag.message}",
        severity=severity_map[diag.severity],
        code=diag.code,
        source="regexpreview",
    )


def _lsp_range(text: str, start: int, end: int) -> dict[str, dict[str, int]]:
    start_line, start_col = live.position_at(text, start)
    end_line, end_col = live.position_at(text, end)
    return {
        "start": {"line": start_line, "character": start_col},
        "end": {"line": end_line, "character": end_col},
    }


def _is_json(document_uri: str, language_id: str | None) -> bool:
    return language_id == "json" or document_uri.endswith(".json")


def _config_error(ls: pygls_server.LanguageServer, uri: str) -> str | None:
    """Return the configuration error of a JSON document, if any."""
    source = ls.workspace.get_text_document(uri).source
    try:
        rp_config.parse_matchers(json.loads(source))
    except json.JSONDecodeError:
        # Half-typed documents are reported by the JSON language server.
        return None
    except rp_config.ConfigError as e:
        return str(e)
    return None


def _publish(ls: pygls_server.LanguageServer, uri: str) -> None:
    """Validate a matcher document and publish any configuration error."""
    document = ls.workspace.get_text_document(uri)
    if not _is_json(uri, document.language_id):
        return
    error = _config_error(ls, uri)
    diagnostics = []
    if error is not None:
        logger.warning("Invalid matcher declarations in %s: %s", uri, error)
        diagnostics.append(
            types.Diagnostic(
                range=types.Range(
                    start=types.Position(line=0, character=0),
                    end=types.Position(line=0, character=0),
                ),
                message=error,
                severity=types.DiagnosticSeverity.Error,
                source="regexpreview",
            )
        )
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(
    ls: pygls_server.LanguageServer,
    params: types.DidOpenTextDocumentParams,
) -> None:
    """Validate a newly opened document."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(
    ls: pygls_server.LanguageServer,
    params: types.DidChangeTextDocumentParams,
) -> None:
    """Re-validate a document after every change."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(
    ls: pygls_server.LanguageServer,
    params: types.DidCloseTextDocumentParams,
) -> None:
    """Clear diagnostics when a document is closed."""
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


@server.feature(types.TEXT_DOCUMENT_CODE_LENS)
def code_lens(
    ls: pygls_server.LanguageServer,
    params: types.CodeLensParams,
) -> list[types.CodeLens]:
    """Offer a preview lens on every regexp and pattern-list declaration."""
    uri = params.text_document.uri
    document = ls.workspace.get_text_document(uri)
    if not _is_json(uri, document.language_id):
        return []
    return [
        types.CodeLens(
            range=types.Range(
                start=types.Position(line=decl.line, character=decl.col),
                end=types.Position(line=decl.line, character=decl.end_col),
            ),
            command=types.Command(
                title="Test Regex...",
                command=PREVIEW_COMMAND,
                arguments=[uri, decl.line],
            ),
        )
        for decl in scanner.find_declarations(document.source)
    ]


def _unpack(args: tuple[object, ...]) -> tuple[object, ...]:
    # Some clients send the argument list as a single array.
    if len(args) == 1 and isinstance(args[0], list):
        return tuple(args[0])
    return args


def _preview_target(args: tuple[object, ...]) -> tuple[str, int] | None:
    """Return the ``(uri, line)`` a preview command was invoked with, if valid."""
    target = _unpack(args)
    if len(target) < 2 or not isinstance(target[1], int):
        logger.warning("%s expects (uri, line), got %r", PREVIEW_COMMAND, args)
        return None
    return str(target[0]), target[1]


def _pattern_for(
    declaration: scanner.Declaration,
    declarations: list[scanner.Declaration],
    matchers: list[base.Matcher],
) -> live.LivePattern | None:
    """Resolve a declaration to the pattern to evaluate."""
    if declaration.is_chain:
        position = [decl for decl in declarations if decl.is_chain].index(declaration)
        chains = [matcher for matcher in matchers if matcher.chained]
        if position >= len(chains):
            return None
        compiled = compiler.compile_matcher(chains[position])
        if compiled.regex is None:
            return None
        return live.LivePattern(regex=compiled.regex, offsets=compiled.offsets)

    offsets = base.DEFAULT_OFFSETS
    for matcher in matchers:
        if not matcher.chained and matcher.fragments[0].source == declaration.source:
            offsets = compiler.compile_matcher(matcher).offsets
            break
    return live.LivePattern.from_source(declaration.source or "", offsets=offsets)


@server.command(PREVIEW_COMMAND)
def preview(ls: pygls_server.LanguageServer, *args: object) -> list[dict]:
    """Evaluate the declaration at a line against the sample text.

    Publishes the extracted diagnostics for the sample file and returns the
    match ranges for highlighting.
    """
    target = _preview_target(args)
    if target is None:
        return []
    uri, line = target
    document = ls.workspace.get_text_document(str(uri))
    declarations = scanner.find_declarations(document.source)
    declaration = next((decl for decl in declarations if decl.line == line), None)
    sample = session.config.sample
    if declaration is None or sample is None:
        return []

    try:
        matchers = rp_config.parse_matchers(json.loads(document.source))
    except (json.JSONDecodeError, rp_config.ConfigError) as e:
        logger.warning("Cannot preview %s: %s", uri, e)
        matchers = []
    pattern = _pattern_for(declaration, declarations, matchers)
    if pattern is None:
        return []

    try:
        text = session.config.bound(pathlib.Path(sample).read_text())
    except OSError as e:
        ls.window_show_message(
            types.ShowMessageParams(
                type=types.MessageType.Error, message=f"regexpreview: {e}"
            )
        )
        return []
    ranges, diagnostics = live.run(pattern, text, inject=session.is_injecting)
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(
            uri=pathlib.Path(sample).resolve().as_uri(),
            diagnostics=[_to_lsp(diag) for diag in diagnostics],
        )
    )
    return [_lsp_range(text, start, end) for start, end in ranges]


@server.command(TOGGLE_INJECT_COMMAND)
def toggle_inject(ls: pygls_server.LanguageServer, *args: object) -> bool:
    """Flip whether missing global/multiline modes are added to previews."""
    session.inject = not session.is_injecting
    return session.inject


def start() -> None:
    """Start the LSP server over stdio."""
    server.start_io()
