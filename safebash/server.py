"""pygls LSP server for safebash."""

from lsprotocol import types
from pygls.lsp import server as pygls_server

from safebash import analyzer as safebash_analyzer
from safebash import config as safebash_config
from safebash import errors, rules
from safebash.rules import base

server = pygls_server.LanguageServer("safebash", "v0.1.0")
analyzer = safebash_analyzer.Analyzer(
    rules=safebash_config.active_rules(rules.ALL_RULES, safebash_config.load_config())
)


def _to_lsp(diag: base.Diagnostic, lines: list[str]) -> types.Diagnostic:
    """Convert a safebash Diagnostic to an LSP Diagnostic.

    The range runs from the diagnostic column (or the line start when the
    column is unknown) to the end of the line.
    """
    severity_map = {
        base.Severity.ERROR: types.DiagnosticSeverity.Error,
        base.Severity.WARNING: types.DiagnosticSeverity.Warning,
    }
    line_index = diag.line - 1
    line_length = len(lines[line_index]) if line_index < len(lines) else 0
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=line_index, character=diag.col or 0),
            end=types.Position(line=line_index, character=line_length),
        ),
        message=f"{diag.rule_id} {diag.message}",
        severity=severity_map[diag.severity],
        source="safebash",
    )


def _publish(ls: pygls_server.LanguageServer, uri: str) -> None:
    """Analyze a document and publish diagnostics to the client."""
    source = ls.workspace.get_text_document(uri).source
    try:
        scan_result = analyzer.analyze(source)
    except errors.EncodingError as e:
        ls.window_log_message(
            types.LogMessageParams(type=types.MessageType.Error, message=f"{uri}: {e.message}")
        )
        return
    lines = safebash_analyzer.split_lines(source)
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(
            uri=uri,
            diagnostics=[_to_lsp(diag, lines) for diag in scan_result.diagnostics],
        )
    )


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(
    ls: pygls_server.LanguageServer,
    params: types.DidOpenTextDocumentParams,
) -> None:
    """Analyze a newly opened document."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(
    ls: pygls_server.LanguageServer,
    params: types.DidChangeTextDocumentParams,
) -> None:
    """Re-analyze a document after every change."""
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


def start() -> None:
    """Start the LSP server over stdio."""
    server.start_io()
