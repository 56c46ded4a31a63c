"""Scan results and their human-readable and structured renderings."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Iterable

from safebash.errors import ExitCode
from safebash.rules import base


@dataclasses.dataclass(frozen=True)
class ScanResult:
    """Diagnostics from one scan plus the number of lines scanned.

    Attributes:
        diagnostics: Ordered by line, then by rule registration order.
        line_count: Number of source lines scanned.
    """

    diagnostics: tuple[base.Diagnostic, ...] = ()
    line_count: int = 0

    @property
    def has_errors(self) -> bool:
        """True if any diagnostic has error severity."""
        return any(diag.severity is base.Severity.ERROR for diag in self.diagnostics)

    def exit_code(self) -> ExitCode:
        """Return the CLI exit code this result calls for on its own."""
        return ExitCode.VIOLATIONS if self.has_errors else ExitCode.CLEAN

    def to_records(self, path: str) -> list[dict[str, object]]:
        """Return the diagnostics as plain dicts tagged with *path*."""
        return [
            {
                "path": path,
                "line": diag.line,
                "column": diag.col,
                "rule_id": diag.rule_id,
                "severity": diag.severity.value,
                "message": diag.message,
            }
            for diag in self.diagnostics
        ]


def format_diagnostic(path: str, diag: base.Diagnostic) -> str:
    """Render one diagnostic as ``<path>:<line>: [<severity>] <rule-id>: <message>``."""
    return f"{path}:{diag.line}: [{diag.severity.value}] {diag.rule_id}: {diag.message}"


def format_text(path: str, result: ScanResult) -> list[str]:
    """Render every diagnostic of *result* as a human-readable line."""
    return [format_diagnostic(path, diag) for diag in result.diagnostics]


def format_json(results: Iterable[tuple[str, ScanResult]]) -> str:
    """Render ``(path, result)`` pairs as one JSON array of diagnostic records."""
    records = [record for path, result in results for record in result.to_records(path)]
    return json.dumps(records, indent=2)
