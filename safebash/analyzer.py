"""Orchestrates rule execution against the lines of a shell script."""

from __future__ import annotations

import codecs
import logging
import pathlib
import re
from collections.abc import Sequence

from safebash import errors, lexer, result
from safebash.rules import base

logger = logging.getLogger(__name__)

INTERNAL_RULE_ERROR_ID = "internal-rule-error"

_RULE_ID = r"[A-Za-z0-9][A-Za-z0-9\-]*"

# Comma-separated ids; anything after the last id is free text.
_RULE_ID_LIST = rf"{_RULE_ID}(?:[ \t]*,[ \t]*{_RULE_ID})*"

# Matches:  # safebash: noqa                     (suppress all rules on this line)
#           # safebash: noqa: unchecked-cd       (suppress specific rules on this line)
_LINE_NOQA_PAT = re.compile(
    rf"#\s*safebash:\s*noqa(?::\s*({_RULE_ID_LIST}))?",
    re.IGNORECASE,
)

# Matches:  # safebash: disable-file                   (suppress all rules in this file)
#           # safebash: disable-file: errexit-flag     (suppress specific rules in this file)
_FILE_DISABLE_PAT = re.compile(
    rf"#\s*safebash:\s*disable-file(?::\s*({_RULE_ID_LIST}))?",
    re.IGNORECASE,
)


def _rule_ids(raw: str | None) -> frozenset[str] | None:
    """Parse rule IDs from a suppression comment capture group.

    Returns None to indicate all rules are suppressed, or a frozenset of
    specific lowercased rule IDs.
    """
    if not raw or not raw.strip():
        return None
    ids = frozenset(part.strip().lower() for part in raw.split(",") if part.strip())
    return ids or None


def _covers(suppressed: frozenset[str] | None, rule_id: str) -> bool:
    """Return True if rule_id falls within the suppression set.

    None means all rules are suppressed.
    """
    return suppressed is None or rule_id in suppressed


def _apply_suppressions(
    diagnostics: list[base.Diagnostic],
    lines: Sequence[str],
) -> list[base.Diagnostic]:
    """Remove diagnostics covered by inline safebash suppression comments."""
    file_sup_active = False
    file_sup_rules: frozenset[str] | None = None
    line_sups: dict[int, frozenset[str] | None] = {}

    for lineno, line_text in enumerate(lines, start=1):
        file_match = _FILE_DISABLE_PAT.search(line_text)
        if file_match:
            file_sup_active = True
            file_sup_rules = _rule_ids(file_match.group(1))

        line_match = _LINE_NOQA_PAT.search(line_text)
        if line_match:
            line_sups[lineno] = _rule_ids(line_match.group(1))

    return [
        diag
        for diag in diagnostics
        if not (
            (file_sup_active and _covers(file_sup_rules, diag.rule_id))
            or (diag.line in line_sups and _covers(line_sups[diag.line], diag.rule_id))
        )
    ]


def decode_source(source: str | bytes) -> str:
    """Return *source* as text, validating that it is well-formed UTF-8.

    Raises:
        EncodingError: If bytes are not valid UTF-8 or text contains
            characters that cannot be encoded as UTF-8 (lone surrogates).
    """
    if isinstance(source, bytes):
        if source.startswith(codecs.BOM_UTF8):
            source = source[len(codecs.BOM_UTF8) :]
        try:
            return source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise errors.EncodingError(
                f"not valid UTF-8 at byte {exc.start}: {exc.reason}"
            ) from exc
    try:
        source.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise errors.EncodingError(
            f"cannot be encoded as UTF-8 at index {exc.start}: {exc.reason}"
        ) from exc
    return source.removeprefix("\ufeff")


def split_lines(text: str) -> list[str]:
    """Split *text* on ``\\n``; a trailing newline does not add a line."""
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


class Analyzer:
    """Runs a fixed sequence of rules against shell source."""

    def __init__(self, rules: Sequence[base.Rule]) -> None:
        """Initialize with the rules to run, in registration order.

        Args:
            rules: Rule instances to run on every analysis request.
        """
        self.rules = tuple(rules)

    def _run_rule(
        self, rule: base.Rule, context: lexer.LineContext
    ) -> base.Diagnostic | None:
        """Evaluate one rule on one line, converting a crash into a diagnostic."""
        try:
            return rule.check(context.text, context)
        except Exception as exc:  # noqa: BLE001
            failure = errors.InternalRuleError(rule.rule_id, context.number, exc)
            logger.debug("%s on line %d", failure.message, context.number, exc_info=True)
            return base.Diagnostic(
                rule_id=INTERNAL_RULE_ERROR_ID,
                message=failure.message,
                line=context.number,
                severity=base.Severity.ERROR,
            )

    def analyze(self, source: str | bytes) -> result.ScanResult:
        """Split source into lines, run all rules, and apply inline suppressions.

        Args:
            source: Script text, or raw bytes to be decoded as UTF-8.

        Returns:
            A ScanResult whose diagnostics are ordered by line and then by
            the position of the emitting rule in ``self.rules``.

        Raises:
            EncodingError: If the source is not valid UTF-8.
        """
        lines = split_lines(decode_source(source))
        diagnostics: list[base.Diagnostic] = []
        for context in lexer.build_contexts(lines):
            if context.in_heredoc:
                continue
            for rule in self.rules:
                diag = self._run_rule(rule, context)
                if diag is not None:
                    diagnostics.append(diag)
        return result.ScanResult(
            diagnostics=tuple(_apply_suppressions(diagnostics, lines)),
            line_count=len(lines),
        )


def scan(source: str | bytes, rules: Sequence[base.Rule]) -> result.ScanResult:
    """Scan *source* with *rules* and return the result.

    Raises:
        EncodingError: If the source is not valid UTF-8.
    """
    return Analyzer(rules=rules).analyze(source)


def scan_file(path: pathlib.Path, rules: Sequence[base.Rule]) -> result.ScanResult:
    """Read *path* and scan it with *rules*.

    Raises:
        SourceReadError: If the file is missing or cannot be read.
        EncodingError: If the file is not valid UTF-8.
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise errors.SourceReadError(f"{path}: {exc.strerror or exc}") from exc
    try:
        return scan(data, rules)
    except errors.EncodingError as exc:
        raise errors.EncodingError(f"{path}: {exc.message}") from exc
