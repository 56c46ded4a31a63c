"""Quoting rules: unquoted-expansion, backtick-substitution."""

from __future__ import annotations

import re

from safebash import lexer
from safebash.rules import base

_EXPANSION_PAT = re.compile(r"\$(?:\{[^}]*\}|[A-Za-z_][A-Za-z0-9_]*|[0-9@*])")

# `name=`, `name+=`, `name[idx]=` at the start of a word.
_ASSIGNMENT_WORD_PAT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:\[[^\]]*\])?\+?=")

_CASE_WORD_PAT = re.compile(r"\bcase[ \t]+$")

_WORD_SEPARATORS: frozenset[str] = frozenset(" \t;&|()")


def _word_start(context: lexer.LineContext, col: int) -> int:
    """Return the column where the shell word containing *col* begins."""
    start = col
    while start > 0:
        prev = start - 1
        if context.text[prev] in _WORD_SEPARATORS and context.spans[prev] is lexer.Span.CODE:
            break
        start = prev
    return start


def _is_assignment_value(context: lexer.LineContext, col: int) -> bool:
    """Return True if *col* lies in the value part of an assignment word.

    Only the word shape is checked, so ``echo name=$value`` is treated as an
    assignment too.
    """
    start = _word_start(context, col)
    match = _ASSIGNMENT_WORD_PAT.match(context.code, start)
    return match is not None and match.end() <= col


class UnquotedExpansion(base.Rule):
    """Flag parameter expansions that are not inside double quotes.

    An unquoted ``$var`` is split on whitespace and every resulting word is
    glob-expanded, so a value such as ``"threeA threeB"`` or ``"*"`` turns
    into several arguments.  Places where the shell performs neither step
    are exempt: arithmetic ``(( ))`` and ``$(( ))``, ``[[ ]]``, the value of
    an assignment word, and the word after ``case``.  Length expansions
    (``${#var}``) and special parameters such as ``$?`` and ``$#`` are
    never flagged.

    Allowed:
        command "${var}"
        count=$other
        (( total = $a + $b ))
        [[ -n $var ]]

    Flagged:
        command one two ${var}
        rm $file
        for arg in $@; do ...
    """

    rule_id = "unquoted-expansion"
    description = "Parameter expansion outside double quotes is subject to word splitting and globbing."
    severity = base.Severity.WARNING

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic for the first unquoted expansion on the line."""
        arithmetic = lexer.arithmetic_spans(context.code)
        brackets = lexer.double_bracket_spans(context.code)
        for match in _EXPANSION_PAT.finditer(context.code):
            col = match.start()
            expansion = match.group()
            if expansion.startswith("${#"):
                continue
            if lexer.is_within(col, arithmetic) or lexer.is_within(col, brackets):
                continue
            if _is_assignment_value(context, col):
                continue
            if _CASE_WORD_PAT.search(context.code, 0, col):
                continue
            return self.diagnostic(
                context,
                f"Expansion `{expansion}` is unquoted; wrap it in double quotes"
                f" to prevent word splitting and globbing",
                col=col,
            )
        return None


class BacktickSubstitution(base.Rule):
    """Flag backtick command substitution; prefer ``$( ... )``.

    Backticks do not nest without escaping and treat backslashes
    differently.  Backticks inside single quotes, comments, or escaped with
    a backslash are literal text and are not flagged.

    Allowed:
        today=$(date +%F)
        echo 'literal `backticks`'

    Flagged:
        today=`date +%F`
        echo "today is `date`"
    """

    rule_id = "backtick-substitution"
    description = "Backtick command substitution; use $( ... ) instead."
    severity = base.Severity.WARNING

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic for the first live backtick on the line."""
        for col, char in enumerate(line):
            if char != "`":
                continue
            if context.spans[col] not in (lexer.Span.CODE, lexer.Span.DOUBLE):
                continue
            return self.diagnostic(
                context,
                "Use `$( ... )` instead of backticks for command substitution",
                col=col,
            )
        return None
