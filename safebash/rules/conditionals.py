"""Conditional rules: single-bracket-test."""

from __future__ import annotations

from safebash import lexer
from safebash.rules import base

_TEST_COMMAND_PAT = lexer.command_pattern("[", "test")


class SingleBracketTest(base.Rule):
    """Flag ``[ ... ]`` and ``test`` in favour of ``[[ ... ]]``.

    Inside ``[`` the operands are ordinary command arguments: unquoted
    expansions are split and globbed, and ``>`` or ``<`` are redirections
    rather than comparisons.  ``[[`` is shell syntax and avoids both.

    Allowed:
        if [[ -f $path ]]; then ...
        echo "[ not a test ]"

    Flagged:
        [ "${var}" > 'z' ]
        if test -n "$name"; then ...
    """

    rule_id = "single-bracket-test"
    description = "Use of [ ... ] or test instead of [[ ... ]]."
    severity = base.Severity.WARNING

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic for the first ``[`` or ``test`` command on the line."""
        match = _TEST_COMMAND_PAT.search(context.code)
        if match is None:
            return None
        command = match.group("cmd")
        shown = "[ ... ]" if command == "[" else "test"
        return self.diagnostic(
            context,
            f"Use `[[ ... ]]` instead of `{shown}`; inside `[` unquoted"
            f" operands are split and `>` is a redirection",
            col=match.start("cmd"),
        )
