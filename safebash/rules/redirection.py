"""Redirection rules: redirection-order."""

from __future__ import annotations

import re

from safebash import lexer
from safebash.rules import base

# `2>&1 >file`, `2>&1 1>>file`; `2>&1 >&2` is a different idiom.
_DUP_BEFORE_FILE_PAT = re.compile(r"(?<![0-9])2>&1[ \t]+1?>>?(?!&)")


class RedirectionOrder(base.Rule):
    """Flag ``2>&1`` written before the stdout redirection it should follow.

    Redirections are applied left to right.  In ``cmd 2>&1 >out.log``
    stderr is pointed at the terminal (the old stdout) before stdout moves
    to the file, so errors never reach the log.

    Allowed:
        cmd >out.log 2>&1
        cmd 2>&1 | tee out.log

    Flagged:
        cmd 2>&1 >out.log
        cmd 2>&1 >>out.log
    """

    rule_id = "redirection-order"
    description = "2>&1 placed before the stdout redirection it is meant to follow."
    severity = base.Severity.WARNING

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic if stderr is duplicated before stdout is redirected."""
        match = _DUP_BEFORE_FILE_PAT.search(context.code)
        if match is None:
            return None
        return self.diagnostic(
            context,
            "`2>&1` comes before the file redirection, so stderr still goes to"
            " the old stdout; write `>file 2>&1`",
            col=match.start(),
        )
