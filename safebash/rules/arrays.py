"""Array rules: ls-iteration, split-into-array."""

from __future__ import annotations

import re

from safebash import lexer
from safebash.rules import base

_LS_LOOP_PAT = re.compile(r"\bfor[ \t]+[A-Za-z_][A-Za-z0-9_]*[ \t]+in[ \t]+(?:\$\(|`)[ \t]*ls\b")

_SPLIT_ARRAY_PAT = re.compile(
    r"(?P<name>[A-Za-z_][A-Za-z0-9_]*)\+?=\([ \t]*(?:\$\((?!\()|`)"
)


class LsIteration(base.Rule):
    """Flag ``for`` loops that iterate over the output of ``ls``.

    File names may contain spaces, newlines, and glob characters; splitting
    ``ls`` output breaks on all of them.  Iterate a glob directly.

    Allowed:
        for file in ./*.txt; do ...

    Flagged:
        for file in $(ls *.txt); do ...
        for file in `ls`; do ...
    """

    rule_id = "ls-iteration"
    description = "Looping over the output of ls instead of a glob."
    severity = base.Severity.WARNING

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic for a loop over ``ls`` output."""
        match = _LS_LOOP_PAT.search(context.code)
        if match is None:
            return None
        return self.diagnostic(
            context,
            "Iterating over `ls` output splits file names on whitespace;"
            " loop over a glob such as `for file in ./*` instead",
            col=match.start(),
        )


class SplitIntoArray(base.Rule):
    """Flag arrays filled by word-splitting unquoted command output.

    ``arr=( $(cmd) )`` splits the output on whitespace and glob-expands each
    word.  ``mapfile -t arr < <(cmd)`` keeps one element per line.
    Arithmetic ``$(( ))`` is not command output and is not flagged.

    Allowed:
        mapfile -t lines < <(grep -v '^#' config)
        parts=("$(hostname)")

    Flagged:
        lines=( $(grep -v '^#' config) )
        files=(`find . -name '*.sh'`)
    """

    rule_id = "split-into-array"
    description = "Array filled by word-splitting unquoted command output."
    severity = base.Severity.WARNING

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic for an array assigned from unquoted output."""
        match = _SPLIT_ARRAY_PAT.search(context.code)
        if match is None:
            return None
        name = match.group("name")
        return self.diagnostic(
            context,
            f"Filling `{name}` from unquoted command output splits on whitespace;"
            f" use `mapfile -t {name} < <(...)`",
            col=match.start(),
        )
