"""Exit-status rules: unchecked-cd, errexit-flag."""

from __future__ import annotations

import re

from safebash import lexer
from safebash.rules import base

_DEFAULT_DIR_COMMANDS: tuple[str, ...] = ("cd",)

# Leads that make the command the condition of a compound command.
_CONDITION_LEADS: frozenset[str] = frozenset({"if", "elif", "while", "until", "!"})

# First control operator after the command: `&&`, `||`, `;`, `&`, `|`, `)`.
_NEXT_OPERATOR_PAT = re.compile(r"&&|\|\||[;&|)]")

_LEADING_GUARD_PAT = re.compile(r"^\s*(?:&&|\|\|)")

_STATUS_VAR = "$?"

_SET_COMMAND_PAT = lexer.command_pattern("set")

_SHEBANG_ERREXIT_PAT = re.compile(r"^#!.*[ \t]-[A-Za-z]*e")

_SHORT_FLAGS_PAT = re.compile(r"-[A-Za-z]+")


def _command_terminator(code: str, start: int) -> str | None:
    """Return the first control operator at or after *start*, or None.

    Operators inside ``$( ... )``, ``( ... )`` or backticks belong to the
    argument, not to the command being terminated.
    """
    depth = 0
    in_backtick = False
    for idx in range(start, len(code)):
        char = code[idx]
        if char == "`":
            in_backtick = not in_backtick
        elif in_backtick:
            continue
        elif char == "(":
            depth += 1
        elif char == ")" and depth:
            depth -= 1
        elif depth == 0:
            operator = _NEXT_OPERATOR_PAT.match(code, idx)
            if operator is not None:
                return operator.group()
    return None


class UncheckedCd(base.Rule):
    """Flag ``cd`` whose failure is not handled.

    If ``cd`` fails the script carries on in the current directory, so a
    following ``rm *`` deletes the wrong files.  A ``cd`` counts as checked
    when any of these holds:

    - it is followed by ``&&`` or ``||`` before the next ``;``, ``|`` or ``&``
    - it is the condition of ``if``, ``elif``, ``while``, ``until`` or ``!``
    - ``$?`` is inspected later on the same line or on the next line
    - the next line starts with ``&&`` or ``||``

    The checked commands default to ``cd`` and can be changed with the
    ``commands`` option (e.g. ``"cd,pushd"``).

    Allowed:
        cd "$dir" || exit 1
        cd build && make
        if ! cd "$dir"; then exit 1; fi

    Flagged:
        cd nonExistingDirectory
        cd "$dir"; rm *
    """

    rule_id = "unchecked-cd"
    description = "cd (or another directory change) without a status check."
    severity = base.Severity.ERROR

    def __init__(self, commands: tuple[str, ...] = _DEFAULT_DIR_COMMANDS) -> None:
        """Initialise with the directory-changing commands to check.

        Args:
            commands: Command names whose exit status must be checked.
        """
        self._commands = commands
        self._pattern = lexer.command_pattern(*commands)

    def configure(self, options: dict[str, int | str | bool]) -> base.Rule:
        """Return a new UncheckedCd with options applied.

        Args:
            options: Recognises ``commands`` (comma-separated str) and
                ``severity``.

        Returns:
            A configured instance, or self if no option changes anything.
        """
        rule = super().configure(options)
        raw = options.get("commands")
        if not isinstance(raw, str):
            return rule
        commands = tuple(part.strip() for part in raw.split(",") if part.strip())
        if not commands or commands == self._commands:
            return rule
        configured = UncheckedCd(commands=commands)
        configured.severity = rule.severity
        return configured

    def _is_checked(self, context: lexer.LineContext, match: re.Match[str]) -> bool:
        if match.group("lead") in _CONDITION_LEADS:
            return True
        if _STATUS_VAR in context.expanding[match.end() :]:
            return True
        operator = _command_terminator(context.code, match.end())
        if operator is not None:
            return operator in ("&&", "||")
        following = context.next_expanding
        if following is None:
            return False
        return bool(_LEADING_GUARD_PAT.match(following)) or _STATUS_VAR in following

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic for the first unchecked directory change."""
        for match in self._pattern.finditer(context.code):
            if self._is_checked(context, match):
                continue
            command = match.group("cmd")
            return self.diagnostic(
                context,
                f"`{command}` is not checked; if it fails, later commands run in"
                f" the wrong directory. Use `{command} ... || exit`",
                col=match.start("cmd"),
            )
        return None


def _enables_errexit(args: list[str]) -> bool:
    """Return True if the arguments of a ``set`` command turn on errexit."""
    for idx, arg in enumerate(args):
        if arg == "--":
            return False
        if not _SHORT_FLAGS_PAT.fullmatch(arg):
            continue
        if "e" in arg:
            return True
        if arg.endswith("o") and idx + 1 < len(args) and args[idx + 1] == "errexit":
            return True
    return False


class ErrexitFlag(base.Rule):
    """Flag scripts that turn on ``errexit``.

    ``set -e`` looks like blanket error handling but is silently disabled in
    ``if`` conditions, ``&&``/``||`` lists, and most of a pipeline.  The
    diagnostic is a caution: critical commands still need explicit checks.

    Allowed:
        set -uo pipefail
        set +e

    Flagged:
        set -e
        set -euo pipefail
        set -o errexit
        #!/bin/bash -e
    """

    rule_id = "errexit-flag"
    description = "set -e / set -o errexit in use; it does not replace explicit checks."
    severity = base.Severity.WARNING

    def check(self, line: str, context: lexer.LineContext) -> base.Diagnostic | None:
        """Return a diagnostic if the line enables errexit."""
        if context.number == 1 and _SHEBANG_ERREXIT_PAT.match(line):
            return self.diagnostic(
                context,
                "errexit is enabled on the shebang; it is skipped in conditions"
                " and pipelines, so check critical commands explicitly",
                col=0,
            )
        for match in _SET_COMMAND_PAT.finditer(context.code):
            args_text = _NEXT_OPERATOR_PAT.split(context.code[match.end() :], maxsplit=1)[0]
            if _enables_errexit(args_text.split()):
                return self.diagnostic(
                    context,
                    "errexit is enabled; it is skipped in conditions and"
                    " pipelines, so check critical commands explicitly",
                    col=match.start("cmd"),
                )
        return None
