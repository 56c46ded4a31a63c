"""safebash error taxonomy and exit codes."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for the safebash CLI.

    - 0: No error-severity diagnostics
    - 1: At least one error-severity diagnostic
    - 2: An input could not be read or decoded
    """

    CLEAN = 0
    VIOLATIONS = 1
    FAILURE = 2


class SafebashError(Exception):
    """Base exception for all safebash errors."""

    def __init__(self, message: str, exit_code: ExitCode = ExitCode.FAILURE) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class EncodingError(SafebashError):
    """Source text is not valid UTF-8."""


class SourceReadError(SafebashError):
    """A script file is missing or cannot be read."""


class InternalRuleError(SafebashError):
    """A rule predicate raised while checking a line.

    Never escapes a scan: the analyzer turns it into a diagnostic.
    """

    def __init__(self, rule_id: str, line: int, cause: Exception) -> None:
        super().__init__(f"rule `{rule_id}` failed: {type(cause).__name__}: {cause}")
        self.rule_id = rule_id
        self.line = line
        self.cause = cause
