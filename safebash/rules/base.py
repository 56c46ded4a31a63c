"""Base abstractions for safebash rules."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from safebash.lexer import LineContext


class Severity(Enum):
    """Diagnostic severity levels."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single diagnostic emitted by a rule."""

    rule_id: str
    message: str
    line: int                 # 1-indexed
    severity: Severity
    col: int | None = None    # 0-indexed


class Rule(ABC):
    """Abstract base class for all safebash rules.

    Subclasses set ``rule_id``, ``description`` and ``severity`` and
    implement ``check``.  Rule instances hold no state that changes during
    a scan, so one instance can be shared by any number of scans.
    """

    rule_id: ClassVar[str]
    description: ClassVar[str]
    severity: Severity = Severity.WARNING

    @abstractmethod
    def check(self, line: str, context: LineContext) -> Diagnostic | None:
        """Analyze one line and return a diagnostic if the rule matches.

        Args:
            line: The raw line text, without its newline.
            context: Lexical context for the line.

        Returns:
            A Diagnostic for the first match on the line, or None.
        """

    def diagnostic(
        self, context: LineContext, message: str, col: int | None = None
    ) -> Diagnostic:
        """Build a Diagnostic for *context* carrying this rule's id and severity."""
        return Diagnostic(
            rule_id=self.rule_id,
            message=message,
            line=context.number,
            severity=self.severity,
            col=col,
        )

    def configure(self, options: dict[str, int | str | bool]) -> Rule:
        """Return a copy of this rule with *options* applied.

        Every rule recognises ``severity`` (``"warning"`` or ``"error"``).
        Subclasses with their own options extend this method.

        Args:
            options: Option values from ``[tool.safebash.rules.<id>]``.

        Returns:
            A new rule instance, or self if no recognised option changes
            anything.
        """
        raw = options.get("severity")
        if not isinstance(raw, str):
            return self
        try:
            severity = Severity(raw.lower())
        except ValueError:
            return self
        if severity is self.severity:
            return self
        configured = copy.copy(self)
        configured.severity = severity
        return configured
