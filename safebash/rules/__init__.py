"""All safebash rules."""

from safebash.rules import arrays, base, conditionals, exit_status, quoting, redirection

ALL_RULES: tuple[base.Rule, ...] = (
    quoting.UnquotedExpansion(),
    quoting.BacktickSubstitution(),
    conditionals.SingleBracketTest(),
    exit_status.UncheckedCd(),
    exit_status.ErrexitFlag(),
    arrays.LsIteration(),
    arrays.SplitIntoArray(),
    redirection.RedirectionOrder(),
)

__all__ = ["ALL_RULES"]
