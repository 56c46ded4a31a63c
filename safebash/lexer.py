"""Per-line lexical context for shell source.

This is not a shell parser.  Every character of a line is classified as
unquoted code, quoted text, escaped, comment, or heredoc body, and the quote
and heredoc state is carried from one line into the next so that rules can
tell real code apart from text that only looks like code.

Command substitutions ``$( ... )`` open a fresh quoting context, so in
``"$(basename "$file")"`` the inner quotes pair with each other rather than
closing the outer string.
"""

import dataclasses
import enum
import re
from collections.abc import Iterator, Sequence


class Span(enum.Enum):
    """Lexical class of a single character."""

    CODE = "code"
    SINGLE = "single"
    DOUBLE = "double"
    ESCAPED = "escaped"
    COMMENT = "comment"
    HEREDOC = "heredoc"


# Characters where a `$` is expanded by the shell.
_EXPANDING_SPANS: frozenset[Span] = frozenset({Span.CODE, Span.DOUBLE})


@dataclasses.dataclass(frozen=True)
class LineContext:
    """Everything a rule may look at for one line.

    Attributes:
        number: 1-indexed line number.
        text: The raw line, without its newline.
        code: ``text`` with every character that is not unquoted code
            replaced by a space.  Quote delimiters are kept, so columns in
            ``code`` line up with columns in ``text``.
        spans: One Span per character of ``text``.
        quote_at_start: Innermost quote state carried in from earlier lines
            (``Span.CODE``, ``Span.SINGLE`` or ``Span.DOUBLE``).
        in_heredoc: True for heredoc body lines and their terminator.
        previous_line: Raw text of the line before, if any.
        next_line: Raw text of the line after, if any.
        next_expanding: ``expanding`` of the line after, if any.
    """

    number: int
    text: str
    code: str
    spans: tuple[Span, ...]
    quote_at_start: Span = Span.CODE
    in_heredoc: bool = False
    previous_line: str | None = None
    next_line: str | None = None
    next_expanding: str | None = None

    @property
    def stripped(self) -> str:
        """The raw line with leading whitespace removed."""
        return self.text.lstrip()

    @property
    def expanding(self) -> str:
        """``text`` keeping only unquoted and double-quoted characters."""
        return "".join(
            char if span in _EXPANDING_SPANS else " "
            for char, span in zip(self.text, self.spans)
        )

    def span_at(self, col: int) -> Span:
        """Return the Span of the character at *col*."""
        return self.spans[col]


class _Frame(enum.Enum):
    """A nested lexical context; the top level has no frame."""

    SUBSTITUTION = "substitution"  # $( ... )
    GROUP = "group"  # ( ... ) inside a substitution
    SINGLE = "single"
    ANSI_C = "ansi-c"  # $'...'
    DOUBLE = "double"


_QUOTE_OF_FRAME: dict[_Frame, Span] = {
    _Frame.SINGLE: Span.SINGLE,
    _Frame.ANSI_C: Span.SINGLE,
    _Frame.DOUBLE: Span.DOUBLE,
}

_PAREN_FRAMES: frozenset[_Frame] = frozenset({_Frame.SUBSTITUTION, _Frame.GROUP})

# A `#` starts a comment only at the beginning of a word.
_COMMENT_BOUNDARY: frozenset[str] = frozenset(" \t;&|()")

# `<<EOF`, `<<-EOF`, `<<'EOF'`, `<< "EOF"`; `<<<` here-strings excluded.
_HEREDOC_PAT = re.compile(r"(?<!<)<<(?!<)(-?)[ \t]*(['\"]?)([A-Za-z_][A-Za-z0-9_]*)\2")

_ARITHMETIC_PAT = re.compile(r"\(\(.*?\)\)")
_DOUBLE_BRACKET_PAT = re.compile(r"\[\[.*?\]\]")

_COMMAND_LEAD = (
    r"(?P<lead>^|[;&|(){!]|\b(?:if|elif|while|until|then|do|else|time)\b)[ \t]*"
)


def command_pattern(*names: str) -> re.Pattern[str]:
    """Compile a pattern matching any of *names* in command position.

    The ``cmd`` group holds the command word and the ``lead`` group holds
    whatever put it in command position (empty at line start, otherwise a
    separator such as ``;`` or a keyword such as ``if``).  Match against
    ``LineContext.code`` so quoted text is never taken for a command.
    """
    alternatives = "|".join(re.escape(name) for name in names)
    return re.compile(rf"{_COMMAND_LEAD}(?P<cmd>{alternatives})(?=[ \t;&|)]|$)")


def arithmetic_spans(code: str) -> list[tuple[int, int]]:
    """Return ``(start, end)`` column ranges of ``((...))`` on one line."""
    return [match.span() for match in _ARITHMETIC_PAT.finditer(code)]


def double_bracket_spans(code: str) -> list[tuple[int, int]]:
    """Return ``(start, end)`` column ranges of ``[[...]]`` on one line."""
    return [match.span() for match in _DOUBLE_BRACKET_PAT.finditer(code)]


def is_within(col: int, ranges: list[tuple[int, int]]) -> bool:
    """Return True if *col* falls inside any of the half-open *ranges*."""
    return any(start <= col < end for start, end in ranges)


def _quote_state(frames: Sequence[_Frame]) -> Span:
    return _QUOTE_OF_FRAME.get(frames[-1], Span.CODE) if frames else Span.CODE


def _classify(
    text: str, frames: tuple[_Frame, ...]
) -> tuple[list[Span], tuple[_Frame, ...]]:
    """Classify each character of *text* starting inside *frames*.

    Returns the spans and the frame stack at the end of the line.
    """
    stack = list(frames)
    spans: list[Span] = []
    idx = 0
    length = len(text)
    while idx < length:
        frame = stack[-1] if stack else None
        char = text[idx]
        following = text[idx + 1] if idx + 1 < length else ""
        if frame is _Frame.SINGLE:
            if char == "'":
                spans.append(Span.CODE)
                stack.pop()
            else:
                spans.append(Span.SINGLE)
        elif frame is _Frame.ANSI_C:
            if char == "\\":
                spans.extend([Span.SINGLE] * min(2, length - idx))
                idx += 2
                continue
            if char == "'":
                spans.append(Span.CODE)
                stack.pop()
            else:
                spans.append(Span.SINGLE)
        elif char == "\\":
            # The escaped character (or the line continuation) goes with it.
            spans.extend([Span.ESCAPED] * min(2, length - idx))
            idx += 2
            continue
        elif char == "$" and following == "(":
            spans.extend([Span.CODE, Span.CODE])
            stack.append(_Frame.SUBSTITUTION)
            idx += 2
            continue
        elif frame is _Frame.DOUBLE:
            if char == '"':
                spans.append(Span.CODE)
                stack.pop()
            else:
                spans.append(Span.DOUBLE)
        elif char == "$" and following == "'":
            spans.extend([Span.CODE, Span.CODE])
            stack.append(_Frame.ANSI_C)
            idx += 2
            continue
        elif char == "'":
            spans.append(Span.CODE)
            stack.append(_Frame.SINGLE)
        elif char == '"':
            spans.append(Span.CODE)
            stack.append(_Frame.DOUBLE)
        elif char == "#" and (idx == 0 or text[idx - 1] in _COMMENT_BOUNDARY):
            spans.extend([Span.COMMENT] * (length - idx))
            break
        elif char == "(" and frame in _PAREN_FRAMES:
            spans.append(Span.CODE)
            stack.append(_Frame.GROUP)
        elif char == ")" and frame in _PAREN_FRAMES:
            spans.append(Span.CODE)
            stack.pop()
        else:
            spans.append(Span.CODE)
        idx += 1
    return spans, tuple(stack)


def _heredoc_delimiters(
    text: str, code: str, spans: list[Span]
) -> Iterator[tuple[str, bool]]:
    """Yield ``(delimiter, strip_tabs)`` for each heredoc opened on a line."""
    arithmetic = arithmetic_spans(code)
    for match in _HEREDOC_PAT.finditer(text):
        start = match.start()
        if spans[start] is not Span.CODE or is_within(start, arithmetic):
            continue
        yield match.group(3), match.group(1) == "-"


def build_contexts(lines: Sequence[str]) -> list[LineContext]:
    """Build a LineContext for every line of a script.

    Args:
        lines: Source lines without line terminators.

    Returns:
        One LineContext per input line, in order.
    """
    contexts: list[LineContext] = []
    frames: tuple[_Frame, ...] = ()
    pending: list[tuple[str, bool]] = []
    active: tuple[str, bool] | None = None

    for idx, text in enumerate(lines):
        previous_line = lines[idx - 1] if idx > 0 else None
        next_line = lines[idx + 1] if idx + 1 < len(lines) else None

        if active is not None:
            delimiter, strip_tabs = active
            body = text.lstrip("\t") if strip_tabs else text
            if body == delimiter:
                active = pending.pop(0) if pending else None
            contexts.append(
                LineContext(
                    number=idx + 1,
                    text=text,
                    code=" " * len(text),
                    spans=(Span.HEREDOC,) * len(text),
                    quote_at_start=_quote_state(frames),
                    in_heredoc=True,
                    previous_line=previous_line,
                    next_line=next_line,
                )
            )
            continue

        start_quote = _quote_state(frames)
        spans, frames = _classify(text, frames)
        code = "".join(
            char if span is Span.CODE else " " for char, span in zip(text, spans)
        )
        pending.extend(_heredoc_delimiters(text, code, spans))
        if pending:
            active = pending.pop(0)
        contexts.append(
            LineContext(
                number=idx + 1,
                text=text,
                code=code,
                spans=tuple(spans),
                quote_at_start=start_quote,
                previous_line=previous_line,
                next_line=next_line,
            )
        )
    return [
        dataclasses.replace(context, next_expanding=following.expanding)
        for context, following in zip(contexts, contexts[1:])
    ] + contexts[-1:]
