"""Custom exception hierarchy for the pbrtscene parser."""

from __future__ import annotations


class SceneError(Exception):
    """Base exception for all pbrtscene errors."""


class DiagnosticError(SceneError):
    """Raised when a warning code is escalated to an error by the policy."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        position: int | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.code = code
        self.position = position
        self.line = line
        self.column = column
        super().__init__(message)


class ParseError(SceneError):
    """Raised when the scene text does not match the directive grammar.

    ``position`` is the byte offset of the failure in the comment-stripped
    buffer, or ``None`` when it cannot be determined. ``line`` and ``column``
    are 1-based and only set when the source buffer is known.
    """

    def __init__(
        self,
        message: str,
        position: int | None = None,
        source: bytes | None = None,
    ) -> None:
        self.position = position
        self.line: int | None = None
        self.column: int | None = None
        if position is not None and source is not None:
            self.line, self.column = line_column(source, position)
            message = f"{message} (line {self.line}, column {self.column})"
        super().__init__(message)


class MalformedNumericLiteral(ParseError):
    """Raised when a token starts like a number but is not a valid literal."""


class UnterminatedQuotedString(ParseError):
    """Raised when a quoted name or string has no closing quote."""


class UnknownParameterType(ParseError):
    """Raised when a parameter item carries an unrecognized type tag."""

    def __init__(self, tag: str, position: int | None = None, source: bytes | None = None) -> None:
        self.tag = tag
        super().__init__(f"Unknown parameter type {tag!r}", position, source)


class UnbalancedAttributeScope(ParseError):
    """Raised when AttributeBegin/AttributeEnd do not pair up."""


class UnexpectedToken(ParseError):
    """Raised when the next token is not what the grammar requires."""

    def __init__(
        self,
        expected: str,
        position: int | None = None,
        source: bytes | None = None,
        found: str | None = None,
    ) -> None:
        self.expected = expected
        self.found = found
        message = f"Expected {expected}"
        if found is not None:
            message += f", found {found!r}"
        super().__init__(message, position, source)


class TruncatedInput(ParseError):
    """Raised when input ends while a rule still needs more bytes."""

    def __init__(
        self,
        bytes_needed: int,
        expected: str | None = None,
        position: int | None = None,
        source: bytes | None = None,
    ) -> None:
        self.bytes_needed = bytes_needed
        self.expected = expected
        message = f"Unexpected end of input, need at least {bytes_needed} more byte(s)"
        if expected is not None:
            message += f" for {expected}"
        super().__init__(message, position, source)


def line_column(source: bytes, position: int) -> tuple[int, int]:
    """Return the 1-based (line, column) of a byte offset in ``source``."""
    position = max(0, min(position, len(source)))
    line = source.count(b"\n", 0, position) + 1
    last_newline = source.rfind(b"\n", 0, position)
    return line, position - last_newline
