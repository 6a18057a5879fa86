"""Coded, non-fatal parser diagnostics and the policy that filters them.

A diagnostic is a ``SceneWarning`` tied to a byte offset in the
comment-stripped scene text. ``report`` hands it to the active
``WarningPolicy``, which drops it, turns it into a ``DiagnosticError``, or
lets it through ``warnings.warn``.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Literal

from pbrtscene.errors import DiagnosticError, line_column

DUPLICATE_PARAMETER = "W01"

WARNING_CODES: dict[str, str] = {
    DUPLICATE_PARAMETER: "parameter name repeated within one parameter set",
}

Disposition = Literal["ignore", "error", "warn"]


class SceneWarning(UserWarning):
    """A parser diagnostic with a code and an optional place in the source."""

    def __init__(
        self,
        code: str,
        message: str,
        position: int | None = None,
        source: bytes | None = None,
    ) -> None:
        self.code = code
        self.position = position
        self.line: int | None = None
        self.column: int | None = None
        text = f"[{code}] {message}"
        if position is not None and source is not None:
            self.line, self.column = line_column(source, position)
            text = f"{text} (line {self.line}, column {self.column})"
        super().__init__(text)


@dataclass(frozen=True)
class WarningPolicy:
    """Which diagnostic codes are silenced and which abort the parse.

    A code listed in both sets is silenced.
    """

    warn_as_error: frozenset[str] = frozenset()
    suppress: frozenset[str] = frozenset()

    def disposition(self, code: str) -> Disposition:
        if code in self.suppress:
            return "ignore"
        if code in self.warn_as_error:
            return "error"
        return "warn"


def report(warning: SceneWarning, policy: WarningPolicy | None = None) -> None:
    """Apply ``policy`` to ``warning``.

    Raises:
        DiagnosticError: If the policy escalates the warning's code.
    """
    action = "warn" if policy is None else policy.disposition(warning.code)
    if action == "ignore":
        return
    if action == "error":
        raise DiagnosticError(
            str(warning),
            code=warning.code,
            position=warning.position,
            line=warning.line,
            column=warning.column,
        )
    # Attribute the warning to whoever called the parameter-set recognizer.
    warnings.warn(warning, stacklevel=3)


def parse_code_list(raw: str) -> frozenset[str]:
    """Split a ``W01,W02`` option value into a set of known codes.

    Codes are case-insensitive. Raises ``ValueError`` naming every unknown code.
    """
    codes = frozenset(token.strip().upper() for token in raw.split(",") if token.strip())
    unknown = sorted(codes - WARNING_CODES.keys())
    if unknown:
        known = ", ".join(f"{code} ({meaning})" for code, meaning in WARNING_CODES.items())
        raise ValueError(f"Unknown warning code(s) {', '.join(unknown)}; known: {known}")
    return codes
