"""Structured diagnostics for best-effort decoding.

Decoders in this package never raise on bad input. Instead, every fallback they
take (a missing marker, a truncated block, an unparsable number) is recorded as
a Diagnostic returned alongside the decoded value, so callers can tell a clean
decode from a degraded one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DiagnosticKind(Enum):
    """Category of a decoding fallback."""

    STRUCTURAL_ABSENCE = "structural_absence"
    MALFORMED_TOKEN = "malformed_token"


@dataclass(frozen=True)
class Diagnostic:
    """A single fallback taken while decoding.

    Attributes:
        kind: Category of the fallback.
        message: Human-readable description.
        line: 1-based line number within the decoded text, when applicable.
    """

    kind: DiagnosticKind
    message: str
    line: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"kind": self.kind.value, "message": self.message, "line": self.line}


def absence(message: str, line: Optional[int] = None) -> Diagnostic:
    """Report something the file should contain but does not.

    Args:
        message: Description of what is missing.
        line: 1-based footer line number, if known.
    """
    return Diagnostic(DiagnosticKind.STRUCTURAL_ABSENCE, message, line)


def malformed(message: str, line: Optional[int] = None) -> Diagnostic:
    """Report a token that could not be read as the expected value.

    Args:
        message: Description of the bad token.
        line: 1-based footer line number, if known.
    """
    return Diagnostic(DiagnosticKind.MALFORMED_TOKEN, message, line)
