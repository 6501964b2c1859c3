"""
Error taxonomy for the PARM assembler.

Every stage raises a subclass of AssemblerError carrying the source position
of the offending token. The public assemble() entry point converts the first
error into a Diagnostic value instead of letting the exception escape.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

__all__ = [
    'AssemblerError', 'AsmSyntaxError', 'UndefinedLabelError',
    'DuplicateLabelError', 'EncodingRangeError', 'Diagnostic',
]


class AssemblerError(Exception):
    """Base class for assembly errors."""

    kind = "internal"

    def __init__(self, message: str, line: int = 0, column: int = 0,
                 token: str = "", line_text: str = ""):
        self.message = message
        self.line = line
        self.column = column
        self.token = token
        self.line_text = line_text
        if line:
            loc = f"L{line}:{column}" if column else f"L{line}"
            super().__init__(f"{loc}: {message}")
        else:
            super().__init__(message)

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            kind=self.kind,
            message=self.message,
            line=self.line,
            column=self.column,
            token=self.token,
            line_text=self.line_text,
        )


class AsmSyntaxError(AssemblerError):
    """Unknown mnemonic, malformed operand, or wrong operand shape."""
    kind = "syntax"


class UndefinedLabelError(AssemblerError):
    """A branch refers to a label that is never defined."""
    kind = "undefined-label"


class DuplicateLabelError(AssemblerError):
    """The same label is defined more than once."""
    kind = "duplicate-label"

    def __init__(self, message: str, line: int = 0, column: int = 0,
                 token: str = "", line_text: str = "", first_line: int = 0):
        self.first_line = first_line
        super().__init__(message, line, column, token, line_text)


class EncodingRangeError(AssemblerError):
    """An immediate or branch offset does not fit its field."""
    kind = "range"


@dataclass(frozen=True)
class Diagnostic:
    """Structured description of a failed assembly."""
    kind: str
    message: str
    line: int = 0
    column: int = 0
    token: str = ""
    line_text: str = ""

    def format(self, filename: Optional[str] = None) -> str:
        """Render as `file:line:col: kind: message` plus a caret line."""
        where = filename or "<input>"
        if self.line:
            where += f":{self.line}"
            if self.column:
                where += f":{self.column}"
        out = f"{where}: {self.kind} error: {self.message}"
        if self.line_text:
            out += f"\n    {self.line_text}"
            if self.column:
                width = max(len(self.token), 1)
                out += "\n    " + " " * (self.column - 1) + "^" * width
        return out
