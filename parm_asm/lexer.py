"""
Line tokenizer for the PARM assembler.

Splits the instruction part of one source line into positioned tokens:
identifiers (mnemonics, registers, label references), `#` immediates and
punctuation. Comments start at '@' and run to the end of the line.
"""

from __future__ import annotations
import enum
import re
from dataclasses import dataclass
from typing import List, Optional

from .errors import AsmSyntaxError

COMMENT_CHAR = '@'


class TokenType(enum.Enum):
    IDENT = "IDENT"
    IMMEDIATE = "IMMEDIATE"
    COMMA = ","
    COLON = ":"
    LBRACKET = "["
    RBRACKET = "]"
    EOL = "EOL"


@dataclass
class Token:
    type: TokenType
    text: str
    col: int
    value: Optional[int] = None

    def __repr__(self):
        return f"Token({self.type.name}, {self.text!r}, col {self.col})"


PUNCTUATION = {
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
}

IDENT_START = re.compile(r"[A-Za-z_.$]")
IDENT_RE = re.compile(r"[A-Za-z_.$][A-Za-z0-9_.$]*")
# Everything up to the next delimiter belongs to an immediate's numeral
NUMERAL_RE = re.compile(r"[^\s,\]\[@:]*")
DECIMAL_RE = re.compile(r"[+-]?[0-9]+")
HEX_RE = re.compile(r"[+-]?0[xX][0-9A-Fa-f]+")


def strip_comment(text: str) -> str:
    return text.split(COMMENT_CHAR, 1)[0]


def parse_numeral(text: str) -> Optional[int]:
    """Decimal or 0x-hex literal with optional sign, else None."""
    if DECIMAL_RE.fullmatch(text):
        return int(text, 10)
    if HEX_RE.fullmatch(text):
        return int(text, 16)
    return None


def tokenize(text: str, line: int = 0, start: int = 0) -> List[Token]:
    """Tokenize `text[start:]` up to a comment; columns are 1-based in `text`."""
    tokens: List[Token] = []
    pos = start
    n = len(text)
    while pos < n:
        ch = text[pos]
        if ch in " \t\r\n":
            pos += 1
            continue
        if ch == COMMENT_CHAR:
            break
        col = pos + 1
        if ch in PUNCTUATION:
            tokens.append(Token(PUNCTUATION[ch], ch, col))
            pos += 1
            continue
        if ch == '#':
            m = NUMERAL_RE.match(text, pos + 1)
            numeral = m.group(0)
            value = parse_numeral(numeral)
            if value is None:
                raise AsmSyntaxError(f"Malformed numeral '#{numeral}'", line, col,
                                     token=f"#{numeral}", line_text=text)
            tokens.append(Token(TokenType.IMMEDIATE, f"#{numeral}", col, value))
            pos = m.end()
            continue
        if IDENT_START.match(ch):
            m = IDENT_RE.match(text, pos)
            tokens.append(Token(TokenType.IDENT, m.group(0), col))
            pos = m.end()
            continue
        if "0" <= ch <= "9":
            m = NUMERAL_RE.match(text, pos)
            raise AsmSyntaxError(f"Immediate '{m.group(0)}' needs a '#' prefix", line, col,
                                 token=m.group(0), line_text=text)
        raise AsmSyntaxError(f"Unexpected character {ch!r}", line, col,
                             token=ch, line_text=text)
    tokens.append(Token(TokenType.EOL, "", pos + 1))
    return tokens
