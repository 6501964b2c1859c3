"""
Output formatting: Logisim memory image and a human-readable listing.

Logisim-evolution "v2.0 raw" image:

    v2.0 raw
    2000 2101 2214 4288

Words are lowercase 4-digit hex, most significant nibble first, separated by
single spaces, in program order.
"""

from __future__ import annotations
from typing import List, Optional, Sequence

from .config import LOGISIM_HEADER
from .program import Instruction, LabelDefinition, Program


def format_word(word: int) -> str:
    return f"{word:04x}"


def format_logisim(words: Sequence[int], header: str = LOGISIM_HEADER,
                   words_per_line: Optional[int] = None) -> str:
    """Render words as a Logisim image. No trailing newline."""
    lines = [header]
    hex_words = [format_word(w) for w in words]
    if words_per_line:
        for i in range(0, len(hex_words), words_per_line):
            lines.append(" ".join(hex_words[i:i + words_per_line]))
    elif hex_words:
        lines.append(" ".join(hex_words))
    return "\n".join(lines)


def format_listing(program: Program, words: Sequence[int]) -> str:
    """Address, word and source for every entry of an assembled program."""
    lines: List[str] = []
    lines.append(f"{'ADDR':>4}  {'WORD':<4}  SOURCE")
    lines.append("-" * 60)

    index = 0
    for address, entry in program.addressed():
        if isinstance(entry, LabelDefinition):
            lines.append(f"{address:04x}        {entry.name}:")
        elif isinstance(entry, Instruction):
            word = format_word(words[index]) if index < len(words) else "????"
            lines.append(f"{address:04x}  {word}      {entry}")
            index += 1

    return "\n".join(lines)
