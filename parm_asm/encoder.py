"""
Encoder: resolved Instruction -> 16-bit word.

A word is the format's constant opcode OR'd with every operand value masked to
its field and shifted to the field's offset. Field layouts come from the static
table in isa.py; nothing here branches on mnemonics.
"""

from __future__ import annotations
import logging
from typing import Dict, List

from .errors import AssemblerError, EncodingRangeError
from .isa import InstructionFormat
from .program import Instruction, LabelOperand, Program

logger = logging.getLogger(__name__)


def encode_instruction(instr: Instruction) -> int:
    """Encode one resolved instruction. Pure; raises on out-of-range values."""
    fmt = instr.format
    word = fmt.opcode << fmt.opcode_offset

    if fmt.conditional:
        word |= fmt.get_field('cond').pack(int(instr.condition))

    for slot, operand in zip(fmt.slots, instr.operands):
        if slot.field is None:
            continue
        if isinstance(operand, LabelOperand):
            raise AssemblerError(f"Label '{operand.name}' has not been resolved",
                                 instr.line, operand.column, token=operand.text,
                                 line_text=instr.text)
        field = fmt.get_field(slot.field)
        value = operand.value
        if not field.fits(value):
            if fmt.branch:
                what = f"branch offset {value}"
            else:
                what = f"{slot.field} value {value}"
            raise EncodingRangeError(
                f"{instr.mnemonic}: {what} out of range (allowed {field.describe()})",
                instr.line, operand.column, token=operand.text, line_text=instr.text)
        word |= field.pack(value)

    return word


def encode_program(program: Program) -> List[int]:
    """Encode every instruction of a resolved Program, in order."""
    words = [encode_instruction(instr) for instr in program.instructions]
    logger.debug("Encoded %d word(s)", len(words))
    return words


def decode_fields(word: int, fmt: InstructionFormat) -> Dict[str, int]:
    """Split `word` back into the named fields of `fmt` (source units).

    The opcode is included under the key 'opcode'.
    """
    fields = {'opcode': word >> fmt.opcode_offset}
    for f in fmt.fields:
        fields[f.name] = f.extract(word)
    return fields
