"""
Two-pass label resolution.

Pass 1 walks the Program with a running word counter and binds every label to
the address of the instruction that follows it. Pass 2 replaces each label
operand with the signed word offset the branch encodes:

    offset = target - (address + branch_bias)

branch_bias is the pipeline advance of the target CPU, in words. The PARM
processor reads PC three half-words ahead of the branch; an architectural
Thumb core reads it two half-words ahead (see config.TARGET_PROFILES).
Offsets that do not fit the branch's signed field are errors, never wrapped.
"""

from __future__ import annotations
import logging

from .config import DEFAULT_TARGET, get_profile
from .errors import DuplicateLabelError, EncodingRangeError, UndefinedLabelError
from .program import ImmediateOperand, Instruction, LabelDefinition, Program, SymbolTable

logger = logging.getLogger(__name__)


class LabelResolver:
    """Resolves label operands of a Program in place."""

    def __init__(self, branch_bias: int = get_profile(DEFAULT_TARGET).branch_bias):
        self.branch_bias = branch_bias

    def resolve(self, program: Program) -> SymbolTable:
        symbols = self.collect(program)
        symbols.freeze()
        self.rewrite(program, symbols)
        return symbols

    def collect(self, program: Program) -> SymbolTable:
        """Pass 1: label name -> address of the next instruction."""
        symbols = SymbolTable()
        for address, entry in program.addressed():
            if not isinstance(entry, LabelDefinition):
                continue
            if entry.name in symbols:
                first = symbols.definition(entry.name)
                raise DuplicateLabelError(
                    f"Label '{entry.name}' already defined on line {first.line}",
                    entry.line, entry.column, token=entry.name,
                    line_text=entry.text, first_line=first.line)
            symbols.define(entry, address)
            logger.debug("Label %s = %d", entry.name, address)
        logger.debug("Pass 1: %d label(s), %d word(s)", len(symbols), len(program))
        return symbols

    def rewrite(self, program: Program, symbols: SymbolTable) -> None:
        """Pass 2: replace label operands with signed word offsets."""
        for address, entry in program.addressed():
            if isinstance(entry, Instruction):
                self._rewrite_instruction(entry, address, symbols)

    def _rewrite_instruction(self, instr: Instruction, address: int,
                             symbols: SymbolTable) -> None:
        for index, operand in instr.label_operands():
            if operand.name not in symbols:
                raise UndefinedLabelError(
                    f"Undefined label '{operand.name}'", instr.line, operand.column,
                    token=operand.text, line_text=instr.text)
            target = symbols[operand.name]
            offset = target - (address + self.branch_bias)
            field = instr.format.offset_field
            if not field.fits(offset):
                raise EncodingRangeError(
                    f"{instr.mnemonic}: branch to '{operand.name}' out of range "
                    f"(offset {offset} words, allowed {field.describe()})",
                    instr.line, operand.column, token=operand.text, line_text=instr.text)
            instr.replace_operand(index, ImmediateOperand(offset, operand.column, operand.text))


def resolve_labels(program: Program,
                   branch_bias: int = get_profile(DEFAULT_TARGET).branch_bias) -> SymbolTable:
    """Resolve `program` in place and return its symbol table."""
    return LabelResolver(branch_bias).resolve(program)
