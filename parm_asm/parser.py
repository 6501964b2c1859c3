"""
Parser for PARM Thumb assembly.

Turns source text into a Program of LabelDefinition and Instruction entries,
in source order, with label operands left symbolic. Supported line shapes:

    @ comment                      ignored
    .text / .size run, 4           assembler directive, ignored
    name:                          label definition
    name: movs r0, #1              label followed by an instruction
    bne .loop   @ trailing comment instruction

Mnemonics and registers are case-insensitive; label names are not.
The parser stops at the first error.
"""

from __future__ import annotations
import logging
import re
from typing import List, Optional

from . import isa
from .errors import AsmSyntaxError
from .isa import InstructionFormat, OperandKind
from .lexer import Token, TokenType, strip_comment, tokenize
from .program import (ImmediateOperand, Instruction, LabelDefinition, LabelOperand,
                      Operand, Program, RegisterOperand, SpOffsetOperand, SpOperand)

logger = logging.getLogger(__name__)

LABEL_DEF_RE = re.compile(r"\s*([A-Za-z_.$][A-Za-z0-9_.$]*)\s*:")
REGISTER_RE = re.compile(r"^[rR]([0-9]+)$")


class Parser:
    """Line-oriented parser producing a Program."""

    def __init__(self, source: str):
        self.source = source
        self.program = Program()
        self.line = 0
        self.line_text = ""
        self.tokens: List[Token] = []
        self.pos = 0

    def parse(self) -> Program:
        for line_no, raw in enumerate(self.source.splitlines(), 1):
            self._parse_line(line_no, raw.expandtabs())
        logger.debug("Parsed %d instruction(s), %d label(s)",
                     len(self.program), len(self.program.label_definitions))
        return self.program

    # ── Helpers ─────────────────────────────

    def _error(self, message: str, token: Optional[Token] = None) -> AsmSyntaxError:
        col = token.col if token else 0
        text = token.text if token else ""
        return AsmSyntaxError(message, self.line, col, token=text, line_text=self.line_text)

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _at(self, *types: TokenType) -> bool:
        return self._cur().type in types

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _expect(self, ttype: TokenType, msg: str = "") -> Token:
        if self._cur().type != ttype:
            got = self._cur().text or "end of line"
            raise self._error(f"{msg or f'Expected {ttype.value!r}'} (got {got!r})", self._cur())
        return self._advance()

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._cur().type in types:
            return self._advance()
        return None

    # ── Lines ───────────────────────────────

    def _parse_line(self, line_no: int, raw: str) -> None:
        self.line = line_no
        self.line_text = raw.rstrip()
        text = strip_comment(raw).rstrip()
        pos = 0

        # Any number of leading label definitions
        while True:
            m = LABEL_DEF_RE.match(text, pos)
            if not m:
                break
            name = m.group(1)
            col = m.start(1) + 1
            if isa.is_reserved_name(name):
                raise AsmSyntaxError(f"'{name}' is a register or mnemonic and cannot be a label",
                                     line_no, col, token=name, line_text=self.line_text)
            self.program.append(LabelDefinition(name, line_no, col, self.line_text))
            pos = m.end()

        rest = text[pos:].lstrip()
        if not rest:
            return
        if rest.startswith('.'):
            logger.debug("L%d: ignoring directive %s", line_no, rest.split()[0])
            return

        self.tokens = tokenize(text, line_no, pos)
        self.pos = 0
        self.program.append(self._parse_instruction())

    def _parse_instruction(self) -> Instruction:
        mnem_tok = self._expect(TokenType.IDENT, "Expected a mnemonic")
        try:
            formats, condition = isa.lookup(mnem_tok.text)
        except KeyError:
            raise self._error(f"Unknown mnemonic '{mnem_tok.text}'", mnem_tok) from None

        operands: List[Operand] = []
        if not self._at(TokenType.EOL):
            operands.append(self._parse_operand())
            while self._match(TokenType.COMMA):
                operands.append(self._parse_operand())
        self._expect(TokenType.EOL, "Expected ',' or end of line")

        fmt = self._select_format(mnem_tok, formats, operands)
        self._check_slots(mnem_tok, fmt, operands)
        return Instruction(
            mnemonic=mnem_tok.text.lower(),
            format=fmt,
            operands=operands,
            condition=condition,
            line=self.line,
            column=mnem_tok.col,
            text=self.line_text,
        )

    # ── Operands ────────────────────────────

    def _parse_operand(self) -> Operand:
        tok = self._cur()

        if tok.type == TokenType.IMMEDIATE:
            self._advance()
            return ImmediateOperand(tok.value, tok.col, tok.text)

        if tok.type == TokenType.LBRACKET:
            return self._parse_sp_offset()

        if tok.type == TokenType.IDENT:
            self._advance()
            return self._classify_identifier(tok)

        raise self._error(f"Expected an operand (got {tok.text or 'end of line'!r})", tok)

    def _classify_identifier(self, tok: Token) -> Operand:
        low = tok.text.lower()
        m = REGISTER_RE.match(tok.text)
        if m:
            index = int(m.group(1))
            if not isa.is_register_index(index):
                raise self._error(
                    f"Register '{tok.text}' out of range (r0-r{isa.REGISTER_COUNT - 1})", tok)
            return RegisterOperand(index, tok.col, tok.text)
        if low == 'sp':
            return SpOperand(tok.col, tok.text)
        if low in ('pc', 'lr'):
            raise self._error(f"Register '{tok.text}' is not supported", tok)
        return LabelOperand(tok.text, tok.col, tok.text)

    def _parse_sp_offset(self) -> SpOffsetOperand:
        open_tok = self._advance()
        base = self._expect(TokenType.IDENT, "Expected 'sp' after '['")
        if base.text.lower() != 'sp':
            raise self._error(f"Only [sp, #imm] addressing is supported (got base '{base.text}')",
                              base)
        offset = 0
        if self._match(TokenType.COMMA):
            imm = self._expect(TokenType.IMMEDIATE, "Expected '#offset'")
            offset = imm.value
        close_tok = self._expect(TokenType.RBRACKET, "Expected ']'")
        text = self.line_text[open_tok.col - 1:close_tok.col]
        return SpOffsetOperand(offset, open_tok.col, text)

    # ── Validation against the instruction model ─

    def _select_format(self, mnem_tok: Token, formats: List[InstructionFormat],
                       operands: List[Operand]) -> InstructionFormat:
        kinds = tuple(op.kind for op in operands)
        for fmt in formats:
            if fmt.signature == kinds:
                return fmt
        got = ", ".join(k.value for k in kinds) or "no operands"
        forms = "; ".join(f.syntax for f in formats)
        raise self._error(f"Bad operands for '{mnem_tok.text}' ({got}); expected: {forms}",
                          mnem_tok)

    def _check_slots(self, mnem_tok: Token, fmt: InstructionFormat,
                     operands: List[Operand]) -> None:
        placed = {}
        for slot, op in zip(fmt.slots, operands):
            if slot.fixed is not None and op.value != slot.fixed:
                raise AsmSyntaxError(
                    f"'{mnem_tok.text}' only accepts #{slot.fixed} here (got {op.text})",
                    self.line, op.column, token=op.text, line_text=self.line_text)
            if slot.tie is not None and op.value != placed.get(slot.tie):
                raise AsmSyntaxError(
                    f"'{mnem_tok.text}': operand must repeat the destination register "
                    f"(syntax: {fmt.syntax})",
                    self.line, op.column, token=op.text, line_text=self.line_text)
            if slot.field is not None and slot.kind == OperandKind.REG:
                placed[slot.field] = op.value


def parse(source: str) -> Program:
    """Parse source text into an unresolved Program."""
    return Parser(source).parse()
