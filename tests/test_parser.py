"""
Parser and lexer tests for the PARM assembler.

Covers line shapes (labels, directives, comments), operand classification,
format selection and parse-time errors with their source positions.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from parm_asm.errors import AsmSyntaxError
from parm_asm.isa import Condition
from parm_asm.lexer import TokenType, parse_numeral, tokenize
from parm_asm.parser import parse
from parm_asm.program import (ImmediateOperand, Instruction, LabelDefinition, LabelOperand,
                              RegisterOperand, SpOffsetOperand, SpOperand)


def _only_instruction(source: str) -> Instruction:
    program = parse(source)
    assert len(program.instructions) == 1, f"expected one instruction in {source!r}"
    return program.instructions[0]


class TestLexer:
    """Token stream for single lines."""

    def test_instruction_tokens(self):
        tokens = tokenize("movs r0, #0x1F")
        types = [t.type for t in tokens]
        assert types == [TokenType.IDENT, TokenType.IDENT, TokenType.COMMA,
                         TokenType.IMMEDIATE, TokenType.EOL]
        assert tokens[3].value == 0x1F

    def test_columns_are_one_based(self):
        tokens = tokenize("  str r1, [sp, #4]")
        assert tokens[0].col == 3
        assert tokens[1].col == 7
        assert tokens[3].type == TokenType.LBRACKET
        assert tokens[3].col == 11

    def test_comment_ends_tokens(self):
        tokens = tokenize("cmp r0, r1 @ compare, then branch")
        assert [t.text for t in tokens[:-1]] == ["cmp", "r0", ",", "r1"]

    def test_numerals(self):
        assert parse_numeral("42") == 42
        assert parse_numeral("-5") == -5
        assert parse_numeral("0xff") == 255
        assert parse_numeral("0XAB") == 0xAB
        assert parse_numeral("12abc") is None
        assert parse_numeral("") is None

    def test_malformed_numeral(self):
        with pytest.raises(AsmSyntaxError, match="Malformed numeral"):
            tokenize("movs r0, #12abc", line=4)

    def test_missing_hash(self):
        with pytest.raises(AsmSyntaxError, match="needs a '#' prefix") as exc:
            tokenize("movs r0, 5", line=2)
        assert exc.value.line == 2
        assert exc.value.column == 10

    def test_unexpected_character(self):
        with pytest.raises(AsmSyntaxError, match="Unexpected character"):
            tokenize("movs r0, {r1}")

    def test_non_ascii_digits_are_not_numerals(self):
        assert parse_numeral("\u0661\u0662") is None
        with pytest.raises(AsmSyntaxError, match="Malformed numeral") as exc:
            tokenize("movs r0, #\u0661\u0662")
        assert exc.value.column == 10

    def test_non_ascii_digit_after_register_letter(self):
        with pytest.raises(AsmSyntaxError, match="Unexpected character") as exc:
            tokenize("movs r\u0663, #1")
        assert exc.value.column == 7
        assert "prefix" not in exc.value.message


class TestLineShapes:
    """Labels, directives, comments and blank lines."""

    def test_plain_instruction(self):
        instr = _only_instruction("movs r0, #0")
        assert instr.mnemonic == "movs"
        assert instr.format.name == "imm8"
        assert instr.operands == [RegisterOperand(0, 6, "r0"), ImmediateOperand(0, 10, "#0")]
        assert instr.line == 1
        assert instr.column == 1

    def test_label_on_its_own_line(self):
        program = parse(".goto:\nmovs r2, #20")
        label, instr = program.entries
        assert isinstance(label, LabelDefinition)
        assert label.name == ".goto"
        assert label.line == 1
        assert isinstance(instr, Instruction)

    def test_label_before_instruction_on_same_line(self):
        program = parse("loop: adds r0, r0, #1")
        assert [type(e) for e in program.entries] == [LabelDefinition, Instruction]
        assert program.entries[1].column == 7

    def test_several_labels_on_one_line(self):
        program = parse("first: second: movs r0, #1")
        assert [str(e) for e in program.label_definitions] == ["first:", "second:"]
        assert len(program) == 1

    def test_directives_ignored(self):
        source = "\n".join([
            "    .text",
            "    .syntax unified",
            '    .eabi_attribute 67, "2.09"',
            "    .cpu    cortex-m0",
            "    .type   run,%function",
            "run:",
            "    .pad    #96",
            "    sub     sp, #96",
            "    .size   run, .Lfunc_end0-run",
            '    .ident  "clang version 10.0.0-4ubuntu1 "',
            '    .section        ".note.GNU-stack","",%progbits',
        ])
        program = parse(source)
        assert [e.name for e in program.label_definitions] == ["run"]
        assert [i.mnemonic for i in program.instructions] == ["sub"]

    def test_comments_and_blank_lines(self):
        program = parse("@ header comment\n\n   \nmovs r0, #1 @ trailing\n@APP\n")
        assert len(program.entries) == 1
        assert program.instructions[0].line == 4

    def test_tabs_expand_before_columns(self):
        instr = _only_instruction("\tmovs\tr0, #1")
        assert instr.column == 9
        assert instr.operands[0].column == 17

    def test_labels_are_case_sensitive(self):
        program = parse("Loop:\nloop:\nb Loop")
        assert [e.name for e in program.label_definitions] == ["Loop", "loop"]

    def test_mnemonics_and_registers_case_insensitive(self):
        instr = _only_instruction("MOVS R3, #7")
        assert instr.mnemonic == "movs"
        assert instr.operands[0].index == 3


class TestOperands:
    """Operand kinds and format selection."""

    def test_sp_forms(self):
        instr = _only_instruction("add sp, #16")
        assert isinstance(instr.operands[0], SpOperand)
        assert instr.format.name == "sp-adjust"

    def test_sp_offset(self):
        instr = _only_instruction("ldr r2, [sp, #4]")
        op = instr.operands[1]
        assert isinstance(op, SpOffsetOperand)
        assert op.offset == 4
        assert op.text == "[sp, #4]"

    def test_sp_offset_without_immediate(self):
        instr = _only_instruction("str r0, [sp]")
        assert instr.operands[1].offset == 0

    def test_label_operand_stays_symbolic(self):
        instr = _only_instruction("b .LBB0_1")
        assert instr.operands == [LabelOperand(".LBB0_1", 3, ".LBB0_1")]
        assert not instr.is_resolved

    def test_conditional_branch(self):
        instr = _only_instruction("bMI .then1")
        assert instr.condition == Condition.MI
        assert instr.format.conditional

    def test_condition_aliases(self):
        assert _only_instruction("bhs x").condition == Condition.CS
        assert _only_instruction("blo x").condition == Condition.CC

    def test_exact_mnemonic_wins_over_condition(self):
        # bics is data processing, not b + "ics"
        assert _only_instruction("bics r0, r1").format.name == "data-proc"
        assert _only_instruction("bls x").condition == Condition.LS

    def test_format_selected_by_operand_shape(self):
        cases = [
            ("adds r0, r1, r2", "add-sub-reg"),
            ("adds r0, r1, #3", "add-sub-imm3"),
            ("adds r0, #48", "imm8"),
            ("cmp r0, r1", "data-proc"),
            ("cmp r0, #0", "imm8"),
            ("lsls r0, r1, #2", "shift-imm"),
            ("lsls r0, r1", "data-proc"),
        ]
        for source, fmt_name in cases:
            assert _only_instruction(source).format.name == fmt_name, source

    def test_muls_both_forms(self):
        assert len(_only_instruction("muls r0, r1, r0").operands) == 3
        assert len(_only_instruction("muls r0, r1").operands) == 2


class TestParseErrors:
    """Every parse-time failure is an AsmSyntaxError with a position."""

    def test_register_out_of_range(self):
        with pytest.raises(AsmSyntaxError, match="out of range") as exc:
            parse("movs r0, #1\nmovs r8, #1")
        assert exc.value.line == 2
        assert exc.value.column == 6
        assert exc.value.token == "r8"

    def test_unknown_mnemonic(self):
        with pytest.raises(AsmSyntaxError, match="Unknown mnemonic 'mov'"):
            parse("mov r0, #1")

    def test_wrong_operand_shape(self):
        with pytest.raises(AsmSyntaxError, match="Bad operands") as exc:
            parse("movs r0, r1")
        assert "movs rd, #imm8" in exc.value.message

    def test_missing_operand(self):
        with pytest.raises(AsmSyntaxError):
            parse("adds r0,")

    def test_trailing_junk(self):
        with pytest.raises(AsmSyntaxError, match="Expected ','"):
            parse("movs r0 #1")

    def test_rsbs_requires_zero(self):
        with pytest.raises(AsmSyntaxError, match="only accepts #0"):
            parse("rsbs r2, r2, #1")

    def test_muls_destination_must_repeat(self):
        with pytest.raises(AsmSyntaxError, match="repeat the destination"):
            parse("muls r0, r1, r2")

    def test_only_sp_base(self):
        with pytest.raises(AsmSyntaxError, match=r"Only \[sp, #imm\]"):
            parse("ldr r0, [r1, #4]")

    def test_unsupported_special_register(self):
        with pytest.raises(AsmSyntaxError, match="not supported"):
            parse("b pc")

    def test_reserved_label_names(self):
        for source in ("r3:", "sp:", "bne:", "movs:"):
            with pytest.raises(AsmSyntaxError, match="cannot be a label"):
                parse(source)

    def test_stops_at_first_error(self):
        with pytest.raises(AsmSyntaxError) as exc:
            parse("bogus r0\nmovs r9, #1")
        assert exc.value.line == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
