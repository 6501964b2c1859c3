"""
Encoder Tests for the PARM assembler.

Verify individual instruction encodings against the ARMv6-M Thumb encoding
tables and against words produced by the PARM reference programs.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from parm_asm.encoder import decode_fields, encode_instruction, encode_program
from parm_asm.errors import AssemblerError, EncodingRangeError
from parm_asm import isa
from parm_asm.isa import FORMATS, Field, OperandKind, OperandSlot, lookup
from parm_asm.parser import parse
from parm_asm.program import ImmediateOperand
from parm_asm.resolver import resolve_labels


def _word(source: str) -> int:
    """Parse, resolve and encode a single instruction."""
    program = parse(source)
    resolve_labels(program)
    words = encode_program(program)
    assert len(words) == 1
    return words[0]


class TestFieldDescriptor:
    """Field packing, extraction and ranges."""

    def test_unsigned_range(self):
        f = Field('imm8', 8, 0)
        assert (f.min_value, f.max_value) == (0, 255)
        assert f.fits(255)
        assert not f.fits(256)
        assert not f.fits(-1)

    def test_signed_range_and_pack(self):
        f = Field('offset', 11, 0, signed=True)
        assert (f.min_value, f.max_value) == (-1024, 1023)
        assert f.pack(-2) == 0x7FE
        assert f.extract(0x7FE) == -2

    def test_scaled_field(self):
        f = Field('imm7', 7, 0, scale=4)
        assert f.max_value == 508
        assert f.fits(508)
        assert not f.fits(6)
        assert f.pack(16) == 4
        assert f.describe() == "0..508, multiple of 4"

    def test_extract_inverts_pack_at_bounds(self):
        for formats in FORMATS.values():
            for fmt in formats:
                for f in fmt.fields:
                    for value in (f.min_value, f.max_value, f.scale):
                        assert f.extract(f.pack(value)) == value, f"{fmt.syntax}: {f.name}={value}"

    def test_overlapping_field_rejected_at_registration(self):
        with pytest.raises(ValueError, match="overlaps opcode"):
            isa._fmt("wide", "bad", 0b11111, 5, (Field("imm", 12, 0),),
                     (OperandSlot(OperandKind.IMM, "imm"),), "wide #imm")
        assert "wide" not in FORMATS

    def test_fields_never_overlap_opcode(self):
        for formats in FORMATS.values():
            for fmt in formats:
                used = 0
                for f in fmt.fields:
                    bits = f.mask << f.offset
                    assert not used & bits, f"{fmt.syntax}: overlapping field {f.name}"
                    used |= bits
                assert used < (1 << fmt.opcode_offset), fmt.syntax


class TestOpcodeEncoding:
    """One instruction at a time."""

    def test_shift_immediate(self):
        cases = [
            ("lsls r4, r3, #7", 0x01DC),
            ("lsls r4, r2, #1", 0x0054),
            ("lsrs r5, r2, #1", 0x0855),
            ("asrs r6, r6, #1", 0x1076),
            ("lsrs r0, r1, #5", 0b00001_00101_001_000),
            ("lsls r4, r5, #2", 0b00000_00010_101_100),
            ("lsrs r0, r0, #4", 0x0900),
        ]
        for source, expected in cases:
            assert _word(source) == expected, f"{source}: {_word(source):04x} != {expected:04x}"

    def test_add_sub(self):
        cases = [
            ("adds r3, r0, r2", 0x1883),
            ("adds r7, r6, r1", 0x1877),
            ("subs r4, r3, r2", 0x1A9C),
            ("adds r5, r2, #5", 0x1D55),
            ("subs r6, r0, #5", 0x1F46),
            ("adds r0, r0, #1", 0x1C40),
            ("adds r0, #48", 0x3030),
        ]
        for source, expected in cases:
            assert _word(source) == expected, f"{source}: {_word(source):04x} != {expected:04x}"

    def test_move_compare_immediate(self):
        cases = [
            ("movs r0, #0", 0x2000),
            ("movs r1, #1", 0x2101),
            ("movs r2, #20", 0x2214),
            ("movs r2, #170", 0x22AA),
            ("movs r3, #0xff", 0x23FF),
            ("cmp r0, #0", 0x2800),
            ("cmp r0, #7", 0x2807),
        ]
        for source, expected in cases:
            assert _word(source) == expected, f"{source}: {_word(source):04x} != {expected:04x}"

    def test_data_processing(self):
        cases = [
            ("cmp r0, r1", 0x4288),
            ("cmp r2, r1", 0x428A),
            ("ands r0, r1", 0x4008),
            ("eors r0, r1", 0x4048),
            ("lsls r0, r1", 0x4088),
            ("orrs r2, r3", 0x431A),
            ("bics r0, r1", 0x4388),
            ("mvns r0, r1", 0x43C8),
            ("tst r0, r1", 0x4208),
            ("rsbs r2, r2, #0", 0x4252),
            ("muls r0, r1, r0", 0x4348),
            ("muls r0, r1", 0x4348),
        ]
        for source, expected in cases:
            assert _word(source) == expected, f"{source}: {_word(source):04x} != {expected:04x}"

    def test_sp_relative(self):
        cases = [
            ("str r0, [sp, #4]", 0x9001),
            ("str r1, [sp, #0]", 0x9100),
            ("str r0, [sp]", 0x9000),
            ("ldr r2, [sp, #4]", 0x9A01),
            ("ldr r0, [sp, #76]", 0x9813),
            ("add sp, #16", 0xB004),
            ("sub sp, #4", 0xB081),
            ("sub sp, #96", 0xB098),
            ("sub sp, #508", 0xB0FF),
            ("sub sp, #452", 0xB0F1),
        ]
        for source, expected in cases:
            assert _word(source) == expected, f"{source}: {_word(source):04x} != {expected:04x}"

    def test_branch_to_self_neighbour(self):
        # branch to the next instruction: offset 1 - 3 = -2
        assert encode_program(_resolved("b next\nnext:\nmovs r0, #0"))[0] == 0xE7FE
        assert encode_program(_resolved("bal next\nnext:"))[0] == 0xDEFE

    def test_condition_field(self):
        words = encode_program(_resolved("x:\nbeq x\nbne x\nbhi x\nbmi x\nblt x"))
        conds = [decode_fields(w, lookup("beq")[0][0])["cond"] for w in words]
        assert conds == [0x0, 0x1, 0x8, 0x4, 0xB]


def _resolved(source: str):
    program = parse(source)
    resolve_labels(program)
    return program


class TestEncodingErrors:
    """Out-of-range values are rejected, never truncated."""

    def test_immediate_out_of_range(self):
        cases = [
            "movs r0, #256",
            "movs r0, #-1",
            "lsls r0, r1, #32",
            "adds r0, r1, #8",
            "add sp, #512",
            "str r0, [sp, #1024]",
        ]
        for source in cases:
            with pytest.raises(EncodingRangeError):
                _word(source)

    def test_sp_offset_must_be_word_aligned(self):
        with pytest.raises(EncodingRangeError, match="multiple of 4") as exc:
            _word("ldr r0, [sp, #6]")
        assert exc.value.column == 9
        assert exc.value.token == "[sp, #6]"

    def test_error_position(self):
        with pytest.raises(EncodingRangeError) as exc:
            _word("   movs r1, #300")
        assert exc.value.line == 1
        assert exc.value.column == 13
        assert exc.value.token == "#300"
        assert "imm8 value 300" in exc.value.message

    def test_unresolved_label_is_internal_error(self):
        program = parse("b somewhere")
        with pytest.raises(AssemblerError, match="not been resolved"):
            encode_instruction(program.instructions[0])

    def test_immediate_branch_offset_checked(self):
        program = parse("b somewhere")
        instr = program.instructions[0]
        instr.replace_operand(0, ImmediateOperand(5000))
        with pytest.raises(EncodingRangeError, match="branch offset 5000"):
            encode_instruction(instr)


class TestDecodeFields:
    """decode_fields() inverts the packing."""

    def test_decode_shift(self):
        fmt = FORMATS['lsls'][0]
        assert decode_fields(0x01DC, fmt) == {'opcode': 0, 'imm5': 7, 'rm': 3, 'rd': 4}

    def test_decode_branch_offset(self):
        fmt = FORMATS['b'][0]
        assert decode_fields(0xE7F4, fmt)['offset'] == -12

    def test_decode_scaled(self):
        fmt = FORMATS['sub'][0]
        assert decode_fields(0xB0F1, fmt)['imm7'] == 452


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
