"""
Instruction Model for the PARM Thumb subset.

Static format table describing every supported mnemonic: the constant opcode
bits, the operand fields (width, bit offset, signedness, scale) and the
operand signature the parser must see. The parser uses the signatures to pick
a format; the encoder uses the fields to pack the 16-bit word.

Reference: ARMv6-M Architecture Reference Manual, section A5.2 (16-bit Thumb
instruction encoding), restricted to the instructions the PARM processor
implements.

Format table layout (bit 15 on the left):

  shift-imm      000 op  imm5  rm  rd       lsls/lsrs/asrs rd, rm, #imm5
  add-sub-reg    000110 op  rm  rn  rd      adds/subs rd, rn, rm
  add-sub-imm3   000111 op imm3 rn  rd      adds/subs rd, rn, #imm3
  imm8           001 op  rd   imm8          movs/cmp/adds/subs rd, #imm8
  data-proc      010000 op4  rm  rdn        ands ... mvns rdn, rm
  sp-load-store  1001 L  rt   imm8          ldr/str rt, [sp, #imm]
  sp-adjust      10110000 S imm7            add/sub sp, #imm
  cond-branch    1101 cond imm8             b<cond> label
  branch         11100 imm11                b label
"""

from __future__ import annotations
import enum
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

__all__ = [
    'WORD_BITS', 'REGISTER_COUNT', 'OperandKind', 'Condition', 'Field',
    'OperandSlot', 'InstructionFormat', 'FORMATS', 'COND_BRANCH',
    'lookup', 'parse_condition', 'is_register_index', 'is_reserved_name',
]

WORD_BITS = 16
REGISTER_COUNT = 8          # r0..r7, low registers only


# ──────────────────────────────────────────────
# Operand kinds and condition codes
# ──────────────────────────────────────────────

class OperandKind(enum.Enum):
    REG = "register"
    IMM = "immediate"
    LABEL = "label"
    SP = "sp"
    SP_OFFSET = "[sp, #imm]"


class Condition(enum.IntEnum):
    """ARM condition codes (4-bit field of a conditional branch)."""
    EQ = 0x0
    NE = 0x1
    CS = 0x2
    CC = 0x3
    MI = 0x4
    PL = 0x5
    VS = 0x6
    VC = 0x7
    HI = 0x8
    LS = 0x9
    GE = 0xA
    LT = 0xB
    GT = 0xC
    LE = 0xD
    AL = 0xE


CONDITION_ALIASES: Dict[str, Condition] = {
    "HS": Condition.CS,
    "LO": Condition.CC,
}


def parse_condition(suffix: str) -> Optional[Condition]:
    """Map a mnemonic suffix ("eq", "MI", "hs") to its condition, or None."""
    key = suffix.upper()
    if key in Condition.__members__:
        return Condition[key]
    return CONDITION_ALIASES.get(key)


def is_register_index(index: int) -> bool:
    return 0 <= index < REGISTER_COUNT


# ──────────────────────────────────────────────
# Field descriptors
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Field:
    """A contiguous run of bits inside an encoded word.

    Values are given in source units; `scale` divides them before packing
    (SP offsets are written in bytes but stored in words of 4 bytes).
    """
    name: str
    width: int
    offset: int
    signed: bool = False
    scale: int = 1

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    @property
    def min_value(self) -> int:
        if self.signed:
            return -(1 << (self.width - 1)) * self.scale
        return 0

    @property
    def max_value(self) -> int:
        if self.signed:
            return ((1 << (self.width - 1)) - 1) * self.scale
        return self.mask * self.scale

    def fits(self, value: int) -> bool:
        if value % self.scale:
            return False
        return self.min_value <= value <= self.max_value

    def pack(self, value: int) -> int:
        """Place `value` at this field's position. Caller checks fits() first."""
        return ((value // self.scale) & self.mask) << self.offset

    def extract(self, word: int) -> int:
        raw = (word >> self.offset) & self.mask
        if self.signed and raw & (1 << (self.width - 1)):
            raw -= 1 << self.width
        return raw * self.scale

    def describe(self) -> str:
        text = f"{self.min_value}..{self.max_value}"
        if self.scale > 1:
            text += f", multiple of {self.scale}"
        return text


@dataclass(frozen=True)
class OperandSlot:
    """One position in an operand list.

    field: name of the Field this operand feeds, or None.
    fixed: the immediate must equal this value (rsbs rd, rn, #0).
    tie:   the register must equal the one already placed in this field
           (muls rdm, rn, rdm).
    """
    kind: OperandKind
    field: Optional[str] = None
    fixed: Optional[int] = None
    tie: Optional[str] = None


@dataclass(frozen=True)
class InstructionFormat:
    name: str
    mnemonic: str
    opcode: int
    opcode_width: int
    fields: Tuple[Field, ...]
    slots: Tuple[OperandSlot, ...]
    syntax: str
    branch: bool = False
    conditional: bool = False
    _by_name: Dict[str, Field] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        self._by_name.update({f.name: f for f in self.fields})

    @property
    def opcode_offset(self) -> int:
        return WORD_BITS - self.opcode_width

    @property
    def signature(self) -> Tuple[OperandKind, ...]:
        return tuple(slot.kind for slot in self.slots)

    def get_field(self, name: str) -> Field:
        return self._by_name[name]

    @property
    def offset_field(self) -> Field:
        """The signed word-offset field of a branch format."""
        return self._by_name["offset"]


# ──────────────────────────────────────────────
# Format table
# ──────────────────────────────────────────────
# { 'mnemonic': [InstructionFormat, ...] } tried in order by the parser.

FORMATS: Dict[str, List[InstructionFormat]] = {}

REG, IMM, LABEL, SP, SP_OFFSET = (OperandKind.REG, OperandKind.IMM, OperandKind.LABEL,
                                  OperandKind.SP, OperandKind.SP_OFFSET)


def _fmt(mnemonic: str, name: str, opcode: int, opcode_width: int,
         fields: Tuple[Field, ...], slots: Tuple[OperandSlot, ...], syntax: str,
         **flags) -> InstructionFormat:
    """Register a format entry for `mnemonic`."""
    fmt = InstructionFormat(name=name, mnemonic=mnemonic, opcode=opcode,
                            opcode_width=opcode_width, fields=fields,
                            slots=slots, syntax=syntax, **flags)
    used = fmt.opcode_offset
    for f in fields:
        if f.offset + f.width > used:
            raise ValueError(f"{mnemonic}/{name}: field {f.name} overlaps opcode")
    FORMATS.setdefault(mnemonic, []).append(fmt)
    return fmt


# ── Shift by immediate: 000 op(2) imm5 rm rd ──
for _mnem, _op in [('lsls', 0b00000), ('lsrs', 0b00001), ('asrs', 0b00010)]:
    _fmt(_mnem, 'shift-imm', _op, 5,
         (Field('imm5', 5, 6), Field('rm', 3, 3), Field('rd', 3, 0)),
         (OperandSlot(REG, 'rd'), OperandSlot(REG, 'rm'), OperandSlot(IMM, 'imm5')),
         f"{_mnem} rd, rm, #imm5")

# ── Add/subtract register and 3-bit immediate ──
for _mnem, _reg_op, _imm_op in [('adds', 0b0001100, 0b0001110),
                                ('subs', 0b0001101, 0b0001111)]:
    _fmt(_mnem, 'add-sub-reg', _reg_op, 7,
         (Field('rm', 3, 6), Field('rn', 3, 3), Field('rd', 3, 0)),
         (OperandSlot(REG, 'rd'), OperandSlot(REG, 'rn'), OperandSlot(REG, 'rm')),
         f"{_mnem} rd, rn, rm")
    _fmt(_mnem, 'add-sub-imm3', _imm_op, 7,
         (Field('imm3', 3, 6), Field('rn', 3, 3), Field('rd', 3, 0)),
         (OperandSlot(REG, 'rd'), OperandSlot(REG, 'rn'), OperandSlot(IMM, 'imm3')),
         f"{_mnem} rd, rn, #imm3")

# ── Move/compare/add/subtract 8-bit immediate: 001 op(2) rd imm8 ──
for _mnem, _op in [('movs', 0b00100), ('cmp', 0b00101),
                   ('adds', 0b00110), ('subs', 0b00111)]:
    _fmt(_mnem, 'imm8', _op, 5,
         (Field('rd', 3, 8), Field('imm8', 8, 0)),
         (OperandSlot(REG, 'rd'), OperandSlot(IMM, 'imm8')),
         f"{_mnem} rd, #imm8")

# ── Data processing: 010000 op(4) rm rdn ──
DATA_PROCESSING_OPS: Dict[str, int] = {
    'ands': 0b0000,
    'eors': 0b0001,
    'lsls': 0b0010,   # register shift
    'lsrs': 0b0011,
    'asrs': 0b0100,
    'adcs': 0b0101,
    'sbcs': 0b0110,
    'rors': 0b0111,
    'tst':  0b1000,
    'rsbs': 0b1001,
    'cmp':  0b1010,
    'cmn':  0b1011,
    'orrs': 0b1100,
    'muls': 0b1101,
    'bics': 0b1110,
    'mvns': 0b1111,
}

_DP_PREFIX = 0b010000

for _mnem, _op in DATA_PROCESSING_OPS.items():
    _opcode = (_DP_PREFIX << 4) | _op
    if _mnem == 'rsbs':
        # rsbs rd, rn, #0
        _fmt(_mnem, 'data-proc', _opcode, 10,
             (Field('rn', 3, 3), Field('rd', 3, 0)),
             (OperandSlot(REG, 'rd'), OperandSlot(REG, 'rn'), OperandSlot(IMM, fixed=0)),
             "rsbs rd, rn, #0")
    elif _mnem == 'muls':
        # muls rdm, rn, rdm  (UAL) and the short two-register form
        _fields = (Field('rn', 3, 3), Field('rdm', 3, 0))
        _fmt(_mnem, 'data-proc', _opcode, 10, _fields,
             (OperandSlot(REG, 'rdm'), OperandSlot(REG, 'rn'), OperandSlot(REG, tie='rdm')),
             "muls rdm, rn, rdm")
        _fmt(_mnem, 'data-proc', _opcode, 10, _fields,
             (OperandSlot(REG, 'rdm'), OperandSlot(REG, 'rn')),
             "muls rdm, rn")
    else:
        _fmt(_mnem, 'data-proc', _opcode, 10,
             (Field('rm', 3, 3), Field('rdn', 3, 0)),
             (OperandSlot(REG, 'rdn'), OperandSlot(REG, 'rm')),
             f"{_mnem} rdn, rm")

# ── SP-relative load/store: 1001 L rt imm8 (imm8 = byte offset / 4) ──
for _mnem, _op in [('str', 0b10010), ('ldr', 0b10011)]:
    _fmt(_mnem, 'sp-load-store', _op, 5,
         (Field('rt', 3, 8), Field('imm8', 8, 0, scale=4)),
         (OperandSlot(REG, 'rt'), OperandSlot(SP_OFFSET, 'imm8')),
         f"{_mnem} rt, [sp, #imm]")

# ── Adjust SP: 10110000 S imm7 (imm7 = byte offset / 4) ──
for _mnem, _op in [('add', 0b101100000), ('sub', 0b101100001)]:
    _fmt(_mnem, 'sp-adjust', _op, 9,
         (Field('imm7', 7, 0, scale=4),),
         (OperandSlot(SP), OperandSlot(IMM, 'imm7')),
         f"{_mnem} sp, #imm")

# ── Branches ──
# b<cond> shares one format; the condition comes from the mnemonic suffix.
COND_BRANCH = InstructionFormat(
    name='cond-branch', mnemonic='b<cond>', opcode=0b1101, opcode_width=4,
    fields=(Field('cond', 4, 8), Field('offset', 8, 0, signed=True)),
    slots=(OperandSlot(LABEL, 'offset'),),
    syntax="b<cond> label", branch=True, conditional=True,
)

_fmt('b', 'branch', 0b11100, 5,
     (Field('offset', 11, 0, signed=True),),
     (OperandSlot(LABEL, 'offset'),),
     "b label", branch=True)


# ──────────────────────────────────────────────
# Lookup helpers
# ──────────────────────────────────────────────

def lookup(mnemonic: str) -> Tuple[List[InstructionFormat], Optional[Condition]]:
    """Return (candidate formats, condition) for a mnemonic.

    Exact table entries win over condition suffixes, so `bics` is a data
    processing instruction and `bls` is b + LS.
    Raises KeyError for unknown mnemonics.
    """
    key = mnemonic.lower()
    if key in FORMATS:
        return FORMATS[key], None
    if key.startswith('b'):
        cond = parse_condition(key[1:])
        if cond is not None:
            return [COND_BRANCH], cond
    raise KeyError(mnemonic)


_REGISTER_NAME_RE = re.compile(r'^r[0-9]+$', re.IGNORECASE)
_SPECIAL_REGISTERS = {'sp', 'lr', 'pc'}


def is_reserved_name(name: str) -> bool:
    """True for register names and mnemonics, which cannot be label names."""
    low = name.lower()
    if _REGISTER_NAME_RE.match(low) or low in _SPECIAL_REGISTERS:
        return True
    try:
        lookup(low)
    except KeyError:
        return False
    return True
