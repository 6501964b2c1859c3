"""
Program data model for the PARM assembler.

The parser produces a Program: an ordered list of LabelDefinition and
Instruction entries. Labels take no space; every instruction is exactly one
16-bit word, so the address of an entry is the number of instructions before
it. The label resolver rewrites LabelOperands into ImmediateOperands in place;
nothing else mutates a Program after parsing.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterator, List, Optional, Tuple, Union

from .errors import AssemblerError
from .isa import Condition, InstructionFormat, OperandKind


# ──────────────────────────────────────────────
# Operands
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class RegisterOperand:
    index: int
    column: int = 0
    text: str = ""
    kind: ClassVar[OperandKind] = OperandKind.REG

    @property
    def value(self) -> int:
        return self.index

    def __str__(self) -> str:
        return f"r{self.index}"


@dataclass(frozen=True)
class ImmediateOperand:
    value: int
    column: int = 0
    text: str = ""
    kind: ClassVar[OperandKind] = OperandKind.IMM

    def __str__(self) -> str:
        return f"#{self.value}"


@dataclass(frozen=True)
class LabelOperand:
    name: str
    column: int = 0
    text: str = ""
    kind: ClassVar[OperandKind] = OperandKind.LABEL

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SpOperand:
    column: int = 0
    text: str = ""
    kind: ClassVar[OperandKind] = OperandKind.SP

    def __str__(self) -> str:
        return "sp"


@dataclass(frozen=True)
class SpOffsetOperand:
    """`[sp]` or `[sp, #offset]`; offset in bytes."""
    offset: int = 0
    column: int = 0
    text: str = ""
    kind: ClassVar[OperandKind] = OperandKind.SP_OFFSET

    @property
    def value(self) -> int:
        return self.offset

    def __str__(self) -> str:
        return f"[sp, #{self.offset}]" if self.offset else "[sp]"


Operand = Union[RegisterOperand, ImmediateOperand, LabelOperand, SpOperand, SpOffsetOperand]


# ──────────────────────────────────────────────
# Program entries
# ──────────────────────────────────────────────

@dataclass
class Instruction:
    mnemonic: str
    format: InstructionFormat
    operands: List[Operand]
    condition: Optional[Condition] = None
    line: int = 0
    column: int = 0
    text: str = ""

    @property
    def is_branch(self) -> bool:
        return self.format.branch

    def label_operands(self) -> List[Tuple[int, LabelOperand]]:
        return [(i, op) for i, op in enumerate(self.operands) if isinstance(op, LabelOperand)]

    @property
    def is_resolved(self) -> bool:
        return not self.label_operands()

    def replace_operand(self, index: int, operand: Operand) -> None:
        self.operands[index] = operand

    def __str__(self) -> str:
        ops = ", ".join(str(op) for op in self.operands)
        return f"{self.mnemonic} {ops}" if ops else self.mnemonic


@dataclass(frozen=True)
class LabelDefinition:
    name: str
    line: int = 0
    column: int = 0
    text: str = ""

    def __str__(self) -> str:
        return f"{self.name}:"


Entry = Union[LabelDefinition, Instruction]


@dataclass
class Program:
    entries: List[Entry] = field(default_factory=list)

    def append(self, entry: Entry) -> None:
        self.entries.append(entry)

    @property
    def instructions(self) -> List[Instruction]:
        return [e for e in self.entries if isinstance(e, Instruction)]

    @property
    def label_definitions(self) -> List[LabelDefinition]:
        return [e for e in self.entries if isinstance(e, LabelDefinition)]

    def addressed(self) -> Iterator[Tuple[int, Entry]]:
        """Yield (word address, entry) in source order."""
        address = 0
        for entry in self.entries:
            yield address, entry
            if isinstance(entry, Instruction):
                address += 1

    def __len__(self) -> int:
        return sum(1 for e in self.entries if isinstance(e, Instruction))


# ──────────────────────────────────────────────
# Symbol table
# ──────────────────────────────────────────────

class SymbolTable:
    """Label name -> word address. Written in pass 1, read-only afterwards."""

    def __init__(self):
        self._addresses: Dict[str, int] = {}
        self._definitions: Dict[str, LabelDefinition] = {}
        self.frozen = False

    def define(self, definition: LabelDefinition, address: int) -> None:
        if self.frozen:
            raise AssemblerError(f"Symbol table is frozen; cannot define '{definition.name}'")
        self._addresses[definition.name] = address
        self._definitions[definition.name] = definition

    def freeze(self) -> None:
        self.frozen = True

    def definition(self, name: str) -> LabelDefinition:
        return self._definitions[name]

    def __getitem__(self, name: str) -> int:
        return self._addresses[name]

    def __contains__(self, name: str) -> bool:
        return name in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._addresses)
