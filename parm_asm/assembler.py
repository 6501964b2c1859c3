"""
Two-pass PARM assembler: parse -> resolve labels -> encode -> format.

    source text ──> Parser ──> Program ──> LabelResolver ──> Encoder ──> words ──> Formatter
                               (labels      (pass 1: symbols,               (v2.0 raw image)
                                symbolic)    pass 2: offsets)

Two entry points:

    Assembler(target).assemble(source)   raises AssemblerError subclasses
    assemble(source)                     returns an AssemblyResult; never raises
                                         for assembly errors

Every instruction is one 16-bit word, so the image holds exactly as many
words as the source holds instructions.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .config import DEFAULT_TARGET, TargetProfile, get_profile
from .encoder import encode_program
from .errors import AssemblerError, Diagnostic
from .formatter import format_listing, format_logisim
from .parser import Parser
from .program import Program, SymbolTable
from .resolver import LabelResolver

logger = logging.getLogger(__name__)


class Assembler:
    """Two-pass PARM assembler.

    Usage:
        asm = Assembler()
        words = asm.assemble(source_text)
        image = asm.to_logisim()
    """

    def __init__(self, target: Union[str, TargetProfile] = DEFAULT_TARGET,
                 words_per_line: Optional[int] = None):
        self.profile = target if isinstance(target, TargetProfile) else get_profile(target)
        self.words_per_line = (words_per_line if words_per_line is not None
                               else self.profile.words_per_line)
        self.program: Program = Program()
        self.symbols: SymbolTable = SymbolTable()
        self.words: List[int] = []

    def assemble(self, source: str) -> List[int]:
        """Assemble source text into 16-bit words.

        Stops at the first error; nothing is kept from a failed run.
        """
        self.program = Program()
        self.symbols = SymbolTable()
        self.words = []

        program = Parser(source).parse()
        symbols = LabelResolver(self.profile.branch_bias).resolve(program)
        words = encode_program(program)

        self.program, self.symbols, self.words = program, symbols, words
        logger.info("Assembled %d instruction(s), %d label(s) for target %s",
                    len(words), len(symbols), self.profile.name)
        return words

    def to_logisim(self) -> str:
        return format_logisim(self.words, header=self.profile.header,
                              words_per_line=self.words_per_line)

    def get_listing(self) -> str:
        """Address / word / source listing of the last assembly."""
        return format_listing(self.program, self.words)


@dataclass
class AssemblyResult:
    """Outcome of assemble(): either an image or a diagnostic."""
    output: str = ""
    words: List[int] = field(default_factory=list)
    program: Optional[Program] = None
    diagnostic: Optional[Diagnostic] = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None


def assemble(source: str, *, target: Union[str, TargetProfile] = DEFAULT_TARGET,
             words_per_line: Optional[int] = None) -> AssemblyResult:
    """Assemble source text; errors come back as result.diagnostic."""
    asm = Assembler(target, words_per_line=words_per_line)
    try:
        words = asm.assemble(source)
    except AssemblerError as e:
        logger.debug("Assembly failed: %s", e)
        return AssemblyResult(diagnostic=e.to_diagnostic())
    return AssemblyResult(output=asm.to_logisim(), words=words, program=asm.program)


def assemble_to_logisim(source: str, target: Union[str, TargetProfile] = DEFAULT_TARGET,
                        words_per_line: Optional[int] = None) -> str:
    """Assemble source text, return the Logisim image. Raises on error."""
    asm = Assembler(target, words_per_line=words_per_line)
    asm.assemble(source)
    return asm.to_logisim()
