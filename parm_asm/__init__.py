"""
PARM Assembler
==============
A two-pass assembler for the Thumb instruction subset implemented by the PARM
processor, a 16-bit ARM-like CPU built in Logisim-evolution. Output is a
"v2.0 raw" memory image that Logisim loads straight into ROM.

Accepts hand-written assembly and `clang -S --target=thumbv6m` output;
directives are skipped.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌───────────┐    ┌──────────┐    ┌───────────┐
    │ .s text  │───>│  Parser  │───>│ Resolver  │───>│ Encoder  │───>│ Formatter │
    │          │    │ (Program)│    │ (2 passes)│    │ (words)  │    │ (v2.0 raw)│
    └──────────┘    └──────────┘    └───────────┘    └──────────┘    └───────────┘

    - isa.py:       static format table (opcodes, fields, operand signatures)
    - lexer.py:     per-line tokenizer
    - parser.py:    lines -> LabelDefinition / Instruction entries
    - resolver.py:  pass 1 symbol table, pass 2 label -> word offset
    - encoder.py:   field packing, range checks
    - formatter.py: Logisim image and listing
    - config.py:    target profiles (branch bias, header)
"""

__version__ = "1.0.0"

from .errors import (AssemblerError, AsmSyntaxError, UndefinedLabelError,
                     DuplicateLabelError, EncodingRangeError, Diagnostic)
from .config import TargetProfile, TARGET_PROFILES, DEFAULT_TARGET, get_profile
from .program import Program, Instruction, LabelDefinition, SymbolTable
from .parser import Parser, parse
from .resolver import LabelResolver, resolve_labels
from .encoder import encode_instruction, encode_program
from .formatter import format_logisim, format_listing
from .assembler import Assembler, AssemblyResult, assemble, assemble_to_logisim

__all__ = [
    'AssemblerError', 'AsmSyntaxError', 'UndefinedLabelError',
    'DuplicateLabelError', 'EncodingRangeError', 'Diagnostic',
    'TargetProfile', 'TARGET_PROFILES', 'DEFAULT_TARGET', 'get_profile',
    'Program', 'Instruction', 'LabelDefinition', 'SymbolTable',
    'Parser', 'parse', 'LabelResolver', 'resolve_labels',
    'encode_instruction', 'encode_program', 'format_logisim', 'format_listing',
    'Assembler', 'AssemblyResult', 'assemble', 'assemble_to_logisim',
]
