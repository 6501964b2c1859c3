#!/usr/bin/env python3
"""
parmasm: PARM Thumb assembler CLI

Commands:
    parmasm assemble  Assemble a .s file (or every .s file in a directory)
    parmasm print     Show the encoding of an instruction snippet
    parmasm repl      Interactive: type an instruction, get its word

Usage:
    python parmasm.py <command> [options]
    python parmasm.py <command> --help

Examples:
    python parmasm.py assemble fibonacci.s -o fibonacci.bin
    python parmasm.py assemble programs/                 # programs/*.s -> *.bin
    python parmasm.py assemble blink.s --listing
    python parmasm.py assemble blink.s --per-line 8 --target armv6m
    python parmasm.py print "lsls r4, r3, #7"
    python parmasm.py -v repl

Exit status: 0 ok, 1 assembly error, 2 usage or I/O error.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from parm_asm import __version__, assemble
from parm_asm.config import DEFAULT_TARGET, TARGET_PROFILES
from parm_asm.formatter import format_listing, format_word
from parm_asm.log import setup_logging, verbosity_to_level

log = logging.getLogger("parm_asm.cli")

EXIT_OK = 0
EXIT_ASM_ERROR = 1
EXIT_USAGE = 2

SOURCE_SUFFIX = ".s"
IMAGE_SUFFIX = ".bin"
REPL_EXIT = "exit"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parmasm",
        description="Two-pass assembler for the PARM Thumb subset (Logisim v2.0 raw output)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="targets: " + ", ".join(
            f"{name} ({p.description})" for name, p in TARGET_PROFILES.items()),
    )
    parser.add_argument("--version", action="version", version=f"parmasm {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More console logging (-v info, -vv debug)")
    parser.add_argument("--log-file", default=None,
                        help="Also write a DEBUG log to this file")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── assemble ─────────────────────────────────────────────────────────
    p_asm = sub.add_parser("assemble", help="Assemble a .s file or a directory of them")
    p_asm.add_argument("input", help="Input .s file, or a directory (each .s -> .bin)")
    p_asm.add_argument("-o", "--output", help="Output image file (default: stdout)")
    p_asm.add_argument("--target", default=DEFAULT_TARGET, choices=list(TARGET_PROFILES),
                       help=f"Target profile (default: {DEFAULT_TARGET})")
    p_asm.add_argument("--per-line", type=int, default=None, metavar="N",
                       help="Words per image line (default: all on one line)")
    p_asm.add_argument("--listing", action="store_true",
                       help="Print an address/word/source listing to stdout")

    # ── print ────────────────────────────────────────────────────────────
    p_print = sub.add_parser("print", help="Show the encoding of an instruction snippet")
    p_print.add_argument("instruction", help='e.g. "movs r0, #1" (labels must be defined)')
    p_print.add_argument("--target", default=DEFAULT_TARGET, choices=list(TARGET_PROFILES))

    # ── repl ─────────────────────────────────────────────────────────────
    p_repl = sub.add_parser("repl", help=f"Interactive encoder ('{REPL_EXIT}' quits)")
    p_repl.add_argument("--target", default=DEFAULT_TARGET, choices=list(TARGET_PROFILES))

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_USAGE

    setup_logging(console_level=verbosity_to_level(args.verbose), log_file=args.log_file)
    log.debug("Command: %s", args.command)

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except OSError as e:
        print(f"I/O error: {e}", file=sys.stderr)
        return EXIT_USAGE


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

# ── assemble ─────────────────────────────────────────────────────────────
def cmd_assemble(args) -> int:
    if args.per_line is not None and args.per_line < 1:
        print("Error: --per-line must be at least 1", file=sys.stderr)
        return EXIT_USAGE

    src = Path(args.input)
    if src.is_dir():
        if args.output:
            print("Error: -o cannot be used with a directory input", file=sys.stderr)
            return EXIT_USAGE
        return _assemble_directory(src, args)
    if not src.is_file():
        print(f"Error: File not found: {src}", file=sys.stderr)
        return EXIT_USAGE

    return _assemble_file(src, Path(args.output) if args.output else None, args)


def _assemble_file(src: Path, out, args) -> int:
    source = src.read_text(encoding="utf-8")
    result = assemble(source, target=args.target, words_per_line=args.per_line)
    if not result.ok:
        print(result.diagnostic.format(str(src)), file=sys.stderr)
        return EXIT_ASM_ERROR

    if args.listing:
        print(format_listing(result.program, result.words))

    if out is not None:
        out.write_text(result.output, encoding="utf-8")
        log.info("Assembled %d word(s): %s -> %s", len(result.words), src, out)
    elif not args.listing:
        print(result.output)
    return EXIT_OK


def _assemble_directory(folder: Path, args) -> int:
    sources = sorted(p for p in folder.iterdir() if p.suffix == SOURCE_SUFFIX and p.is_file())
    if not sources:
        log.warning("No %s files in %s", SOURCE_SUFFIX, folder)
        return EXIT_OK

    status = EXIT_OK
    for src in sources:
        rc = _assemble_file(src, src.with_suffix(IMAGE_SUFFIX), args)
        if rc != EXIT_OK:
            status = rc
    return status


# ── print / repl ─────────────────────────────────────────────────────────
def _describe(snippet: str, target: str):
    """Encode a snippet. Returns (ok, text): one `word  binary  source` row per
    instruction, or the rendered diagnostic."""
    result = assemble(snippet, target=target)
    if not result.ok:
        return False, result.diagnostic.format("<snippet>")
    rows = []
    for instr, word in zip(result.program.instructions, result.words):
        rows.append(f"{format_word(word)}  {word:016b}  {instr}")
    return True, "\n".join(rows)


def cmd_print(args) -> int:
    ok, text = _describe(args.instruction, args.target)
    if not ok:
        print(text, file=sys.stderr)
        return EXIT_ASM_ERROR
    if text:
        print(text)
    return EXIT_OK


def cmd_repl(args) -> int:
    print(f"parmasm {__version__} ({args.target}); type '{REPL_EXIT}' to quit")
    while True:
        try:
            line = input("> ")
        except EOFError:
            print()
            break
        if line.strip().lower() == REPL_EXIT:
            break
        if not line.strip():
            continue
        _, text = _describe(line, args.target)
        if text:
            print(text)
    return EXIT_OK


COMMANDS = {
    "assemble": cmd_assemble,
    "print": cmd_print,
    "repl": cmd_repl,
}


if __name__ == "__main__":
    sys.exit(main())
