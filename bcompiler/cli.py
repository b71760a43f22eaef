"""Command-line driver: compile a B source file for one of the supported targets."""

from __future__ import annotations

import platform
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from . import fasm_x86_64, gas_aarch64, html_js, ir_dump
from .compiler import CompileError, compile_source
from .ir import Program, UnsupportedError
from .targets import TARGET_NAMES, Target, name_of_target, target_by_name

PROGRAM_NAME = "b"


class _UsageError(Exception):
    """The command line could not be parsed."""


@dataclass
class _Options:
    target: str
    output: str | None = None
    run: bool = False
    help: bool = False
    linker: list[str] = field(default_factory=list)
    inputs: list[str] = field(default_factory=list)


def _default_target() -> Target:
    if platform.machine().lower() in ("aarch64", "arm64"):
        return Target.GAS_AARCH64_LINUX
    return Target.FASM_X86_64_LINUX


def strip_suffix(text: str, suffix: str) -> str | None:
    """``text`` without ``suffix`` if it ends with it, otherwise None."""
    if text.endswith(suffix):
        return text[: len(text) - len(suffix)]
    return None


def output_path_for(target: Target, input_path: str, output_path: str | None) -> str:
    """Path of the file written for ``target`` when compiling ``input_path``."""
    stripped = strip_suffix(input_path, ".b")
    if target in (Target.FASM_X86_64_LINUX, Target.GAS_AARCH64_LINUX):
        if output_path is not None:
            effective = output_path
        elif stripped is not None:
            effective = stripped
        else:
            effective = f"{input_path}.out"
        extension = ".asm" if target is Target.FASM_X86_64_LINUX else ".s"
        return effective + extension
    if output_path is not None:
        return output_path
    base = stripped if stripped is not None else input_path
    extension = ".html" if target is Target.HTML_JS else ".ir"
    return base + extension


def generate(target: Target, program: Program) -> str:
    """Generate the output text of ``program`` for ``target``."""
    generators = {
        Target.FASM_X86_64_LINUX: fasm_x86_64.generate_program,
        Target.GAS_AARCH64_LINUX: gas_aarch64.generate_program,
        Target.HTML_JS: html_js.generate_program,
        Target.IR: ir_dump.generate_program,
    }
    return generators[target](program)


def _parse_args(args: Sequence[str], default_target: str) -> _Options:
    options = _Options(target=default_target)
    items = iter(args)
    flags_done = False
    for arg in items:
        if flags_done or not arg.startswith("-") or arg == "-":
            options.inputs.append(arg)
            continue
        if arg == "--":
            flags_done = True
            continue
        name = arg[1:]
        if name == "run":
            options.run = True
        elif name == "help":
            options.help = True
        elif name in ("t", "o", "L"):
            value = next(items, None)
            if value is None:
                raise _UsageError(f"ERROR: {arg}: no value provided")
            if name == "t":
                options.target = value
            elif name == "o":
                options.output = value
            else:
                options.linker.append(value)
        else:
            raise _UsageError(f"ERROR: {arg}: unknown flag")
    return options


def _usage(stream: TextIO, default_target: str) -> None:
    print(f"Usage: {PROGRAM_NAME} [OPTIONS] <input.b>", file=stream)
    print("OPTIONS:", file=stream)
    entries = (
        ("-t <str>", 'Compilation target. Pass "list" to get the list of available targets.',
         default_target),
        ("-o <str>", "Output path", None),
        ("-run", "Run the compiled program (if applicable for the target)", None),
        ("-help", "Print this help message", None),
        ("-L <str> ... -L <str> ...", "Append a flag to the linker of the target platform", None),
    )
    for flag, description, default in entries:
        print(f"    {flag}", file=stream)
        print(f"        {description}", file=stream)
        if default is not None:
            print(f"        Default: {default}", file=stream)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the compiler; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    default_target_name = name_of_target(_default_target())
    assert default_target_name is not None

    try:
        options = _parse_args(args, default_target_name)
    except _UsageError as err:
        _usage(sys.stderr, default_target_name)
        print(err, file=sys.stderr)
        return 1

    if len(options.inputs) > 1:
        print("ERROR: Serveral input files is not supported yet", file=sys.stderr)
        return 1

    if options.help:
        _usage(sys.stderr, default_target_name)
        return 0

    if options.target == "list":
        print("Compilation targets:", file=sys.stderr)
        for name, _ in TARGET_NAMES:
            print(f"    {name}", file=sys.stderr)
        return 0

    if not options.inputs:
        _usage(sys.stderr, default_target_name)
        print("ERROR: no input is provided", file=sys.stderr)
        return 1
    input_path = options.inputs[0]

    target = target_by_name(options.target)
    if target is None:
        _usage(sys.stderr, default_target_name)
        print(f"ERROR: unknown target `{options.target}`", file=sys.stderr)
        return 1

    try:
        source = Path(input_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        print(f"ERROR: could not read file {input_path}: {err}", file=sys.stderr)
        return 1

    try:
        program = compile_source(source, input_path)
        output = generate(target, program)
    except (CompileError, UnsupportedError) as err:
        print(err, file=sys.stderr)
        return 1

    written_path = output_path_for(target, input_path, options.output)
    try:
        Path(written_path).write_text(output, encoding="utf-8", newline="")
    except OSError as err:
        print(f"ERROR: could not write file {written_path}: {err}", file=sys.stderr)
        return 1
    print(f"Generated {written_path}")

    if options.run:
        if target is Target.IR:
            print("ERROR: running IR is not supported: Interpret the IR?", file=sys.stderr)
        else:
            print(
                "ERROR: -run is not supported: the compiler does not start other programs",
                file=sys.stderr,
            )
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())