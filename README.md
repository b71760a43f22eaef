# bcompiler

A small compiler for the B programming language. It reads a `.b` source
file, compiles it to a simple intermediate representation and writes the
generated code for one of several targets:

| Target name          | Output                                   |
|----------------------|------------------------------------------|
| `fasm-x86_64-linux`  | x86_64 assembly for fasm (`.asm`)        |
| `gas-aarch64-linux`  | AArch64 assembly for GNU as (`.s`)       |
| `html-js`            | A self-contained HTML page (`.html`)     |
| `ir`                 | A readable dump of the IR (`.ir`)        |

## Installation

```
pip install .
```

## Command line

```
bcompiler [OPTIONS] <input.b>
```

Options:

- `-t <target>`: compilation target; pass `list` to print the available
  targets. The default is `gas-aarch64-linux` on AArch64 machines and
  `fasm-x86_64-linux` everywhere else.
- `-o <path>`: output path (see below).
- `-run`: request that the result be run; see "What it does not do".
- `-L <flag>`: a linker flag; may be repeated. It is accepted but has no
  effect, since no linker is started.
- `-help`: print the help message.

Only one input file is accepted. The command prints `Generated <path>` after
writing its output and exits with status 0 on success and 1 on any error.

Output names:

- Assembly targets: the base name is the `-o` value if given, otherwise the
  input path without its `.b` suffix (or the input path plus `.out` if it has
  no `.b` suffix); `.asm` (fasm) or `.s` (GNU as) is then appended. So
  `hello.b` gives `hello.asm`, and `-o out` gives `out.asm`.
- `html-js` and `ir`: the `-o` value is used as given; otherwise the input
  path without `.b`, plus `.html` or `.ir`.

Example:

```
bcompiler -t ir hello.b
```

## The language subset

Functions take no parameters. Inside a function you can declare `auto` and
`extrn` names, use `if (...) ... else ...` (the `else` branch is required)
and `while (...)`, blocks, calls to `extrn` functions, integer and string
literals, unary `!`, `-` and `*`, and the binary operators `* %`, `+ -`,
`< >=`, `<< >>`, `&`, `|` and the assignments `= += *= |= <<=`.

```
main() {
    extrn printf;
    auto i;
    i = 0;
    while (i < 10) {
        printf("%d\n", i);
        i += 1;
    }
}
```

Not yet supported, and reported as errors: global variable definitions,
using an `extrn` name other than as a called function, calling through an
`auto` variable, and compound assignment through a pointer. The AArch64
generator also rejects `-` (negation), `%`, negative literals and data
offsets of 4095 or more; both assembly generators accept at most five call
arguments.

## Library use

```python
from bcompiler.compiler import compile_source
from bcompiler import ir_dump

program = compile_source("main() { extrn putchar; putchar(65); }", "example.b")
print(ir_dump.generate_program(program))
```

`bcompiler.cli.generate(target, program)` produces the text for any
`bcompiler.targets.Target`; each generator module (`fasm_x86_64`,
`gas_aarch64`, `html_js`, `ir_dump`) also exposes `generate_program` and
`generate_function`.

Errors in the source raise `bcompiler.compiler.CompileError`, carrying a
`path:line:column:` message. Constructs that are not supported yet raise
`bcompiler.ir.UnsupportedError`.

## What it does not do

bcompiler only writes the generated text file. It does not assemble, link or
run anything: no `fasm`, `as` or C compiler is invoked, `-L` flags are
ignored, and `-run` writes the output and then exits with an error saying it
is not supported. Assemble and link the `.asm` or `.s` file yourself, or open
the `.html` file in a browser.

## Running the tests

```
pip install .[test]
pytest
```