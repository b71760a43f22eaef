"""Code generator producing a self-contained HTML page that runs the program in JavaScript."""

from __future__ import annotations

from .ir import (
    Add,
    Arg,
    AutoAssign,
    AutoVar,
    BitAnd,
    BitOr,
    BitShl,
    BitShr,
    DataOffset,
    Func,
    Funcall,
    Jmp,
    JmpIfNot,
    Less,
    Literal,
    Mod,
    Mul,
    Negate,
    Program,
    Ref,
    Store,
    Sub,
    UnaryNot,
)

_BINARY = {
    BitOr: "|",
    BitAnd: "&",
    BitShl: "<<",
    BitShr: ">>",
    Add: "+",
    Sub: "-",
    Mul: "*",
    Mod: "%",
    Less: "<",
}

_HEADER = """<!DOCTYPE html>
<html>
  <head>
    <title>B Program</title>
  </head>
  <body>
    <h2>Console:</h2>
    <pre id="log"></pre>
    <script>
    // The compile B program
"""

_FOOTER = r"""
      // The B runtime
      const log = document.getElementById("log");
      let logBuffer = "";
      const utf8decoder = new TextDecoder();
      function __flush() {
          log.innerText += logBuffer;
          logBuffer = "";
      }
      function __print_string(s) {
          for (let i = 0; i < s.length; ++i) {
              logBuffer += s[i];
              if (s[i] === '\n') __flush();
          }
      }
      function putchar(code) {
          __print_string(String.fromCharCode(code));
      }
      function strlen(ptr) {
          return (new Uint8Array(memory, ptr)).indexOf(0);
      }
      function printf(fmt, ...args) {
          const n = strlen(fmt);
          // TODO: print formatting is not fully implemented
          const bytes = memory.slice(fmt, fmt+n);
          const str = utf8decoder.decode(bytes);

          let index = 0;
          const output = str.replaceAll("%d", () => args[index++]);
          __print_string(output);
      }
      function malloc(size) {
          const ptr = memory.byteLength;
          memory.resize(ptr+size);
          return ptr;
      }
      function memset(ptr, byte, size) {
          let view = new Uint8Array(memory, ptr, size);
          let bytes = Array(size).fill(byte);
          view.set(bytes);
      }
      main();
    </script>
  </body>
</html>"""


def generate_arg(arg: Arg) -> str:
    """JavaScript expression for an operand."""
    match arg:
        case Ref(index):
            return f"Number((new DataView(memory)).getBigUint64(vars[{index - 1}]))"
        case AutoVar(index):
            return f"vars[{index - 1}]"
        case Literal(value):
            return str(value)
        case DataOffset(offset):
            return str(offset)
    raise TypeError(f"unknown operand {arg!r}")


def _generate_op(op) -> str:
    kind = type(op)
    if kind in _BINARY:
        return (
            f"vars[{op.index - 1}] = "
            f"{generate_arg(op.lhs)} {_BINARY[kind]} {generate_arg(op.rhs)};\n"
        )
    match op:
        case Store(index, arg):
            return (
                f"(new DataView(memory)).setBigUint64(vars[{index - 1}], "
                f"BigInt({generate_arg(arg)}));\n"
            )
        case AutoAssign(index, arg):
            return f"vars[{index - 1}] = {generate_arg(arg)};\n"
        case Negate(result, arg):
            return f"vars[{result - 1}] = -{generate_arg(arg)};\n"
        case UnaryNot(result, arg):
            return f"vars[{result - 1}] = !{generate_arg(arg)};\n"
        case Funcall(result, name, args):
            joined = ", ".join(generate_arg(arg) for arg in args)
            return f"vars[{result - 1}] = {name}({joined});\n"
        case JmpIfNot(addr, arg):
            return f"if ({generate_arg(arg)} == 0) {{ pc = {addr}; continue; }};\n"
        case Jmp(addr):
            return f"pc = {addr}; continue;\n"
    raise TypeError(f"unknown op {op!r}")


def generate_function(func: Func) -> str:
    """A JavaScript function that runs the ops as a program-counter driven switch."""
    parts = [f"function {func.name}() {{\n"]
    if func.auto_vars_count > 0:
        parts.append(f"    let vars = Array({func.auto_vars_count}).fill(0);\n")
    parts.append("    let pc = 0;\n")
    parts.append(f"    while (pc < {len(func.body)}) {{\n")
    parts.append("        switch(pc) {\n")
    for i, op in enumerate(func.body):
        parts.append(f"            case {i}: ")
        parts.append(_generate_op(op))
    parts.append("        }\n")
    parts.append("        break;\n")
    parts.append("    }\n")
    parts.append("}\n")
    return "".join(parts)


def _generate_data_section(data: bytes) -> str:
    text = f"const memory = new ArrayBuffer({len(data)}, {{ maxByteLength: 2**31-1 }});\n"
    if data:
        body = "".join(f"0x{byte:02X}," for byte in data)
        text += f"(new Uint8Array(memory)).set([{body}])\n"
    return text


def generate_program(program: Program) -> str:
    """A complete HTML page with the compiled program and a small runtime."""
    return (
        _HEADER
        + _generate_data_section(program.data)
        + "".join(generate_function(func) for func in program.funcs)
        + _FOOTER
    )