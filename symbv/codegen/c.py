"""C backend: expression graph -> straight-line C99.

Output layout:
- <name>.h          typedefs for every kind and the entry point prototype
- <name>.c          one const declaration per graph node, in dependency order
- <name>_driver.c   a main() calling the entry point on sample inputs
- Makefile          builds the driver

Semantics match concrete evaluation:
- Bit-vector arithmetic wraps; it is computed in the unsigned type of at
  least 32 bits and cast back, so signed overflow never happens in C.
- Division and remainder are guarded: x / 0 == 0 and x % 0 == x.
- Shifts by at least the width are folded at generation time.
"""

from __future__ import annotations

import keyword
import random
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from symbv.config import SymbvConfig, get_config
from symbv.core.exceptions import CodeGenError
from symbv.core.graph import Node, NodeId
from symbv.core.kinds import Kind, KindTag, infer_kind
from symbv.core.ops import Op
from symbv.core.run import SymbolicRun
from symbv.core.values import SVal, literal
from symbv.core.views import CodeGraph
from symbv.logging import get_logger

_C_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_C_RESERVED = frozenset(
    {
        "auto", "break", "case", "char", "const", "continue", "default", "do",
        "double", "else", "enum", "extern", "float", "for", "goto", "if", "int",
        "long", "register", "return", "short", "signed", "sizeof", "static",
        "struct", "switch", "typedef", "union", "unsigned", "void", "volatile",
        "while", "inline", "restrict", "bool", "true", "false", "main",
    }
)

_TABLE_ROW = 22

_INFIX = {
    Op.AND: "&",
    Op.OR: "|",
    Op.XOR: "^",
    Op.EQ: "==",
    Op.NE: "!=",
    Op.LT: "<",
    Op.LE: "<=",
    Op.GT: ">",
    Op.GE: ">=",
}

_WRAPPING = {Op.ADD: "+", Op.SUB: "-", Op.MUL: "*"}

_BOOL_INFIX = {Op.AND: "&&", Op.OR: "||", Op.XOR: "!="}

_FLOAT_INFIX = {Op.ADD: "+", Op.SUB: "-", Op.MUL: "*", Op.QUOT: "/"}


def c_type(kind: Kind) -> str:
    """C typedef name of a kind."""
    if kind.is_either:
        raise CodeGenError(f"{kind} values cannot be expressed in C")
    if kind.is_bounded and kind.width not in (8, 16, 32, 64):
        raise CodeGenError(f"{kind}: only 8, 16, 32 and 64 bit words are supported in C")
    return str(kind)


def _carrier(kind: Kind) -> str:
    """Unsigned C type wide enough to do kind's arithmetic without promotion surprises."""
    return f"uint{max(kind.width, 32)}_t"


def _unsigned_type(kind: Kind) -> str:
    return f"SWord{kind.width}"


def c_literal(kind: Kind, value: Any) -> str:
    """C literal of a normalized value."""
    if kind.tag is KindTag.BOOL:
        return "true" if value else "false"
    if kind.tag is KindTag.BOUNDED:
        if kind.signed:
            suffix = {64: "LL", 32: "L"}.get(kind.width, "")
            if value == kind.min_value:
                return f"({kind.min_value + 1}{suffix} - 1)"
            return f"{value}{suffix}"
        suffix = {64: "ULL", 32: "UL"}.get(kind.width, "U")
        return f"0x{value:0{kind.width // 4}x}{suffix}"
    if kind.is_float:
        suffix = "F" if kind.tag is KindTag.FLOAT else ""
        if value != value:
            return "NAN"
        if value in (float("inf"), float("-inf")):
            return "INFINITY" if value > 0 else "(-INFINITY)"
        return f"{value.hex()}{suffix}"
    raise CodeGenError(f"{kind} values cannot be expressed in C")


def printf_format(kind: Kind) -> str:
    if kind.tag is KindTag.BOOL:
        return "%d"
    if kind.tag is KindTag.BOUNDED:
        return f'%"PRI{"d" if kind.signed else "u"}{kind.width}"'
    if kind.tag is KindTag.FLOAT:
        return "%.9g"
    if kind.tag is KindTag.DOUBLE:
        return "%.17g"
    raise CodeGenError(f"{kind} values cannot be printed from C")


def _check_identifier(name: str, what: str) -> None:
    if not _C_IDENTIFIER.match(name) or name in _C_RESERVED or keyword.iskeyword(name):
        raise CodeGenError(f"{what} {name!r} is not a usable C identifier")
    if re.match(r"^s\d+$", name) or re.match(r"^table\d+$", name) or name.startswith("__"):
        raise CodeGenError(f"{what} {name!r} clashes with generated names")


def _random_value(kind: Kind, rng: random.Random) -> Any:
    if kind.tag is KindTag.BOOL:
        return rng.random() < 0.5
    if kind.tag is KindTag.BOUNDED:
        return kind.normalize(rng.getrandbits(kind.width))
    return kind.normalize(rng.uniform(-1000.0, 1000.0))


@dataclass
class _Body:
    """Lines of the generated function body."""

    tables: list[str] = field(default_factory=list)
    declarations: list[tuple[str, str, str]] = field(default_factory=list)


class _FunctionEmitter:
    """Turns a CodeGraph into the statements of one C function."""

    def __init__(self, graph: CodeGraph) -> None:
        self.graph = graph
        self.kinds: dict[NodeId, Kind] = {n.node_id: n.kind for n in graph.nodes}
        self.names: dict[NodeId, str] = {}
        self.body = _Body()
        self._table_count = 0

    def emit(self) -> _Body:
        for node in self.graph.nodes:
            if node.op is Op.CONST:
                self.names[node.node_id] = c_literal(node.kind, node.params[0])
                continue
            name = str(node.node_id)
            self.body.declarations.append((c_type(node.kind), name, self.expression(node)))
            self.names[node.node_id] = name
        return self.body

    def _arg(self, node: Node, position: int) -> str:
        return self.names[node.operands[position]]

    def expression(self, node: Node) -> str:
        op, kind = node.op, node.kind
        if op is Op.VAR:
            return node.params[0]
        if op is Op.ITE:
            return f"{self._arg(node, 0)} ? {self._arg(node, 1)} : {self._arg(node, 2)}"
        if op is Op.TABLE:
            return self._table(node)
        if op in (Op.EQ, Op.NE, Op.LT, Op.LE, Op.GT, Op.GE):
            c_type(self.kinds[node.operands[0]])
            return f"{self._arg(node, 0)} {_INFIX[op]} {self._arg(node, 1)}"
        if op in (Op.EITHER_CONSTRUCTOR, Op.EITHER_IS, Op.EITHER_ACCESS):
            raise CodeGenError(f"{op.name} cannot be expressed in C")
        if kind.is_bool:
            if op is Op.NOT:
                return f"!{self._arg(node, 0)}"
            return f"{self._arg(node, 0)} {_BOOL_INFIX[op]} {self._arg(node, 1)}"
        if kind.is_float:
            if op is Op.NEG:
                return f"-({self._arg(node, 0)})"
            return f"{self._arg(node, 0)} {_FLOAT_INFIX[op]} {self._arg(node, 1)}"
        return self._bitvector(node)

    def _bitvector(self, node: Node) -> str:
        op, kind = node.op, node.kind
        ctype = c_type(kind)
        if op in _WRAPPING:
            carrier = _carrier(kind)
            a, b = self._arg(node, 0), self._arg(node, 1)
            return f"({ctype}) (({carrier}) {a} {_WRAPPING[op]} ({carrier}) {b})"
        if op is Op.NEG:
            return f"({ctype}) (-({_carrier(kind)}) {self._arg(node, 0)})"
        if op is Op.NOT:
            return f"({ctype}) ~{self._arg(node, 0)}"
        if op in (Op.AND, Op.OR, Op.XOR):
            return f"{self._arg(node, 0)} {_INFIX[op]} {self._arg(node, 1)}"
        a, b = self._arg(node, 0), self._arg(node, 1)
        if op is Op.QUOT:
            if kind.signed:
                negated = f"({ctype}) (-({_carrier(kind)}) {a})"
                return f"({b} == 0) ? 0 : ({b} == -1) ? {negated} : {a} / {b}"
            return f"({b} == 0) ? 0 : {a} / {b}"
        if op is Op.REM:
            if kind.signed:
                return f"({b} == 0) ? {a} : ({b} == -1) ? 0 : {a} % {b}"
            return f"({b} == 0) ? {a} : {a} % {b}"
        return self._shift(node)

    def _shift(self, node: Node) -> str:
        op, kind = node.op, node.kind
        ctype = c_type(kind)
        amount = node.params[0]
        source = self._arg(node, 0)
        if amount >= kind.width:
            if op is Op.SHR and kind.signed:
                amount = kind.width - 1
            else:
                return c_literal(kind, 0)
        if op is Op.SHL:
            if kind.signed:
                return f"({ctype}) (({_unsigned_type(kind)}) {source} << {amount})"
            return f"({ctype}) ({source} << {amount})"
        return f"{source} >> {amount}"

    def _table(self, node: Node) -> str:
        index_kind = self.kinds[node.operands[0]]
        index = self._arg(node, 0)
        default = self._arg(node, 1)
        entries = node.operands[2:]
        ctype = c_type(node.kind)
        if not entries:
            return default
        name = f"table{self._table_count}"
        self._table_count += 1
        values = [self.names[e] for e in entries]
        constant = all(self.graph.node(e).op is Op.CONST for e in entries)
        rows = [
            "      " + ", ".join(values[i : i + _TABLE_ROW])
            for i in range(0, len(values), _TABLE_ROW)
        ]
        storage = "static const" if constant else "const"
        self.body.tables.append(
            f"  {storage} {ctype} {name}[] = {{\n" + ",\n".join(rows) + "\n  };"
        )
        if not index_kind.signed and index_kind.max_value < len(entries):
            return f"{name}[{index}]"
        lower = f"{index} >= 0 && " if index_kind.signed else ""
        return f"({lower}{index} < {len(entries)}) ? {name}[{index}] : {default}"


class CodeGen:
    """Builder for one generated C function.
    Example:
        >>> def build(cg):
        ...     x = cg.input("x", WORD64)
        ...     cg.returns(pop_count_fast(x))
        >>> files = compile_to_c("popCount", build)
    """

    def __init__(self, name: str, config: SymbvConfig | None = None) -> None:
        _check_identifier(name, "function name")
        self.name = name
        self.config = config or get_config()
        self.run = SymbolicRun(name, self.config)
        self._inputs: list[tuple[str, Kind]] = []
        self._return: SVal | None = None
        self._outputs: list[tuple[str, SVal]] = []
        self._driver_values: list[Any] | None = None

    def input(self, name: str, kind: Kind) -> SVal:
        """Declare a function parameter."""
        _check_identifier(name, "input")
        c_type(kind)
        value = self.run.free(name, kind)
        self._inputs.append((name, kind))
        return value

    def returns(self, value: SVal | Any) -> None:
        """Set the function's return value."""
        if self._return is not None:
            raise CodeGenError(f"{self.name} already has a return value")
        self._return = self._lift(value)

    def output(self, name: str, value: SVal | Any) -> None:
        """Add an output parameter, written through a pointer."""
        _check_identifier(name, "output")
        if any(name == n for n, _ in (*self._inputs, *self._outputs)):
            raise CodeGenError(f"duplicate parameter name {name!r}")
        self._outputs.append((name, self._lift(value)))

    def set_driver_values(self, values: Sequence[Any]) -> None:
        """Fix the inputs the generated driver calls the function with."""
        self._driver_values = list(values)

    def _lift(self, value: SVal | Any) -> SVal:
        if isinstance(value, SVal):
            c_type(value.kind)
            return value
        kind = infer_kind(value)
        if kind is None:
            raise CodeGenError(f"cannot infer the C type of {value!r}; pass an SVal")
        return literal(kind, value)

    def _driver_inputs(self) -> list[Any]:
        if self._driver_values is None:
            rng = random.Random()
            return [_random_value(kind, rng) for _, kind in self._inputs]
        if len(self._driver_values) != len(self._inputs):
            raise CodeGenError(
                f"{self.name} has {len(self._inputs)} input(s) but "
                f"{len(self._driver_values)} driver value(s) were given"
            )
        return [kind.normalize(v) for (_, kind), v in zip(self._inputs, self._driver_values)]

    @property
    def return_kind(self) -> Kind | None:
        return self._return.kind if self._return is not None else None

    def signature(self) -> str:
        params = [f"const {c_type(kind)} {name}" for name, kind in self._inputs]
        params.extend(f"{c_type(value.kind)} *{name}" for name, value in self._outputs)
        result = c_type(self._return.kind) if self._return is not None else "void"
        return f"{result} {self.name}({', '.join(params) or 'void'})"

    def render(self) -> dict[str, str]:
        """Produce every file, keyed by file name."""
        roots = [(name, value) for name, value in self._outputs]
        if self._return is not None:
            roots.insert(0, ("__result", self._return))
        graph = self.run.code_view(roots)
        emitter = _FunctionEmitter(graph)
        body = emitter.emit()
        results = {name: emitter.names[node_id] for name, node_id in graph.outputs}
        files = {
            f"{self.name}.h": self._header(),
            f"{self.name}.c": self._source(body, results),
        }
        if self.config.codegen.driver:
            files[f"{self.name}_driver.c"] = self._driver()
        if self.config.codegen.makefile:
            files["Makefile"] = self._makefile()
        return files

    def _header(self) -> str:
        guard = f"__{self.name}__HEADER_INCLUDED__"
        return "\n".join(
            [
                f"/* Header file for {self.name}. Automatically generated by symbv. Do not edit! */",
                "",
                f"#ifndef {guard}",
                f"#define {guard}",
                "",
                "#include <stdio.h>",
                "#include <stdlib.h>",
                "#include <inttypes.h>",
                "#include <stdint.h>",
                "#include <stdbool.h>",
                "#include <string.h>",
                "#include <math.h>",
                "",
                "/* The boolean type */",
                "typedef bool SBool;",
                "",
                "/* The float type */",
                "typedef float SFloat;",
                "",
                "/* The double type */",
                "typedef double SDouble;",
                "",
                "/* Unsigned bit-vectors */",
                "typedef uint8_t  SWord8;",
                "typedef uint16_t SWord16;",
                "typedef uint32_t SWord32;",
                "typedef uint64_t SWord64;",
                "",
                "/* Signed bit-vectors */",
                "typedef int8_t  SInt8;",
                "typedef int16_t SInt16;",
                "typedef int32_t SInt32;",
                "typedef int64_t SInt64;",
                "",
                "/* Entry point prototype: */",
                f"{self.signature()};",
                "",
                f"#endif /* {guard} */",
                "",
            ]
        )

    def _source(self, body: _Body, results: dict[str, str]) -> str:
        lines = [
            f'/* File: "{self.name}.c". Automatically generated by symbv. Do not edit! */',
            "",
            f'#include "{self.name}.h"',
            "",
            self.signature(),
            "{",
        ]
        lines.extend(body.tables)
        width = max((len(t) for t, _, _ in body.declarations), default=0)
        for ctype, name, expr in body.declarations:
            lines.append(f"  const {ctype.ljust(width)} {name} = {expr};")
        if body.declarations or body.tables:
            lines.append("")
        for name, _ in self._outputs:
            lines.append(f"  *{name} = {results[name]};")
        if self._return is not None:
            lines.append(f"  return {results['__result']};")
        lines.append("}")
        return "\n".join(lines) + "\n"

    def _driver(self) -> str:
        args = [c_literal(kind, v) for (_, kind), v in zip(self._inputs, self._driver_inputs())]
        call = f"{self.name}({', '.join([*args, *(f'&{n}' for n, _ in self._outputs)])})"
        shown = f"{self.name}({', '.join(args)})"
        lines = [
            f"/* Example driver program for {self.name}. */",
            "/* Automatically generated by symbv. Edit as you see fit! */",
            "",
            "#include <stdio.h>",
            f'#include "{self.name}.h"',
            "",
            "int main(void)",
            "{",
        ]
        for name, value in self._outputs:
            lines.append(f"  {c_type(value.kind)} {name};")
        if self._outputs:
            lines.append("")
        if self._return is not None:
            lines.append(f"  const {c_type(self._return.kind)} __result = {call};")
            lines.append("")
            fmt = printf_format(self._return.kind)
            lines.append(f'  printf("{_c_string(shown)} = {fmt}\\n", __result);')
        else:
            lines.append(f"  {call};")
            lines.append("")
            lines.append(f'  printf("{_c_string(shown)}\\n");')
        for name, value in self._outputs:
            lines.append(f'  printf("  {name} = {printf_format(value.kind)}\\n", {name});')
        lines.extend(["", "  return 0;", "}", ""])
        return "\n".join(lines)

    def _makefile(self) -> str:
        settings = self.config.codegen
        name = self.name
        return "\n".join(
            [
                f"# Makefile for {name}. Automatically generated by symbv. Do not edit!",
                "",
                "# include any user-defined .mk file in the current directory.",
                "-include *.mk",
                "",
                f"CC?={settings.cc}",
                f"CCFLAGS?={settings.ccflags}",
                "",
                f"all: {name}_driver",
                "",
                f"{name}.o: {name}.c {name}.h",
                "\t${CC} ${CCFLAGS} -c $< -o $@",
                "",
                f"{name}_driver.o: {name}_driver.c",
                "\t${CC} ${CCFLAGS} -c $< -o $@",
                "",
                f"{name}_driver: {name}.o {name}_driver.o",
                "\t${CC} ${CCFLAGS} $^ -o $@ -lm",
                "",
                "clean:",
                "\trm -f *.o",
                "",
                "veryclean: clean",
                f"\trm -f {name}_driver",
                "",
            ]
        )


def _c_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("%", "%%")


def compile_to_c(
    name: str,
    build: Callable[[CodeGen], Any],
    directory: str | Path | None = None,
    config: SymbvConfig | None = None,
) -> dict[str, str]:
    """Generate a C library and driver for a symbolic function.
    Args:
        name: Name of the generated C function (and of the files)
        build: Called with a fresh CodeGen; declares inputs and results. A
            non-None return value is used as the function's return value.
        directory: Where to write the files; nothing is written when None
        config: Configuration (compiler and flags, driver/Makefile switches)
    Returns:
        File name -> file contents
    Raises:
        CodeGenError: If the function uses values C cannot express
    """
    cg = CodeGen(name, config)
    try:
        returned = build(cg)
        if returned is not None and cg.return_kind is None:
            cg.returns(returned)
        files = cg.render()
    finally:
        cg.run.close()
    logger = get_logger()
    if directory is not None:
        target = Path(directory)
        target.mkdir(parents=True, exist_ok=True)
        for file_name, contents in files.items():
            (target / file_name).write_text(contents, encoding="utf-8")
        logger.info(f"Generated {len(files)} file(s) for {name} in {target}", category="codegen")
    else:
        logger.debug(f"Generated {len(files)} file(s) for {name}", category="codegen")
    return files


__all__ = ["CodeGen", "compile_to_c", "c_type", "c_literal", "printf_format"]
