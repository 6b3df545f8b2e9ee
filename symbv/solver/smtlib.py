"""SMT-LIB 2 rendering of solver queries and parsing of solver replies.
A query becomes a self-contained script: one datatype per Either kind,
one declare-fun per free variable, one define-fun per graph node (named
after the node, s<index>), the assertions, then check-sat and a get-value
over every free variable. Variables are declared as |v.<name>|, so no
user name can collide with a node name or an SMT-LIB builtin. Any SMT-LIB 2
solver that understands the QF_BV / QF_FP fragments (plus datatypes when
Either kinds appear) can answer it.
"""

from __future__ import annotations

import re
import struct
from collections.abc import Iterable
from typing import Any

from symbv.core.exceptions import SolverError, UnsupportedOperation
from symbv.core.graph import Node, NodeId
from symbv.core.kinds import Kind, KindTag, Left, Right
from symbv.core.ops import Op
from symbv.core.views import BoundVariable, SolverQuery

SExpr = str | list["SExpr"]

_TOKEN = re.compile(r'\(|\)|\|[^|]*\||"(?:[^"]|"")*"|[^\s()]+')

_FP_FORMATS = {KindTag.FLOAT: (8, 24), KindTag.DOUBLE: (11, 53)}

_BV_OPS = {
    Op.ADD: "bvadd",
    Op.SUB: "bvsub",
    Op.MUL: "bvmul",
    Op.AND: "bvand",
    Op.OR: "bvor",
    Op.XOR: "bvxor",
    Op.NEG: "bvneg",
    Op.NOT: "bvnot",
}

_BV_COMPARE = {
    (Op.LT, True): "bvslt",
    (Op.LE, True): "bvsle",
    (Op.GT, True): "bvsgt",
    (Op.GE, True): "bvsge",
    (Op.LT, False): "bvult",
    (Op.LE, False): "bvule",
    (Op.GT, False): "bvugt",
    (Op.GE, False): "bvuge",
}

_FP_OPS = {
    Op.ADD: "fp.add RNE",
    Op.SUB: "fp.sub RNE",
    Op.MUL: "fp.mul RNE",
    Op.QUOT: "fp.div RNE",
    Op.NEG: "fp.neg",
    Op.LT: "fp.lt",
    Op.LE: "fp.leq",
    Op.GT: "fp.gt",
    Op.GE: "fp.geq",
}

_BOOL_OPS = {Op.AND: "and", Op.OR: "or", Op.XOR: "xor", Op.NOT: "not"}


def datatype_name(kind: Kind) -> str:
    """Stable SMT name of the datatype that encodes an Either kind."""
    return str(kind).replace("(", "_").replace(")", "_").replace(" ", "_")


def constructor_names(kind: Kind) -> tuple[str, str]:
    name = datatype_name(kind)
    return f"{name}_left", f"{name}_right"


def accessor_names(kind: Kind) -> tuple[str, str]:
    name = datatype_name(kind)
    return f"{name}_from_left", f"{name}_from_right"


VARIABLE_PREFIX = "v."


def quote_symbol(name: str) -> str:
    """The quoted SMT-LIB symbol of a free variable: |v.<name>|."""
    if "|" in name or "\\" in name:
        raise SolverError(f"variable name {name!r} cannot be expressed in SMT-LIB")
    return f"|{VARIABLE_PREFIX}{name}|"


def sort_text(kind: Kind) -> str:
    if kind.tag is KindTag.BOOL:
        return "Bool"
    if kind.tag is KindTag.BOUNDED:
        return f"(_ BitVec {kind.width})"
    if kind.is_float:
        exponent, significand = _FP_FORMATS[kind.tag]
        return f"(_ FloatingPoint {exponent} {significand})"
    return datatype_name(kind)


def literal_text(kind: Kind, value: Any) -> str:
    """SMT-LIB term of a normalized literal."""
    if kind.tag is KindTag.BOOL:
        return "true" if value else "false"
    if kind.tag is KindTag.BOUNDED:
        return f"(_ bv{value & kind.mask} {kind.width})"
    if kind.is_float:
        exponent, significand = _FP_FORMATS[kind.tag]
        if kind.tag is KindTag.FLOAT:
            bits = struct.unpack("<I", struct.pack("<f", value))[0]
            width = 32
        else:
            bits = struct.unpack("<Q", struct.pack("<d", value))[0]
            width = 64
        return f"((_ to_fp {exponent} {significand}) #b{bits:0{width}b})"
    left, right = constructor_names(kind)
    if isinstance(value, Right):
        return f"({right} {literal_text(kind.right, value.value)})"
    return f"({left} {literal_text(kind.left, value.value)})"


def _either_kinds(kinds: Iterable[Kind]) -> list[Kind]:
    """Either kinds, inner ones first."""
    ordered: list[Kind] = []

    def visit(kind: Kind) -> None:
        if not kind.is_either or kind in ordered:
            return
        visit(kind.left)
        visit(kind.right)
        ordered.append(kind)

    for kind in sorted(kinds, key=str):
        visit(kind)
    return ordered


def _datatype_declaration(kind: Kind) -> str:
    name = datatype_name(kind)
    left, right = constructor_names(kind)
    from_left, from_right = accessor_names(kind)
    return (
        f"(declare-datatypes (({name} 0)) ((({left} ({from_left} {sort_text(kind.left)})) "
        f"({right} ({from_right} {sort_text(kind.right)})))))"
    )


class _Renderer:
    def __init__(self, nodes: list[Node]) -> None:
        self.kinds: dict[NodeId, Kind] = {n.node_id: n.kind for n in nodes}

    def term(self, node: Node) -> str:
        op, kind = node.op, node.kind
        args = [str(o) for o in node.operands]
        if op is Op.CONST:
            return literal_text(kind, node.params[0])
        if op is Op.VAR:
            return quote_symbol(node.params[0])
        if op is Op.ITE:
            return f"(ite {args[0]} {args[1]} {args[2]})"
        if op is Op.TABLE:
            return self._table(node, args)
        if op in (Op.EQ, Op.NE):
            operand_kind = self.kinds[node.operands[0]]
            test = "fp.eq" if operand_kind.is_float else "="
            equal = f"({test} {args[0]} {args[1]})"
            return equal if op is Op.EQ else f"(not {equal})"
        if op in (Op.LT, Op.LE, Op.GT, Op.GE):
            operand_kind = self.kinds[node.operands[0]]
            if operand_kind.is_float:
                return f"({_FP_OPS[op]} {args[0]} {args[1]})"
            return f"({_BV_COMPARE[(op, operand_kind.signed)]} {args[0]} {args[1]})"
        if op is Op.EITHER_CONSTRUCTOR:
            is_right, sum_kind = node.params
            return f"({constructor_names(sum_kind)[1 if is_right else 0]} {args[0]})"
        if op is Op.EITHER_IS:
            sum_kind = self.kinds[node.operands[0]]
            ctor = constructor_names(sum_kind)[1 if node.params[0] else 0]
            return f"((_ is {ctor}) {args[0]})"
        if op is Op.EITHER_ACCESS:
            sum_kind = self.kinds[node.operands[0]]
            side = 1 if node.params[0] else 0
            ctor = constructor_names(sum_kind)[side]
            accessor = accessor_names(sum_kind)[side]
            return (
                f"(ite ((_ is {ctor}) {args[0]}) ({accessor} {args[0]}) "
                f"{literal_text(kind, kind.zero)})"
            )
        if kind.is_bool and op in _BOOL_OPS:
            return f"({_BOOL_OPS[op]} {' '.join(args)})"
        if kind.is_bounded:
            return self._bitvector(node, args)
        if kind.is_float and op in _FP_OPS:
            return f"({_FP_OPS[op]} {' '.join(args)})"
        raise UnsupportedOperation(op.name, kind)

    def _bitvector(self, node: Node, args: list[str]) -> str:
        op, kind = node.op, node.kind
        if op in _BV_OPS:
            return f"({_BV_OPS[op]} {' '.join(args)})"
        zero = f"(_ bv0 {kind.width})"
        if op is Op.QUOT:
            div = "bvsdiv" if kind.signed else "bvudiv"
            return f"(ite (= {args[1]} {zero}) {zero} ({div} {args[0]} {args[1]}))"
        if op is Op.REM:
            rem = "bvsrem" if kind.signed else "bvurem"
            return f"(ite (= {args[1]} {zero}) {args[0]} ({rem} {args[0]} {args[1]}))"
        if op in (Op.SHL, Op.SHR):
            amount = node.params[0]
            if amount >= kind.width:
                if op is Op.SHR and kind.signed:
                    amount = kind.width - 1
                else:
                    return zero
            if op is Op.SHL:
                shift = "bvshl"
            else:
                shift = "bvashr" if kind.signed else "bvlshr"
            return f"({shift} {args[0]} (_ bv{amount} {kind.width}))"
        raise UnsupportedOperation(op.name, kind)

    def _table(self, node: Node, args: list[str]) -> str:
        index_kind = self.kinds[node.operands[0]]
        index, result, entries = args[0], args[1], args[2:]
        for position in reversed(range(len(entries))):
            if position > index_kind.max_value:
                continue
            result = (
                f"(ite (= {index} (_ bv{position} {index_kind.width})) "
                f"{entries[position]} {result})"
            )
        return result


def to_smtlib(query: SolverQuery, logic: str = "ALL") -> str:
    """Render a query as an SMT-LIB 2 script."""
    lines = ["(set-option :produce-models true)", f"(set-logic {logic})"]
    lines.extend(_datatype_declaration(k) for k in _either_kinds(query.kinds()))
    for var in query.variables:
        lines.append(f"(declare-fun {quote_symbol(var.name)} () {sort_text(var.kind)})")
    renderer = _Renderer(query.nodes)
    for node in query.nodes:
        lines.append(f"(define-fun {node.node_id} () {sort_text(node.kind)} {renderer.term(node)})")
    for assertion in query.assertions:
        lines.append(f"(assert {assertion})")
    lines.append("(check-sat)")
    if query.variables:
        names = " ".join(quote_symbol(v.name) for v in query.variables)
        lines.append(f"(get-value ({names}))")
    lines.append("(exit)")
    return "\n".join(lines) + "\n"


def tokenize(text: str) -> list[str]:
    return _TOKEN.findall(text)


def parse_sexprs(text: str) -> list[SExpr]:
    """Parse every top-level s-expression in text."""
    tokens = tokenize(text)
    position = 0

    def parse() -> SExpr:
        nonlocal position
        token = tokens[position]
        position += 1
        if token == ")":
            raise SolverError(f"unbalanced ')' in solver output: {text!r}")
        if token != "(":
            return token
        items: list[SExpr] = []
        while True:
            if position >= len(tokens):
                raise SolverError(f"unterminated s-expression in solver output: {text!r}")
            if tokens[position] == ")":
                position += 1
                return items
            items.append(parse())

    result = []
    while position < len(tokens):
        result.append(parse())
    return result


def _bits(token: str) -> tuple[int, int]:
    """(value, width) of a #x.. or #b.. literal."""
    if token.startswith("#x"):
        return int(token[2:], 16), 4 * (len(token) - 2)
    if token.startswith("#b"):
        return int(token[2:], 2), len(token) - 2
    raise SolverError(f"expected a bit-vector literal, got {token!r}")


def _float_from_fields(kind: Kind, sign: int, exponent: int, significand: int) -> float:
    exp_bits, sig_bits = _FP_FORMATS[kind.tag]
    bits = (sign << (exp_bits + sig_bits - 1)) | (exponent << (sig_bits - 1)) | significand
    if kind.tag is KindTag.FLOAT:
        return struct.unpack("<f", struct.pack("<I", bits))[0]
    return struct.unpack("<d", struct.pack("<Q", bits))[0]


def decode_value(expr: SExpr, kind: Kind) -> Any:
    """Convert a solver value term into a normalized literal of kind."""
    if kind.tag is KindTag.BOOL:
        if expr in ("true", "false"):
            return expr == "true"
    elif kind.tag is KindTag.BOUNDED:
        if isinstance(expr, str):
            return kind.normalize(_bits(expr)[0])
        if len(expr) == 3 and expr[0] == "_" and expr[1].startswith("bv"):
            return kind.normalize(int(expr[1][2:]))
    elif kind.is_float:
        if isinstance(expr, list) and len(expr) == 4 and expr[0] == "fp":
            sign, exponent, significand = (_bits(t)[0] for t in expr[1:])
            return _float_from_fields(kind, sign, exponent, significand)
        if isinstance(expr, list) and len(expr) == 4 and expr[0] == "_":
            special = {
                "+zero": 0.0,
                "-zero": -0.0,
                "+oo": float("inf"),
                "-oo": float("-inf"),
                "NaN": float("nan"),
            }
            if expr[1] in special:
                return kind.normalize(special[expr[1]])
    else:
        left, right = constructor_names(kind)
        if isinstance(expr, list) and len(expr) == 2:
            if expr[0] == left:
                return Left(decode_value(expr[1], kind.left))
            if expr[0] == right:
                return Right(decode_value(expr[1], kind.right))
    raise SolverError(f"cannot read a {kind} value from {expr!r}")


def _unquote(symbol: str) -> str | None:
    """The variable name behind a reply symbol, None for foreign symbols."""
    if symbol.startswith("|") and symbol.endswith("|"):
        symbol = symbol[1:-1]
    if not symbol.startswith(VARIABLE_PREFIX):
        return None
    return symbol[len(VARIABLE_PREFIX):]


def parse_model(response: str, variables: Iterable[BoundVariable]) -> dict[str, Any]:
    """Read a get-value reply into {variable name: literal}.
    Raises:
        SolverError: If the reply is malformed or misses a variable.
    """
    exprs = parse_sexprs(response)
    if len(exprs) != 1:
        raise SolverError(f"unexpected get-value reply: {response!r}")
    return model_from_sexpr(exprs[0], variables)


def model_from_sexpr(reply: SExpr, variables: Iterable[BoundVariable]) -> dict[str, Any]:
    """Decode an already parsed get-value reply."""
    if not isinstance(reply, list):
        raise SolverError(f"unexpected get-value reply: {reply!r}")
    raw: dict[str, SExpr] = {}
    for pair in reply:
        if not isinstance(pair, list) or len(pair) != 2 or not isinstance(pair[0], str):
            raise SolverError(f"unexpected get-value entry: {pair!r}")
        name = _unquote(pair[0])
        if name is not None:
            raw[name] = pair[1]
    model = {}
    for var in variables:
        if var.name not in raw:
            raise SolverError(f"solver returned no value for {var.name}")
        model[var.name] = decode_value(raw[var.name], var.kind)
    return model


__all__ = [
    "to_smtlib",
    "parse_model",
    "model_from_sexpr",
    "parse_sexprs",
    "decode_value",
    "literal_text",
    "sort_text",
    "quote_symbol",
    "VARIABLE_PREFIX",
    "datatype_name",
    "constructor_names",
    "accessor_names",
]
