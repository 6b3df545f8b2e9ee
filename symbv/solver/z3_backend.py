"""In-process solving with the Z3 Python bindings.
Each node of a SolverQuery is translated bottom-up into a Z3 term:
    SBool        -> Bool
    SWord/SInt n -> BitVec n (signedness picks the comparison/division ops)
    SFloat       -> Float32, round-nearest-even
    SDouble      -> Float64, round-nearest-even
    SEither l r  -> a two-constructor datatype, one per distinct Either kind
Division and remainder are made total the same way concrete evaluation
does it: x quot 0 == 0 and x rem 0 == x.
"""

from __future__ import annotations

import struct
from typing import Any

import z3

from symbv.core.exceptions import UnsupportedOperation
from symbv.core.graph import Node, NodeId
from symbv.core.kinds import Kind, KindTag, Left, Right
from symbv.core.ops import Op
from symbv.core.views import SolverQuery
from symbv.logging import get_logger
from symbv.solver.result import SolverResult
from symbv.solver.smtlib import accessor_names, constructor_names, datatype_name

_BV_COMPARE = {
    (Op.LT, True): lambda a, b: a < b,
    (Op.LE, True): lambda a, b: a <= b,
    (Op.GT, True): lambda a, b: a > b,
    (Op.GE, True): lambda a, b: a >= b,
    (Op.LT, False): z3.ULT,
    (Op.LE, False): z3.ULE,
    (Op.GT, False): z3.UGT,
    (Op.GE, False): z3.UGE,
}

_FP_COMPARE = {
    Op.LT: z3.fpLT,
    Op.LE: z3.fpLEQ,
    Op.GT: z3.fpGT,
    Op.GE: z3.fpGEQ,
}

_FP_ARITH = {
    Op.ADD: z3.fpAdd,
    Op.SUB: z3.fpSub,
    Op.MUL: z3.fpMul,
    Op.QUOT: z3.fpDiv,
}


class Z3Translator:
    """Maps kinds to sorts and graph nodes to Z3 terms for one query."""

    def __init__(self, context: z3.Context | None = None) -> None:
        self.ctx = context or z3.Context()
        self._sorts: dict[Kind, z3.SortRef] = {}
        self._terms: dict[NodeId, z3.ExprRef] = {}
        self._kinds: dict[NodeId, Kind] = {}
        self.rm = z3.RNE(self.ctx)

    def sort(self, kind: Kind) -> z3.SortRef:
        """Z3 sort of a kind; Either datatypes are declared once per kind."""
        cached = self._sorts.get(kind)
        if cached is not None:
            return cached
        if kind.tag is KindTag.BOOL:
            sort = z3.BoolSort(self.ctx)
        elif kind.tag is KindTag.BOUNDED:
            sort = z3.BitVecSort(kind.width, self.ctx)
        elif kind.tag is KindTag.FLOAT:
            sort = z3.Float32(self.ctx)
        elif kind.tag is KindTag.DOUBLE:
            sort = z3.Float64(self.ctx)
        else:
            left, right = constructor_names(kind)
            from_left, from_right = accessor_names(kind)
            datatype = z3.Datatype(datatype_name(kind), ctx=self.ctx)
            datatype.declare(left, (from_left, self.sort(kind.left)))
            datatype.declare(right, (from_right, self.sort(kind.right)))
            sort = datatype.create()
        self._sorts[kind] = sort
        return sort

    def literal(self, kind: Kind, value: Any) -> z3.ExprRef:
        """Z3 term of a normalized literal."""
        if kind.tag is KindTag.BOOL:
            return z3.BoolVal(value, self.ctx)
        if kind.tag is KindTag.BOUNDED:
            return z3.BitVecVal(value & kind.mask, kind.width, self.ctx)
        if kind.tag is KindTag.FLOAT:
            bits = struct.unpack("<I", struct.pack("<f", value))[0]
            return z3.fpBVToFP(z3.BitVecVal(bits, 32, self.ctx), self.sort(kind))
        if kind.tag is KindTag.DOUBLE:
            bits = struct.unpack("<Q", struct.pack("<d", value))[0]
            return z3.fpBVToFP(z3.BitVecVal(bits, 64, self.ctx), self.sort(kind))
        sort = self.sort(kind)
        if isinstance(value, Right):
            return sort.constructor(1)(self.literal(kind.right, value.value))
        return sort.constructor(0)(self.literal(kind.left, value.value))

    def variable(self, name: str, kind: Kind) -> z3.ExprRef:
        return z3.Const(name, self.sort(kind))

    def term(self, node_id: NodeId) -> z3.ExprRef:
        return self._terms[node_id]

    def translate(self, nodes: list[Node]) -> None:
        """Translate definitions; operands must precede their users."""
        for node in nodes:
            self._kinds[node.node_id] = node.kind
        for node in nodes:
            if node.node_id not in self._terms:
                self._terms[node.node_id] = self._translate_node(node)

    def _translate_node(self, node: Node) -> z3.ExprRef:
        op, kind = node.op, node.kind
        args = [self._terms[o] for o in node.operands]
        if op is Op.CONST:
            return self.literal(kind, node.params[0])
        if op is Op.VAR:
            return self.variable(node.params[0], kind)
        if op is Op.ITE:
            return z3.If(args[0], args[1], args[2])
        if op is Op.TABLE:
            return self._table(node, args)
        if op is Op.EQ:
            return self._equal(node, args)
        if op is Op.NE:
            return z3.Not(self._equal(node, args))
        if op in _FP_COMPARE:
            operand_kind = self._operand_kind(node)
            if operand_kind.is_float:
                return _FP_COMPARE[op](args[0], args[1])
            return _BV_COMPARE[(op, operand_kind.signed)](args[0], args[1])
        if op is Op.EITHER_CONSTRUCTOR:
            is_right, sum_kind = node.params
            return self.sort(sum_kind).constructor(1 if is_right else 0)(args[0])
        if op is Op.EITHER_IS:
            sum_kind = self._operand_kind(node)
            return self.sort(sum_kind).recognizer(1 if node.params[0] else 0)(args[0])
        if op is Op.EITHER_ACCESS:
            sum_kind = self._operand_kind(node)
            index = 1 if node.params[0] else 0
            sort = self.sort(sum_kind)
            return z3.If(
                sort.recognizer(index)(args[0]),
                sort.accessor(index, 0)(args[0]),
                self.literal(kind, kind.zero),
            )
        if kind.is_bool:
            return self._boolean(op, args)
        if kind.is_bounded:
            return self._bitvector(node, args)
        if kind.is_float:
            if op is Op.NEG:
                return z3.fpNeg(args[0])
            if op in _FP_ARITH:
                return _FP_ARITH[op](self.rm, args[0], args[1])
        raise UnsupportedOperation(op.name, kind)

    def _operand_kind(self, node: Node) -> Kind:
        return self._kinds[node.operands[0]]

    def _equal(self, node: Node, args: list[z3.ExprRef]) -> z3.BoolRef:
        if self._operand_kind(node).is_float:
            return z3.fpEQ(args[0], args[1])
        return args[0] == args[1]

    def _boolean(self, op: Op, args: list[z3.ExprRef]) -> z3.BoolRef:
        if op is Op.NOT:
            return z3.Not(args[0])
        if op is Op.AND:
            return z3.And(args[0], args[1])
        if op is Op.OR:
            return z3.Or(args[0], args[1])
        if op is Op.XOR:
            return z3.Xor(args[0], args[1])
        raise UnsupportedOperation(op.name, "SBool")

    def _bitvector(self, node: Node, args: list[z3.ExprRef]) -> z3.BitVecRef:
        op, kind = node.op, node.kind
        if op is Op.ADD:
            return args[0] + args[1]
        if op is Op.SUB:
            return args[0] - args[1]
        if op is Op.MUL:
            return args[0] * args[1]
        if op is Op.NEG:
            return -args[0]
        if op is Op.NOT:
            return ~args[0]
        if op is Op.AND:
            return args[0] & args[1]
        if op is Op.OR:
            return args[0] | args[1]
        if op is Op.XOR:
            return args[0] ^ args[1]
        zero = z3.BitVecVal(0, kind.width, self.ctx)
        if op is Op.QUOT:
            quotient = args[0] / args[1] if kind.signed else z3.UDiv(args[0], args[1])
            return z3.If(args[1] == zero, zero, quotient)
        if op is Op.REM:
            remainder = z3.SRem(args[0], args[1]) if kind.signed else z3.URem(args[0], args[1])
            return z3.If(args[1] == zero, args[0], remainder)
        if op in (Op.SHL, Op.SHR):
            amount = node.params[0]
            if amount >= kind.width:
                if op is Op.SHR and kind.signed:
                    amount = kind.width - 1
                else:
                    return zero
            shift = z3.BitVecVal(amount, kind.width, self.ctx)
            if op is Op.SHL:
                return args[0] << shift
            return args[0] >> shift if kind.signed else z3.LShR(args[0], shift)
        raise UnsupportedOperation(op.name, kind)

    def _table(self, node: Node, args: list[z3.ExprRef]) -> z3.ExprRef:
        index_kind = self._kinds[node.operands[0]]
        index, default, entries = args[0], args[1], args[2:]
        result = default
        for position in reversed(range(len(entries))):
            if position > index_kind.max_value:
                continue
            at = z3.BitVecVal(position, index_kind.width, self.ctx)
            result = z3.If(index == at, entries[position], result)
        return result

    def read_value(self, model: z3.ModelRef, term: z3.ExprRef, kind: Kind) -> Any:
        """Read a term's value out of a model as a normalized literal."""
        if kind.tag is KindTag.BOOL:
            return z3.is_true(model.eval(term, model_completion=True))
        if kind.tag is KindTag.BOUNDED:
            return kind.normalize(model.eval(term, model_completion=True).as_long())
        if kind.is_float:
            bits = model.eval(z3.fpToIEEEBV(term), model_completion=True).as_long()
            if kind.tag is KindTag.FLOAT:
                return struct.unpack("<f", struct.pack("<I", bits))[0]
            return struct.unpack("<d", struct.pack("<Q", bits))[0]
        sort = self.sort(kind)
        if z3.is_true(model.eval(sort.recognizer(1)(term), model_completion=True)):
            return Right(self.read_value(model, sort.accessor(1, 0)(term), kind.right))
        return Left(self.read_value(model, sort.accessor(0, 0)(term), kind.left))


class Z3Backend:
    """Answers SolverQuery objects with an in-process Z3 solver."""

    name = "z3"

    def __init__(self, timeout_ms: int = 10000) -> None:
        """Initialize the backend.
        Args:
            timeout_ms: Solver timeout in milliseconds (default: 10s).
        """
        self.timeout_ms = timeout_ms
        self._query_count = 0

    @property
    def query_count(self) -> int:
        return self._query_count

    def translate(self, query: SolverQuery) -> tuple[Z3Translator, list[z3.BoolRef]]:
        """Translate a query into Z3 assertions."""
        translator = Z3Translator()
        translator.translate(query.nodes)
        return translator, [translator.term(a) for a in query.assertions]

    def check(self, query: SolverQuery) -> SolverResult:
        """Check satisfiability of a query.
        Returns:
            SolverResult with a model for every free variable when
            satisfiable, the solver's reason when unknown.
        """
        logger = get_logger()
        self._query_count += 1
        try:
            translator, assertions = self.translate(query)
            solver = z3.Solver(ctx=translator.ctx)
            solver.set("timeout", self.timeout_ms)
            solver.add(*assertions)
            with logger.timer("z3 check", category="solver"):
                verdict = solver.check()
        except z3.Z3Exception as e:
            logger.error(f"z3 failed: {e}", category="solver")
            return SolverResult.error(str(e), solver=self.name)
        if verdict == z3.sat:
            model = solver.model()
            values = {
                var.name: translator.read_value(model, translator.term(var.node_id), var.kind)
                for var in query.variables
            }
            return SolverResult.sat(values, solver=self.name)
        if verdict == z3.unsat:
            return SolverResult.unsat(solver=self.name)
        return SolverResult.unknown(solver.reason_unknown(), solver=self.name)


__all__ = ["Z3Backend", "Z3Translator"]
