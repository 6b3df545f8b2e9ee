"""Property-based testing infrastructure using Hypothesis.
Provides strategies for kinds, literals and random expression trees, plus a
stateful machine that grows an expression graph and checks its invariants.
"""

from __future__ import annotations

from typing import Any

from hypothesis import assume
from hypothesis import strategies as st
from hypothesis.stateful import Bundle, RuleBasedStateMachine, invariant, rule

from symbv.core.conditional import ite
from symbv.core.kinds import (
    INT8,
    INT16,
    INT32,
    INT64,
    KBOOL,
    KDOUBLE,
    KFLOAT,
    WORD8,
    WORD16,
    WORD32,
    WORD64,
    Kind,
    KindTag,
)
from symbv.core.run import SymbolicRun
from symbv.core.values import SVal, literal

BOUNDED_KINDS = [WORD8, WORD16, WORD32, WORD64, INT8, INT16, INT32, INT64]
SCALAR_KINDS = [KBOOL, *BOUNDED_KINDS, KFLOAT, KDOUBLE]

Term = tuple


def bounded_kinds() -> st.SearchStrategy:
    """Strategy for bit-vector kinds."""
    return st.sampled_from(BOUNDED_KINDS)


def scalar_kinds() -> st.SearchStrategy:
    """Strategy for every non-sum kind."""
    return st.sampled_from(SCALAR_KINDS)


def literals(kind: Kind, allow_nan: bool = False) -> st.SearchStrategy:
    """Strategy for normalized literals of a kind."""
    if kind.tag is KindTag.BOOL:
        return st.booleans()
    if kind.tag is KindTag.BOUNDED:
        return st.integers(min_value=kind.min_value, max_value=kind.max_value)
    width = 32 if kind.tag is KindTag.FLOAT else 64
    return st.floats(width=width, allow_nan=allow_nan).map(kind.normalize)


def concrete_values(kind: Kind) -> st.SearchStrategy:
    """Strategy for concrete SVals of a kind."""
    return literals(kind).map(lambda v: literal(kind, v))


_UNARY = ["neg", "not"]
_BINARY = ["add", "sub", "mul", "quot", "rem", "and", "or", "xor"]
_SHIFTS = ["shl", "shr"]
_COMPARISONS = ["eq", "ne", "lt", "le", "gt", "ge"]


@st.composite
def bounded_terms(
    draw,
    kind: Kind,
    variables: list[str],
    depth: int = 3,
) -> Term:
    """Strategy for bit-vector expression trees over named variables.
    Trees are plain tuples so the same tree can be built both over
    concrete literals and over free variables; see build_term.
    """
    leaves = ["var", "const"] if variables else ["const"]
    if depth <= 0:
        choice = draw(st.sampled_from(leaves))
    else:
        choice = draw(st.sampled_from(leaves + _UNARY + _BINARY + _SHIFTS + ["ite"]))
    if choice == "var":
        return ("var", draw(st.sampled_from(variables)))
    if choice == "const":
        return ("const", draw(literals(kind)))
    if choice in _UNARY:
        return (choice, draw(bounded_terms(kind, variables, depth - 1)))
    if choice in _SHIFTS:
        amount = draw(st.integers(min_value=0, max_value=kind.width + 2))
        return (choice, draw(bounded_terms(kind, variables, depth - 1)), amount)
    if choice == "ite":
        return (
            "ite",
            draw(bool_terms(kind, variables, depth - 1)),
            draw(bounded_terms(kind, variables, depth - 1)),
            draw(bounded_terms(kind, variables, depth - 1)),
        )
    left = draw(bounded_terms(kind, variables, depth - 1))
    right = draw(bounded_terms(kind, variables, depth - 1))
    return (choice, left, right)


@st.composite
def bool_terms(
    draw,
    kind: Kind,
    variables: list[str],
    depth: int = 2,
) -> Term:
    """Strategy for boolean trees comparing bit-vector terms of kind."""
    if depth <= 0:
        return ("bool", draw(st.booleans()))
    choice = draw(st.sampled_from(["bool", "and", "or", "not", *_COMPARISONS]))
    if choice == "bool":
        return ("bool", draw(st.booleans()))
    if choice == "not":
        return ("lnot", draw(bool_terms(kind, variables, depth - 1)))
    if choice in ("and", "or"):
        return (
            f"l{choice}",
            draw(bool_terms(kind, variables, depth - 1)),
            draw(bool_terms(kind, variables, depth - 1)),
        )
    left = draw(bounded_terms(kind, variables, depth - 1))
    right = draw(bounded_terms(kind, variables, depth - 1))
    return (choice, left, right)


def build_term(term: Term, env: dict[str, SVal], kind: Kind) -> SVal:
    """Build the value of a term tree; env maps variable names to values."""
    tag = term[0]
    if tag == "var":
        return env[term[1]]
    if tag == "const":
        return literal(kind, term[1])
    if tag == "bool":
        return literal(KBOOL, term[1])
    if tag == "neg":
        return -build_term(term[1], env, kind)
    if tag in ("not", "lnot"):
        return ~build_term(term[1], env, kind)
    if tag == "shl":
        return build_term(term[1], env, kind) << term[2]
    if tag == "shr":
        return build_term(term[1], env, kind) >> term[2]
    if tag == "ite":
        return ite(
            build_term(term[1], env, kind),
            build_term(term[2], env, kind),
            build_term(term[3], env, kind),
        )
    left = build_term(term[1], env, kind)
    right = build_term(term[2], env, kind)
    if tag == "add":
        return left + right
    if tag == "sub":
        return left - right
    if tag == "mul":
        return left * right
    if tag == "quot":
        return left.quot(right)
    if tag == "rem":
        return left.rem(right)
    if tag in ("and", "land"):
        return left & right
    if tag in ("or", "lor"):
        return left | right
    if tag == "xor":
        return left ^ right
    if tag == "eq":
        return left.eq(right)
    if tag == "ne":
        return left.ne(right)
    if tag == "lt":
        return left < right
    if tag == "le":
        return left <= right
    if tag == "gt":
        return left > right
    if tag == "ge":
        return left >= right
    raise ValueError(f"unknown term tag {tag!r}")


def term_variables(term: Term) -> set[str]:
    if term[0] == "var":
        return {term[1]}
    found: set[str] = set()
    for part in term[1:]:
        if isinstance(part, tuple):
            found |= term_variables(part)
    return found


class GraphStateMachine(RuleBasedStateMachine):
    """Stateful test for expression graph consistency.
    Uses Hypothesis stateful testing to verify that:
    1. Rebuilding an expression never allocates a new node
    2. The graph only ever grows
    3. Every node's operands precede it
    """

    def __init__(self) -> None:
        super().__init__()
        self.run = SymbolicRun("state_machine")
        self.last_count = 0
        self.names: list[str] = []

    values = Bundle("values")

    @rule(target=values, name=st.sampled_from(["x", "y", "z", "w"]))
    def free_variable(self, name: str) -> SVal:
        """Introduce a free variable."""
        assume(name not in self.names)
        self.names.append(name)
        return self.run.free(name, WORD8)

    @rule(target=values, v=literals(WORD8))
    def constant(self, v: int) -> SVal:
        """Introduce a literal."""
        return literal(WORD8, v)

    @rule(target=values, a=values, b=values, op=st.sampled_from(["add", "mul", "xor"]))
    def combine(self, a: SVal, b: SVal, op: str) -> SVal:
        """Combine two values and check rebuilding is idempotent."""
        build = {"add": lambda: a + b, "mul": lambda: a * b, "xor": lambda: a ^ b}[op]
        first, second = build(), build()
        if first.is_symbolic:
            before = len(self.run.graph)
            first_id = first.node(self.run.graph)
            after = len(self.run.graph)
            assert second.node(self.run.graph) == first_id
            assert len(self.run.graph) == after
            assert after >= before
        return first

    @rule(target=values, a=values, b=values, c=values)
    def choose(self, a: SVal, b: SVal, c: SVal) -> Any:
        """Multiplex between two values."""
        return ite(a.eq(b), b, c)

    @invariant()
    def graph_grows(self) -> None:
        count = len(self.run.graph)
        assert count >= self.last_count
        self.last_count = count

    @invariant()
    def operands_precede_users(self) -> None:
        for node in self.run.graph.nodes():
            assert all(o.index < node.node_id.index for o in node.operands)

    def teardown(self) -> None:
        self.run.close()


__all__ = [
    "BOUNDED_KINDS",
    "SCALAR_KINDS",
    "bounded_kinds",
    "scalar_kinds",
    "literals",
    "concrete_values",
    "bounded_terms",
    "bool_terms",
    "build_term",
    "term_variables",
    "GraphStateMachine",
]
