"""Population count: proving a table-driven version correct and generating C for it.
pop_count_slow walks the 64 bits one by one; pop_count_fast consumes a byte
at a time through an 8-bit lookup table. The table itself is computed by
running the slow version on concrete bytes, which never touches a graph.
"""

from __future__ import annotations

from pathlib import Path

from symbv.api import ThmResult, prove
from symbv.codegen.c import CodeGen, compile_to_c
from symbv.config import SymbvConfig
from symbv.core.conditional import ite, select
from symbv.core.kinds import WORD8, WORD64
from symbv.core.values import SVal, literal


def pop_count_slow(x: SVal) -> SVal:
    """Count set bits one at a time.
    >>> pop_count_slow(literal(WORD64, 0x0123456789ABCDEF)).value
    32
    """
    count = literal(WORD8, 0)
    for _ in range(64):
        count = ite((x & 1).eq(1), count + 1, count)
        x = x >> 1
    return count


POP8: list[SVal] = [pop_count_slow(literal(WORD64, byte)) for byte in range(256)]


def pop_count_fast(x: SVal) -> SVal:
    """Count set bits a byte at a time through POP8."""
    count = literal(WORD8, 0)
    for _ in range(8):
        count = count + select(POP8, literal(WORD8, 0), x & 0xFF)
        x = x >> 8
    return count


def fast_pop_count_is_correct(x: SVal) -> SVal:
    return pop_count_fast(x).eq(pop_count_slow(x))


def prove_fast_pop_count(config: SymbvConfig | None = None) -> ThmResult:
    return prove(fast_pop_count_is_correct, WORD64, config=config)


def gen_pop_count_in_c(
    directory: str | Path | None = None, config: SymbvConfig | None = None
) -> dict[str, str]:
    """Generate popCount.{h,c}, a driver and a Makefile."""

    def build(cg: CodeGen) -> None:
        cg.set_driver_values([0x1B02E143E4F0E0E5])
        x = cg.input("x", WORD64)
        cg.returns(pop_count_fast(x))

    return compile_to_c("popCount", build, directory, config)


__all__ = [
    "POP8",
    "pop_count_slow",
    "pop_count_fast",
    "fast_pop_count_is_correct",
    "prove_fast_pop_count",
    "gen_pop_count_in_c",
]
