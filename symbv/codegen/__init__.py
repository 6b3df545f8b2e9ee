"""Code generation backends."""

from symbv.codegen.c import CodeGen, compile_to_c

__all__ = ["CodeGen", "compile_to_c"]
