"""Hypothesis strategies and stateful machines for testing symbv."""
