"""Probe-level background adjustment, summaries, matrix inverses and design matrices."""

__version__ = "0.1.0"
__all__ = ["background", "design", "lesn", "linalg", "model", "nth_largest", "scab"]