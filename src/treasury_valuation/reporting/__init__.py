"""Sanity checks and reports over processed blocks."""

from treasury_valuation.reporting.sanity import InvariantViolation, run_sanity_checks

__all__ = ["InvariantViolation", "run_sanity_checks"]
