"""Per-block orchestration."""

from treasury_valuation.orchestration.treasury import BlockResult, TreasuryOrchestrator

__all__ = ["BlockResult", "TreasuryOrchestrator"]
