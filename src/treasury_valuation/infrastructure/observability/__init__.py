"""
Observability for the valuation engine: structured logs that carry the
block, token and pool being processed, so that a failed or suspicious block
can be traced back to the exact read or price route responsible.
"""

from .logging import (
    # Context
    block_context,
    # Layer-specific logger factories
    get_chain_logger,
    get_infrastructure_logger,
    # Base logger factory
    get_logger,
    get_pipeline_logger,
    get_pricing_logger,
    get_reporting_logger,
    get_valuation_logger,
    # Setup
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "block_context",
    # Base
    "get_logger",
    # Layer-specific
    "get_infrastructure_logger",
    "get_chain_logger",
    "get_pricing_logger",
    "get_valuation_logger",
    "get_pipeline_logger",
    "get_reporting_logger",
]
