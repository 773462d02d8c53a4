"""Shared domain models."""

from treasury_valuation.shared.models.enums import (
    Blockchain,
    PoolType,
    SupplyTier,
    TokenCategory,
    TokenSupplyType,
)
from treasury_valuation.shared.models.metrics import ProtocolMetric
from treasury_valuation.shared.models.records import TokenRecord, TokenSupply
from treasury_valuation.shared.models.snapshots import (
    ERC20Snapshot,
    PoolSnapshot,
    PriceSnapshot,
)
from treasury_valuation.shared.models.tokens import (
    PairHandler,
    PriceFeed,
    RateOverride,
    TokenDefinition,
)

__all__ = [
    # Enums
    "Blockchain",
    "PoolType",
    "SupplyTier",
    "TokenCategory",
    "TokenSupplyType",
    # Registry entries
    "TokenDefinition",
    "PairHandler",
    "PriceFeed",
    "RateOverride",
    # Snapshots
    "ERC20Snapshot",
    "PoolSnapshot",
    "PriceSnapshot",
    # Records
    "TokenRecord",
    "TokenSupply",
    "ProtocolMetric",
]
