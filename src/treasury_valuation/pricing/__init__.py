"""
Pricing: block-keyed snapshot caches, pool-type strategies and the
recursive PriceResolver built on top of them.
"""

from treasury_valuation.pricing.cache import BlockKeyedCache
from treasury_valuation.pricing.resolver import PriceResolver
from treasury_valuation.pricing.snapshots import (
    ERC20SnapshotCache,
    PoolSnapshotCache,
    PriceSnapshotCache,
)

__all__ = [
    "BlockKeyedCache",
    "ERC20SnapshotCache",
    "PoolSnapshotCache",
    "PriceResolver",
    "PriceSnapshotCache",
]
