"""Record production and aggregation."""

from treasury_valuation.valuation.balances import TreasuryBalances
from treasury_valuation.valuation.liquidity import OwnedLiquidityValuation, PoolPosition
from treasury_valuation.valuation.metrics import build_protocol_metric
from treasury_valuation.valuation.supply import ProtocolSupply
from treasury_valuation.valuation.token_records import TokenRecordBuilder
from treasury_valuation.valuation.token_supply import TokenSupplyBuilder

__all__ = [
    "OwnedLiquidityValuation",
    "PoolPosition",
    "ProtocolSupply",
    "TokenRecordBuilder",
    "TokenSupplyBuilder",
    "TreasuryBalances",
    "build_protocol_metric",
]
