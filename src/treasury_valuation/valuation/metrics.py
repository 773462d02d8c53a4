"""Per-block ProtocolMetric from the block's records."""

from collections.abc import Sequence
from decimal import Decimal

from treasury_valuation.common.utils.date_utils import to_iso_date
from treasury_valuation.shared.models import ProtocolMetric, TokenRecord, TokenSupply
from treasury_valuation.valuation import aggregation
from treasury_valuation.valuation.aggregation import SUPPLY_TIERS, TierTable


def build_protocol_metric(
    block: int,
    timestamp: int,
    records: Sequence[TokenRecord],
    supplies: Sequence[TokenSupply],
    ohm_price: Decimal,
    current_index: Decimal,
    tiers: TierTable = SUPPLY_TIERS,
) -> ProtocolMetric:
    """
    Reduce one block's records to its protocol metrics.

    Args:
        block: Block number
        timestamp: Block timestamp in Unix seconds
        records: Every TokenRecord of the block
        supplies: Every TokenSupply of the block
        ohm_price: Resolved OHM rate
        current_index: Staking index (OHM per gOHM)
        tiers: Supply tier table in effect at the block

    Returns:
        ProtocolMetric for the block
    """
    market_value = aggregation.market_value(records)
    liquid_backing = aggregation.liquid_backing(records)

    circulating = aggregation.circulating_supply(supplies, tiers)
    floating = aggregation.floating_supply(supplies, tiers)
    backed = aggregation.backed_supply(supplies, tiers)
    synthetic = aggregation.gohm_synthetic_supply(floating, current_index)

    return ProtocolMetric(
        date=to_iso_date(timestamp),
        block=block,
        timestamp=timestamp,
        ohm_price=ohm_price,
        gohm_price=ohm_price * current_index,
        current_index=current_index,
        ohm_total_supply=aggregation.total_supply(supplies),
        ohm_circulating_supply=circulating,
        ohm_floating_supply=floating,
        ohm_backed_supply=backed,
        gohm_synthetic_supply=synthetic,
        market_cap=aggregation.market_cap(ohm_price, circulating),
        treasury_market_value=market_value,
        treasury_liquid_backing=liquid_backing,
        treasury_liquid_backing_per_ohm_floating=aggregation.liquid_backing_per_floating(
            liquid_backing, floating
        ),
        treasury_liquid_backing_per_gohm_synthetic=aggregation.liquid_backing_per_gohm_synthetic(
            liquid_backing, synthetic
        ),
    )
