"""
Aggregation Functions
=====================

Pure reducers from a block's TokenRecords and TokenSupplies to the scalar
protocol metrics. Nothing here reads the chain or the registry.

Supply tiers
------------
Every supply type is assigned to the narrowest tier that includes it in
``SUPPLY_TIERS``; a type counts towards its own tier and every broader one:

    circulating  Total Supply, Treasury, Manual Offset, bond pre-mints and
                 deposits
    floating     circulating + Liquidity
    backed       floating + Lending + Boosted Liquidity Vault

Vesting bond tokens (``None``) are recorded but belong to no tier.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from types import MappingProxyType

from treasury_valuation.common.utils.decimals import ZERO, safe_divide
from treasury_valuation.exceptions import ConfigurationError
from treasury_valuation.shared.models import (
    SupplyTier,
    TokenCategory,
    TokenRecord,
    TokenSupply,
    TokenSupplyType,
)

TierTable = Mapping[TokenSupplyType, SupplyTier | None]

SUPPLY_TIERS: TierTable = MappingProxyType(
    {
        TokenSupplyType.TOTAL_SUPPLY: SupplyTier.CIRCULATING,
        TokenSupplyType.TREASURY: SupplyTier.CIRCULATING,
        TokenSupplyType.OFFSET: SupplyTier.CIRCULATING,
        TokenSupplyType.BONDS_PREMINTED: SupplyTier.CIRCULATING,
        TokenSupplyType.BONDS_VESTING_DEPOSITS: SupplyTier.CIRCULATING,
        TokenSupplyType.BONDS_DEPOSITS: SupplyTier.CIRCULATING,
        TokenSupplyType.BONDS_VESTING_TOKENS: None,
        TokenSupplyType.LIQUIDITY: SupplyTier.FLOATING,
        TokenSupplyType.LENDING: SupplyTier.BACKED,
        TokenSupplyType.BOOSTED_LIQUIDITY_VAULT: SupplyTier.BACKED,
    }
)


def supply_tier_table(
    overrides: Mapping[TokenSupplyType, SupplyTier | None] | None = None,
) -> TierTable:
    """
    Default tier table with ``overrides`` applied.

    Raises:
        ConfigurationError: if a supply type has no tier assignment
    """
    table = dict(SUPPLY_TIERS)
    table.update(overrides or {})

    missing = [supply_type.value for supply_type in TokenSupplyType if supply_type not in table]
    if missing:
        raise ConfigurationError(f"Supply types without a tier assignment: {missing}")

    return MappingProxyType(table)


def included_types(tier: SupplyTier, table: TierTable = SUPPLY_TIERS) -> frozenset[TokenSupplyType]:
    """Supply types counted towards ``tier``."""
    return frozenset(
        supply_type
        for supply_type, assigned in table.items()
        if assigned is not None and assigned <= tier
    )


# =============================================================================
# TREASURY
# =============================================================================


def market_value(records: Iterable[TokenRecord]) -> Decimal:
    """Σ value"""
    return sum((record.value for record in records), ZERO)


def liquid_backing(records: Iterable[TokenRecord]) -> Decimal:
    """Σ value_excluding_ohm over liquid records"""
    return sum((record.value_excluding_ohm for record in records if record.is_liquid), ZERO)


def market_value_by_category(records: Iterable[TokenRecord]) -> dict[TokenCategory, Decimal]:
    totals = {category: ZERO for category in TokenCategory}
    for record in records:
        totals[record.category] += record.value
    return totals


# =============================================================================
# SUPPLY
# =============================================================================


def total_supply(supplies: Iterable[TokenSupply]) -> Decimal:
    return sum(
        (
            supply.supply_balance
            for supply in supplies
            if supply.type == TokenSupplyType.TOTAL_SUPPLY
        ),
        ZERO,
    )


def supply_for_tier(
    supplies: Iterable[TokenSupply], tier: SupplyTier, table: TierTable = SUPPLY_TIERS
) -> Decimal:
    types = included_types(tier, table)
    return sum((supply.supply_balance for supply in supplies if supply.type in types), ZERO)


def circulating_supply(supplies: Iterable[TokenSupply], table: TierTable = SUPPLY_TIERS) -> Decimal:
    return supply_for_tier(supplies, SupplyTier.CIRCULATING, table)


def floating_supply(supplies: Iterable[TokenSupply], table: TierTable = SUPPLY_TIERS) -> Decimal:
    return supply_for_tier(supplies, SupplyTier.FLOATING, table)


def backed_supply(supplies: Iterable[TokenSupply], table: TierTable = SUPPLY_TIERS) -> Decimal:
    return supply_for_tier(supplies, SupplyTier.BACKED, table)


# =============================================================================
# DERIVED
# =============================================================================


def market_cap(ohm_price: Decimal, circulating: Decimal) -> Decimal:
    return ohm_price * circulating


def liquid_backing_per_floating(backing: Decimal, floating: Decimal) -> Decimal:
    return safe_divide(backing, floating)


def gohm_synthetic_supply(floating: Decimal, index: Decimal) -> Decimal:
    """Floating supply expressed in gOHM."""
    return safe_divide(floating, index)


def liquid_backing_per_gohm_synthetic(backing: Decimal, synthetic_supply: Decimal) -> Decimal:
    return safe_divide(backing, synthetic_supply)
