"""
Shared enumerations for the treasury valuation engine.

String-valued so records serialise to the same labels the downstream
reports and dashboards already use.
"""

import enum


# ============================================================================
# TOKEN CLASSIFICATION
# ============================================================================
class TokenCategory(str, enum.Enum):
    """Accounting category of a treasury asset."""

    STABLE = "Stable"
    VOLATILE = "Volatile"
    PROTOCOL_OWNED_LIQUIDITY = "Protocol-Owned Liquidity"
    UNKNOWN = "Unknown"


# ============================================================================
# SUPPLY ACCOUNTING
# ============================================================================
class TokenSupplyType(str, enum.Enum):
    """Accounting bucket of a supply adjustment."""

    TOTAL_SUPPLY = "Total Supply"
    TREASURY = "Treasury"
    OFFSET = "Manual Offset"
    BONDS_PREMINTED = "OHM Bonds (Pre-minted)"
    BONDS_VESTING_DEPOSITS = "OHM Bonds (Vesting Deposits)"
    BONDS_VESTING_TOKENS = "OHM Bonds (Vesting Tokens)"
    BONDS_DEPOSITS = "OHM Bonds (Burnable Deposits)"
    LIQUIDITY = "Liquidity"
    LENDING = "Lending"
    BOOSTED_LIQUIDITY_VAULT = "Boosted Liquidity Vault"


class SupplyTier(enum.IntEnum):
    """
    Supply metric tiers, narrowest first.

    A supply type assigned to a tier is included in that metric and in
    every broader one.
    """

    CIRCULATING = 1
    FLOATING = 2
    BACKED = 3


# ============================================================================
# LIQUIDITY POOLS
# ============================================================================
class PoolType(str, enum.Enum):
    """How a liquidity pool is priced and valued."""

    UNISWAP_V2 = "UniswapV2"
    UNISWAP_V3 = "UniswapV3"
    BALANCER = "Balancer"
    CURVE = "Curve"
    FRAXSWAP = "FraxSwap"
    ERC4626 = "ERC4626"


class Blockchain(str, enum.Enum):
    """Blockchain tag stored on every record."""

    ETHEREUM = "Ethereum"
    ARBITRUM = "Arbitrum"
    POLYGON = "Polygon"
    FANTOM = "Fantom"
    BASE = "Base"
    BERACHAIN = "Berachain"
