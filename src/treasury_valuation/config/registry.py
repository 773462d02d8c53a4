"""
Per-chain static registry.

Everything the engine needs to know about a chain that is not read from the
chain itself: token classification, price anchors, which pool prices which
token, treasury wallets, owned liquidity and manual supply adjustments.

The registry is built once from ``config/chains/<chain>.yaml``, validated as
a whole, frozen, and then passed by reference to every component.
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from treasury_valuation.common.utils.addresses import addresses_equal, normalize_address
from treasury_valuation.exceptions import ConfigurationError
from treasury_valuation.shared.models import (
    Blockchain,
    PairHandler,
    PoolType,
    PriceFeed,
    RateOverride,
    SupplyTier,
    TokenCategory,
    TokenDefinition,
    TokenSupplyType,
)

logger = logging.getLogger(__name__)

NATIVE_TOKEN_SENTINEL = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"


# =============================================================================
# REGISTRY ENTRIES
# =============================================================================


class _BlockRanged(BaseModel):
    """Entry that only applies within [from_block, to_block)."""

    model_config = ConfigDict(frozen=True)

    from_block: int = Field(default=0, ge=0)
    to_block: int | None = Field(default=None)

    def active_at(self, block: int) -> bool:
        if block < self.from_block:
            return False
        return self.to_block is None or block < self.to_block


class Wallet(_BlockRanged):
    """Treasury-controlled address whose balances are counted."""

    name: str
    address: str

    @field_validator("address", mode="before")
    @classmethod
    def lowercase_address(cls, v):
        return normalize_address(v)


class OwnedLiquidity(_BlockRanged):
    """Liquidity pool whose pool tokens the treasury holds."""

    name: str
    handler: PairHandler


class SupplyDeduction(_BlockRanged):
    """
    Protocol token balance held at a contract that is removed from supply,
    e.g. bond tellers holding pre-minted payouts.
    """

    name: str
    address: str
    type: TokenSupplyType
    pool: str | None = Field(default=None)

    @field_validator("address", mode="before")
    @classmethod
    def lowercase_address(cls, v):
        return normalize_address(v)


class LendingDeployment(BaseModel):
    """Protocol token minted directly into a lending market."""

    model_config = ConfigDict(frozen=True)

    name: str
    address: str
    from_block: int = Field(ge=0)
    amount: Decimal

    @field_validator("address", mode="before")
    @classmethod
    def lowercase_address(cls, v):
        return normalize_address(v)


class MigrationOffset(BaseModel):
    """Fixed quantity (in wrapped units) multiplied by the index and removed from supply."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="Migration Offset")
    address: str
    from_block: int = Field(ge=0)
    amount: Decimal = Field(gt=0)

    @field_validator("address", mode="before")
    @classmethod
    def lowercase_address(cls, v):
        return normalize_address(v)


# =============================================================================
# CHAIN REGISTRY
# =============================================================================


class ChainRegistry(BaseModel):
    """Immutable registry for one chain."""

    model_config = ConfigDict(frozen=True)

    blockchain: Blockchain

    # ========== PROTOCOL TOKENS ==========
    ohm_token: str
    gohm_token: str | None = Field(default=None)
    index_contract: str = Field(description="Staking contract exposing index()")
    index_decimals: int = Field(default=9, ge=0)

    # ========== NATIVE ASSET ==========
    native_token: str = Field(default=NATIVE_TOKEN_SENTINEL)
    wrapped_native_token: str

    # ========== PRICING ==========
    tokens: tuple[TokenDefinition, ...] = Field(default=())
    price_feeds: tuple[PriceFeed, ...] = Field(default=())
    pair_handlers: dict[str, PairHandler] = Field(default_factory=dict)
    ohm_price_pairs: tuple[PairHandler, ...] = Field(default=())
    rate_overrides: tuple[RateOverride, ...] = Field(default=())

    # ========== TREASURY ==========
    treasury_wallets: tuple[Wallet, ...] = Field(default=())
    owned_liquidity: tuple[OwnedLiquidity, ...] = Field(default=())

    # ========== SUPPLY ==========
    supply_deductions: tuple[SupplyDeduction, ...] = Field(default=())
    lending_deployments: tuple[LendingDeployment, ...] = Field(default=())
    migration_offset: MigrationOffset | None = Field(default=None)
    gohm_indexing_block: int = Field(
        default=0, ge=0, description="Block from which wrapped OHM in wallets is counted"
    )
    blv_inclusion_block: int | None = Field(
        default=None,
        description="Before this block, boosted liquidity vault OHM is deducted from every tier",
    )

    # ==================== VALIDATORS ====================

    @field_validator(
        "ohm_token", "gohm_token", "index_contract", "native_token", "wrapped_native_token",
        mode="before",
    )
    @classmethod
    def lowercase_address(cls, v):
        if v is None:
            return v
        return normalize_address(v)

    @field_validator("pair_handlers", mode="before")
    @classmethod
    def lowercase_keys(cls, v):
        if isinstance(v, dict):
            return {normalize_address(key): value for key, value in v.items()}
        return v

    @model_validator(mode="after")
    def cross_references(self):
        token_addresses = [token.address for token in self.tokens]
        duplicates = {a for a in token_addresses if token_addresses.count(a) > 1}
        if duplicates:
            raise ValueError(f"Duplicate token definitions: {sorted(duplicates)}")

        feed_tokens = [feed.token for feed in self.price_feeds]
        duplicates = {a for a in feed_tokens if feed_tokens.count(a) > 1}
        if duplicates:
            raise ValueError(f"Duplicate base-token price feeds: {sorted(duplicates)}")

        if not self.ohm_price_pairs:
            raise ValueError("At least one OHM price pair is required")
        for handler in self.ohm_price_pairs:
            if handler.pool_type in (PoolType.ERC4626, PoolType.CURVE):
                raise ValueError(
                    f"{handler.pool_type.value} pool {handler.contract} cannot be an OHM price pair"
                )

        for liquidity in self.owned_liquidity:
            if liquidity.handler.pool_type in (PoolType.UNISWAP_V3, PoolType.ERC4626):
                raise ValueError(
                    f"Owned liquidity {liquidity.name} uses {liquidity.handler.pool_type.value}, "
                    "which has no fungible pool token"
                )

        for token, handler in self.pair_handlers.items():
            if token in feed_tokens:
                raise ValueError(f"Base token {token} must not also have a pair handler")
            if handler.pool_type == PoolType.ERC4626 and not addresses_equal(
                handler.contract, token
            ):
                raise ValueError(f"ERC4626 handler for {token} must point at the vault itself")

        return self

    # ==================== LOOKUPS ====================

    def token(self, address: str) -> TokenDefinition | None:
        needle = normalize_address(address)
        for definition in self.tokens:
            if definition.address == needle:
                return definition
        return None

    def price_feed(self, address: str) -> PriceFeed | None:
        needle = normalize_address(address)
        for feed in self.price_feeds:
            if feed.token == needle:
                return feed
        return None

    def pair_handler(self, address: str) -> PairHandler | None:
        return self.pair_handlers.get(normalize_address(address))

    def rate_override(self, address: str, block: int) -> RateOverride | None:
        """Latest override for ``address`` that has taken effect at ``block``."""
        needle = normalize_address(address)
        active = [
            override
            for override in self.rate_overrides
            if override.token == needle and override.from_block <= block
        ]
        if not active:
            return None
        return max(active, key=lambda override: override.from_block)

    def is_ohm(self, address: str) -> bool:
        return addresses_equal(address, self.ohm_token)

    def is_gohm(self, address: str) -> bool:
        return self.gohm_token is not None and addresses_equal(address, self.gohm_token)

    @property
    def protocol_tokens(self) -> tuple[str, ...]:
        """Tokens excluded when computing non-OHM value."""
        if self.gohm_token is None:
            return (self.ohm_token,)
        return (self.ohm_token, self.gohm_token)

    def wallets_at(self, block: int) -> tuple[Wallet, ...]:
        return tuple(wallet for wallet in self.treasury_wallets if wallet.active_at(block))

    def owned_liquidity_at(self, block: int) -> tuple[OwnedLiquidity, ...]:
        return tuple(pool for pool in self.owned_liquidity if pool.active_at(block))

    def valued_tokens(self) -> tuple[TokenDefinition, ...]:
        """Wallet-held assets valued into TokenRecords; POL is valued per pool."""
        return tuple(
            token
            for token in self.tokens
            if token.category != TokenCategory.PROTOCOL_OWNED_LIQUIDITY
            and token.address not in self.protocol_tokens
        )

    def supply_tier_overrides(self, block: int) -> dict[TokenSupplyType, SupplyTier]:
        """Tier changes in effect at ``block`` relative to the default table."""
        if self.blv_inclusion_block is not None and block < self.blv_inclusion_block:
            return {TokenSupplyType.BOOSTED_LIQUIDITY_VAULT: SupplyTier.CIRCULATING}
        return {}


# =============================================================================
# LOADING
# =============================================================================


def load_registry(path: str | Path) -> ChainRegistry:
    """
    Load and validate a chain registry from YAML.

    Raises:
        ConfigurationError: if the file is missing, unparsable or inconsistent
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Registry file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Registry file {path} is not valid YAML: {e}") from e

    try:
        registry = ChainRegistry(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Registry file {path} is invalid: {e}") from e

    logger.info(
        f"Loaded {registry.blockchain.value} registry: {len(registry.tokens)} tokens, "
        f"{len(registry.price_feeds)} feeds, {len(registry.pair_handlers)} pair handlers, "
        f"{len(registry.treasury_wallets)} wallets"
    )
    return registry


__all__ = [
    "NATIVE_TOKEN_SENTINEL",
    "ChainRegistry",
    "LendingDeployment",
    "MigrationOffset",
    "OwnedLiquidity",
    "SupplyDeduction",
    "Wallet",
    "load_registry",
]
