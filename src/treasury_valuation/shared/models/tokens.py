# treasury_valuation/shared/models/tokens.py

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.shared.models.enums import PoolType, TokenCategory


class TokenDefinition(BaseModel):
    """
    Static registry entry describing how a token is classified.

    Immutable once loaded; the registry is the only place these are created.
    """

    model_config = ConfigDict(frozen=True)

    address: str
    name: str = Field(default="")
    category: TokenCategory
    is_liquid: bool = Field(default=True)
    is_volatile_bluechip: bool = Field(default=False)
    liquid_backing_multiplier: Decimal | None = Field(
        default=None,
        description="Fixed proportion of value counted towards liquid backing",
    )

    # ==================== VALIDATORS ====================

    @field_validator("address", mode="before")
    @classmethod
    def lowercase_address(cls, v):
        return normalize_address(v)

    @field_validator("liquid_backing_multiplier")
    @classmethod
    def multiplier_in_range(cls, v):
        """Registry multipliers are proportions; overrides above 1 are caller-only."""
        if v is not None and not (Decimal(0) <= v <= Decimal(1)):
            raise ValueError(f"liquid_backing_multiplier must be within [0, 1], got {v}")
        return v

    @model_validator(mode="after")
    def default_name(self):
        if not self.name:
            object.__setattr__(self, "name", self.address)
        return self


class PairHandler(BaseModel):
    """
    Mapping between a liquidity pool and the way it is priced.

    ``contract`` is the pool (or vault) address. Balancer pools also need
    the ``pool_id`` registered in the vault.
    """

    model_config = ConfigDict(frozen=True)

    pool_type: PoolType
    contract: str
    pool_id: str | None = Field(default=None)

    @field_validator("contract", "pool_id", mode="before")
    @classmethod
    def lowercase_hex(cls, v):
        if v is None:
            return v
        return normalize_address(v)

    @model_validator(mode="after")
    def balancer_requires_pool_id(self):
        if self.pool_type == PoolType.BALANCER and self.pool_id is None:
            raise ValueError(f"Balancer pair handler {self.contract} requires a pool_id")
        return self

    # ==================== PROPERTIES ====================

    @property
    def pool_key(self) -> str:
        """Identity of the pool used for snapshot caching."""
        return self.pool_id or self.contract


class PriceFeed(BaseModel):
    """Trusted external USD price source for a base token."""

    model_config = ConfigDict(frozen=True)

    token: str
    feed: str | None = Field(
        default=None, description="Chainlink-style aggregator address"
    )
    fixed_rate: Decimal | None = Field(
        default=None, description="Constant rate, for tokens pinned without a feed"
    )

    @field_validator("token", "feed", mode="before")
    @classmethod
    def lowercase_hex(cls, v):
        if v is None:
            return v
        return normalize_address(v)

    @model_validator(mode="after")
    def feed_or_fixed(self):
        if self.feed is None and self.fixed_rate is None:
            raise ValueError(f"Price feed for {self.token} needs either feed or fixed_rate")
        return self


class RateOverride(BaseModel):
    """Fixed rate applied to a token from ``from_block`` onwards (e.g. after a depeg)."""

    model_config = ConfigDict(frozen=True)

    token: str
    from_block: int = Field(ge=0)
    rate: Decimal = Field(ge=0)

    @field_validator("token", mode="before")
    @classmethod
    def lowercase_hex(cls, v):
        return normalize_address(v)
