"""
Accounting records produced for every indexed block.

``TokenRecord`` values a balance of an asset held by a source (wallet,
allocator, pool position). ``TokenSupply`` records a signed adjustment to
the protocol token's supply.

Value fields are computed properties: they are serialised with the record
but can never be passed in, so they cannot drift from balance and rate.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from treasury_valuation.shared.models.enums import (
    Blockchain,
    TokenCategory,
    TokenSupplyType,
)


class TokenRecord(BaseModel):
    """Valuation of one token balance in one source at one block."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ========== IDENTITY ==========
    date: str = Field(..., description="UTC date of the block, YYYY-MM-DD")
    block: int = Field(ge=0)
    source: str
    token: str

    # ========== ADDRESSES ==========
    token_address: str
    source_address: str

    # ========== VALUATION INPUTS ==========
    timestamp: int = Field(ge=0)
    rate: Decimal
    balance: Decimal
    multiplier: Decimal = Field(ge=0)

    # ========== CLASSIFICATION ==========
    category: TokenCategory
    is_liquid: bool
    is_bluechip: bool
    blockchain: Blockchain

    # ==================== DERIVED ====================

    @computed_field
    @property
    def value(self) -> Decimal:
        """balance × rate"""
        return self.balance * self.rate

    @computed_field
    @property
    def value_excluding_ohm(self) -> Decimal:
        """balance × rate × multiplier"""
        return self.balance * self.rate * self.multiplier

    @property
    def record_id(self) -> str:
        # YYYY-MM-DD/<block>/<source>/<token>
        return f"{self.date}/{self.block}/{self.source}/{self.token}"


class TokenSupply(BaseModel):
    """Signed adjustment to the protocol token supply at one block."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ========== IDENTITY ==========
    date: str
    block: int = Field(ge=0)
    token: str
    type: TokenSupplyType
    pool: str | None = Field(default=None)
    source: str | None = Field(default=None)

    # ========== ADDRESSES ==========
    token_address: str
    pool_address: str | None = Field(default=None)
    source_address: str | None = Field(default=None)

    timestamp: int = Field(ge=0)
    balance: Decimal
    sign: int

    @field_validator("sign")
    @classmethod
    def unit_sign(cls, v: int) -> int:
        if v not in (1, -1):
            raise ValueError(f"sign must be +1 or -1, got {v}")
        return v

    @computed_field
    @property
    def supply_balance(self) -> Decimal:
        """balance × sign"""
        return self.balance * self.sign

    @property
    def record_id(self) -> str:
        # YYYY-MM-DD/<block>/<token>/<type>/<pool>/<source>
        pool = self.pool if self.pool is not None else "Unknown Pool"
        source = self.source if self.source is not None else ""
        return f"{self.date}/{self.block}/{self.token}/{self.type.value}/{pool}/{source}"
