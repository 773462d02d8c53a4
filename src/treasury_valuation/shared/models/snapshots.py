"""Block-keyed snapshots of on-chain state."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from treasury_valuation.common.utils.addresses import normalize_address


class ERC20Snapshot(BaseModel):
    """Decimals and total supply of an ERC20 token at a block."""

    model_config = ConfigDict(frozen=True)

    address: str
    block: int
    decimals: int = Field(ge=0)
    total_supply: Decimal


class PoolSnapshot(BaseModel):
    """
    Token set and balances of a liquidity pool at a block.

    Balances are decimal-adjusted. ``weights`` is only present for weighted
    pools, ``sqrt_price_x96`` only for concentrated-liquidity pools and
    ``assets_per_share`` only for ERC-4626 vaults.
    """

    model_config = ConfigDict(frozen=True)

    pool: str
    block: int
    tokens: tuple[str, ...]
    balances: tuple[Decimal, ...]
    token_decimals: tuple[int, ...]
    weights: tuple[Decimal, ...] | None = Field(default=None)
    pool_token: str | None = Field(default=None)
    pool_token_decimals: int | None = Field(default=None)
    pool_token_total_supply: Decimal | None = Field(default=None)
    sqrt_price_x96: int | None = Field(default=None)
    assets_per_share: Decimal | None = Field(default=None)

    @model_validator(mode="after")
    def aligned_lengths(self):
        lengths = {len(self.tokens), len(self.balances), len(self.token_decimals)}
        if self.weights is not None:
            lengths.add(len(self.weights))
        if len(lengths) != 1:
            raise ValueError(
                f"Pool snapshot {self.pool} at block {self.block} has misaligned token arrays"
            )
        return self

    def index_of(self, token: str) -> int | None:
        """Position of ``token`` in the pool, or None if it is not a member."""
        needle = normalize_address(token)
        for index, candidate in enumerate(self.tokens):
            if candidate == needle:
                return index
        return None

    def balance_of(self, token: str) -> Decimal:
        index = self.index_of(token)
        if index is None:
            return Decimal(0)
        return self.balances[index]


class PriceSnapshot(BaseModel):
    """Resolved USD rate of a token at a block."""

    model_config = ConfigDict(frozen=True)

    token: str
    block: int
    rate: Decimal
