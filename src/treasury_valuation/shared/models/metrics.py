"""Per-block protocol metrics derived from the block's records."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProtocolMetric(BaseModel):
    """
    Scalar metrics for one block.

    Every field is computed from the TokenRecord / TokenSupply arrays of the
    same block plus the resolved OHM rate and staking index.
    """

    model_config = ConfigDict(frozen=True)

    date: str
    block: int = Field(ge=0)
    timestamp: int = Field(ge=0)

    # ========== PRICES ==========
    ohm_price: Decimal
    gohm_price: Decimal
    current_index: Decimal

    # ========== SUPPLY ==========
    ohm_total_supply: Decimal
    ohm_circulating_supply: Decimal
    ohm_floating_supply: Decimal
    ohm_backed_supply: Decimal
    gohm_synthetic_supply: Decimal

    # ========== TREASURY ==========
    market_cap: Decimal
    treasury_market_value: Decimal
    treasury_liquid_backing: Decimal
    treasury_liquid_backing_per_ohm_floating: Decimal
    treasury_liquid_backing_per_gohm_synthetic: Decimal

    @property
    def record_id(self) -> str:
        # YYYY-MM-DD/<block>
        return f"{self.date}/{self.block}"
