"""TokenSupply Builder."""

from decimal import Decimal

from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.common.utils.date_utils import to_iso_date
from treasury_valuation.config.registry import ChainRegistry
from treasury_valuation.shared.models import TokenSupply, TokenSupplyType


class TokenSupplyBuilder:
    """Builds signed supply adjustments for the chain's protocol tokens."""

    def __init__(self, registry: ChainRegistry):
        self.registry = registry

    def build(
        self,
        token: str,
        type: TokenSupplyType,
        balance: Decimal,
        sign: int,
        block: int,
        timestamp: int,
        source: str | None = None,
        source_address: str | None = None,
        pool: str | None = None,
        pool_address: str | None = None,
    ) -> TokenSupply:
        address = normalize_address(token)
        definition = self.registry.token(address)
        name = definition.name if definition is not None else address

        return TokenSupply(
            date=to_iso_date(timestamp),
            block=block,
            token=name,
            type=type,
            pool=pool,
            source=source,
            token_address=address,
            pool_address=normalize_address(pool_address) if pool_address else None,
            source_address=normalize_address(source_address) if source_address else None,
            timestamp=timestamp,
            balance=balance,
            sign=sign,
        )
