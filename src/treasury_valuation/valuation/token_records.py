"""
TokenRecord Builder

The only place TokenRecords are created. Classification comes from the
registry, the rate from the PriceResolver unless the caller already knows
it (POL unit rates), and the liquid backing multiplier is resolved as:

    caller override  >  registry definition  >  1
"""

from decimal import Decimal

from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.common.utils.date_utils import to_iso_date
from treasury_valuation.common.utils.decimals import ONE
from treasury_valuation.config.registry import ChainRegistry, Wallet
from treasury_valuation.pricing.resolver import PriceResolver
from treasury_valuation.shared.models import TokenCategory, TokenRecord


class TokenRecordBuilder:
    """Builds TokenRecords for one chain."""

    def __init__(self, registry: ChainRegistry, resolver: PriceResolver):
        self.registry = registry
        self.resolver = resolver

    async def build(
        self,
        token: str,
        source: Wallet,
        balance: Decimal,
        block: int,
        timestamp: int,
        rate: Decimal | None = None,
        multiplier: Decimal | None = None,
        category: TokenCategory | None = None,
        is_liquid: bool | None = None,
    ) -> TokenRecord:
        """
        Value ``balance`` of ``token`` held by ``source`` at ``block``.

        Args:
            token: Token address
            source: Wallet (or other named holder) the balance belongs to
            balance: Decimal-adjusted balance
            block: Block number
            timestamp: Block timestamp in Unix seconds
            rate: USD rate, resolved when omitted
            multiplier: Liquid backing multiplier override; the only way to
                pass a value above 1
            category: Category override (POL records)
            is_liquid: Liquidity override

        Raises:
            PricingUnavailable: if ``rate`` is omitted and cannot be resolved
        """
        address = normalize_address(token)
        if rate is None:
            rate = await self.resolver.resolve(address, block)
        return self.assemble(
            address,
            source,
            balance,
            rate,
            block,
            timestamp,
            multiplier=multiplier,
            category=category,
            is_liquid=is_liquid,
        )

    def assemble(
        self,
        token: str,
        source: Wallet,
        balance: Decimal,
        rate: Decimal,
        block: int,
        timestamp: int,
        multiplier: Decimal | None = None,
        category: TokenCategory | None = None,
        is_liquid: bool | None = None,
    ) -> TokenRecord:
        """Build a record from an already known rate."""
        address = normalize_address(token)
        definition = self.registry.token(address)

        if definition is None:
            name = address
            default_category = TokenCategory.UNKNOWN
            default_liquid = True
            is_bluechip = False
            default_multiplier = ONE
        else:
            name = definition.name
            default_category = definition.category
            default_liquid = definition.is_liquid
            is_bluechip = definition.is_volatile_bluechip
            default_multiplier = (
                definition.liquid_backing_multiplier
                if definition.liquid_backing_multiplier is not None
                else ONE
            )

        return TokenRecord(
            date=to_iso_date(timestamp),
            block=block,
            source=source.name,
            token=name,
            token_address=address,
            source_address=source.address,
            timestamp=timestamp,
            rate=rate,
            balance=balance,
            multiplier=multiplier if multiplier is not None else default_multiplier,
            category=category if category is not None else default_category,
            is_liquid=is_liquid if is_liquid is not None else default_liquid,
            is_bluechip=is_bluechip,
            blockchain=self.registry.blockchain,
        )
