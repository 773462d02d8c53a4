"""
Protocol-owned liquidity.

For every owned pool active at a block:

    unit rate    = pool total value / pool token supply
    multiplier   = non-OHM value / total value
    POL record   = wallet pool-token balance at the unit rate, one per wallet
    OHM supply   = OHM in pool × wallet pool-token balance / pool token supply

The multiplier makes ``value_excluding_ohm`` of a POL record equal to the
wallet's share of the pool's non-OHM reserves.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal

from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.common.utils.decimals import ZERO, safe_divide
from treasury_valuation.config.registry import ChainRegistry, OwnedLiquidity, Wallet
from treasury_valuation.exceptions import NotYetDeployedError
from treasury_valuation.infrastructure.observability import get_valuation_logger
from treasury_valuation.pricing.resolver import PriceResolver
from treasury_valuation.shared.models import (
    PoolSnapshot,
    TokenCategory,
    TokenRecord,
    TokenSupply,
    TokenSupplyType,
)
from treasury_valuation.valuation.balances import read_wallet_balances
from treasury_valuation.valuation.token_records import TokenRecordBuilder
from treasury_valuation.valuation.token_supply import TokenSupplyBuilder


@dataclass(frozen=True)
class PoolPosition:
    """The treasury's holdings of one owned pool at one block."""

    liquidity: OwnedLiquidity
    snapshot: PoolSnapshot
    holdings: list[tuple[Wallet, Decimal]]

    def share(self, balance: Decimal) -> Decimal:
        """Fraction of the pool represented by ``balance`` pool tokens."""
        return safe_divide(balance, self.snapshot.pool_token_total_supply or ZERO)


class OwnedLiquidityValuation:
    """Produces POL TokenRecords and Liquidity supply deductions."""

    def __init__(
        self,
        registry: ChainRegistry,
        reader: ChainReader,
        resolver: PriceResolver,
        records: TokenRecordBuilder,
        supplies: TokenSupplyBuilder,
    ):
        self.registry = registry
        self.reader = reader
        self.resolver = resolver
        self.records = records
        self.supplies = supplies
        self.log = get_valuation_logger("owned-liquidity")

    async def positions(self, block: int) -> list[PoolPosition]:
        """Owned pools that exist at ``block`` and that a wallet holds tokens of."""
        wallets = self.registry.wallets_at(block)
        if not wallets:
            return []

        results = await asyncio.gather(
            *(
                self._position(liquidity, wallets, block)
                for liquidity in self.registry.owned_liquidity_at(block)
            )
        )
        return [position for position in results if position is not None]

    async def _position(
        self, liquidity: OwnedLiquidity, wallets: tuple[Wallet, ...], block: int
    ) -> PoolPosition | None:
        snapshot = await self.resolver.pools.get_or_create(liquidity.handler, block)
        if snapshot is None:
            return None

        try:
            holdings = await read_wallet_balances(
                self.reader,
                snapshot.pool_token,
                snapshot.pool_token_decimals,
                wallets,
                block,
            )
        except NotYetDeployedError:
            self.log.debug("pool_token_not_deployed", pool=liquidity.name, block=block)
            return None

        if not holdings:
            return None
        return PoolPosition(liquidity=liquidity, snapshot=snapshot, holdings=holdings)

    # ==================== RECORDS ====================

    async def token_records(
        self, block: int, timestamp: int, positions: list[PoolPosition] | None = None
    ) -> list[TokenRecord]:
        if positions is None:
            positions = await self.positions(block)

        per_pool = await asyncio.gather(
            *(self._pool_records(position, block, timestamp) for position in positions)
        )
        return [record for records in per_pool for record in records]

    async def _pool_records(
        self, position: PoolPosition, block: int, timestamp: int
    ) -> list[TokenRecord]:
        handler = position.liquidity.handler
        snapshot = position.snapshot

        total_value, non_ohm_value = await asyncio.gather(
            self.resolver.total_value(handler, block),
            self.resolver.total_value(
                handler, block, excluded_tokens=self.registry.protocol_tokens
            ),
        )
        unit_rate = safe_divide(total_value, snapshot.pool_token_total_supply)
        multiplier = safe_divide(non_ohm_value, total_value)

        self.log.debug(
            "pool_valued",
            pool=position.liquidity.name,
            block=block,
            total_value=str(total_value),
            non_ohm_value=str(non_ohm_value),
            unit_rate=str(unit_rate),
        )

        definition = self.registry.token(snapshot.pool_token)
        is_liquid = definition.is_liquid if definition is not None else True

        return [
            await self.records.build(
                snapshot.pool_token,
                wallet,
                balance,
                block,
                timestamp,
                rate=unit_rate,
                multiplier=multiplier,
                category=TokenCategory.PROTOCOL_OWNED_LIQUIDITY,
                is_liquid=is_liquid,
            )
            for wallet, balance in position.holdings
        ]

    # ==================== SUPPLY ====================

    async def supply_records(
        self, block: int, timestamp: int, positions: list[PoolPosition] | None = None
    ) -> list[TokenSupply]:
        if positions is None:
            positions = await self.positions(block)

        ohm = self.registry.ohm_token
        supplies: list[TokenSupply] = []
        for position in positions:
            ohm_in_pool = position.snapshot.balance_of(ohm)
            if ohm_in_pool == ZERO:
                continue

            for wallet, balance in position.holdings:
                supplies.append(
                    self.supplies.build(
                        ohm,
                        TokenSupplyType.LIQUIDITY,
                        ohm_in_pool * position.share(balance),
                        -1,
                        block,
                        timestamp,
                        source=wallet.name,
                        source_address=wallet.address,
                        pool=position.liquidity.name,
                        pool_address=position.snapshot.pool_token,
                    )
                )
        return supplies
