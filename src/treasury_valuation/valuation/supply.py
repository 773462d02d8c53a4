"""
OHM supply records.

Collects every signed adjustment that the supply tiers are summed from:

    Total Supply        OHM totalSupply()                          +1
    Treasury            OHM held in treasury wallets               -1
    Treasury            gOHM held in treasury wallets × index      -1
    Manual Offset       migration offset × index                   -1
    Bonds / BLV / ...   OHM held at configured deduction contracts -1
    Lending             OHM minted into lending markets            -1
    Liquidity           OHM in owned pools, pro-rata               -1
"""

import asyncio
from collections import defaultdict
from decimal import Decimal

from treasury_valuation.chain.contracts import read_balance
from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.common.utils.decimals import ZERO
from treasury_valuation.config.registry import ChainRegistry
from treasury_valuation.exceptions import NotYetDeployedError
from treasury_valuation.infrastructure.observability import get_valuation_logger
from treasury_valuation.pricing.resolver import PriceResolver
from treasury_valuation.shared.models import TokenSupply, TokenSupplyType
from treasury_valuation.valuation.balances import read_wallet_balances
from treasury_valuation.valuation.liquidity import OwnedLiquidityValuation, PoolPosition
from treasury_valuation.valuation.token_supply import TokenSupplyBuilder


class ProtocolSupply:
    """Produces the TokenSupply records of one block."""

    def __init__(
        self,
        registry: ChainRegistry,
        reader: ChainReader,
        resolver: PriceResolver,
        supplies: TokenSupplyBuilder,
        liquidity: OwnedLiquidityValuation,
    ):
        self.registry = registry
        self.reader = reader
        self.resolver = resolver
        self.supplies = supplies
        self.liquidity = liquidity
        self.log = get_valuation_logger("protocol-supply")

    async def supply_records(
        self, block: int, timestamp: int, positions: list[PoolPosition] | None = None
    ) -> list[TokenSupply]:
        groups = await asyncio.gather(
            self.total_supply(block, timestamp),
            self.treasury_ohm(block, timestamp),
            self.treasury_gohm(block, timestamp),
            self.migration_offset(block, timestamp),
            self.deductions(block, timestamp),
            self.lending(block, timestamp),
            self.liquidity.supply_records(block, timestamp, positions),
        )
        return [supply for group in groups for supply in group]

    # ==================== COMPONENTS ====================

    async def total_supply(self, block: int, timestamp: int) -> list[TokenSupply]:
        ohm = self.registry.ohm_token
        try:
            snapshot = await self.resolver.erc20.get_or_create(ohm, block)
        except NotYetDeployedError:
            self.log.warning("ohm_not_deployed", block=block)
            return []

        return [
            self.supplies.build(
                ohm, TokenSupplyType.TOTAL_SUPPLY, snapshot.total_supply, 1, block, timestamp
            )
        ]

    async def treasury_ohm(self, block: int, timestamp: int) -> list[TokenSupply]:
        ohm = self.registry.ohm_token
        holdings = await self._holdings(ohm, block)
        return [
            self.supplies.build(
                ohm,
                TokenSupplyType.TREASURY,
                balance,
                -1,
                block,
                timestamp,
                source=wallet.name,
                source_address=wallet.address,
            )
            for wallet, balance in holdings
        ]

    async def treasury_gohm(self, block: int, timestamp: int) -> list[TokenSupply]:
        """gOHM in treasury wallets, expressed in OHM."""
        gohm = self.registry.gohm_token
        if gohm is None or block < self.registry.gohm_indexing_block:
            return []

        holdings = await self._holdings(gohm, block)
        if not holdings:
            return []

        index = await self.resolver.current_index(block)
        return [
            self.supplies.build(
                gohm,
                TokenSupplyType.TREASURY,
                balance * index,
                -1,
                block,
                timestamp,
                source=wallet.name,
                source_address=wallet.address,
            )
            for wallet, balance in holdings
        ]

    async def migration_offset(self, block: int, timestamp: int) -> list[TokenSupply]:
        offset = self.registry.migration_offset
        if offset is None or block < offset.from_block:
            return []

        index = await self.resolver.current_index(block)
        return [
            self.supplies.build(
                self.registry.ohm_token,
                TokenSupplyType.OFFSET,
                offset.amount * index,
                -1,
                block,
                timestamp,
                source=offset.name,
                source_address=offset.address,
            )
        ]

    async def deductions(self, block: int, timestamp: int) -> list[TokenSupply]:
        """OHM parked at bond tellers, vaults and similar contracts."""
        ohm = self.registry.ohm_token
        active = [d for d in self.registry.supply_deductions if d.active_at(block)]
        if not active:
            return []

        try:
            decimals = await self.resolver.erc20.decimals(ohm, block)
        except NotYetDeployedError:
            return []

        async def balance_of(address: str) -> Decimal:
            try:
                return await read_balance(self.reader, ohm, address, decimals, block)
            except NotYetDeployedError:
                return ZERO

        balances = await asyncio.gather(*(balance_of(d.address) for d in active))
        return [
            self.supplies.build(
                ohm,
                deduction.type,
                balance,
                -1,
                block,
                timestamp,
                source=deduction.name,
                source_address=deduction.address,
                pool=deduction.pool,
            )
            for deduction, balance in zip(active, balances)
            if balance != ZERO
        ]

    async def lending(self, block: int, timestamp: int) -> list[TokenSupply]:
        """Cumulative OHM deployed into each lending market so far."""
        deployed: dict[str, Decimal] = defaultdict(lambda: ZERO)
        names: dict[str, str] = {}
        for deployment in self.registry.lending_deployments:
            if deployment.from_block <= block:
                deployed[deployment.address] += deployment.amount
                names.setdefault(deployment.address, deployment.name)

        return [
            self.supplies.build(
                self.registry.ohm_token,
                TokenSupplyType.LENDING,
                amount,
                -1,
                block,
                timestamp,
                source=names[address],
                source_address=address,
            )
            for address, amount in deployed.items()
            if amount != ZERO
        ]

    # ==================== HELPERS ====================

    async def _holdings(self, token: str, block: int):
        wallets = self.registry.wallets_at(block)
        if not wallets:
            return []
        try:
            decimals = await self.resolver.erc20.decimals(token, block)
            return await read_wallet_balances(self.reader, token, decimals, wallets, block)
        except NotYetDeployedError:
            self.log.debug("token_not_deployed", token=token, block=block)
            return []
