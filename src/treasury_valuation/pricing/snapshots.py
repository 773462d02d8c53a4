"""
Snapshot caches.

Typed wrappers around ``BlockKeyedCache`` for the three kinds of block-keyed
state the engine memoises: ERC20 token metadata, liquidity pool state and
resolved USD rates.
"""

from collections.abc import Awaitable, Callable, Mapping
from decimal import Decimal
from typing import Protocol

from treasury_valuation.chain.contracts import read_erc20_snapshot
from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.exceptions import NotYetDeployedError
from treasury_valuation.infrastructure.observability import get_pricing_logger
from treasury_valuation.pricing.cache import BlockKeyedCache
from treasury_valuation.shared.models import (
    ERC20Snapshot,
    PairHandler,
    PoolSnapshot,
    PoolType,
    PriceSnapshot,
)


class SnapshotReader(Protocol):
    """Reads the state of one kind of pool at a block."""

    async def read_snapshot(self, handler: PairHandler, block: int) -> PoolSnapshot: ...


class ERC20SnapshotCache:
    """Decimals and total supply per (token, block)."""

    def __init__(self, reader: ChainReader, retention_blocks: int = 0):
        self.reader = reader
        self.cache: BlockKeyedCache[ERC20Snapshot] = BlockKeyedCache(
            "erc20", retention_blocks
        )

    async def get_or_create(self, token: str, block: int) -> ERC20Snapshot:
        """
        Raises:
            NotYetDeployedError: if the token does not exist at ``block``
        """
        address = normalize_address(token)
        return await self.cache.get_or_create(
            address, block, lambda: read_erc20_snapshot(self.reader, address, block)
        )

    async def decimals(self, token: str, block: int) -> int:
        return (await self.get_or_create(token, block)).decimals

    def prune(self, current_block: int) -> int:
        return self.cache.prune(current_block)


class PoolSnapshotCache:
    """
    Pool state per (pool key, block).

    A pool that reverts at ``block`` is cached as ``None``: it is not an
    error, it simply did not exist yet.
    """

    def __init__(
        self,
        readers: Mapping[PoolType, SnapshotReader],
        retention_blocks: int = 0,
    ):
        self.readers = readers
        self.cache: BlockKeyedCache[PoolSnapshot | None] = BlockKeyedCache(
            "pool", retention_blocks
        )
        self.log = get_pricing_logger("pool-snapshot-cache")

    async def get_or_create(self, handler: PairHandler, block: int) -> PoolSnapshot | None:
        async def read() -> PoolSnapshot | None:
            try:
                return await self.readers[handler.pool_type].read_snapshot(handler, block)
            except NotYetDeployedError as e:
                self.log.debug(
                    "pool_not_deployed",
                    pool=handler.pool_key,
                    pool_type=handler.pool_type.value,
                    block=block,
                    function=e.function,
                )
                return None

        return await self.cache.get_or_create(handler.pool_key, block, read)

    def prune(self, current_block: int) -> int:
        return self.cache.prune(current_block)


class PriceSnapshotCache:
    """Resolved USD rate per (token, block)."""

    def __init__(self, retention_blocks: int = 0):
        self.cache: BlockKeyedCache[PriceSnapshot] = BlockKeyedCache(
            "price", retention_blocks
        )

    async def get_or_create(
        self,
        token: str,
        block: int,
        compute_rate: Callable[[], Awaitable[Decimal]],
    ) -> PriceSnapshot:
        address = normalize_address(token)

        async def create() -> PriceSnapshot:
            return PriceSnapshot(token=address, block=block, rate=await compute_rate())

        return await self.cache.get_or_create(address, block, create)

    def get(self, token: str, block: int) -> PriceSnapshot | None:
        return self.cache.get(normalize_address(token), block)

    def put(self, token: str, block: int, rate: Decimal) -> PriceSnapshot:
        address = normalize_address(token)
        return self.cache.put(
            address, block, PriceSnapshot(token=address, block=block, rate=rate)
        )

    def prune(self, current_block: int) -> int:
        return self.cache.prune(current_block)
