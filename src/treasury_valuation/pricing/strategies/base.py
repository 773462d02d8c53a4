"""
Pricing strategy abstraction.

One strategy per pool type. A strategy knows how to read its pool's state
into a PoolSnapshot and how to derive, from that snapshot:

    price(token)             USD rate of one pool member
    total_value(excluded)    USD value of the pool's reserves
    unit_rate()              USD value of one pool token

Rates of the *other* tokens in a pool are never computed here: they are
requested through ``PricingContext.resolve``, which routes back into the
PriceResolver.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.common.utils.decimals import ZERO, safe_divide
from treasury_valuation.exceptions import (
    ConfigurationError,
    PricingUnavailable,
    ResolutionDepthExceeded,
)
from treasury_valuation.infrastructure.observability import get_pricing_logger
from treasury_valuation.pricing.snapshots import ERC20SnapshotCache, PoolSnapshotCache
from treasury_valuation.shared.models import PairHandler, PoolSnapshot, PoolType


@dataclass(frozen=True)
class PricingContext:
    """Everything a strategy needs to price within one block."""

    block: int
    pools: PoolSnapshotCache
    resolve: Callable[[str], Awaitable[Decimal]]
    base_tokens: frozenset[str] = frozenset()

    async def pool(self, handler: PairHandler) -> PoolSnapshot:
        """Snapshot of a pool that must exist to price through it."""
        snapshot = await self.pools.get_or_create(handler, self.block)
        if snapshot is None:
            raise PricingUnavailable(
                f"Pool {handler.pool_key} ({handler.pool_type.value}) does not exist "
                f"at block {self.block}",
                block=self.block,
            )
        return snapshot


class PricingStrategy(ABC):
    """Base class for pool-type pricing strategies."""

    pool_type: ClassVar[PoolType]

    def __init__(self, reader: ChainReader, erc20: ERC20SnapshotCache):
        self.reader = reader
        self.erc20 = erc20
        self.log = get_pricing_logger(f"{self.pool_type.value.lower()}-strategy")

    # ==================== ABSTRACT ====================

    @abstractmethod
    async def read_snapshot(self, handler: PairHandler, block: int) -> PoolSnapshot:
        """
        Read the pool's state at ``block``.

        Raises:
            NotYetDeployedError: if the pool does not exist at ``block``
        """

    @abstractmethod
    async def price(self, token: str, handler: PairHandler, ctx: PricingContext) -> Decimal:
        """USD rate of ``token`` derived from the pool."""

    # ==================== VALUATION ====================

    async def total_value(
        self,
        handler: PairHandler,
        ctx: PricingContext,
        excluded_tokens: Iterable[str] = (),
    ) -> Decimal:
        """
        USD value of the pool's reserves, ignoring ``excluded_tokens``.

        Excluded tokens are not priced at all, so the protocol token can be
        excluded while it is itself being resolved. A pool that does not
        exist at the block is worth zero.
        """
        snapshot = await ctx.pools.get_or_create(handler, ctx.block)
        if snapshot is None:
            return ZERO

        excluded = {normalize_address(token) for token in excluded_tokens}
        included = [
            (token, balance)
            for token, balance in zip(snapshot.tokens, snapshot.balances)
            if token not in excluded and balance != ZERO
        ]
        rates = await asyncio.gather(*(ctx.resolve(token) for token, _ in included))

        return sum(
            (balance * rate for (_, balance), rate in zip(included, rates)), ZERO
        )

    async def unit_rate(self, handler: PairHandler, ctx: PricingContext) -> Decimal:
        """USD value of one pool token: total value / total supply."""
        snapshot = await ctx.pools.get_or_create(handler, ctx.block)
        if snapshot is None:
            return ZERO

        if snapshot.pool_token_total_supply is None:
            raise ConfigurationError(
                f"{self.pool_type.value} pool {handler.pool_key} has no pool token"
            )

        total_value = await self.total_value(handler, ctx)
        return safe_divide(total_value, snapshot.pool_token_total_supply)

    # ==================== HELPERS ====================

    def _token_index(self, snapshot: PoolSnapshot, token: str, handler: PairHandler) -> int:
        index = snapshot.index_of(token)
        if index is None:
            raise ConfigurationError(
                f"Token {token} does not belong to {self.pool_type.value} pool {handler.pool_key}"
            )
        return index

    async def _counter_rate(
        self, snapshot: PoolSnapshot, token_index: int, ctx: PricingContext
    ) -> tuple[int, Decimal]:
        """
        Pick the pool member to price ``token_index`` against.

        Base tokens are tried first. A candidate that cannot be priced (for
        example because it routes back through the token being resolved) is
        skipped; if none can be priced the token is unpriceable. A route that
        runs out of depth is not a property of the candidate and propagates.
        """
        candidates = [
            index
            for index, balance in enumerate(snapshot.balances)
            if index != token_index and balance != ZERO
        ]
        candidates.sort(key=lambda index: snapshot.tokens[index] not in ctx.base_tokens)

        failures: list[str] = []
        for index in candidates:
            counter_token = snapshot.tokens[index]
            try:
                return index, await ctx.resolve(counter_token)
            except ResolutionDepthExceeded:
                raise
            except PricingUnavailable as e:
                self.log.debug(
                    "counter_token_skipped",
                    pool=snapshot.pool,
                    token=counter_token,
                    block=ctx.block,
                    reason=str(e),
                )
                failures.append(counter_token)

        raise PricingUnavailable(
            f"No priceable counter-token for {snapshot.tokens[token_index]} in pool "
            f"{snapshot.pool} at block {ctx.block} (tried: {failures or 'none'})",
            token=snapshot.tokens[token_index],
            block=ctx.block,
        )
