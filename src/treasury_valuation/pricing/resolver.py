"""
Price Resolver

Resolves the USD rate of a token at a block. Dispatch order:

    0. registry rate override in effect at the block
    1. native-asset sentinel -> wrapped native token
    2. base token -> trusted price feed (no recursion)
    3. OHM -> deepest registered OHM pair by non-OHM value
    4. gOHM -> OHM rate × staking index
    5. Stable category -> 1.0 (when the peg assumption is enabled)
    6. pair handler lookup, PricingUnavailable if there is none
    7. pool-type strategy, recursing into the counter-token
    8. ERC4626 shares are a strategy like any other pool type

Results are memoised per (token, block). Resolution depth is bounded and a
token that routes back to itself fails instead of recursing.

A memoised rate must not depend on which caller asked first. OHM is
therefore always priced with a fresh depth budget and route, and pool
valuations resolve their members as top-level tokens.
"""

import asyncio
from collections.abc import Iterable, Mapping
from decimal import Decimal
from functools import partial

from treasury_valuation.chain.contracts import read_feed_rate, read_index
from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.common.utils.addresses import addresses_equal, normalize_address
from treasury_valuation.common.utils.decimals import ONE, ZERO
from treasury_valuation.config.registry import ChainRegistry
from treasury_valuation.config.state import PricingConfig
from treasury_valuation.exceptions import PricingUnavailable, ResolutionDepthExceeded
from treasury_valuation.infrastructure.observability import get_pricing_logger
from treasury_valuation.pricing.cache import BlockKeyedCache
from treasury_valuation.pricing.snapshots import (
    ERC20SnapshotCache,
    PoolSnapshotCache,
    PriceSnapshotCache,
)
from treasury_valuation.pricing.strategies import PricingContext, PricingStrategy, build_strategies
from treasury_valuation.shared.models import PairHandler, PoolType, PriceFeed, TokenCategory


class PriceResolver:
    """Recursive, memoised USD price resolution for one chain."""

    def __init__(
        self,
        registry: ChainRegistry,
        reader: ChainReader,
        config: PricingConfig | None = None,
        retention_blocks: int = 0,
        strategies: Mapping[PoolType, PricingStrategy] | None = None,
    ):
        self.registry = registry
        self.reader = reader
        self.config = config or PricingConfig()

        self.erc20 = ERC20SnapshotCache(reader, retention_blocks)
        self.strategies = strategies or build_strategies(reader, self.erc20)
        self.pools = PoolSnapshotCache(self.strategies, retention_blocks)
        self.prices = PriceSnapshotCache(retention_blocks)
        self._feeds: BlockKeyedCache[Decimal] = BlockKeyedCache("feed", retention_blocks)
        self._index: BlockKeyedCache[Decimal] = BlockKeyedCache("index", retention_blocks)

        self.base_tokens = frozenset(feed.token for feed in registry.price_feeds)
        self.log = get_pricing_logger("price-resolver", chain=registry.blockchain.value)

    # ==================== PUBLIC API ====================

    async def resolve(self, token: str, block: int) -> Decimal:
        """
        USD rate of ``token`` at ``block``.

        Raises:
            PricingUnavailable: if no route can price the token
        """
        address = normalize_address(token)
        snapshot = await self.prices.get_or_create(
            address, block, partial(self._compute, address, block, 0, ())
        )
        return snapshot.rate

    async def current_index(self, block: int) -> Decimal:
        """Staking index (OHM per gOHM) at ``block``."""
        contract = self.registry.index_contract
        return await self._index.get_or_create(
            contract,
            block,
            partial(read_index, self.reader, contract, self.registry.index_decimals, block),
        )

    async def total_value(
        self, handler: PairHandler, block: int, excluded_tokens: Iterable[str] = ()
    ) -> Decimal:
        """USD value of a pool's reserves, ignoring ``excluded_tokens``."""
        strategy = self.strategies[handler.pool_type]
        return await strategy.total_value(handler, self._pool_context(block), excluded_tokens)

    async def unit_rate(self, handler: PairHandler, block: int) -> Decimal:
        """USD value of one pool token."""
        strategy = self.strategies[handler.pool_type]
        return await strategy.unit_rate(handler, self._pool_context(block))

    def prune(self, current_block: int) -> int:
        """Drop memoised state outside the retention window."""
        return sum(
            cache.prune(current_block)
            for cache in (self.erc20, self.pools, self.prices, self._feeds, self._index)
        )

    # ==================== RECURSION ====================

    def _context(self, block: int, depth: int, path: tuple[str, ...]) -> PricingContext:
        return PricingContext(
            block=block,
            pools=self.pools,
            resolve=partial(self._resolve_nested, block=block, depth=depth + 1, path=path),
            base_tokens=self.base_tokens,
        )

    def _pool_context(self, block: int) -> PricingContext:
        return PricingContext(
            block=block,
            pools=self.pools,
            resolve=partial(self.resolve, block=block),
            base_tokens=self.base_tokens,
        )

    async def _resolve_nested(
        self, token: str, block: int, depth: int, path: tuple[str, ...]
    ) -> Decimal:
        """
        Resolve a token needed by another resolution.

        Nested resolutions reuse finished results but never wait on another
        task's in-flight resolution, so two routes that depend on each other
        fail on the cycle check instead of waiting forever.
        """
        address = normalize_address(token)

        cached = self.prices.get(address, block)
        if cached is not None:
            return cached.rate

        if address in path:
            raise PricingUnavailable(
                f"Circular price route for {address}: {' -> '.join(path + (address,))}",
                token=address,
                block=block,
            )

        if depth > self.config.max_resolution_depth:
            raise ResolutionDepthExceeded(
                f"Price route for {address} exceeds depth {self.config.max_resolution_depth}: "
                f"{' -> '.join(path + (address,))}",
                token=address,
                block=block,
            )

        rate = await self._compute(address, block, depth, path)
        return self.prices.put(address, block, rate).rate

    async def _compute(
        self, token: str, block: int, depth: int, path: tuple[str, ...]
    ) -> Decimal:
        registry = self.registry
        route = path + (token,)

        # 0. Block-ranged override (collapsed pegs)
        override = registry.rate_override(token, block)
        if override is not None:
            self.log.debug("rate_overridden", token=token, block=block, rate=str(override.rate))
            return override.rate

        # 1. Native asset sentinel
        if addresses_equal(token, registry.native_token):
            return await self._resolve_nested(
                registry.wrapped_native_token, block, depth, route
            )

        # 2. Base token
        feed = registry.price_feed(token)
        if feed is not None:
            return await self._feed_rate(feed, block)

        # 3. Protocol base asset
        if registry.is_ohm(token):
            return await self._resolve_ohm(block)

        # 4. Rebasing wrapper
        if registry.is_gohm(token):
            ohm_rate, index = await asyncio.gather(
                self._resolve_nested(registry.ohm_token, block, depth, route),
                self.current_index(block),
            )
            return ohm_rate * index

        # 5. Stablecoin peg
        definition = registry.token(token)
        if (
            self.config.assume_stable_peg
            and definition is not None
            and definition.category == TokenCategory.STABLE
        ):
            return ONE

        # 6. Pair handler
        handler = registry.pair_handler(token)
        if handler is None:
            raise PricingUnavailable(
                f"No price route for token {token} at block {block}", token=token, block=block
            )

        # 7-8. Pool-type strategy
        rate = await self.strategies[handler.pool_type].price(
            token, handler, self._context(block, depth, route)
        )
        self.log.debug(
            "rate_resolved",
            token=token,
            block=block,
            pool=handler.pool_key,
            pool_type=handler.pool_type.value,
            rate=str(rate),
        )
        return rate

    # ==================== ROUTES ====================

    async def _feed_rate(self, feed: PriceFeed, block: int) -> Decimal:
        if feed.fixed_rate is not None:
            return feed.fixed_rate
        return await self._feeds.get_or_create(
            feed.feed, block, partial(read_feed_rate, self.reader, feed.feed, block)
        )

    async def _resolve_ohm(self, block: int) -> Decimal:
        """
        Price OHM from the registered pair with the largest non-OHM value.

        Starts from depth 0 whoever asked, so the selected pair is the same
        for a direct lookup and for OHM reached as a counter-token.
        """
        ctx = self._context(block, 0, (self.registry.ohm_token,))
        pairs = self.registry.ohm_price_pairs

        values = await asyncio.gather(
            *(self._non_ohm_value(handler, ctx) for handler in pairs)
        )

        best: tuple[PairHandler, Decimal] | None = None
        for handler, value in zip(pairs, values):
            if value <= ZERO:
                continue
            if best is None or value > best[1]:
                best = (handler, value)

        if best is None:
            raise PricingUnavailable(
                f"No OHM price pair has liquidity at block {block}",
                token=self.registry.ohm_token,
                block=block,
            )

        handler, value = best
        self.log.debug(
            "ohm_pair_selected",
            block=block,
            pool=handler.pool_key,
            pool_type=handler.pool_type.value,
            non_ohm_value=str(value),
        )
        return await self.strategies[handler.pool_type].price(
            self.registry.ohm_token, handler, ctx
        )

    async def _non_ohm_value(self, handler: PairHandler, ctx: PricingContext) -> Decimal:
        strategy = self.strategies[handler.pool_type]
        try:
            return await strategy.total_value(
                handler, ctx, excluded_tokens=self.registry.protocol_tokens
            )
        except ResolutionDepthExceeded:
            raise
        except PricingUnavailable as e:
            self.log.warning(
                "ohm_pair_unpriceable",
                block=ctx.block,
                pool=handler.pool_key,
                reason=str(e),
            )
            return ZERO
