"""Weighted pools (Balancer V2)."""

import asyncio
from decimal import Decimal

from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.common.utils.decimals import ZERO, to_decimal
from treasury_valuation.exceptions import NotYetDeployedError, PricingUnavailable
from treasury_valuation.pricing.strategies.base import PricingContext, PricingStrategy
from treasury_valuation.shared.models import PairHandler, PoolSnapshot, PoolType

WEIGHT_DECIMALS = 18


class BalancerStrategy(PricingStrategy):
    """
    rate(dest) = (reserve(base) / weight(base)) / (reserve(dest) / weight(dest)) × rate(base)

    The handler's contract is the Balancer vault; the pool is identified by
    its pool id. Balances come from the vault, weights from the pool.
    """

    pool_type = PoolType.BALANCER

    async def read_snapshot(self, handler: PairHandler, block: int) -> PoolSnapshot:
        vault = handler.contract
        (tokens_raw, balances_raw, _), (pool_address, _) = await asyncio.gather(
            self.reader.call(vault, "getPoolTokens", (handler.pool_id,), block),
            self.reader.call(vault, "getPool", (handler.pool_id,), block),
        )
        tokens = tuple(normalize_address(token) for token in tokens_raw)
        pool_address = normalize_address(pool_address)

        token_snapshots = await asyncio.gather(
            *(self.erc20.get_or_create(token, block) for token in tokens)
        )
        pool_token = await self.erc20.get_or_create(pool_address, block)
        weights = await self._read_weights(pool_address, block)

        return PoolSnapshot(
            pool=handler.pool_key,
            block=block,
            tokens=tokens,
            balances=tuple(
                to_decimal(raw, erc20.decimals)
                for raw, erc20 in zip(balances_raw, token_snapshots)
            ),
            token_decimals=tuple(erc20.decimals for erc20 in token_snapshots),
            weights=weights,
            pool_token=pool_address,
            pool_token_decimals=pool_token.decimals,
            pool_token_total_supply=pool_token.total_supply,
        )

    async def _read_weights(self, pool_address: str, block: int) -> tuple[Decimal, ...] | None:
        # Stable and composable pools have no weights
        try:
            raw = await self.reader.call(pool_address, "getNormalizedWeights", (), block)
        except NotYetDeployedError:
            return None
        return tuple(to_decimal(weight, WEIGHT_DECIMALS) for weight in raw)

    async def price(self, token: str, handler: PairHandler, ctx: PricingContext) -> Decimal:
        snapshot = await ctx.pool(handler)
        if snapshot.weights is None:
            raise PricingUnavailable(
                f"Balancer pool {handler.pool_key} is not a weighted pool",
                token=token,
                block=ctx.block,
            )

        index = self._token_index(snapshot, token, handler)
        dest_reserve = snapshot.balances[index]
        dest_weight = snapshot.weights[index]
        if dest_reserve == ZERO or dest_weight == ZERO:
            raise PricingUnavailable(
                f"Pool {handler.pool_key} holds no {token} at block {ctx.block}",
                token=token,
                block=ctx.block,
            )

        base_index, base_rate = await self._counter_rate(snapshot, index, ctx)
        base_reserve = snapshot.balances[base_index]
        base_weight = snapshot.weights[base_index]

        rate = (base_reserve / base_weight) / (dest_reserve / dest_weight) * base_rate

        self.log.debug(
            "rate_derived",
            pool=handler.pool_key,
            token=token,
            counter_token=snapshot.tokens[base_index],
            block=ctx.block,
            rate=str(rate),
        )
        return rate
