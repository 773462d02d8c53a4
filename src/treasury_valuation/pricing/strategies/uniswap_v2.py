"""Constant-product pools (Uniswap V2 and forks such as FraxSwap)."""

import asyncio
from decimal import Decimal

from treasury_valuation.chain.contracts import read_address
from treasury_valuation.common.utils.decimals import ZERO, to_decimal
from treasury_valuation.exceptions import PricingUnavailable
from treasury_valuation.pricing.strategies.base import PricingContext, PricingStrategy
from treasury_valuation.shared.models import PairHandler, PoolSnapshot, PoolType


class UniswapV2Strategy(PricingStrategy):
    """
    rate(token) = reserve(counter) / reserve(token) × rate(counter)

    Both reserves are decimal-adjusted before the ratio is taken.
    """

    pool_type = PoolType.UNISWAP_V2

    async def read_snapshot(self, handler: PairHandler, block: int) -> PoolSnapshot:
        pair = handler.contract
        token0, token1 = await asyncio.gather(
            read_address(self.reader, pair, "token0", block),
            read_address(self.reader, pair, "token1", block),
        )
        reserves, erc20_0, erc20_1, pool_token = await asyncio.gather(
            self.reader.call(pair, "getReserves", (), block),
            self.erc20.get_or_create(token0, block),
            self.erc20.get_or_create(token1, block),
            self.erc20.get_or_create(pair, block),
        )

        return PoolSnapshot(
            pool=handler.pool_key,
            block=block,
            tokens=(token0, token1),
            balances=(
                to_decimal(reserves[0], erc20_0.decimals),
                to_decimal(reserves[1], erc20_1.decimals),
            ),
            token_decimals=(erc20_0.decimals, erc20_1.decimals),
            pool_token=pair,
            pool_token_decimals=pool_token.decimals,
            pool_token_total_supply=pool_token.total_supply,
        )

    async def price(self, token: str, handler: PairHandler, ctx: PricingContext) -> Decimal:
        snapshot = await ctx.pool(handler)
        index = self._token_index(snapshot, token, handler)

        token_reserve = snapshot.balances[index]
        if token_reserve == ZERO:
            raise PricingUnavailable(
                f"Pool {handler.pool_key} holds no {token} at block {ctx.block}",
                token=token,
                block=ctx.block,
            )

        counter_index, counter_rate = await self._counter_rate(snapshot, index, ctx)
        rate = snapshot.balances[counter_index] / token_reserve * counter_rate

        self.log.debug(
            "rate_derived",
            pool=handler.pool_key,
            token=token,
            counter_token=snapshot.tokens[counter_index],
            block=ctx.block,
            rate=str(rate),
        )
        return rate


class FraxSwapStrategy(UniswapV2Strategy):
    """FraxSwap pairs expose the Uniswap V2 interface."""

    pool_type = PoolType.FRAXSWAP
