"""Concentrated-liquidity pools (Uniswap V3)."""

import asyncio
from decimal import Decimal, localcontext

from treasury_valuation.chain.contracts import read_address, read_balance
from treasury_valuation.common.utils.decimals import ONE, VALUATION_PRECISION
from treasury_valuation.exceptions import ConfigurationError, PricingUnavailable
from treasury_valuation.pricing.strategies.base import PricingContext, PricingStrategy
from treasury_valuation.shared.models import PairHandler, PoolSnapshot, PoolType

Q192 = Decimal(2**192)


class UniswapV3Strategy(PricingStrategy):
    """
    Spot price from ``slot0().sqrtPriceX96``.

    sqrtPriceX96² / 2^192 is the raw amount of token1 per raw token0. It is
    inverted when the token being priced is token1, scaled by the decimal
    difference of the two tokens and multiplied by the counter-token's rate.
    """

    pool_type = PoolType.UNISWAP_V3

    async def read_snapshot(self, handler: PairHandler, block: int) -> PoolSnapshot:
        pool = handler.contract
        token0, token1 = await asyncio.gather(
            read_address(self.reader, pool, "token0", block),
            read_address(self.reader, pool, "token1", block),
        )
        slot0, erc20_0, erc20_1 = await asyncio.gather(
            self.reader.call(pool, "slot0", (), block),
            self.erc20.get_or_create(token0, block),
            self.erc20.get_or_create(token1, block),
        )
        balance0, balance1 = await asyncio.gather(
            read_balance(self.reader, token0, pool, erc20_0.decimals, block),
            read_balance(self.reader, token1, pool, erc20_1.decimals, block),
        )

        return PoolSnapshot(
            pool=handler.pool_key,
            block=block,
            tokens=(token0, token1),
            balances=(balance0, balance1),
            token_decimals=(erc20_0.decimals, erc20_1.decimals),
            sqrt_price_x96=int(slot0[0]),
        )

    async def price(self, token: str, handler: PairHandler, ctx: PricingContext) -> Decimal:
        snapshot = await ctx.pool(handler)
        index = self._token_index(snapshot, token, handler)

        if not snapshot.sqrt_price_x96:
            raise PricingUnavailable(
                f"Pool {handler.pool_key} has no price at block {ctx.block}",
                token=token,
                block=ctx.block,
            )

        counter_index = 1 - index
        counter_rate = await ctx.resolve(snapshot.tokens[counter_index])
        decimals0, decimals1 = snapshot.token_decimals

        with localcontext() as decimal_ctx:
            decimal_ctx.prec = VALUATION_PRECISION
            token1_per_token0 = Decimal(snapshot.sqrt_price_x96) ** 2 / Q192

            if index == 0:
                numerator = token1_per_token0 * Decimal(10) ** (decimals0 - decimals1)
            else:
                numerator = ONE / token1_per_token0 * Decimal(10) ** (decimals1 - decimals0)

            rate = numerator * counter_rate

        self.log.debug(
            "rate_derived",
            pool=handler.pool_key,
            token=token,
            counter_token=snapshot.tokens[counter_index],
            block=ctx.block,
            rate=str(rate),
        )
        # Round back to the default context precision
        return +rate

    async def unit_rate(self, handler: PairHandler, ctx: PricingContext) -> Decimal:
        raise ConfigurationError(
            f"Uniswap V3 pool {handler.pool_key} positions are not fungible; no unit rate"
        )
