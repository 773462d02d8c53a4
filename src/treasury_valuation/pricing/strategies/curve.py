"""Stable-swap pools (Curve)."""

import asyncio
from decimal import Decimal

from treasury_valuation.chain.contracts import read_address
from treasury_valuation.common.utils.addresses import addresses_equal
from treasury_valuation.common.utils.decimals import to_decimal
from treasury_valuation.config.registry import NATIVE_TOKEN_SENTINEL
from treasury_valuation.exceptions import NotYetDeployedError
from treasury_valuation.pricing.strategies.base import PricingContext, PricingStrategy
from treasury_valuation.shared.models import PairHandler, PoolSnapshot, PoolType

MAX_COINS = 8
NATIVE_DECIMALS = 18


class CurveStrategy(PricingStrategy):
    """
    Curve pools keep members close to parity, so a member is priced 1:1
    against a priceable counter-token. This is an approximation that only
    holds for pegged pairs. The pool's LP token is priced at its unit rate.
    """

    pool_type = PoolType.CURVE

    async def read_snapshot(self, handler: PairHandler, block: int) -> PoolSnapshot:
        pool = handler.contract
        coins = await self._read_coins(pool, block)
        if not coins:
            raise NotYetDeployedError(
                f"Curve pool {pool} has no coins at block {block}",
                address=pool,
                function="coins",
                block=block,
            )

        balances_raw = await asyncio.gather(
            *(self.reader.call(pool, "balances", (i,), block) for i in range(len(coins)))
        )
        decimals = await asyncio.gather(*(self._coin_decimals(coin, block) for coin in coins))
        pool_token_address = await self._read_pool_token(pool, block)
        pool_token = await self.erc20.get_or_create(pool_token_address, block)

        return PoolSnapshot(
            pool=handler.pool_key,
            block=block,
            tokens=tuple(coins),
            balances=tuple(
                to_decimal(raw, coin_decimals)
                for raw, coin_decimals in zip(balances_raw, decimals)
            ),
            token_decimals=tuple(decimals),
            pool_token=pool_token_address,
            pool_token_decimals=pool_token.decimals,
            pool_token_total_supply=pool_token.total_supply,
        )

    async def _read_coins(self, pool: str, block: int) -> list[str]:
        # coins(i) reverts past the last index
        coins: list[str] = []
        for i in range(MAX_COINS):
            try:
                coins.append(await read_address(self.reader, pool, "coins", block, (i,)))
            except NotYetDeployedError:
                break
        return coins

    async def _coin_decimals(self, coin: str, block: int) -> int:
        # ETH pools list the native asset under a sentinel address
        if addresses_equal(coin, NATIVE_TOKEN_SENTINEL):
            return NATIVE_DECIMALS
        return await self.erc20.decimals(coin, block)

    async def _read_pool_token(self, pool: str, block: int) -> str:
        """Older pools expose token() or lp_token(); newer pools are their own LP token."""
        for function in ("token", "lp_token"):
            try:
                return await read_address(self.reader, pool, function, block)
            except NotYetDeployedError:
                continue
        return pool

    async def price(self, token: str, handler: PairHandler, ctx: PricingContext) -> Decimal:
        snapshot = await ctx.pool(handler)

        if snapshot.pool_token is not None and addresses_equal(token, snapshot.pool_token):
            return await self.unit_rate(handler, ctx)

        index = self._token_index(snapshot, token, handler)
        counter_index, counter_rate = await self._counter_rate(snapshot, index, ctx)

        self.log.debug(
            "rate_pegged",
            pool=handler.pool_key,
            token=token,
            counter_token=snapshot.tokens[counter_index],
            block=ctx.block,
            rate=str(counter_rate),
        )
        return counter_rate
