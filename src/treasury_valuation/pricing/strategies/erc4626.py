"""ERC-4626 tokenised vaults."""

import asyncio
from decimal import Decimal

from treasury_valuation.chain.contracts import read_address
from treasury_valuation.common.utils.addresses import addresses_equal
from treasury_valuation.common.utils.decimals import to_decimal
from treasury_valuation.exceptions import ConfigurationError
from treasury_valuation.pricing.strategies.base import PricingContext, PricingStrategy
from treasury_valuation.shared.models import PairHandler, PoolSnapshot, PoolType


class ERC4626Strategy(PricingStrategy):
    """
    rate(share) = rate(asset) × convertToAssets(1 share)

    The snapshot models the vault as a single-asset pool holding
    ``totalAssets()`` of its underlying, with the share as pool token and
    ``convertToAssets(1 share)`` read alongside.
    """

    pool_type = PoolType.ERC4626

    async def read_snapshot(self, handler: PairHandler, block: int) -> PoolSnapshot:
        vault = handler.contract
        asset = await read_address(self.reader, vault, "asset", block)
        total_assets, asset_erc20, vault_erc20 = await asyncio.gather(
            self.reader.call(vault, "totalAssets", (), block),
            self.erc20.get_or_create(asset, block),
            self.erc20.get_or_create(vault, block),
        )
        assets_raw = await self.reader.call(
            vault, "convertToAssets", (10**vault_erc20.decimals,), block
        )

        return PoolSnapshot(
            pool=handler.pool_key,
            block=block,
            tokens=(asset,),
            balances=(to_decimal(total_assets, asset_erc20.decimals),),
            token_decimals=(asset_erc20.decimals,),
            pool_token=vault,
            pool_token_decimals=vault_erc20.decimals,
            pool_token_total_supply=vault_erc20.total_supply,
            assets_per_share=to_decimal(assets_raw, asset_erc20.decimals),
        )

    async def price(self, token: str, handler: PairHandler, ctx: PricingContext) -> Decimal:
        if not addresses_equal(token, handler.contract):
            raise ConfigurationError(
                f"Token {token} is not the share token of vault {handler.contract}"
            )

        snapshot = await ctx.pool(handler)
        asset = snapshot.tokens[0]
        assets_per_share = snapshot.assets_per_share
        rate = await ctx.resolve(asset) * assets_per_share

        self.log.debug(
            "share_rate_derived",
            vault=handler.contract,
            asset=asset,
            block=ctx.block,
            assets_per_share=str(assets_per_share),
            rate=str(rate),
        )
        return rate

    async def unit_rate(self, handler: PairHandler, ctx: PricingContext) -> Decimal:
        return await self.price(handler.contract, handler, ctx)
