"""
Typed contract-read helpers.

Thin functions over a ChainReader that decode raw integers into Decimals
and addresses into lowercase strings. Pool-specific reads live with their
pricing strategy; this module covers ERC20 tokens, price feeds and the
staking index.
"""

from decimal import Decimal

from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.common.utils.decimals import to_decimal
from treasury_valuation.shared.models import ERC20Snapshot


async def read_address(
    reader: ChainReader,
    contract: str,
    function: str,
    block: int,
    args: tuple = (),
) -> str:
    """Read an address-returning getter (token0, asset, coins...)."""
    return normalize_address(await reader.call(contract, function, args, block))


async def read_erc20_snapshot(reader: ChainReader, token: str, block: int) -> ERC20Snapshot:
    decimals = int(await reader.call(token, "decimals", (), block))
    total_supply = await reader.call(token, "totalSupply", (), block)
    return ERC20Snapshot(
        address=normalize_address(token),
        block=block,
        decimals=decimals,
        total_supply=to_decimal(total_supply, decimals),
    )


async def read_balance(
    reader: ChainReader, token: str, holder: str, decimals: int, block: int
) -> Decimal:
    """Decimal-adjusted ``token.balanceOf(holder)``."""
    raw = await reader.call(token, "balanceOf", (normalize_address(holder),), block)
    return to_decimal(raw, decimals)


async def read_index(reader: ChainReader, contract: str, decimals: int, block: int) -> Decimal:
    """Staking index, e.g. sOHM ``index()`` with 9 decimals."""
    return to_decimal(await reader.call(contract, "index", (), block), decimals)


async def read_feed_rate(reader: ChainReader, feed: str, block: int) -> Decimal:
    """USD answer of a Chainlink-style aggregator."""
    decimals = int(await reader.call(feed, "decimals", (), block))
    answer = await reader.call(feed, "latestAnswer", (), block)
    return to_decimal(answer, decimals)
