"""
Shared test fixtures: an in-memory chain and a small registry.

``FakeChainReader`` implements the ChainReader port from a dictionary of
(address, function, args) -> result entries. Anything that was not set
raises NotYetDeployedError, the same way a historical read against a
contract that does not exist yet does.
"""

import asyncio
from decimal import Decimal
from typing import Any

from treasury_valuation.config.registry import ChainRegistry
from treasury_valuation.exceptions import NotYetDeployedError


def addr(n: int) -> str:
    return f"0x{n:040x}"


def pool_id(n: int) -> str:
    return f"0x{n:064x}"


# ============================================================================
# ADDRESSES
# ============================================================================

OHM = addr(0x10)
GOHM = addr(0x11)
SOHM = addr(0x12)

DAI = addr(0x20)
USDC = addr(0x21)
WETH = addr(0x22)

FXS = addr(0x30)
BAL = addr(0x31)
SDAI = addr(0x32)
UST = addr(0x33)

DAI_FEED = addr(0x40)
WETH_FEED = addr(0x41)

OHM_DAI_PAIR = addr(0x50)
FXS_WETH_POOL = addr(0x51)
BAL_WETH_POOL = addr(0x52)
BAL_WETH_POOL_ID = pool_id(0x52)
BALANCER_VAULT = addr(0x60)

TREASURY_WALLET = addr(0xA0)
DAO_WALLET = addr(0xA1)

BOND_TELLER = addr(0xB0)
SILO = addr(0xB1)
MIGRATOR = addr(0xB2)

DEFAULT_TIMESTAMP = 1_651_000_000  # 2022-04-26


def to_raw(amount, decimals: int) -> int:
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


# ============================================================================
# CHAIN
# ============================================================================


class FakeChainReader:
    """In-memory ChainReader with helpers that lay out common contracts."""

    def __init__(self, timestamp: int = DEFAULT_TIMESTAMP):
        self.default_timestamp = timestamp
        self.timestamps: dict[int, int] = {}
        self.calls: list[tuple[str, str, tuple, int | None]] = []
        self._values: dict[tuple, Any] = {}
        self._failures: dict[tuple, BaseException] = {}
        self._decimals: dict[str, int] = {}

    @staticmethod
    def _key(address: str, function: str, args: tuple) -> tuple:
        args = tuple(arg.lower() if isinstance(arg, str) else arg for arg in args)
        return (address.lower(), function, args)

    def set(self, address: str, function: str, value: Any, args: tuple = (), block=None):
        """Result of ``function(*args)``, for one block or (block=None) every block."""
        self._values[(*self._key(address, function, args), block)] = value

    def fail(self, address: str, function: str, error: BaseException, args: tuple = ()):
        self._failures[self._key(address, function, args)] = error

    def undeploy(self, address: str):
        """Forget every entry of ``address``, as if it did not exist yet."""
        address = address.lower()
        self._values = {key: value for key, value in self._values.items() if key[0] != address}
        self._decimals.pop(address, None)

    def calls_to(self, address: str, function: str) -> int:
        return sum(
            1
            for called, name, _, _ in self.calls
            if called == address.lower() and name == function
        )

    # ==================== PORT ====================

    async def call(self, address: str, function: str, args: tuple = (), block=None):
        key = self._key(address, function, args)
        self.calls.append((*key, block))
        # Yield so that concurrent callers actually interleave
        await asyncio.sleep(0)

        if key in self._failures:
            raise self._failures[key]

        for lookup in ((*key, block), (*key, None)):
            if lookup in self._values:
                return self._values[lookup]

        # Deployed tokens report zero for holders that were never funded
        if function == "balanceOf" and key[0] in self._decimals:
            return 0

        raise NotYetDeployedError(
            f"execution reverted: {function}() on {address} at block {block}",
            address=address,
            function=function,
            block=block,
        )

    async def get_block_timestamp(self, block: int) -> int:
        return self.timestamps.get(block, self.default_timestamp)

    # ==================== CONTRACT LAYOUTS ====================

    def add_erc20(self, token: str, decimals: int = 18, total_supply=0):
        self._decimals[token.lower()] = decimals
        self.set(token, "decimals", decimals)
        self.set(token, "totalSupply", to_raw(total_supply, decimals))

    def add_balance(self, token: str, holder: str, amount, block=None):
        decimals = self._decimals.get(token.lower(), 18)
        self.set(token, "balanceOf", to_raw(amount, decimals), args=(holder,), block=block)

    def add_feed(self, feed: str, rate, decimals: int = 8):
        self.set(feed, "decimals", decimals)
        self.set(feed, "latestAnswer", to_raw(rate, decimals))

    def add_index(self, contract: str, index, decimals: int = 9):
        self.set(contract, "index", to_raw(index, decimals))

    def add_uniswap_v2(self, pair: str, token0: str, token1: str, reserve0, reserve1, total_supply=1):
        decimals0 = self._decimals.get(token0.lower(), 18)
        decimals1 = self._decimals.get(token1.lower(), 18)
        self.set(pair, "token0", token0)
        self.set(pair, "token1", token1)
        self.set(
            pair,
            "getReserves",
            (to_raw(reserve0, decimals0), to_raw(reserve1, decimals1), DEFAULT_TIMESTAMP),
        )
        self.add_erc20(pair, 18, total_supply)

    def add_uniswap_v3(self, pool: str, token0: str, token1: str, sqrt_price_x96: int, balance0=0, balance1=0):
        self.set(pool, "token0", token0)
        self.set(pool, "token1", token1)
        self.set(pool, "slot0", (sqrt_price_x96, 0, 0, 0, 0, 0, True))
        self.add_balance(token0, pool, balance0)
        self.add_balance(token1, pool, balance1)

    def add_balancer(
        self,
        vault: str,
        balancer_pool_id: str,
        pool: str,
        tokens: list[str],
        balances: list,
        weights: list | None = None,
        total_supply=1,
    ):
        raw_balances = [
            to_raw(balance, self._decimals.get(token.lower(), 18))
            for token, balance in zip(tokens, balances)
        ]
        self.set(vault, "getPoolTokens", (list(tokens), raw_balances, 0), args=(balancer_pool_id,))
        self.set(vault, "getPool", (pool, 2), args=(balancer_pool_id,))
        if weights is not None:
            self.set(pool, "getNormalizedWeights", [to_raw(weight, 18) for weight in weights])
        self.add_erc20(pool, 18, total_supply)

    def add_curve(self, pool: str, coins: list[str], balances: list, lp_token: str | None = None, total_supply=1):
        for i, (coin, balance) in enumerate(zip(coins, balances)):
            self.set(pool, "coins", coin, args=(i,))
            self.set(pool, "balances", to_raw(balance, self._decimals.get(coin.lower(), 18)), args=(i,))
        if lp_token is not None:
            self.set(pool, "token", lp_token)
        self.add_erc20(lp_token or pool, 18, total_supply)

    def add_erc4626(self, vault: str, asset: str, total_assets, total_supply, assets_per_share, decimals: int = 18):
        asset_decimals = self._decimals.get(asset.lower(), 18)
        self.set(vault, "asset", asset)
        self.set(vault, "totalAssets", to_raw(total_assets, asset_decimals))
        self.set(
            vault,
            "convertToAssets",
            to_raw(assets_per_share, asset_decimals),
            args=(10**decimals,),
        )
        self.add_erc20(vault, decimals, total_supply)


# ============================================================================
# REGISTRY
# ============================================================================


def registry_data() -> dict[str, Any]:
    return {
        "blockchain": "Ethereum",
        "ohm_token": OHM,
        "gohm_token": GOHM,
        "index_contract": SOHM,
        "index_decimals": 9,
        "wrapped_native_token": WETH,
        "tokens": [
            {"address": OHM, "name": "OHM", "category": "Volatile"},
            {"address": GOHM, "name": "gOHM", "category": "Volatile"},
            {"address": DAI, "name": "DAI", "category": "Stable"},
            {"address": USDC, "name": "USDC", "category": "Stable"},
            {"address": UST, "name": "UST", "category": "Stable", "is_liquid": False},
            {"address": WETH, "name": "wETH", "category": "Volatile", "is_volatile_bluechip": True},
            {"address": FXS, "name": "FXS", "category": "Volatile"},
            {"address": BAL, "name": "BAL", "category": "Volatile"},
            {"address": SDAI, "name": "sDAI", "category": "Volatile"},
            {
                "address": OHM_DAI_PAIR,
                "name": "UniswapV2 OHM-DAI Liquidity Pool",
                "category": "Protocol-Owned Liquidity",
            },
        ],
        "price_feeds": [
            {"token": DAI, "feed": DAI_FEED},
            {"token": WETH, "feed": WETH_FEED},
        ],
        "pair_handlers": {
            FXS: {"pool_type": "UniswapV3", "contract": FXS_WETH_POOL},
            BAL: {"pool_type": "Balancer", "contract": BALANCER_VAULT, "pool_id": BAL_WETH_POOL_ID},
            SDAI: {"pool_type": "ERC4626", "contract": SDAI},
        },
        "ohm_price_pairs": [{"pool_type": "UniswapV2", "contract": OHM_DAI_PAIR}],
        "rate_overrides": [{"token": UST, "from_block": 100, "rate": "0"}],
        "treasury_wallets": [
            {"name": "Treasury Wallet", "address": TREASURY_WALLET},
            {"name": "DAO Wallet", "address": DAO_WALLET},
        ],
        "owned_liquidity": [
            {
                "name": "UniswapV2 OHM-DAI Liquidity Pool",
                "handler": {"pool_type": "UniswapV2", "contract": OHM_DAI_PAIR},
            }
        ],
    }


def make_registry(**overrides) -> ChainRegistry:
    """Test registry; keyword arguments replace top-level registry fields."""
    data = registry_data()
    data.update(overrides)
    return ChainRegistry(**data)


# ============================================================================
# TREASURY WORLD
# ============================================================================

TREASURY_BLOCK = 1_000


def make_treasury_registry(**overrides) -> ChainRegistry:
    """Default registry plus one of each supply adjustment."""
    data = {
        "supply_deductions": [
            {"name": "Bond Teller", "address": BOND_TELLER, "type": "OHM Bonds (Pre-minted)"},
        ],
        "lending_deployments": [
            {"name": "Silo", "address": SILO, "from_block": 0, "amount": "1000"},
            {"name": "Silo", "address": SILO, "from_block": 500, "amount": "-400"},
            {"name": "Euler", "address": addr(0xB3), "from_block": 2_000, "amount": "100"},
        ],
        "migration_offset": {"address": MIGRATOR, "from_block": 0, "amount": "2"},
    }
    data.update(overrides)
    return make_registry(**data)


def make_treasury_chain() -> FakeChainReader:
    """
    One consistent block of treasury state.

    Prices: DAI 1, WETH 2000, USDC 1 (peg), OHM 10, index 100.

    Wallet records:   500 DAI, 2 WETH (Treasury), 100 USDC (DAO)
    POL record:       10 of 100 OHM-DAI pool tokens -> 2000 (1000 excluding OHM)
    Supply:           total 100000, treasury OHM 5000, treasury gOHM 1 (100 OHM),
                      offset 2 gOHM (200 OHM), bond teller 300, lending 600,
                      pool OHM 1000 × 10%
    """
    reader = FakeChainReader()
    reader.add_erc20(OHM, 9, 100_000)
    reader.add_erc20(GOHM, 18, 1_000)
    reader.add_erc20(DAI, 18, 1_000_000)
    reader.add_erc20(USDC, 6, 1_000_000)
    reader.add_erc20(WETH, 18, 1_000_000)
    reader.add_erc20(FXS, 18, 1_000_000)

    reader.add_feed(DAI_FEED, 1)
    reader.add_feed(WETH_FEED, 2000)
    reader.add_index(SOHM, 100)
    reader.add_uniswap_v2(OHM_DAI_PAIR, OHM, DAI, 1000, 10000, total_supply=100)

    reader.add_balance(DAI, TREASURY_WALLET, 500)
    reader.add_balance(WETH, TREASURY_WALLET, 2)
    reader.add_balance(USDC, DAO_WALLET, 100)
    reader.add_balance(OHM_DAI_PAIR, TREASURY_WALLET, 10)

    reader.add_balance(OHM, TREASURY_WALLET, 5000)
    reader.add_balance(GOHM, TREASURY_WALLET, 1)
    reader.add_balance(OHM, BOND_TELLER, 300)
    return reader
