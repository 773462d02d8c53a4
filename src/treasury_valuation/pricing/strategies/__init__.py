"""
Pool-type pricing strategies and their registry.

``build_strategies`` refuses to construct a registry that does not cover
every ``PoolType``, so adding a pool type without a strategy fails at
startup rather than on the first block that needs it.
"""

from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.exceptions import ConfigurationError
from treasury_valuation.pricing.snapshots import ERC20SnapshotCache
from treasury_valuation.pricing.strategies.balancer import BalancerStrategy
from treasury_valuation.pricing.strategies.base import PricingContext, PricingStrategy
from treasury_valuation.pricing.strategies.curve import CurveStrategy
from treasury_valuation.pricing.strategies.erc4626 import ERC4626Strategy
from treasury_valuation.pricing.strategies.uniswap_v2 import FraxSwapStrategy, UniswapV2Strategy
from treasury_valuation.pricing.strategies.uniswap_v3 import UniswapV3Strategy
from treasury_valuation.shared.models import PoolType

STRATEGY_CLASSES: dict[PoolType, type[PricingStrategy]] = {
    PoolType.UNISWAP_V2: UniswapV2Strategy,
    PoolType.FRAXSWAP: FraxSwapStrategy,
    PoolType.UNISWAP_V3: UniswapV3Strategy,
    PoolType.BALANCER: BalancerStrategy,
    PoolType.CURVE: CurveStrategy,
    PoolType.ERC4626: ERC4626Strategy,
}


def build_strategies(
    reader: ChainReader,
    erc20: ERC20SnapshotCache,
    strategy_classes: dict[PoolType, type[PricingStrategy]] | None = None,
) -> dict[PoolType, PricingStrategy]:
    """
    Instantiate one strategy per pool type.

    Raises:
        ConfigurationError: if any PoolType has no strategy
    """
    classes = strategy_classes if strategy_classes is not None else STRATEGY_CLASSES

    missing = [pool_type.value for pool_type in PoolType if pool_type not in classes]
    if missing:
        raise ConfigurationError(f"No pricing strategy registered for: {', '.join(missing)}")

    return {pool_type: cls(reader, erc20) for pool_type, cls in classes.items()}


__all__ = [
    "STRATEGY_CLASSES",
    "BalancerStrategy",
    "CurveStrategy",
    "ERC4626Strategy",
    "FraxSwapStrategy",
    "PricingContext",
    "PricingStrategy",
    "UniswapV2Strategy",
    "UniswapV3Strategy",
    "build_strategies",
]
