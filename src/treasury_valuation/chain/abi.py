"""
Minimal ABI fragments for every contract function the engine reads.

The reader binds one fragment per call instead of full contract ABIs: the
engine only ever needs a handful of view functions, and the same function
name is shared across pool implementations (ERC20, Uniswap, Curve, ...).
"""

from typing import Any

from treasury_valuation.exceptions import ConfigurationError


def _view(name: str, inputs: list[str], outputs: list[str]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"name": f"out{i}", "type": t} for i, t in enumerate(outputs)],
    }


FUNCTION_FRAGMENTS: dict[str, dict[str, Any]] = {
    # ERC20
    "balanceOf": _view("balanceOf", ["address"], ["uint256"]),
    "decimals": _view("decimals", [], ["uint8"]),
    "totalSupply": _view("totalSupply", [], ["uint256"]),
    # Uniswap V2 / FraxSwap
    "token0": _view("token0", [], ["address"]),
    "token1": _view("token1", [], ["address"]),
    "getReserves": _view("getReserves", [], ["uint112", "uint112", "uint32"]),
    # Uniswap V3
    "slot0": _view(
        "slot0", [], ["uint160", "int24", "uint16", "uint16", "uint16", "uint8", "bool"]
    ),
    # Balancer vault and weighted pool
    "getPoolTokens": _view("getPoolTokens", ["bytes32"], ["address[]", "uint256[]", "uint256"]),
    "getPool": _view("getPool", ["bytes32"], ["address", "uint8"]),
    "getNormalizedWeights": _view("getNormalizedWeights", [], ["uint256[]"]),
    # Curve
    "coins": _view("coins", ["uint256"], ["address"]),
    "balances": _view("balances", ["uint256"], ["uint256"]),
    "token": _view("token", [], ["address"]),
    "lp_token": _view("lp_token", [], ["address"]),
    # ERC4626
    "asset": _view("asset", [], ["address"]),
    "totalAssets": _view("totalAssets", [], ["uint256"]),
    "convertToAssets": _view("convertToAssets", ["uint256"], ["uint256"]),
    # Staking index
    "index": _view("index", [], ["uint256"]),
    # Chainlink aggregator
    "latestAnswer": _view("latestAnswer", [], ["int256"]),
}


def fragment_for(function: str) -> dict[str, Any]:
    """
    Return the ABI fragment for ``function``.

    Raises:
        ConfigurationError: if the function is not one the engine knows how to read
    """
    try:
        return FUNCTION_FRAGMENTS[function]
    except KeyError:
        raise ConfigurationError(f"No ABI fragment registered for function '{function}'")
