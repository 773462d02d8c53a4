"""Configuration package for treasury_valuation."""

from .registry import ChainRegistry, load_registry
from .state import ConfigLoader, ConfigState, get_config

__all__ = [
    "ChainRegistry",
    "ConfigLoader",
    "ConfigState",
    "get_config",
    "load_registry",
]
