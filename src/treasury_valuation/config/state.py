"""
Unified runtime configuration for the valuation engine.

Combines hierarchical YAML files with environment overrides, type validation,
and sensible defaults. The per-chain token/pool registry is loaded separately
(see ``registry.py``) because it is data, not runtime tuning.
"""

import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS - Type-Safe Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)
    include_timestamp: bool = Field(default=True)

    class Config:
        extra = "allow"


class RpcConfig(BaseModel):
    """Node connection used by the web3 chain reader."""

    url: str = Field(default="http://localhost:8545")
    request_timeout: float = Field(default=30.0, gt=0)
    max_concurrency: int = Field(default=16, ge=1, le=256)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if v.startswith(("http://", "https://")):
            return v
        raise ValueError("RPC URL must start with http:// or https://")

    class Config:
        extra = "allow"


class RetryConfig(BaseModel):
    """Backoff applied to transient RPC failures."""

    max_attempts: int = Field(default=4, ge=1, le=20)
    base_delay: float = Field(default=0.5, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    max_delay: float = Field(default=30.0, ge=0)

    class Config:
        extra = "allow"


class PricingConfig(BaseModel):
    """Price resolution behaviour."""

    assume_stable_peg: bool = Field(
        default=True,
        description="Price Stable-category tokens at 1.0 without touching pools",
    )
    max_resolution_depth: int = Field(default=2, ge=1, le=4)

    class Config:
        extra = "allow"


class PipelineConfig(BaseModel):
    """Per-block orchestration settings."""

    chain: str = Field(default="ethereum")
    cache_retention_blocks: int = Field(
        default=0,
        ge=0,
        description="Blocks of snapshot history kept in memory behind the current block",
    )
    stop_on_error: bool = Field(default=True)

    class Config:
        extra = "allow"


class SanityConfig(BaseModel):
    """Tolerances for the non-fatal cross-checks run after each block."""

    market_value_tolerance: Decimal = Field(default=Decimal("1"), ge=0)
    record_tolerance: Decimal = Field(default=Decimal("0.000001"), ge=0)

    class Config:
        extra = "allow"


class ConfigState(BaseModel):
    """
    Root configuration state - single source of truth for runtime config.
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    rpc: RpcConfig = Field(default_factory=RpcConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    sanity: SanityConfig = Field(default_factory=SanityConfig)

    # Environment metadata
    env: str = Field(default="dev")
    config_dir: str = Field(default="./config")

    class Config:
        extra = "allow"  # Allow additional fields from YAML

    @property
    def registry_path(self) -> Path:
        return Path(self.config_dir) / "chains" / f"{self.pipeline.chain}.yaml"


# =============================================================================
# CONFIG LOADER - Clean, Validated Loading
# =============================================================================


class ConfigLoader:
    """
    Load and validate configuration from hierarchical YAML files.

    Merges:
      1. Global defaults (hardcoded)
      2. settings.yaml from config_dir
      3. env/<env>.yaml overrides
      4. Environment variable overrides
    """

    def __init__(self, config_dir: str = "./config", env: str | None = None):
        self.config_dir = Path(config_dir)
        self._yaml_cache: dict[Path, Any] = {}
        self.env = env or os.getenv("TREASURY_ENV", "dev")

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file with caching."""
        if path in self._yaml_cache:
            return self._yaml_cache[path]

        if not path.exists():
            logger.debug(f"Config file not found (using defaults): {path}")
            return {}

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        self._yaml_cache[path] = data
        logger.debug(f"Loaded config: {path.relative_to(self.config_dir)}")
        return data

    def _apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        if rpc_url := os.getenv("TREASURY_RPC_URL"):
            config.setdefault("rpc", {})["url"] = rpc_url

        if chain := os.getenv("TREASURY_CHAIN"):
            config.setdefault("pipeline", {})["chain"] = chain

        if log_level := os.getenv("LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level

        return config

    def _merge_dicts(self, base: dict, override: dict) -> dict:
        """Deep merge override into base dict."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def load(self) -> ConfigState:
        """
        Load complete configuration state.

        Raises:
            ValidationError: If configuration is invalid
        """
        logger.info(f"Loading configuration from {self.config_dir} (env: {self.env})")

        config: dict[str, Any] = {}

        # 1. Top-level settings
        config = self._merge_dicts(
            config, self._load_yaml(self.config_dir / "settings.yaml")
        )

        # 2. Environment-specific overrides
        env_config = self._load_yaml(self.config_dir / "env" / f"{self.env}.yaml")
        config = self._merge_dicts(config, env_config)

        # 3. Environment variable overrides
        config = self._apply_env_overrides(config)

        # 4. Create ConfigState with validation
        try:
            state = ConfigState(env=self.env, config_dir=str(self.config_dir), **config)
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        logger.info(
            f"Configuration loaded: chain={state.pipeline.chain}, "
            f"stable_peg={state.pricing.assume_stable_peg}, "
            f"retention={state.pipeline.cache_retention_blocks}"
        )
        return state


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================


def get_config(config_dir: str | None = None, env: str | None = None) -> ConfigState:
    """
    Load and return the runtime configuration state.

    Args:
        config_dir: Override config directory. Defaults to $TREASURY_CONFIG_DIR or ./config
        env: Override environment name. Defaults to $TREASURY_ENV or dev
    """
    if config_dir is None:
        config_dir = os.getenv("TREASURY_CONFIG_DIR", "./config")
        if not Path(config_dir).exists():
            logger.warning(f"Config directory not found at {config_dir}, using defaults")

    loader = ConfigLoader(config_dir=config_dir, env=env)
    return loader.load()


__all__ = [
    "ConfigLoader",
    "ConfigState",
    "LoggingConfig",
    "PipelineConfig",
    "PricingConfig",
    "RetryConfig",
    "RpcConfig",
    "SanityConfig",
    "get_config",
]
