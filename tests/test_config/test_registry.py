"""
Tests for the per-chain registry: loading, cross-reference validation and
block-ranged lookups.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tests.fixtures import (
    BALANCER_VAULT,
    DAI,
    FXS,
    OHM,
    OHM_DAI_PAIR,
    SDAI,
    TREASURY_WALLET,
    UST,
    addr,
    make_registry,
    registry_data,
)
from treasury_valuation.config import load_registry
from treasury_valuation.exceptions import ConfigurationError
from treasury_valuation.shared.models import Blockchain, PoolType

SHIPPED_REGISTRY = Path(__file__).parents[2] / "config" / "chains" / "ethereum.yaml"


# ============================================================================
# GROUP 1: LOADING
# ============================================================================


class TestLoadRegistry:
    def test_shipped_ethereum_registry(self):
        registry = load_registry(SHIPPED_REGISTRY)

        assert registry.blockchain == Blockchain.ETHEREUM
        assert registry.ohm_token == "0x64aa3364f17a4d01c6f1751fd97c2bd3d7e7f1d5"
        assert registry.price_feed("0x6B175474E89094C44Da98b954EedeAC495271d0F") is not None
        assert registry.pair_handler("0x83F20F44975D03b1b09e64809B757c47f942BEeA").pool_type == (
            PoolType.ERC4626
        )
        assert len(registry.ohm_price_pairs) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_registry(tmp_path / "missing.yaml")

    def test_unparsable_file(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("tokens: [unclosed\n")

        with pytest.raises(ConfigurationError, match="not valid YAML"):
            load_registry(path)

    def test_inconsistent_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("blockchain: Ethereum\n")

        with pytest.raises(ConfigurationError, match="invalid"):
            load_registry(path)


# ============================================================================
# GROUP 2: VALIDATION
# ============================================================================


class TestRegistryValidation:
    def test_addresses_are_lowercased(self):
        registry = make_registry(ohm_token=OHM.upper().replace("0X", "0x"))

        assert registry.ohm_token == OHM
        assert registry.is_ohm(OHM.upper().replace("0X", "0x"))

    def test_duplicate_token(self):
        tokens = registry_data()["tokens"]

        with pytest.raises(ValidationError, match="Duplicate token"):
            make_registry(tokens=[*tokens, {"address": DAI, "name": "DAI", "category": "Stable"}])

    def test_duplicate_feed(self):
        feeds = registry_data()["price_feeds"]

        with pytest.raises(ValidationError, match="Duplicate base-token"):
            make_registry(price_feeds=[*feeds, {"token": DAI, "feed": addr(0x99)}])

    def test_ohm_price_pair_required(self):
        with pytest.raises(ValidationError, match="OHM price pair"):
            make_registry(ohm_price_pairs=[])

    def test_vault_cannot_price_ohm(self):
        with pytest.raises(ValidationError, match="cannot be an OHM price pair"):
            make_registry(ohm_price_pairs=[{"pool_type": "ERC4626", "contract": SDAI}])

    def test_curve_pool_cannot_price_ohm(self):
        # Curve members are pegged 1:1 to their counter-token
        with pytest.raises(ValidationError, match="Curve pool .* cannot be an OHM price pair"):
            make_registry(ohm_price_pairs=[{"pool_type": "Curve", "contract": addr(0x61)}])

    def test_owned_liquidity_needs_pool_token(self):
        with pytest.raises(ValidationError, match="no fungible pool token"):
            make_registry(
                owned_liquidity=[
                    {"name": "V3", "handler": {"pool_type": "UniswapV3", "contract": addr(0x70)}}
                ]
            )

    def test_base_token_cannot_have_pair_handler(self):
        handlers = dict(registry_data()["pair_handlers"])
        handlers[DAI] = {"pool_type": "UniswapV2", "contract": OHM_DAI_PAIR}

        with pytest.raises(ValidationError, match="must not also have a pair handler"):
            make_registry(pair_handlers=handlers)

    def test_vault_handler_points_at_vault(self):
        handlers = dict(registry_data()["pair_handlers"])
        handlers[SDAI] = {"pool_type": "ERC4626", "contract": addr(0x71)}

        with pytest.raises(ValidationError, match="vault itself"):
            make_registry(pair_handlers=handlers)

    def test_balancer_requires_pool_id(self):
        handlers = dict(registry_data()["pair_handlers"])
        handlers[FXS] = {"pool_type": "Balancer", "contract": BALANCER_VAULT}

        with pytest.raises(ValidationError, match="pool_id"):
            make_registry(pair_handlers=handlers)

    def test_registry_is_frozen(self):
        registry = make_registry()

        with pytest.raises(ValidationError):
            registry.ohm_token = DAI


# ============================================================================
# GROUP 3: LOOKUPS
# ============================================================================


class TestRegistryLookups:
    def test_latest_override_in_effect(self):
        registry = make_registry(
            rate_overrides=[
                {"token": UST, "from_block": 100, "rate": "0.5"},
                {"token": UST, "from_block": 200, "rate": "0"},
            ]
        )

        assert registry.rate_override(UST, 99) is None
        assert str(registry.rate_override(UST, 150).rate) == "0.5"
        assert str(registry.rate_override(UST, 250).rate) == "0"

    def test_wallets_active_within_range(self):
        registry = make_registry(
            treasury_wallets=[
                {"name": "Old", "address": TREASURY_WALLET, "from_block": 10, "to_block": 20}
            ]
        )

        assert registry.wallets_at(9) == ()
        assert [wallet.name for wallet in registry.wallets_at(10)] == ["Old"]
        assert registry.wallets_at(20) == ()

    def test_valued_tokens_exclude_protocol_tokens_and_pool_tokens(self):
        valued = {token.address for token in make_registry().valued_tokens()}

        assert OHM not in valued
        assert OHM_DAI_PAIR not in valued
        assert DAI in valued
