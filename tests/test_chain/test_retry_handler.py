"""
Test RetryHandler and Web3ErrorMapper.

Validates:
- Retry eligibility for web3 errors
- Exponential backoff capped at max_delay
- Mapping of web3 exceptions to the contract-call taxonomy
"""

import pytest
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3ValidationError

from treasury_valuation.chain import RetryHandler, Web3ErrorMapper
from treasury_valuation.chain.abi import fragment_for
from treasury_valuation.config.state import RetryConfig
from treasury_valuation.exceptions import (
    ConfigurationError,
    NotYetDeployedError,
    UnexpectedCallFailure,
)


@pytest.fixture
def handler():
    return RetryHandler(
        RetryConfig(max_attempts=5, base_delay=1.0, backoff_multiplier=2.0, max_delay=5.0)
    )


# ============================================================================
# GROUP 1: RETRY POLICY
# ============================================================================


class TestRetryHandler:
    def test_transport_errors_are_retried(self, handler):
        assert handler.should_retry(ConnectionError("connection reset")) is True
        assert handler.should_retry(TimeoutError()) is True

    def test_reverts_are_not_retried(self, handler):
        assert handler.should_retry(ContractLogicError("execution reverted")) is False
        assert handler.should_retry(BadFunctionCallOutput("empty output")) is False

    def test_bad_arguments_are_not_retried(self, handler):
        assert handler.should_retry(Web3ValidationError("bad argument")) is False
        assert handler.should_retry(TypeError("wrong arity")) is False

    def test_exponential_backoff(self, handler):
        assert handler.get_retry_delay(1) == 1.0
        assert handler.get_retry_delay(2) == 2.0
        assert handler.get_retry_delay(3) == 4.0

    def test_backoff_is_capped(self, handler):
        assert handler.get_retry_delay(4) == 5.0
        assert handler.get_retry_delay(10) == 5.0

    def test_max_attempts_from_config(self, handler):
        assert handler.max_attempts == 5


# ============================================================================
# GROUP 2: ERROR MAPPING
# ============================================================================


class TestWeb3ErrorMapper:
    def test_revert_means_not_yet_deployed(self):
        error = Web3ErrorMapper.map_error(
            ContractLogicError("execution reverted"), "0xabc", "getReserves", 100
        )

        assert isinstance(error, NotYetDeployedError)
        assert error.address == "0xabc"
        assert error.function == "getReserves"
        assert error.block == 100

    def test_empty_output_means_not_yet_deployed(self):
        error = Web3ErrorMapper.map_error(
            BadFunctionCallOutput("Could not decode"), "0xabc", "decimals", 5
        )

        assert isinstance(error, NotYetDeployedError)

    def test_anything_else_is_unexpected(self):
        error = Web3ErrorMapper.map_error(ConnectionError("refused"), "0xabc", "slot0", 7)

        assert isinstance(error, UnexpectedCallFailure)
        assert "ConnectionError" in str(error)


class TestAbi:
    def test_known_fragment(self):
        fragment = fragment_for("getReserves")

        assert fragment["name"] == "getReserves"
        assert len(fragment["outputs"]) == 3

    def test_unknown_function(self):
        with pytest.raises(ConfigurationError, match="transfer"):
            fragment_for("transfer")
