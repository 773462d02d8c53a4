"""
Tests for the web3 ChainReader adapter.

An AsyncWeb3-shaped stub stands in for the node: it exposes
``eth.contract(...).functions[name](*args).call(block_identifier=...)`` and
``eth.get_block``, and replays scripted outcomes.
"""

from types import SimpleNamespace

import pytest
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError

from tests.fixtures import OHM, OHM_DAI_PAIR, TREASURY_WALLET, pool_id
from treasury_valuation.chain import Web3ChainReader
from treasury_valuation.config.state import RetryConfig, RpcConfig
from treasury_valuation.exceptions import NotYetDeployedError, UnexpectedCallFailure


class ScriptedCall:
    """One bound contract function; each call pops the next outcome."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.args = None
        self.block_identifiers = []

    def bind(self, *args):
        self.args = args
        return self

    async def call(self, block_identifier):
        self.block_identifiers.append(block_identifier)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def stub_web3(function: str, call: ScriptedCall, blocks=None):
    contracts = []

    def contract(address, abi):
        contracts.append((address, abi))
        return SimpleNamespace(functions={function: call.bind})

    async def get_block(block):
        outcome = (blocks or {})[block]
        if isinstance(outcome, BaseException):
            raise outcome
        return {"timestamp": outcome}

    web3 = SimpleNamespace(eth=SimpleNamespace(contract=contract, get_block=get_block))
    return web3, contracts


def make_reader(web3, max_attempts=3):
    return Web3ChainReader(
        RpcConfig(),
        RetryConfig(max_attempts=max_attempts, base_delay=0),
        web3=web3,
    )


class TestWeb3ChainReader:
    @pytest.mark.asyncio
    async def test_call_is_pinned_to_block(self):
        call = ScriptedCall([10**9])
        web3, contracts = stub_web3("totalSupply", call)

        result = await make_reader(web3).call(OHM, "totalSupply", (), 15_000_000)

        assert result == 10**9
        assert call.block_identifiers == [15_000_000]
        assert contracts[0][0] == AsyncWeb3.to_checksum_address(OHM)
        assert contracts[0][1][0]["name"] == "totalSupply"

    @pytest.mark.asyncio
    async def test_multi_output_result_is_a_tuple(self):
        call = ScriptedCall([[1000, 2000, 1]])
        web3, _ = stub_web3("getReserves", call)

        assert await make_reader(web3).call(OHM_DAI_PAIR, "getReserves", (), 1) == (1000, 2000, 1)

    @pytest.mark.asyncio
    async def test_arguments_are_encoded(self):
        call = ScriptedCall([0])
        web3, _ = stub_web3("balanceOf", call)

        await make_reader(web3).call(OHM, "balanceOf", (TREASURY_WALLET,), 1)

        assert call.args == (AsyncWeb3.to_checksum_address(TREASURY_WALLET),)
        assert Web3ChainReader._encode_arg(pool_id(0x52)) == bytes.fromhex(pool_id(0x52)[2:])

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self):
        call = ScriptedCall([ConnectionError("reset"), 42])
        web3, _ = stub_web3("decimals", call)

        assert await make_reader(web3).call(OHM, "decimals", (), 1) == 42
        assert len(call.block_identifiers) == 2

    @pytest.mark.asyncio
    async def test_revert_fails_immediately(self):
        call = ScriptedCall([ContractLogicError("execution reverted"), 42])
        web3, _ = stub_web3("decimals", call)

        with pytest.raises(NotYetDeployedError):
            await make_reader(web3).call(OHM, "decimals", (), 1)
        assert len(call.block_identifiers) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries(self):
        call = ScriptedCall([ConnectionError("down")] * 3)
        web3, _ = stub_web3("decimals", call)

        with pytest.raises(UnexpectedCallFailure) as exc_info:
            await make_reader(web3).call(OHM, "decimals", (), 1)

        assert exc_info.value.function == "decimals"
        assert len(call.block_identifiers) == 3

    @pytest.mark.asyncio
    async def test_block_timestamp(self):
        web3, _ = stub_web3("decimals", ScriptedCall([]), blocks={100: 1_651_000_000})

        assert await make_reader(web3).get_block_timestamp(100) == 1_651_000_000

    @pytest.mark.asyncio
    async def test_block_timestamp_failure(self):
        web3, _ = stub_web3("decimals", ScriptedCall([]), blocks={100: ConnectionError("down")})

        with pytest.raises(UnexpectedCallFailure):
            await make_reader(web3, max_attempts=1).get_block_timestamp(100)
