"""
Web3 Chain Reader

ChainReader adapter over web3.py's AsyncWeb3. Every read is pinned to a
block, bounded by a concurrency semaphore and retried with exponential
backoff on transient failures.
"""

import asyncio
from typing import Any

from web3 import AsyncWeb3

from treasury_valuation.chain.abi import fragment_for
from treasury_valuation.chain.error_mapper import Web3ErrorMapper
from treasury_valuation.chain.retry_handler import RetryHandler
from treasury_valuation.common.utils.addresses import normalize_address
from treasury_valuation.config.state import RetryConfig, RpcConfig
from treasury_valuation.exceptions import UnexpectedCallFailure
from treasury_valuation.infrastructure.observability import get_chain_logger

_ADDRESS_HEX_LENGTH = 42
_BYTES32_HEX_LENGTH = 66


class Web3ChainReader:
    """Async historical contract reader backed by a JSON-RPC node.

    Dependencies injected (not instantiated) when provided:
    - web3: an AsyncWeb3 instance (a default HTTP provider is built otherwise)
    - retry_handler: decides retry eligibility and delays
    """

    def __init__(
        self,
        rpc: RpcConfig,
        retry: RetryConfig,
        chain: str = "ethereum",
        web3: AsyncWeb3 | None = None,
        retry_handler: RetryHandler | None = None,
    ):
        self.rpc = rpc
        self.web3 = web3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                rpc.url, request_kwargs={"timeout": rpc.request_timeout}
            )
        )
        self.retry_handler = retry_handler or RetryHandler(retry)
        self._semaphore = asyncio.Semaphore(rpc.max_concurrency)
        self._contracts: dict[tuple[str, str], Any] = {}
        self.log = get_chain_logger("web3-reader", chain=chain)

    def _contract(self, address: str, function: str):
        key = (normalize_address(address), function)
        contract = self._contracts.get(key)
        if contract is None:
            contract = self.web3.eth.contract(
                address=AsyncWeb3.to_checksum_address(key[0]),
                abi=[fragment_for(function)],
            )
            self._contracts[key] = contract
        return contract

    @staticmethod
    def _encode_arg(value: Any) -> Any:
        """Checksum addresses and turn 32-byte ids into bytes."""
        if isinstance(value, str) and value.startswith("0x"):
            if len(value) == _ADDRESS_HEX_LENGTH:
                return AsyncWeb3.to_checksum_address(value)
            if len(value) == _BYTES32_HEX_LENGTH:
                return bytes.fromhex(value[2:])
        return value

    async def call(
        self,
        address: str,
        function: str,
        args: tuple[Any, ...] = (),
        block: int | None = None,
    ) -> Any:
        contract = self._contract(address, function)
        encoded = tuple(self._encode_arg(arg) for arg in args)
        bound = contract.functions[function](*encoded)
        block_identifier = block if block is not None else "latest"
        max_attempts = self.retry_handler.max_attempts

        for attempt_number in range(1, max_attempts + 1):
            try:
                async with self._semaphore:
                    result = await bound.call(block_identifier=block_identifier)
                # Multi-output functions decode to a list
                if len(fragment_for(function)["outputs"]) > 1:
                    return tuple(result)
                return result

            except Exception as e:
                if not self.retry_handler.should_retry(e) or attempt_number == max_attempts:
                    error = Web3ErrorMapper.map_error(e, address, function, block)
                    if isinstance(error, UnexpectedCallFailure):
                        self.log.error(
                            "call_failed",
                            address=address,
                            function=function,
                            block=block,
                            attempts=attempt_number,
                            error=str(e),
                        )
                    raise error from e

                sleep_time = self.retry_handler.get_retry_delay(attempt_number)
                self.log.warning(
                    "call_retry",
                    address=address,
                    function=function,
                    block=block,
                    attempt=attempt_number,
                    max_attempts=max_attempts,
                    sleep_seconds=sleep_time,
                    error=str(e),
                )
                await asyncio.sleep(sleep_time)

        # Should not reach here
        raise UnexpectedCallFailure(
            f"Call {function}() on {address} failed after {max_attempts} attempts",
            address=address,
            function=function,
            block=block,
        )

    async def get_block_timestamp(self, block: int) -> int:
        for attempt_number in range(1, self.retry_handler.max_attempts + 1):
            try:
                async with self._semaphore:
                    data = await self.web3.eth.get_block(block)
                return int(data["timestamp"])
            except Exception as e:
                if (
                    not self.retry_handler.should_retry(e)
                    or attempt_number == self.retry_handler.max_attempts
                ):
                    raise UnexpectedCallFailure(
                        f"Unable to fetch block {block}: {e}", block=block
                    ) from e
                await asyncio.sleep(self.retry_handler.get_retry_delay(attempt_number))

        raise UnexpectedCallFailure(f"Unable to fetch block {block}", block=block)
