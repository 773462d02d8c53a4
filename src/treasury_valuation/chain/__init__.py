"""
Chain access: the ChainReader port, its web3 adapter and typed read helpers.
"""

from treasury_valuation.chain.error_mapper import Web3ErrorMapper
from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.chain.retry_handler import RetryHandler
from treasury_valuation.chain.web3_reader import Web3ChainReader

__all__ = [
    "ChainReader",
    "RetryHandler",
    "Web3ChainReader",
    "Web3ErrorMapper",
]
