"""
Treasury wallet balances.

Values every registered Stable and Volatile token (ERC4626 vault shares
included) held across the treasury wallets active at a block. Zero balances
produce no record and tokens that are not deployed yet are skipped.
"""

import asyncio
from decimal import Decimal

from treasury_valuation.chain.contracts import read_balance
from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.common.utils.decimals import ZERO
from treasury_valuation.config.registry import ChainRegistry, Wallet
from treasury_valuation.exceptions import NotYetDeployedError
from treasury_valuation.infrastructure.observability import get_valuation_logger
from treasury_valuation.pricing.resolver import PriceResolver
from treasury_valuation.shared.models import TokenDefinition, TokenRecord
from treasury_valuation.valuation.token_records import TokenRecordBuilder


async def read_wallet_balances(
    reader: ChainReader,
    token: str,
    decimals: int,
    wallets: tuple[Wallet, ...],
    block: int,
) -> list[tuple[Wallet, Decimal]]:
    """Non-zero balances of ``token`` across ``wallets``."""
    balances = await asyncio.gather(
        *(read_balance(reader, token, wallet.address, decimals, block) for wallet in wallets)
    )
    return [(wallet, balance) for wallet, balance in zip(wallets, balances) if balance != ZERO]


class TreasuryBalances:
    """Produces TokenRecords for wallet-held treasury assets."""

    def __init__(
        self,
        registry: ChainRegistry,
        reader: ChainReader,
        resolver: PriceResolver,
        records: TokenRecordBuilder,
    ):
        self.registry = registry
        self.reader = reader
        self.resolver = resolver
        self.records = records
        self.log = get_valuation_logger("treasury-balances")

    async def token_records(self, block: int, timestamp: int) -> list[TokenRecord]:
        wallets = self.registry.wallets_at(block)
        if not wallets:
            return []

        per_token = await asyncio.gather(
            *(
                self._token_records(token, wallets, block, timestamp)
                for token in self.registry.valued_tokens()
            )
        )
        return [record for records in per_token for record in records]

    async def _token_records(
        self,
        token: TokenDefinition,
        wallets: tuple[Wallet, ...],
        block: int,
        timestamp: int,
    ) -> list[TokenRecord]:
        try:
            snapshot = await self.resolver.erc20.get_or_create(token.address, block)
            held = await read_wallet_balances(
                self.reader, token.address, snapshot.decimals, wallets, block
            )
        except NotYetDeployedError:
            self.log.debug("token_not_deployed", token=token.name, block=block)
            return []

        if not held:
            return []

        # Priced once per block, only when something is actually held
        rate = await self.resolver.resolve(token.address, block)
        return [
            await self.records.build(token.address, wallet, balance, block, timestamp, rate=rate)
            for wallet, balance in held
        ]
