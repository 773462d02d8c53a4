"""
Tests for the in-memory record sink.
"""

from decimal import Decimal

import pytest

from tests.fixtures import DAI, OHM, TREASURY_WALLET, FakeChainReader, make_registry
from treasury_valuation.config.registry import Wallet
from treasury_valuation.pricing.resolver import PriceResolver
from treasury_valuation.shared.models import TokenSupplyType
from treasury_valuation.storage import InMemoryRecordStore, RecordSink
from treasury_valuation.valuation.metrics import build_protocol_metric
from treasury_valuation.valuation.token_records import TokenRecordBuilder
from treasury_valuation.valuation.token_supply import TokenSupplyBuilder

TIMESTAMP = 1_651_000_000
TREASURY = Wallet(name="Treasury Wallet", address=TREASURY_WALLET)


def block_output(block: int):
    registry = make_registry()
    records = [
        TokenRecordBuilder(registry, PriceResolver(registry, FakeChainReader())).assemble(
            DAI, TREASURY, Decimal(100), Decimal(1), block, TIMESTAMP
        )
    ]
    supplies = [
        TokenSupplyBuilder(registry).build(
            OHM, TokenSupplyType.TOTAL_SUPPLY, Decimal(1000), 1, block, TIMESTAMP
        )
    ]
    metric = build_protocol_metric(block, TIMESTAMP, records, supplies, Decimal(10), Decimal(1))
    return records, supplies, metric


class TestInMemoryRecordStore:
    def test_satisfies_sink_protocol(self):
        assert isinstance(InMemoryRecordStore(), RecordSink)

    @pytest.mark.asyncio
    async def test_write_and_query(self):
        store = InMemoryRecordStore()
        records, supplies, metric = block_output(100)

        await store.write_block(100, records, supplies, metric)

        assert store.token_records(100) == records
        assert store.token_supplies(100) == supplies
        assert store.metric(100) == metric
        assert store.metric(101) is None

    @pytest.mark.asyncio
    async def test_rewriting_a_block_is_idempotent(self):
        store = InMemoryRecordStore()
        records, supplies, metric = block_output(100)

        await store.write_block(100, records, supplies, metric)
        await store.write_block(100, records, supplies, metric)

        assert len(store.token_records()) == 1
        assert len(store.token_supplies()) == 1
        assert len(store.metrics()) == 1

    @pytest.mark.asyncio
    async def test_blocks_in_order(self):
        store = InMemoryRecordStore()
        for block in (300, 100, 200):
            await store.write_block(block, *block_output(block))

        assert store.blocks == [100, 200, 300]
