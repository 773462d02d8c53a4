"""
Treasury Orchestrator
=====================

Processes blocks one at a time: gather → classify → price → aggregate →
check → emit.

Inside a block every independent read (tokens, wallets, pools, supply
components) is gathered concurrently and shares the resolver's block-keyed
caches. Blocks themselves are strictly sequential: block N+1 does not start
before block N has been written, and nothing of a block reaches the sink
unless the whole block succeeded.
"""

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass

from treasury_valuation.chain.ports import ChainReader
from treasury_valuation.config.registry import ChainRegistry
from treasury_valuation.config.state import ConfigState
from treasury_valuation.exceptions import BlockProcessingError, TreasuryValuationError
from treasury_valuation.infrastructure.observability import block_context, get_pipeline_logger
from treasury_valuation.pricing.resolver import PriceResolver
from treasury_valuation.reporting.sanity import InvariantViolation, run_sanity_checks
from treasury_valuation.shared.models import ProtocolMetric, TokenRecord, TokenSupply
from treasury_valuation.storage.ports import RecordSink
from treasury_valuation.valuation.aggregation import supply_tier_table
from treasury_valuation.valuation.balances import TreasuryBalances
from treasury_valuation.valuation.liquidity import OwnedLiquidityValuation
from treasury_valuation.valuation.metrics import build_protocol_metric
from treasury_valuation.valuation.supply import ProtocolSupply
from treasury_valuation.valuation.token_records import TokenRecordBuilder
from treasury_valuation.valuation.token_supply import TokenSupplyBuilder


@dataclass(frozen=True)
class BlockResult:
    """Everything produced for one block."""

    block: int
    timestamp: int
    records: tuple[TokenRecord, ...]
    supplies: tuple[TokenSupply, ...]
    metric: ProtocolMetric
    violations: tuple[InvariantViolation, ...] = ()


class TreasuryOrchestrator:
    """
    Per-block treasury valuation pipeline.

    Dependencies injected (not instantiated) when provided:
    - resolver: PriceResolver (built from the registry and reader otherwise)
    """

    def __init__(
        self,
        registry: ChainRegistry,
        reader: ChainReader,
        sink: RecordSink,
        config: ConfigState | None = None,
        resolver: PriceResolver | None = None,
    ):
        self.registry = registry
        self.reader = reader
        self.sink = sink
        self.config = config or ConfigState()

        self.resolver = resolver or PriceResolver(
            registry,
            reader,
            config=self.config.pricing,
            retention_blocks=self.config.pipeline.cache_retention_blocks,
        )

        records = TokenRecordBuilder(registry, self.resolver)
        supplies = TokenSupplyBuilder(registry)
        self.balances = TreasuryBalances(registry, reader, self.resolver, records)
        self.liquidity = OwnedLiquidityValuation(
            registry, reader, self.resolver, records, supplies
        )
        self.supply = ProtocolSupply(registry, reader, self.resolver, supplies, self.liquidity)

        self.log = get_pipeline_logger(chain=registry.blockchain.value)

    # ==================== SINGLE BLOCK ====================

    async def process_block(self, block: int) -> BlockResult:
        """
        Compute every record and metric of ``block`` without emitting them.

        Raises:
            BlockProcessingError: on any fatal error; wraps the cause
        """
        start_time = time.time()
        self.log.info("block_started", block=block)

        try:
            timestamp = await self.reader.get_block_timestamp(block)

            ohm_price, index, positions = await asyncio.gather(
                self.resolver.resolve(self.registry.ohm_token, block),
                self.resolver.current_index(block),
                self.liquidity.positions(block),
            )

            wallet_records, pol_records, supplies = await asyncio.gather(
                self.balances.token_records(block, timestamp),
                self.liquidity.token_records(block, timestamp, positions),
                self.supply.supply_records(block, timestamp, positions),
            )

            records = [*wallet_records, *pol_records]
            tiers = supply_tier_table(self.registry.supply_tier_overrides(block))

            metric = build_protocol_metric(
                block, timestamp, records, supplies, ohm_price, index, tiers
            )
            violations = run_sanity_checks(
                block, records, supplies, metric, self.config.sanity, tiers
            )
        except TreasuryValuationError as e:
            raise self._block_failed(block, e) from e
        except Exception as e:
            # Malformed reads and arithmetic faults abort the block like domain errors
            raise self._block_failed(block, e, exc_info=True) from e

        self.log.info(
            "block_processed",
            block=block,
            records=len(records),
            supplies=len(supplies),
            market_value=str(metric.treasury_market_value),
            liquid_backing=str(metric.treasury_liquid_backing),
            ohm_price=str(ohm_price),
            violations=len(violations),
            duration_seconds=round(time.time() - start_time, 3),
        )

        return BlockResult(
            block=block,
            timestamp=timestamp,
            records=tuple(records),
            supplies=tuple(supplies),
            metric=metric,
            violations=tuple(violations),
        )

    def _block_failed(
        self, block: int, error: Exception, exc_info: bool = False
    ) -> BlockProcessingError:
        self.log.error(
            "block_failed",
            block=block,
            error_type=type(error).__name__,
            error=str(error),
            exc_info=exc_info,
        )
        return BlockProcessingError(
            f"Block {block} failed: {type(error).__name__}: {error}", block=block, cause=error
        )

    # ==================== BLOCK RANGE ====================

    async def run(self, blocks: Iterable[int]) -> list[BlockResult]:
        """
        Process ``blocks`` in order and write each successful block to the sink.

        With ``pipeline.stop_on_error`` a failed block stops the run;
        otherwise it is logged and skipped.

        Raises:
            BlockProcessingError: if a block fails and stop_on_error is set
        """
        results: list[BlockResult] = []
        failed: list[int] = []

        for block in blocks:
            with block_context(block):
                try:
                    result = await self.process_block(block)
                except BlockProcessingError:
                    failed.append(block)
                    if self.config.pipeline.stop_on_error:
                        raise
                    continue

                await self.sink.write_block(
                    block, result.records, result.supplies, result.metric
                )
            results.append(result)

            pruned = self.resolver.prune(block)
            if pruned:
                self.log.debug("caches_pruned", block=block, entries=pruned)

        self.log.info("run_completed", processed=len(results), failed=failed)
        return results
