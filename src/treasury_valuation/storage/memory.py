"""In-memory RecordSink, keyed by record identity."""

from collections.abc import Sequence

from treasury_valuation.infrastructure.observability import get_infrastructure_logger
from treasury_valuation.shared.models import ProtocolMetric, TokenRecord, TokenSupply


class InMemoryRecordStore:
    """
    RecordSink that keeps everything in dictionaries.

    Records are keyed by their identity, so re-writing a block replaces its
    records with identical ones instead of duplicating them.
    """

    def __init__(self):
        self._records: dict[str, TokenRecord] = {}
        self._supplies: dict[str, TokenSupply] = {}
        self._metrics: dict[str, ProtocolMetric] = {}
        self.log = get_infrastructure_logger("memory-store")

    async def write_block(
        self,
        block: int,
        records: Sequence[TokenRecord],
        supplies: Sequence[TokenSupply],
        metric: ProtocolMetric,
    ) -> None:
        for record in records:
            self._records[record.record_id] = record
        for supply in supplies:
            self._supplies[supply.record_id] = supply
        self._metrics[metric.record_id] = metric

        self.log.debug(
            "block_written",
            block=block,
            records=len(records),
            supplies=len(supplies),
        )

    # ==================== QUERIES ====================

    def token_records(self, block: int | None = None) -> list[TokenRecord]:
        return [r for r in self._records.values() if block is None or r.block == block]

    def token_supplies(self, block: int | None = None) -> list[TokenSupply]:
        return [s for s in self._supplies.values() if block is None or s.block == block]

    def metrics(self) -> list[ProtocolMetric]:
        return sorted(self._metrics.values(), key=lambda metric: metric.block)

    def metric(self, block: int) -> ProtocolMetric | None:
        for metric in self._metrics.values():
            if metric.block == block:
                return metric
        return None

    @property
    def blocks(self) -> list[int]:
        return [metric.block for metric in self.metrics()]
