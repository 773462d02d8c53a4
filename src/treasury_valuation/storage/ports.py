"""
Storage Layer Protocol Definitions
==================================

Where processed blocks are written. A sink only ever receives the complete
output of a block that was processed without a fatal error.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from treasury_valuation.shared.models import ProtocolMetric, TokenRecord, TokenSupply


@runtime_checkable
class RecordSink(Protocol):
    """
    Append-only, idempotent record sink.

    Writing the same record identity twice must leave a single record.
    """

    async def write_block(
        self,
        block: int,
        records: Sequence[TokenRecord],
        supplies: Sequence[TokenSupply],
        metric: ProtocolMetric,
    ) -> None:
        """Persist every record of one block."""
        ...
