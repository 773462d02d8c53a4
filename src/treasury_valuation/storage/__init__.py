"""Record sinks."""

from treasury_valuation.storage.memory import InMemoryRecordStore
from treasury_valuation.storage.ports import RecordSink

__all__ = ["InMemoryRecordStore", "RecordSink"]
