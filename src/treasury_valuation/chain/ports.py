"""
Chain Access Port

Read-only, block-pinned contract calls. The engine never talks to a node
directly; it depends on this Protocol so that tests can inject an in-memory
chain and production can use the web3 adapter.
"""

from typing import Any, Protocol


class ChainReader(Protocol):
    """
    Port for historical contract reads.

    Implementations must raise:
        NotYetDeployedError: the call reverted or returned no data, which at a
            historical block means the contract did not exist yet
        UnexpectedCallFailure: any other failure, after retries are exhausted
    """

    async def call(
        self,
        address: str,
        function: str,
        args: tuple[Any, ...] = (),
        block: int | None = None,
    ) -> Any:
        """
        Call a view function at ``block``.

        Returns the single decoded output, or a tuple when the function
        returns several values.
        """
        ...

    async def get_block_timestamp(self, block: int) -> int:
        """Unix timestamp (seconds) of ``block``."""
        ...
