"""
Web3 Error Mapper

Maps exceptions raised by web3.py into the engine's contract-call taxonomy,
keeping the address, function and block of the failed read.
"""

from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from treasury_valuation.exceptions import (
    ContractCallError,
    NotYetDeployedError,
    UnexpectedCallFailure,
)


class Web3ErrorMapper:
    """Maps web3 exceptions to ContractCallError subclasses."""

    # A revert, or an empty return from an address without code
    REVERT_ERRORS = (ContractLogicError, BadFunctionCallOutput)

    @classmethod
    def is_revert(cls, error: BaseException) -> bool:
        return isinstance(error, cls.REVERT_ERRORS)

    @classmethod
    def map_error(
        cls,
        error: BaseException,
        address: str,
        function: str,
        block: int | None,
    ) -> ContractCallError:
        """
        Map a web3 exception to the engine taxonomy.

        Args:
            error: Exception raised by the web3 call
            address: Contract address that was called
            function: Function name that was called
            block: Block the call was pinned to

        Returns:
            NotYetDeployedError for reverts, UnexpectedCallFailure otherwise
        """
        target = f"{function}() on {address} at block {block}"

        if cls.is_revert(error):
            return NotYetDeployedError(
                f"Call reverted: {target}: {error}",
                address=address,
                function=function,
                block=block,
            )

        return UnexpectedCallFailure(
            f"Call failed: {target}: {type(error).__name__}: {error}",
            address=address,
            function=function,
            block=block,
        )
