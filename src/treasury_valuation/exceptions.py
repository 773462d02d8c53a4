"""
Treasury Valuation Exception Hierarchy

Separates recoverable absence (a contract that does not exist yet at a
historical block) from failures that must abort the block being processed.

    TreasuryValuationError
    ├── ContractCallError
    │   ├── NotYetDeployedError      recoverable, swallowed at the lowest level
    │   └── UnexpectedCallFailure    fatal
    ├── PricingUnavailable           fatal, never replaced by a zero rate
    │   └── ResolutionDepthExceeded  route longer than the configured depth
    ├── ConfigurationError           fatal
    └── BlockProcessingError         raised by the orchestrator, wraps the cause
"""


class TreasuryValuationError(Exception):
    """Base exception for all valuation errors."""

    def __init__(self, message: str, block: int | None = None):
        super().__init__(message)
        self.block = block


class ContractCallError(TreasuryValuationError):
    """Base exception for failed contract reads."""

    def __init__(
        self,
        message: str,
        address: str | None = None,
        function: str | None = None,
        block: int | None = None,
    ):
        super().__init__(message, block=block)
        self.address = address
        self.function = function


class NotYetDeployedError(ContractCallError):
    """The call reverted, typically because the contract does not exist at the block."""

    pass


class UnexpectedCallFailure(ContractCallError):
    """The call failed for a reason other than a revert (RPC down, bad response)."""

    pass


class PricingUnavailable(TreasuryValuationError):
    """No route could determine the USD rate of a token."""

    def __init__(self, message: str, token: str | None = None, block: int | None = None):
        super().__init__(message, block=block)
        self.token = token


class ResolutionDepthExceeded(PricingUnavailable):
    """A price route needs more nested resolutions than allowed.

    Unlike a token that simply has no route, this says nothing about the
    token itself, so callers choosing between routes must not skip it.
    """

    pass


class ConfigurationError(TreasuryValuationError):
    """The registry or runtime configuration is missing an entry or is inconsistent."""

    pass


class BlockProcessingError(TreasuryValuationError):
    """Processing of a block was aborted; nothing for the block was emitted."""

    def __init__(self, message: str, block: int, cause: BaseException | None = None):
        super().__init__(message, block=block)
        self.cause = cause
