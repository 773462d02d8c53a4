"""
RPC Retry Handler

Decides which failed reads are worth retrying (transport errors, node
hiccups) and which are permanent (reverts, bad arguments), and computes the
exponential backoff between attempts.
"""

from web3.exceptions import Web3ValidationError

from treasury_valuation.chain.error_mapper import Web3ErrorMapper
from treasury_valuation.config.state import RetryConfig


class RetryHandler:
    """Determines retry behavior for different error types."""

    # Errors that will fail the same way on every attempt
    NON_RETRYABLE_ERRORS = (Web3ValidationError, TypeError)

    def __init__(self, config: RetryConfig):
        self.config = config

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def should_retry(self, error: BaseException) -> bool:
        """
        Determine if an error should be retried.

        Args:
            error: Exception raised by the call

        Returns:
            True if error is retryable, False otherwise
        """
        if Web3ErrorMapper.is_revert(error):
            return False

        if isinstance(error, self.NON_RETRYABLE_ERRORS):
            return False

        return True

    def get_retry_delay(self, attempt_number: int) -> float:
        """
        Calculate delay before retry.

        Args:
            attempt_number: Current attempt (1-indexed)

        Returns:
            Delay in seconds
        """
        # Exponential backoff: base_delay * multiplier^(attempt - 1)
        delay = self.config.base_delay * (
            self.config.backoff_multiplier ** (attempt_number - 1)
        )

        # Cap at max_delay
        return min(delay, self.config.max_delay)
