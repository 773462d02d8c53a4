"""
Utilities Module - Shared Helper Functions
===========================================

Provides shared utilities used across multiple layers:
- Address normalisation
- Date/time utilities
- Decimal scaling
"""

from treasury_valuation.common.utils.addresses import (
    addresses_equal,
    normalize_address,
)
from treasury_valuation.common.utils.date_utils import (
    from_unix_seconds,
    to_iso_date,
)
from treasury_valuation.common.utils.decimals import (
    ONE,
    ZERO,
    safe_divide,
    to_decimal,
    values_equal,
)

__all__ = [
    # Addresses
    "normalize_address",
    "addresses_equal",
    # Dates
    "from_unix_seconds",
    "to_iso_date",
    # Decimals
    "ZERO",
    "ONE",
    "to_decimal",
    "safe_divide",
    "values_equal",
]
