"""
Sanity Checks
=============

Non-fatal consistency checks run on every processed block. Each check
returns a list of ``InvariantViolation`` results; an empty list means the
block is consistent. Violations are logged and reported alongside the block
but never stop it from being emitted.

Checks:
- market_value_components: market value equals Stable + Volatile + POL
  (+ Unknown) components within a USD tolerance
- supply_nesting: backed <= floating <= circulating
- record_derivations: each record's value fields match its inputs
"""

from collections.abc import Sequence
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from treasury_valuation.common.utils.decimals import values_equal
from treasury_valuation.config.state import SanityConfig
from treasury_valuation.infrastructure.observability import get_reporting_logger
from treasury_valuation.shared.models import ProtocolMetric, TokenRecord, TokenSupply
from treasury_valuation.valuation import aggregation
from treasury_valuation.valuation.aggregation import SUPPLY_TIERS, TierTable

log = get_reporting_logger()


class InvariantViolation(BaseModel):
    """A failed consistency check. A result, not an exception."""

    model_config = ConfigDict(frozen=True)

    check: str
    block: int
    message: str
    expected: Decimal | None = Field(default=None)
    actual: Decimal | None = Field(default=None)
    record_id: str | None = Field(default=None)


# =============================================================================
# CHECKS
# =============================================================================


def check_market_value_components(
    block: int, records: Sequence[TokenRecord], tolerance: Decimal
) -> list[InvariantViolation]:
    total = aggregation.market_value(records)
    components = sum(aggregation.market_value_by_category(records).values(), Decimal(0))

    if values_equal(total, components, tolerance):
        return []
    return [
        InvariantViolation(
            check="market_value_components",
            block=block,
            message="Market value differs from the sum of its category components",
            expected=total,
            actual=components,
        )
    ]


def check_supply_nesting(
    block: int, supplies: Sequence[TokenSupply], tiers: TierTable = SUPPLY_TIERS
) -> list[InvariantViolation]:
    circulating = aggregation.circulating_supply(supplies, tiers)
    floating = aggregation.floating_supply(supplies, tiers)
    backed = aggregation.backed_supply(supplies, tiers)

    violations = []
    if floating > circulating:
        violations.append(
            InvariantViolation(
                check="supply_nesting",
                block=block,
                message="Floating supply exceeds circulating supply",
                expected=circulating,
                actual=floating,
            )
        )
    if backed > floating:
        violations.append(
            InvariantViolation(
                check="supply_nesting",
                block=block,
                message="Backed supply exceeds floating supply",
                expected=floating,
                actual=backed,
            )
        )
    return violations


def check_record_derivations(
    block: int, records: Sequence[TokenRecord], tolerance: Decimal
) -> list[InvariantViolation]:
    violations = []
    for record in records:
        expected_value = record.balance * record.rate
        expected_excluding = expected_value * record.multiplier

        if not values_equal(record.value, expected_value, tolerance):
            violations.append(
                InvariantViolation(
                    check="record_derivations",
                    block=block,
                    message="value != balance × rate",
                    expected=expected_value,
                    actual=record.value,
                    record_id=record.record_id,
                )
            )
        if not values_equal(record.value_excluding_ohm, expected_excluding, tolerance):
            violations.append(
                InvariantViolation(
                    check="record_derivations",
                    block=block,
                    message="value_excluding_ohm != balance × rate × multiplier",
                    expected=expected_excluding,
                    actual=record.value_excluding_ohm,
                    record_id=record.record_id,
                )
            )
    return violations


def check_metric_consistency(
    metric: ProtocolMetric, records: Sequence[TokenRecord], tolerance: Decimal
) -> list[InvariantViolation]:
    """The emitted metric must agree with the records it was derived from."""
    total = aggregation.market_value(records)
    if values_equal(metric.treasury_market_value, total, tolerance):
        return []
    return [
        InvariantViolation(
            check="metric_consistency",
            block=metric.block,
            message="Metric market value differs from its records",
            expected=total,
            actual=metric.treasury_market_value,
        )
    ]


# =============================================================================
# RUNNER
# =============================================================================


def run_sanity_checks(
    block: int,
    records: Sequence[TokenRecord],
    supplies: Sequence[TokenSupply],
    metric: ProtocolMetric | None = None,
    config: SanityConfig | None = None,
    tiers: TierTable = SUPPLY_TIERS,
) -> list[InvariantViolation]:
    """Run every check for one block and log what failed."""
    config = config or SanityConfig()

    violations = [
        *check_market_value_components(block, records, config.market_value_tolerance),
        *check_supply_nesting(block, supplies, tiers),
        *check_record_derivations(block, records, config.record_tolerance),
    ]
    if metric is not None:
        violations.extend(
            check_metric_consistency(metric, records, config.market_value_tolerance)
        )

    for violation in violations:
        log.warning(
            "invariant_violation",
            check=violation.check,
            block=violation.block,
            message=violation.message,
            expected=str(violation.expected),
            actual=str(violation.actual),
            record_id=violation.record_id,
        )
    return violations
