"""
Structured logging for the treasury valuation pipeline.

Every event is one JSON object tagged with the layer that emitted it. While
the orchestrator works on a block, ``block_context`` adds the block number
to everything logged underneath, including cache and strategy events that
never see the block explicitly.

Example (a pool valuation during block 17620000):
    {
        "app": "treasury-valuation",
        "layer": "valuation",
        "component": "owned-liquidity",
        "module": "valuation",
        "block": 17620000,
        "event": "pool_valued",
        "pool": "OHM-DAI",
        "total_value": "1000000"
    }

Layers and their main events:
    - chain: call_retry, call_failed
    - pricing: rate_resolved, ohm_pair_selected, ohm_pair_unpriceable,
      counter_token_skipped, pool_not_deployed
    - valuation: pool_valued, token_not_deployed, pool_token_not_deployed
    - pipeline: block_started, block_processed, block_failed, run_completed
    - reporting: invariant_violation
    - infrastructure: block_written

Rates and USD values are logged as strings so Decimal precision survives
the JSON renderer.
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict

Layer = Literal[
    "infrastructure", "chain", "pricing", "valuation", "pipeline", "reporting"
]

SEVERITIES = frozenset({"debug", "info", "warning", "error", "critical"})


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application-wide context to every log entry.

    Lets valuation logs be told apart when shipped to a shared collector.
    """
    event_dict["app"] = "treasury-valuation"
    return event_dict


def add_severity_level(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Upper-case severity next to structlog's ``level`` for log collectors."""
    level = event_dict.get("level")
    if level:
        event_dict["severity"] = level.upper() if level in SEVERITIES else "INFO"
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON. If False, use human-readable format (dev mode).
        include_timestamp: Whether to include ISO timestamps in logs

    Usage:
        >>> from treasury_valuation.infrastructure.observability import setup_logging
        >>> setup_logging(level="DEBUG", json_logs=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,  # Merge context variables (block)
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance with architectural context.

    Args:
        name: Logger name (typically __name__ of the calling module)
        layer: Architectural layer (chain, pricing, valuation, etc.)
        component: Specific component/service within the layer
        **initial_context: Additional context key-value pairs to bind to logger

    Usage:
        >>> log = get_logger(__name__, layer="pricing", component="price-resolver")
        >>> log.info("rate_resolved", token="0x64aa...", rate="11.2")
    """
    logger = structlog.get_logger(name)

    context = {}

    if layer:
        context["layer"] = layer

    if component:
        context["component"] = component

    if name:
        context["module"] = name

    context.update(initial_context)

    if context:
        logger = logger.bind(**context)

    return logger


def block_context(block: int, **context: Any):
    """
    Tag every event logged inside the ``with`` body with ``block``.

    Tasks gathered inside the body inherit the binding, so cache and strategy
    logs deep inside a block carry it without passing it around. Explicit
    ``block=`` arguments on an event take precedence.

    Usage:
        >>> with block_context(17620000, chain="ethereum"):
        ...     await orchestrator.process_block(17620000)
    """
    return structlog.contextvars.bound_contextvars(block=block, **context)


# ============================================================================
# Layer-Specific Logger Factories
# ============================================================================


def get_infrastructure_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for infrastructure layer (config loading, record storage).

    Usage:
        >>> log = get_infrastructure_logger("memory-store")
        >>> log.info("block_written", block=17620000, records=42)
    """
    return get_logger(
        "infrastructure",
        layer="infrastructure",
        component=component,
        **context,
    )


def get_chain_logger(
    component: str,
    chain: str | None = None,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for contract reads.

    Args:
        component: Component name (e.g., "web3-reader", "contracts")
        chain: Chain name (e.g., "ethereum") - optional
        **context: Additional context

    Usage:
        >>> log = get_chain_logger("web3-reader", chain="ethereum")
        >>> log.warning("call_retry", function="getReserves", attempt=2)
    """
    ctx = {}
    if chain:
        ctx["chain"] = chain
    ctx.update(context)

    return get_logger(
        "chain",
        layer="chain",
        component=component,
        **ctx,
    )


def get_pricing_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for price resolution (resolver, strategies, snapshot caches).

    Usage:
        >>> log = get_pricing_logger("uniswap-v2-strategy")
        >>> log.debug("reserves_loaded", pool="0x055475...", block=17620000)
    """
    return get_logger(
        "pricing",
        layer="pricing",
        component=component,
        **context,
    )


def get_valuation_logger(
    component: str,
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for record production and aggregation.

    Usage:
        >>> log = get_valuation_logger("owned-liquidity")
        >>> log.info("pool_valued", pool="OHM-DAI", total_value="1000000")
    """
    return get_logger(
        "valuation",
        layer="valuation",
        component=component,
        **context,
    )


def get_pipeline_logger(
    component: str = "treasury-orchestrator",
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for per-block orchestration.

    Usage:
        >>> log = get_pipeline_logger(chain="ethereum")
        >>> log.info("block_started", block=17620000)
    """
    return get_logger(
        "pipeline",
        layer="pipeline",
        component=component,
        **context,
    )


def get_reporting_logger(
    component: str = "sanity-checks",
    **context: Any,
) -> structlog.stdlib.BoundLogger:
    """
    Get a logger for sanity checks and reports.

    Usage:
        >>> log = get_reporting_logger()
        >>> log.warning("invariant_violation", check="market_value_components")
    """
    return get_logger(
        "reporting",
        layer="reporting",
        component=component,
        **context,
    )
