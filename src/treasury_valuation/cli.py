"""
Command-line entry point.

Values one or more blocks against a JSON-RPC node and prints one JSON
document per block to stdout:

    treasury-valuation --block 17620000
    treasury-valuation --from-block 17600000 --to-block 17620000 --step 7200
"""

import argparse
import asyncio
import json
import sys

from treasury_valuation.chain.web3_reader import Web3ChainReader
from treasury_valuation.config.registry import load_registry
from treasury_valuation.config.state import ConfigState, get_config
from treasury_valuation.exceptions import TreasuryValuationError
from treasury_valuation.infrastructure.observability import setup_logging
from treasury_valuation.orchestration.treasury import BlockResult, TreasuryOrchestrator
from treasury_valuation.storage.memory import InMemoryRecordStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="treasury-valuation",
        description="Compute treasury market value, liquid backing and supply metrics per block",
    )
    blocks = parser.add_mutually_exclusive_group(required=True)
    blocks.add_argument(
        "--block", type=int, action="append", help="Block to value (repeatable)"
    )
    blocks.add_argument("--from-block", type=int, help="First block of a range")
    parser.add_argument("--to-block", type=int, help="Last block of a range (inclusive)")
    parser.add_argument("--step", type=int, default=1, help="Block interval within a range")
    parser.add_argument("--config-dir", default=None, help="Configuration directory")
    parser.add_argument("--env", default=None, help="Environment name (dev, prod, ...)")
    parser.add_argument("--rpc-url", default=None, help="Override the configured RPC URL")
    parser.add_argument(
        "--records", action="store_true", help="Include token and supply records in the output"
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Skip failed blocks instead of stopping",
    )

    args = parser.parse_args(argv)
    if args.from_block is not None:
        if args.to_block is None:
            parser.error("--from-block requires --to-block")
        if args.to_block < args.from_block:
            parser.error("--to-block must not be before --from-block")
        if args.step < 1:
            parser.error("--step must be positive")
    return args


def block_range(args: argparse.Namespace) -> list[int]:
    if args.block:
        return list(args.block)
    return list(range(args.from_block, args.to_block + 1, args.step))


def render(result: BlockResult, include_records: bool) -> str:
    document = {
        "block": result.block,
        "metric": result.metric.model_dump(mode="json"),
        "violations": [v.model_dump(mode="json") for v in result.violations],
    }
    if include_records:
        document["records"] = [r.model_dump(mode="json") for r in result.records]
        document["supplies"] = [s.model_dump(mode="json") for s in result.supplies]
    return json.dumps(document)


async def run(config: ConfigState, blocks: list[int], include_records: bool) -> int:
    registry = load_registry(config.registry_path)
    reader = Web3ChainReader(config.rpc, config.retry, chain=config.pipeline.chain)
    orchestrator = TreasuryOrchestrator(registry, reader, InMemoryRecordStore(), config)

    results = await orchestrator.run(blocks)
    for result in results:
        print(render(result, include_records))
    return 0 if len(results) == len(blocks) else 1


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    config = get_config(config_dir=args.config_dir, env=args.env)
    if args.rpc_url:
        config.rpc.url = args.rpc_url
    if args.continue_on_error:
        config.pipeline.stop_on_error = False

    setup_logging(
        level=config.logging.level,
        json_logs=config.logging.json_logs,
        include_timestamp=config.logging.include_timestamp,
    )

    try:
        return asyncio.run(run(config, block_range(args), args.records))
    except TreasuryValuationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
