"""
Tests for the command-line entry point.
"""

import json
import logging

import pytest
import structlog

from tests.fixtures import TREASURY_BLOCK, make_treasury_chain, make_treasury_registry
from treasury_valuation.cli import block_range, main, parse_args, render
from treasury_valuation.orchestration import TreasuryOrchestrator
from treasury_valuation.storage import InMemoryRecordStore


@pytest.fixture
def clean_logging():
    original_handlers = logging.root.handlers[:]
    yield
    logging.root.handlers = original_handlers
    structlog.reset_defaults()


class TestParseArgs:
    def test_single_blocks(self):
        args = parse_args(["--block", "100", "--block", "200"])

        assert block_range(args) == [100, 200]

    def test_range_with_step(self):
        args = parse_args(["--from-block", "100", "--to-block", "120", "--step", "10"])

        assert block_range(args) == [100, 110, 120]

    def test_range_defaults_to_every_block(self):
        assert block_range(parse_args(["--from-block", "5", "--to-block", "7"])) == [5, 6, 7]

    @pytest.mark.parametrize(
        "argv",
        [
            [],
            ["--block", "100", "--from-block", "100", "--to-block", "110"],
            ["--from-block", "100"],
            ["--from-block", "110", "--to-block", "100"],
            ["--from-block", "100", "--to-block", "110", "--step", "0"],
        ],
    )
    def test_invalid_arguments(self, argv):
        with pytest.raises(SystemExit):
            parse_args(argv)

    def test_flags(self):
        args = parse_args(["--block", "1", "--records", "--continue-on-error", "--env", "prod"])

        assert args.records is True
        assert args.continue_on_error is True
        assert args.env == "prod"


class TestRender:
    @pytest.mark.asyncio
    async def test_block_document(self):
        orchestrator = TreasuryOrchestrator(
            make_treasury_registry(), make_treasury_chain(), InMemoryRecordStore()
        )
        result = await orchestrator.process_block(TREASURY_BLOCK)

        summary = json.loads(render(result, include_records=False))
        detailed = json.loads(render(result, include_records=True))

        assert summary["block"] == TREASURY_BLOCK
        assert summary["metric"]["block"] == TREASURY_BLOCK
        assert summary["violations"] == []
        assert "records" not in summary
        assert len(detailed["records"]) == 4
        assert len(detailed["supplies"]) == len(result.supplies)


class TestMain:
    def test_missing_registry_fails_cleanly(self, tmp_path, capsys, clean_logging):
        assert main(["--block", "100", "--config-dir", str(tmp_path), "--env", "dev"]) == 1

        assert "Registry file not found" in capsys.readouterr().err
