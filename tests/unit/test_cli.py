"""Tests for the command line entry point."""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from poolmath.cli import main
from tests.helpers import DAI, USDC

WEIGHTED_PAYLOAD = {
    "id": "0xweighted",
    "poolType": "Weighted",
    "totalSupply": "100",
    "swapFee": "0",
    "weights": ["0.5", "0.5"],
    "tokens": [
        {"address": DAI, "decimals": 18, "balance": "100"},
        {"address": USDC, "decimals": 18, "balance": "100"},
    ],
}


@pytest.fixture
def pool_file(tmp_path: Path) -> Path:
    path = tmp_path / "pool.json"
    path.write_text(json.dumps(WEIGHTED_PAYLOAD))
    return path


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> dict:
    assert main(list(argv)) == 0
    return json.loads(capsys.readouterr().out)


class TestCommands:
    """Each subcommand prints one JSON document."""

    def test_join(self, pool_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        output = _run(capsys, "join", str(pool_file), "--amounts", "20", "0")
        assert output["operation"] == "join"
        assert Decimal("9.5") < Decimal(output["bpt_out"]["value"]) < Decimal("9.6")
        assert output["bpt_out"]["approximate"] is False
        assert output["price_impact"]["high"] is True

    def test_exit_exact_out(self, pool_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        output = _run(capsys, "exit", str(pool_file), "--amounts", "20", "0")
        assert output["operation"] == "exit_exact_out"
        assert Decimal(output["bpt_in"]["value"]) > 10

    def test_exit_single_asset(self, pool_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        output = _run(capsys, "exit", str(pool_file), "--bpt", "10", "--token-index", "0")
        assert output["operation"] == "exit_single_asset"
        assert output["amount_out"]["value"] == "19.000000000000000000"

    def test_exit_single_asset_by_address(self, pool_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        output = _run(capsys, "exit", str(pool_file), "--bpt", "10", "--token", USDC.upper())
        assert output["operation"] == "exit_single_asset"
        assert output["amount_out"]["value"] == "19.000000000000000000"

    def test_exit_proportional(self, pool_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        output = _run(capsys, "exit", str(pool_file), "--bpt", "10")
        assert output["operation"] == "exit_proportional"
        assert output["amounts_out"] == ["10.000000000000000000", "10.000000000000000000"]
        assert Decimal(output["price_impact"]["value"]) == 0

    def test_liquidity(self, pool_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        output = _run(capsys, "liquidity", str(pool_file), "--price", f"{DAI}=1", "--price", f"{USDC}=2")
        assert Decimal(output["total_liquidity"]) == 300


class TestFailures:
    """Errors exit with status 1 and a message on stderr."""

    def test_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["join", str(tmp_path / "missing.json"), "--amounts", "1"]) == 1
        assert "cannot read" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "pool.json"
        path.write_text("{not json")
        assert main(["join", str(path), "--amounts", "1"]) == 1
        assert "not valid JSON" in capsys.readouterr().err

    def test_invalid_snapshot(self, tmp_path: Path) -> None:
        path = tmp_path / "pool.json"
        path.write_text(json.dumps({**WEIGHTED_PAYLOAD, "swapFee": "1.5"}))
        assert main(["join", str(path), "--amounts", "1"]) == 1

    def test_invalid_amount(self, pool_file: Path) -> None:
        assert main(["join", str(pool_file), "--amounts", "-1"]) == 1

    def test_exit_needs_amounts_or_bpt(self, pool_file: Path) -> None:
        assert main(["exit", str(pool_file)]) == 1

    def test_bad_price_argument(self, pool_file: Path) -> None:
        assert main(["liquidity", str(pool_file), "--price", "no-separator"]) == 1

    def test_bad_token_index(self, pool_file: Path) -> None:
        assert main(["exit", str(pool_file), "--bpt", "1", "--token-index", "7"]) == 1

    def test_unknown_token_address(self, pool_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["exit", str(pool_file), "--bpt", "1", "--token", "0xmissing"]) == 1
        assert "not in the pool" in capsys.readouterr().err
