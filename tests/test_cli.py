# tests/test_cli.py
from __future__ import annotations

import json
from pathlib import Path

import pytest

from iso5.cli import build_parser, format_status, main


def test_run_defaults() -> None:
    args = build_parser().parse_args(["run"])
    assert args.command == "run"
    assert args.ticks is None
    assert args.status_every == 60.0
    assert args.export_logs is None


def test_backtest_args() -> None:
    args = build_parser().parse_args(["backtest", "data/prices.csv", "--balance", "2500"])
    assert args.command == "backtest"
    assert args.csv == Path("data/prices.csv")
    assert args.balance == 2500.0


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_format_status() -> None:
    text = format_status(
        {
            "circuit": {"paused": True, "losses": 3},
            "risk": {"balance": 10_000.0},
            "performance": {"total_trades": 3},
            "last_price": 101.5,
        }
    )
    assert "paused=True losses=3" in text
    assert "101.5" in text


def test_backtest_command_prints_result(tmp_path: Path, capsys) -> None:
    path = tmp_path / "prices.csv"
    rows = "\n".join(f"{1_700_000_100 + i * 300},{100 + i}" for i in range(3))
    path.write_text("timestamp,price\n" + rows + "\n", encoding="utf-8")

    assert main(["backtest", str(path), "--balance", "10000"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["trades"] == 2
    assert out["period_start"] == 1_700_000_100
    assert out["paused"] is False
