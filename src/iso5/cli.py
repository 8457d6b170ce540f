# ============================================================
# src/iso5/cli.py — iso5 entry point
# ------------------------------------------------------------
#   iso5 run [--config PATH] [--ticks N] [--status-every S] [--export-logs PATH]
#   iso5 backtest data/sample.csv [--config PATH] [--balance X]
# ============================================================

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
import sys
from typing import Any

from loguru import logger

from iso5.backtest import Backtester
from iso5.brokers import build_provider
from iso5.core.config_loader import get_config, get_nested
from iso5.core.engine import TickScheduler
from iso5.core.logger_config import init_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="iso5", description="Velocity-momentum trading agent")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run the live/paper agent loop")
    run.add_argument("--config", type=Path, default=None, help="alternative config.yaml")
    run.add_argument("--ticks", type=int, default=None, help="stop after N ticks")
    run.add_argument(
        "--status-every", type=float, default=60.0, help="status report period (seconds, 0=off)"
    )
    run.add_argument("--export-logs", type=Path, default=None, help="telemetry CSV on shutdown")

    bt = sub.add_parser("backtest", help="replay a timestamp,price CSV")
    bt.add_argument("csv", type=Path)
    bt.add_argument("--config", type=Path, default=None)
    bt.add_argument("--balance", type=float, default=None, help="starting balance")
    return parser


def format_status(status: dict[str, Any]) -> str:
    circuit = status["circuit"]
    lines = [
        "=== ISO-5 Status ===",
        f"Circuit     : paused={circuit['paused']} losses={circuit['losses']}",
        f"Risk        : {status['risk']}",
        f"Performance : {status['performance']}",
        f"Last price  : {status['last_price']}",
        "====================",
    ]
    return "\n".join(lines)


async def _report_status(scheduler: TickScheduler, every: float) -> None:
    while True:
        await asyncio.sleep(every)
        logger.info("\n" + format_status(scheduler.get_status()))


async def _run_agent(scheduler: TickScheduler, ticks: int | None, status_every: float) -> None:
    reporter = None
    if status_every > 0:
        reporter = asyncio.create_task(_report_status(scheduler, status_every))
    try:
        await scheduler.run(max_ticks=ticks)
    finally:
        if reporter is not None:
            reporter.cancel()


def cmd_run(args: argparse.Namespace) -> int:
    cfg = get_config(args.config)
    init_logger(
        level=get_nested(cfg, "environment", "log_level", default="INFO"),
        log_dir=get_nested(cfg, "environment", "log_dir", default="data/logs"),
    )
    scheduler = TickScheduler.from_config(cfg, provider=build_provider(cfg))
    logger.info(
        f"[ISO-5] starting agent (mode={get_nested(cfg, 'environment', 'mode')}, "
        f"provider={get_nested(cfg, 'provider', 'name')})"
    )

    try:
        asyncio.run(_run_agent(scheduler, args.ticks, args.status_every))
    except KeyboardInterrupt:
        logger.info("Shutting down ISO-5...")
    finally:
        logger.info(f"Final performance: {scheduler.performance.get_stats()}")
        if args.export_logs is not None:
            args.export_logs.parent.mkdir(parents=True, exist_ok=True)
            args.export_logs.write_text(scheduler.telemetry.export_csv(), encoding="utf-8")
            logger.info(f"Telemetry exported to {args.export_logs}")
    return 0


def cmd_backtest(args: argparse.Namespace) -> int:
    cfg = get_config(args.config)
    init_logger(level=get_nested(cfg, "environment", "log_level", default="INFO"), log_dir="")
    bt = Backtester(cfg, initial_balance=args.balance)
    bt.load_csv(args.csv)
    result = bt.run()
    print(json.dumps(result.as_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "run":
        return cmd_run(args)
    return cmd_backtest(args)


if __name__ == "__main__":
    sys.exit(main())
