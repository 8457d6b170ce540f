# ============================================================
# check_system.py — Autodiagnóstico de iso5
# ------------------------------------------------------------
# Smoke test rápido de un checkout, sin red:
#   config   -> config.yaml carga y valida (con .env aplicado)
#   logger   -> sinks de consola y archivo, el archivo se escribe
#   ticks    -> tres ticks del scheduler contra el proveedor paper
#   backtest -> replay sintético corto por el backtester
#
#   python check_system.py
# Código de salida 0 solo si pasan todos los checks.
# ============================================================

from collections.abc import Callable
from pathlib import Path
import asyncio
import sys
import tempfile

sys.path.insert(0, str(Path(__file__).parent / "src"))

from loguru import logger  # noqa: E402

from iso5.backtest import Backtester  # noqa: E402
from iso5.brokers import PaperProvider  # noqa: E402
from iso5.core.config_loader import get_config  # noqa: E402
from iso5.core.engine import TickOutcome, TickScheduler  # noqa: E402
from iso5.core.logger_config import init_logger  # noqa: E402
from iso5.core.types import PriceSample  # noqa: E402


def check_config() -> str:
    cfg = get_config()
    env, agent = cfg["environment"], cfg["agent"]
    return (
        f"mode={env['mode']} provider={cfg['provider']['name']} "
        f"tick={agent['tick_seconds']}s interval={agent['interval_seconds']}s"
    )


def check_logger() -> str:
    with tempfile.TemporaryDirectory() as tmp:
        log_file = init_logger(log_dir=tmp)
        logger.info("self-check log line")
        logger.complete()
        logger.remove()  # liberar el archivo antes de borrar el directorio
        if log_file is None or log_file.stat().st_size == 0:
            raise RuntimeError(f"nothing written to {log_file}")
        size = log_file.stat().st_size
    init_logger(log_dir="")
    return f"file sink wrote {size} bytes"


def check_ticks() -> str:
    scheduler = TickScheduler.from_config(get_config(), provider=PaperProvider(seed=1))

    async def three_ticks() -> list[TickOutcome]:
        return [await scheduler.tick() for _ in range(3)]

    outcomes = asyncio.run(three_ticks())
    if TickOutcome.ERROR in outcomes:
        raise RuntimeError(scheduler.telemetry.get_last_error())
    return ", ".join(o.value for o in outcomes)


def check_backtest() -> str:
    bt = Backtester()
    bt.load_samples(PriceSample(timestamp=i * 300, price=100.0 + i) for i in range(6))
    result = bt.run()
    return f"trades={result.trades} pnl={result.total_pnl:+.2f}"


CHECKS: list[tuple[str, Callable[[], str]]] = [
    ("config", check_config),
    ("logger", check_logger),
    ("ticks", check_ticks),
    ("backtest", check_backtest),
]


def main() -> int:
    print("=== iso5 self-check ===")
    failures = 0
    for name, check in CHECKS:
        try:
            print(f"✅ {name:<8} {check()}")
        except Exception as e:
            failures += 1
            print(f"❌ {name:<8} {type(e).__name__}: {e}")
    print("=======================")
    print("✅ ALL OK" if not failures else f"❌ {failures} check(s) failed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
