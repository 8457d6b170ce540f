# src/iso5/backtest/datafeed.py
from __future__ import annotations

# Historical price loading (CSV -> PriceSample list).
# - Header with typical columns (t/ts/timestamp/time + price/close/mid/last), or
# - header-less "timestamp,price" rows.
# Rows with a missing/non-numeric timestamp or a non-positive price are dropped.
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from iso5.core.types import PriceSample

_TS_CANDS: tuple[str, ...] = ("t", "ts", "timestamp", "time", "ts_ms")
_PRICE_CANDS: tuple[str, ...] = ("price", "close", "mid", "last", "c")


def _detect_col(cols: Iterable[str], cands: tuple[str, ...]) -> str | None:
    lowered = {str(c).strip().lower(): c for c in cols}
    for k in cands:
        if k in lowered:
            return lowered[k]
    return None


def _looks_numeric(values: Iterable[object]) -> bool:
    try:
        for v in values:
            float(str(v))
    except ValueError:
        return False
    return True


def _to_epoch_seconds(series: pd.Series) -> pd.Series:
    s = pd.to_numeric(series, errors="coerce")
    # Values this large are milliseconds.
    if s.dropna().gt(10_000_000_000).any():
        s = s / 1000.0
    return s


def load_price_csv(path: str | Path) -> list[PriceSample]:
    p = Path(path).expanduser()
    df = pd.read_csv(p)

    if _looks_numeric(df.columns[:2]):
        df = pd.read_csv(p, header=None)
        if df.shape[1] < 2:
            raise KeyError(f"Expected 'timestamp,price' rows in {p}")
        ts_key, price_key = df.columns[0], df.columns[1]
    else:
        ts_key = _detect_col(df.columns, _TS_CANDS)
        price_key = _detect_col(df.columns, _PRICE_CANDS)
        if ts_key is None or price_key is None:
            raise KeyError(
                f"Need a timestamp column {_TS_CANDS} and a price column {_PRICE_CANDS}; "
                f"header={list(df.columns)}"
            )

    ts = _to_epoch_seconds(df[ts_key])
    prices = pd.to_numeric(df[price_key], errors="coerce")

    out: list[PriceSample] = []
    for t_val, p_val in zip(ts, prices):
        if pd.isna(t_val) or pd.isna(p_val) or p_val <= 0:
            continue
        out.append(PriceSample(timestamp=int(t_val), price=float(p_val)))
    return out
