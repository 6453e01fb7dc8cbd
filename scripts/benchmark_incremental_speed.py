#!/usr/bin/env python3
"""Benchmark per-bar update speed as history grows.

For each history size the indicator is replayed over the history (not
timed), then the next `--tail` bars are pushed through ``update`` and
timed.  Per-bar cost should stay flat: every update touches a bounded
window, never the whole history.
"""
from __future__ import annotations

import argparse
import copy
import os
import sys
from time import perf_counter
from typing import List

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import numpy as np
import pandas as pd
import pandas_ta_overlay as ta


DEFAULT_SPECS = {
    "atrbot": {"atr_length": 14, "atr_mult": 2.0, "ma_type": "EMA", "ma_length": 30},
    "session_vp": {"period": "Session", "row_size": 0.05, "value_area_pct": 70},
}


def make_ohlcv(rows: int, seed: int) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    idx = pd.date_range("2025-01-01", periods=rows, freq="1min", tz="UTC")
    base = 100 + rng.standard_normal(rows).cumsum()
    close = base + rng.normal(0, 0.2, rows)
    open_ = base + rng.normal(0, 0.2, rows)
    high = np.maximum(open_, close) + rng.random(rows) * 0.5
    low = np.minimum(open_, close) - rng.random(rows) * 0.5
    volume = rng.integers(100, 1000, rows)
    return pd.DataFrame(
        {
            "open": open_,
            "high": high,
            "low": low,
            "close": close,
            "volume": volume,
        },
        index=idx,
    )


def parse_list(value: str) -> List[int]:
    return [int(v.strip()) for v in value.split(",") if v.strip()]


def time_call(fn, runs: int) -> float:
    times = []
    for _ in range(max(runs, 1)):
        start = perf_counter()
        fn()
        times.append(perf_counter() - start)
    return sum(times) / len(times)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument(
        "--sizes",
        type=str,
        default="1000,10000,50000",
        help="comma-separated total row counts",
    )
    ap.add_argument("--tail", type=int, default=100, help="bars pushed per timed run")
    ap.add_argument("--seed", type=int, default=7)
    ap.add_argument("--kinds", type=str, default="atrbot,session_vp")
    ap.add_argument("--ma-type", type=str, default="EMA", help="MA type for atrbot")
    ap.add_argument("--runs", type=int, default=3, help="timed runs")
    args = ap.parse_args()

    sizes = parse_list(args.sizes)
    kinds = [k.strip() for k in args.kinds.split(",") if k.strip()]

    print(f"[i] sizes: {sizes}")
    print(f"[i] tail: {args.tail}")
    print(f"[i] kinds: {kinds}")
    print(f"[i] runs: {args.runs}")

    for rows in sizes:
        if rows <= args.tail + 1:
            print(f"[i] skip rows={rows} (need > tail+1)")
            continue

        df = make_ohlcv(rows, args.seed)
        split = rows - args.tail
        df_hist = df.iloc[:split]
        df_tail = df.iloc[split:]
        tail_bars = [
            ta.Bar(time=t, open=r.open, high=r.high, low=r.low, close=r.close, volume=float(r.volume))
            for t, r in zip(df_tail.index, df_tail.itertuples(index=False))
        ]

        for kind in kinds:
            params = dict(DEFAULT_SPECS.get(kind, {}))
            if kind == "atrbot":
                params["ma_type"] = args.ma_type

            # Seed state from history (not timed)
            base_state = ta.replay_seed(
                kind,
                {col: df_hist[col] for col in df_hist.columns} | {"time": df_hist.index.to_series()},
                params,
            )
            indicator = ta.STATEFUL_REGISTRY[kind]

            def run_tail():
                state = copy.deepcopy(base_state)
                for bar in tail_bars:
                    _, state = indicator.update(state, bar, params)

            avg = time_call(run_tail, args.runs)
            print(
                f"[{kind}] rows={rows} tail={args.tail} avg_s={avg:.6f} "
                f"us_per_bar={avg * 1e6 / max(args.tail, 1):.2f}"
            )


if __name__ == "__main__":
    main()
