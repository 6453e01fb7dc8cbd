# -*- coding: utf-8 -*-
"""pandas-ta-overlay stateful – shared base: bar type, helpers, registries.

All category modules (``_overlap``, ``_volatility``, ``_volume``) import
from here and populate the registries at load time.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import logging
import math

import pandas as pd

logger = logging.getLogger(__name__)

NAN = float("nan")

SOURCES = ("open", "high", "low", "close", "hl2", "hlc3", "ohlc4")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_nan(x: Any) -> bool:
    """True when *x* is None or a float NaN."""
    return x is None or (isinstance(x, float) and math.isnan(x))


def _param(params: Dict[str, Any], key: str, default: Any, *aliases: str) -> Any:
    """Pull *key* (or the first present alias) from *params*; None → default."""
    value = params.get(key)
    for alias in aliases:
        if value is not None:
            break
        value = params.get(alias)
    return default if value is None else value


def _as_int(value: Any, name: str, lo: int, hi: int) -> int:
    """Coerce *value* to int inside ``[lo, hi]`` or raise ``ValueError``."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if not number.is_integer():
        raise ValueError(f"{name} must be an integer, got {value!r}")
    result = int(number)
    if not lo <= result <= hi:
        raise ValueError(f"{name} must be in [{lo}, {hi}], got {result}")
    return result


def _as_float(value: Any, name: str, lo: float, hi: float, lo_open: bool = False) -> float:
    """Coerce *value* to a finite float inside ``[lo, hi]`` (``(lo, hi]`` when *lo_open*)."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    below = result <= lo if lo_open else result < lo
    if math.isnan(result) or below or result > hi:
        bracket = "(" if lo_open else "["
        raise ValueError(f"{name} must be in {bracket}{lo}, {hi}], got {value!r}")
    return result


def _as_choice(value: Any, name: str, choices: Mapping[str, Any]) -> Any:
    """Resolve *value* case-insensitively against *choices* (lower-cased keys)."""
    key = str(value).strip().lower()
    if key not in choices:
        raise ValueError(f"{name} must be one of {sorted(set(choices))}, got {value!r}")
    return choices[key]


# ---------------------------------------------------------------------------
# Bar
# ---------------------------------------------------------------------------

def _as_price(value: Any) -> float:
    if value is None:
        return NAN
    try:
        return float(value)
    except (TypeError, ValueError):
        return NAN


@dataclass(frozen=True)
class Bar:
    """One OHLCV sample.

    ``time`` is whatever the host stamps bars with (``datetime``,
    ``pd.Timestamp`` or epoch number).  Two bars with equal ``time`` are the
    same bar; the later one is a live revision of the earlier.
    """
    time:   Any
    open:   float
    high:   float
    low:    float
    close:  float
    volume: float = NAN

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Bar":
        """Build a bar from a dict-like row.  Missing prices become NaN."""
        time = data.get("time")
        if time is None:
            time = data.get("timestamp")
        return cls(
            time=time,
            open=_as_price(data.get("open")),
            high=_as_price(data.get("high")),
            low=_as_price(data.get("low")),
            close=_as_price(data.get("close")),
            volume=_as_price(data.get("volume")),
        )


def _coerce_bar(bar: Any) -> Bar:
    return bar if isinstance(bar, Bar) else Bar.from_mapping(bar)


def source_price(bar: Bar, source: str) -> float:
    """Select the configured price source from *bar*."""
    if source == "open":
        return bar.open
    if source == "high":
        return bar.high
    if source == "low":
        return bar.low
    if source == "hl2":
        return (bar.high + bar.low) / 2.0
    if source == "hlc3":
        return (bar.high + bar.low + bar.close) / 3.0
    if source == "ohlc4":
        return (bar.open + bar.high + bar.low + bar.close) / 4.0
    return bar.close


# ---------------------------------------------------------------------------
# Shared state classes
# ---------------------------------------------------------------------------

@dataclass
class EMAState:
    """Exponential smoother seeded with its first input.

    EMA  -> alpha = 2 / (length + 1)   via ``ema_make``
    """
    length: int
    alpha: float
    last: Optional[float] = None


@dataclass
class ATRState:
    """True range + Wilder RMA.  Seeded with the first true range, so ATR is
    defined from the very first bar (no SMA warm-up)."""
    length: int
    prev_close: Optional[float] = None
    atr: Optional[float] = None


# ---------------------------------------------------------------------------
# Low-level update helpers
# ---------------------------------------------------------------------------

def ema_make(length: int) -> EMAState:
    """EMA state – alpha = 2 / (length + 1)."""
    return EMAState(length=length, alpha=2.0 / (length + 1.0))


def ema_update_raw(state: EMAState, x: float) -> Tuple[float, EMAState]:
    """Single-step EMA update.  The first sample is returned as-is."""
    if state.last is None:
        state.last = x
    else:
        state.last = state.alpha * x + (1.0 - state.alpha) * state.last
    return state.last, state


def true_range(high: float, low: float, prev_close: Optional[float]) -> float:
    if prev_close is None:
        return high - low
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def atr_update_raw(state: ATRState, high: float, low: float, close: float) -> Tuple[float, ATRState]:
    """Single-step ATR (Wilder).  Returns (atr, state)."""
    tr = true_range(high, low, state.prev_close)
    state.prev_close = close

    if state.atr is None:
        state.atr = tr
    else:
        state.atr = (state.atr * (state.length - 1) + tr) / state.length
    return state.atr, state


# ---------------------------------------------------------------------------
# Indicator descriptor & registries  (populated by category modules)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatefulIndicator:
    """Immutable descriptor for a single stateful indicator."""
    kind:         str
    inputs:       Tuple[str, ...]
    init:         Callable[[Dict[str, Any]], Any]
    update:       Callable[[Any, Bar, Dict[str, Any]],
                           Tuple[List[float], Any]]
    output_names: Callable[[Dict[str, Any]], List[str]]


# Populated by category modules at import time.
STATEFUL_REGISTRY: Dict[str, StatefulIndicator] = {}
SEED_REGISTRY:     Dict[str, Callable] = {}            # kind -> seed_fn(inputs, params) -> State


def _lookup(kind: str) -> StatefulIndicator:
    indicator = STATEFUL_REGISTRY.get(kind)
    if indicator is None:
        raise ValueError(f"Indicator '{kind}' not found in STATEFUL_REGISTRY")
    return indicator


# ---------------------------------------------------------------------------
# Replay helpers
# ---------------------------------------------------------------------------

def replay_seed(kind: str, inputs: Dict[str, Any], params: Dict[str, Any]) -> Any:
    """Generic seed: replay the stateful update over historical Series.

    *inputs* values must be ``pd.Series`` (or any indexable with ``.iloc``)
    keyed by bar field (``time``, ``open``, ``high``, ``low``, ``close``,
    ``volume``).  Returns the final *State* after processing all rows.
    Invalid rows are passed through; each indicator decides how to treat
    them.
    """
    indicator = _lookup(kind)
    state = indicator.init(params)
    keys = list(inputs.keys())
    if not keys:
        return state
    n = len(inputs[keys[0]])
    for i in range(n):
        row = {k: inputs[k].iloc[i] for k in keys}
        _, state = indicator.update(state, Bar.from_mapping(row), params)
    return state


def replay_frame(kind: str, frame: pd.DataFrame, params: Dict[str, Any],
                 **spec: Any) -> pd.DataFrame:
    """Replay a whole OHLCV DataFrame and return the per-bar outputs.

    Bar time comes from a ``time`` or ``timestamp`` column when present,
    otherwise from the index.  *spec* accepts ``prefix``, ``suffix``,
    ``delimiter`` and ``col_names`` to rename the output columns.
    """
    indicator = _lookup(kind)
    names, err = resolve_output_names(indicator.output_names(params), spec)
    if names is None:
        raise ValueError(err)

    lowered = {str(c).lower(): c for c in frame.columns}
    time_col = lowered.get("time", lowered.get("timestamp"))
    times = frame[time_col] if time_col is not None else frame.index

    columns = {}
    for field in ("open", "high", "low", "close", "volume"):
        col = lowered.get(field)
        columns[field] = frame[col].to_numpy() if col is not None else None

    state = indicator.init(params)
    rows: List[List[float]] = []
    for i, t in enumerate(times):
        bar = Bar(
            time=t,
            open=_field_at(columns["open"], i),
            high=_field_at(columns["high"], i),
            low=_field_at(columns["low"], i),
            close=_field_at(columns["close"], i),
            volume=_field_at(columns["volume"], i),
        )
        values, state = indicator.update(state, bar, params)
        rows.append(values)

    return pd.DataFrame(rows, index=frame.index, columns=names, dtype=float)


def _field_at(values: Any, i: int) -> float:
    return NAN if values is None else _as_price(values[i])


# ---------------------------------------------------------------------------
# Output-name helpers
# ---------------------------------------------------------------------------

def resolve_output_names(
        base_names: List[str], spec: Dict[str, Any]
) -> Tuple[Optional[List[str]], Optional[str]]:
    """Apply prefix / suffix / col_names overrides from *spec*."""
    names = list(base_names)
    delimiter = spec.get("delimiter", "_")
    prefix = spec.get("prefix") or ""
    suffix = spec.get("suffix") or ""
    if prefix:
        prefix = f"{prefix}{delimiter}"
    if suffix:
        suffix = f"{delimiter}{suffix}"
    if prefix or suffix:
        names = [f"{prefix}{n}{suffix}" for n in names]
    col_names = spec.get("col_names")
    if col_names is not None:
        if not isinstance(col_names, tuple):
            col_names = (col_names,)
        if len(col_names) < len(names):
            return None, f"[!] col_names too short: {len(col_names)} < {len(names)}"
        names = list(col_names[: len(names)])
    return names, None


def stateful_supported_kinds() -> List[str]:
    """Return sorted list of supported indicator kinds."""
    return sorted(STATEFUL_REGISTRY.keys())


# ---------------------------------------------------------------------------
# Host handle
# ---------------------------------------------------------------------------

class IndicatorHandle:
    """One indicator instance attached to one chart series.

    ``init`` (re)creates all state; ``update`` is called once per new or
    revised bar.  Re-attaching to another symbol or timeframe means calling
    ``init`` again and replaying history from the first bar.
    """

    def __init__(self, kind: str, params: Optional[Dict[str, Any]] = None):
        self.indicator = _lookup(kind)
        self.params: Dict[str, Any] = {}
        self.state: Any = None
        self.init(params)

    @property
    def kind(self) -> str:
        return self.indicator.kind

    @property
    def output_names(self) -> List[str]:
        return self.indicator.output_names(self.params)

    def init(self, params: Optional[Dict[str, Any]] = None) -> None:
        new_params = self.params if params is None else dict(params)
        # rejected params leave the handle as it was
        self.state = self.indicator.init(new_params)
        self.params = new_params
        logger.debug("%s initialised with %s", self.kind, self.params)

    def reset(self) -> None:
        """Discard all state, keeping the current parameters."""
        self.init()

    def update(self, bar: Any) -> List[float]:
        values, self.state = self.indicator.update(self.state, _coerce_bar(bar), self.params)
        return values
