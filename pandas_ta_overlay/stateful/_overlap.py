# -*- coding: utf-8 -*-
"""pandas-ta-overlay stateful -- moving-average bank.

Sixteen interchangeable moving averages behind one interface.  Each
algorithm follows the pattern:
  1. State dataclass  (if beyond what _base already provides)
  2. ``_<name>_make(length)`` building the state
  3. ``_<name>_step(state, src, bar)`` returning the next value
  4. ``MA_KERNELS[MAType.<NAME>] = (make, step)``

Every kernel returns a usable value from the first bar on: windowed
means average whatever the buffer holds, exponential families seed
with the first sample.  Buffers are ``deque(maxlen=...)`` ring buffers
sized to what the formula needs.

The bank itself (``ma_bank_make`` / ``ma_bank_update``) picks the price
source and dispatches on ``MAType``.  It is also registered as the
``"ma"`` kind so a single average can be replayed on its own.
"""
from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ._base import (
    NAN,
    SOURCES,
    Bar,
    EMAState,
    StatefulIndicator,
    STATEFUL_REGISTRY,
    SEED_REGISTRY,
    _as_choice,
    _as_int,
    _coerce_bar,
    _is_nan,
    _param,
    ema_make,
    ema_update_raw,
    replay_seed,
    source_price,
)
from ._live import LiveBar, begin_bar


class MAType(str, Enum):
    EMA      = "EMA"
    LWMA     = "LWMA"
    HMA      = "HMA"
    VWMA     = "VWMA"
    WMA      = "WMA"
    VWAP     = "VWAP"
    ALMA     = "ALMA"
    TEMA     = "TEMA"
    WWSMA    = "WWSMA"
    ZLEMA    = "ZLEMA"
    LSMA     = "LSMA"
    KAMA     = "KAMA"
    VIDYA    = "VIDYA"
    SMMA     = "SMMA"
    MCGINLEY = "McGinley"
    SWMA     = "SWMA"


_MA_NAMES: Dict[str, MAType] = {m.value.lower(): m for m in MAType}
_MA_NAMES["hull"] = MAType.HMA

_SOURCE_NAMES: Dict[str, str] = {s: s for s in SOURCES}

# Kernels that read bar volume; a NaN volume makes the bar unusable for them.
MA_USES_VOLUME = frozenset({MAType.VWMA, MAType.VWAP})


def parse_ma_type(value: Any) -> MAType:
    if isinstance(value, MAType):
        return value
    return _as_choice(value, "ma_type", _MA_NAMES)


def parse_source(value: Any) -> str:
    return _as_choice(value, "source", _SOURCE_NAMES)


# ---------------------------------------------------------------------------
# Shared window math
# ---------------------------------------------------------------------------

def _weighted_mean(values: Iterable[float], fallback: float) -> float:
    """Linear weights 1..n, oldest → newest."""
    num = 0.0
    den = 0.0
    for i, v in enumerate(values, 1):
        num += v * i
        den += i
    return num / den if den > 0 else fallback


def _volume_weighted_mean(pairs: Iterable[Tuple[float, float]], fallback: float) -> float:
    sum_pv = 0.0
    sum_v = 0.0
    for price, volume in pairs:
        sum_pv += price * volume
        sum_v += volume
    return sum_pv / sum_v if sum_v > 0 else fallback


@dataclass
class WindowState:
    """Plain price window (WMA / LWMA / ALMA / LSMA / SWMA)."""
    length: int
    prices: deque = field(default_factory=deque)


@dataclass
class VolumeWindowState:
    """(price, volume) window (VWMA / VWAP)."""
    length: int
    pairs: deque = field(default_factory=deque)


def _window_make(length: int) -> WindowState:
    return WindowState(length=length, prices=deque(maxlen=length))


def _volume_window_make(length: int) -> VolumeWindowState:
    return VolumeWindowState(length=length, pairs=deque(maxlen=length))


# ===========================================================================
# EMA
# ===========================================================================
# seed = first price; then alpha*src + (1-alpha)*prev, alpha = 2/(length+1)

def _ema_step(state: EMAState, src: float, bar: Bar) -> float:
    val, _ = ema_update_raw(state, src)
    return val


# ===========================================================================
# WMA / LWMA  -- linear weights over the last `length` prices
# ===========================================================================

def _wma_step(state: WindowState, src: float, bar: Bar) -> float:
    state.prices.append(src)
    return _weighted_mean(state.prices, src)


# ===========================================================================
# VWMA  -- volume-weighted mean of the source
# ===========================================================================

def _vwma_step(state: VolumeWindowState, src: float, bar: Bar) -> float:
    state.pairs.append((src, bar.volume))
    return _volume_weighted_mean(state.pairs, src)


# ===========================================================================
# VWAP  -- rolling window of typical price, NOT session anchored
# ===========================================================================

def _vwap_step(state: VolumeWindowState, src: float, bar: Bar) -> float:
    typical = (bar.high + bar.low + bar.close) / 3.0
    state.pairs.append((typical, bar.volume))
    return _volume_weighted_mean(state.pairs, src)


# ===========================================================================
# HMA  -- WMA(sqrt n) of 2*WMA(n/2) - WMA(n)
# ===========================================================================

@dataclass
class HMAState:
    half: deque     # maxlen = length // 2   (may be 0)
    full: deque     # maxlen = length
    raw:  deque     # maxlen = floor(sqrt(length))


def _hma_make(length: int) -> HMAState:
    return HMAState(
        half=deque(maxlen=length // 2),
        full=deque(maxlen=length),
        raw=deque(maxlen=int(math.sqrt(length))),
    )


def _hma_step(state: HMAState, src: float, bar: Bar) -> float:
    state.half.append(src)
    state.full.append(src)
    wma_half = _weighted_mean(state.half, src)
    wma_full = _weighted_mean(state.full, src)
    state.raw.append(2.0 * wma_half - wma_full)
    return _weighted_mean(state.raw, src)


# ===========================================================================
# ALMA  -- Gaussian weights, offset 0.85, sigma divisor 6
# ===========================================================================

ALMA_OFFSET = 0.85
ALMA_SIGMA = 6.0


def _alma_step(state: WindowState, src: float, bar: Bar) -> float:
    state.prices.append(src)
    m = math.floor(ALMA_OFFSET * (state.length - 1))
    s = state.length / ALMA_SIGMA
    norm = 0.0
    total = 0.0
    for i, price in enumerate(state.prices):
        weight = math.exp(-((i - m) ** 2) / (2.0 * s * s))
        norm += weight
        total += price * weight
    return total / norm if norm > 0 else src


# ===========================================================================
# TEMA  -- 3*e1 - 3*e2 + e3, each EMA smoothing the previous one
# ===========================================================================

@dataclass
class TEMAState:
    ema1: EMAState
    ema2: EMAState
    ema3: EMAState


def _tema_make(length: int) -> TEMAState:
    return TEMAState(ema1=ema_make(length), ema2=ema_make(length), ema3=ema_make(length))


def _tema_step(state: TEMAState, src: float, bar: Bar) -> float:
    e1, _ = ema_update_raw(state.ema1, src)
    e2, _ = ema_update_raw(state.ema2, e1)
    e3, _ = ema_update_raw(state.ema3, e2)
    return 3.0 * e1 - 3.0 * e2 + e3


# ===========================================================================
# WWSMA  -- Wilder: partial mean while filling, then (prev*(n-1)+src)/n
# ===========================================================================

@dataclass
class WWSMAState:
    length: int
    prices: deque = field(default_factory=deque)
    prev: Optional[float] = None


def _wwsma_make(length: int) -> WWSMAState:
    return WWSMAState(length=length, prices=deque(maxlen=length))


def _wwsma_step(state: WWSMAState, src: float, bar: Bar) -> float:
    n = state.length
    state.prices.append(src)
    if len(state.prices) < n or state.prev is None:
        state.prev = sum(state.prices) / len(state.prices)
    else:
        state.prev = (state.prev * (n - 1) + src) / n
    return state.prev


# ===========================================================================
# ZLEMA  -- EMA of src + (src - src[lag]),  lag = (length-1)//2
# ===========================================================================

@dataclass
class ZLEMAState:
    lag: int
    history: deque      # maxlen = lag + 1, oldest first
    ema: EMAState


def _zlema_make(length: int) -> ZLEMAState:
    lag = (length - 1) // 2
    return ZLEMAState(lag=lag, history=deque(maxlen=lag + 1), ema=ema_make(length))


def _zlema_step(state: ZLEMAState, src: float, bar: Bar) -> float:
    state.history.append(src)
    data = src
    if len(state.history) > state.lag:
        data = src + (src - state.history[0])
    val, _ = ema_update_raw(state.ema, data)
    return val


# ===========================================================================
# LSMA  -- least-squares line over the window, projected to the newest bar
# ===========================================================================

def _lsma_step(state: WindowState, src: float, bar: Bar) -> float:
    state.prices.append(src)
    n = len(state.prices)
    if n < 2:
        return src
    sum_x = sum_y = sum_xy = sum_xx = 0.0
    for i, y in enumerate(state.prices):
        sum_x += i
        sum_y += y
        sum_xy += i * y
        sum_xx += i * i
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n
    return intercept + slope * (n - 1)


# ===========================================================================
# KAMA  -- Kaufman adaptive, fast=2/(2+1), slow=2/(30+1)
# ===========================================================================
# er = |src - src[length]| / sum|diffs|   (0 when there was no movement)
# sc = (er*(fast-slow) + slow)^2
# Until the window holds length+1 prices the source passes straight through.

KAMA_FAST = 2.0 / (2.0 + 1.0)
KAMA_SLOW = 2.0 / (30.0 + 1.0)


@dataclass
class KAMAState:
    length: int
    history: deque = field(default_factory=deque)   # maxlen = length + 1
    prev: Optional[float] = None


def _kama_make(length: int) -> KAMAState:
    return KAMAState(length=length, history=deque(maxlen=length + 1))


def _kama_step(state: KAMAState, src: float, bar: Bar) -> float:
    state.history.append(src)
    if len(state.history) <= state.length:
        return src

    change = abs(src - state.history[0])
    volatility = 0.0
    prices = list(state.history)
    for i in range(1, len(prices)):
        volatility += abs(prices[i] - prices[i - 1])
    er = change / volatility if volatility > 0 else 0.0
    sc = (er * (KAMA_FAST - KAMA_SLOW) + KAMA_SLOW) ** 2

    if state.prev is None:
        state.prev = src
    else:
        state.prev = state.prev + sc * (src - state.prev)
    return state.prev


# ===========================================================================
# VIDYA  -- EMA whose alpha is scaled by |CMO| over the window
# ===========================================================================

@dataclass
class VIDYAState:
    alpha_base: float
    history: deque = field(default_factory=deque)   # maxlen = length + 1
    prev: Optional[float] = None


def _vidya_make(length: int) -> VIDYAState:
    return VIDYAState(alpha_base=2.0 / (length + 1.0), history=deque(maxlen=length + 1))


def _cmo_magnitude(prices: List[float]) -> float:
    if len(prices) < 2:
        return 0.0
    sum_up = 0.0
    sum_down = 0.0
    for i in range(1, len(prices)):
        diff = prices[i] - prices[i - 1]
        if diff > 0:
            sum_up += diff
        else:
            sum_down += abs(diff)
    total = sum_up + sum_down
    return abs((sum_up - sum_down) / total) if total > 0 else 0.0


def _vidya_step(state: VIDYAState, src: float, bar: Bar) -> float:
    state.history.append(src)
    alpha = state.alpha_base * _cmo_magnitude(list(state.history))
    if state.prev is None:
        state.prev = src
    else:
        state.prev = alpha * src + (1.0 - alpha) * state.prev
    return state.prev


# ===========================================================================
# SMMA  -- raw src until `length` samples, SMA seed, then Wilder recursion
# ===========================================================================

@dataclass
class SMMAState:
    length: int
    prev: Optional[float] = None
    _warmup_sum: float = 0.0
    _warmup_count: int = 0


def _smma_make(length: int) -> SMMAState:
    return SMMAState(length=length)


def _smma_step(state: SMMAState, src: float, bar: Bar) -> float:
    n = state.length
    if state.prev is None:
        state._warmup_sum += src
        state._warmup_count += 1
        if state._warmup_count < n:
            return src
        state.prev = state._warmup_sum / n
        return state.prev
    state.prev = (state.prev * (n - 1) + src) / n
    return state.prev


# ===========================================================================
# McGinley Dynamic  -- prev + (src - prev) / (length * (src/prev)^4)
# ===========================================================================

@dataclass
class McGinleyState:
    length: int
    prev: Optional[float] = None


def _mcginley_make(length: int) -> McGinleyState:
    return McGinleyState(length=length)


def _mcginley_step(state: McGinleyState, src: float, bar: Bar) -> float:
    prev = state.prev
    if prev is None or prev == 0.0:
        state.prev = src
        return src
    divisor = state.length * (src / prev) ** 4
    state.prev = src if divisor == 0.0 else prev + (src - prev) / divisor
    return state.prev


# ===========================================================================
# SWMA  -- fixed [1, 2, 2, 1] / 6
# ===========================================================================

def _swma_make(length: int) -> WindowState:
    return WindowState(length=4, prices=deque(maxlen=4))


def _swma_step(state: WindowState, src: float, bar: Bar) -> float:
    state.prices.append(src)
    if len(state.prices) < 4:
        return src
    p0, p1, p2, p3 = state.prices
    return (p0 + 2.0 * p1 + 2.0 * p2 + p3) / 6.0


# ---------------------------------------------------------------------------
# Kernel table
# ---------------------------------------------------------------------------

MAKernel = Tuple[Callable[[int], Any], Callable[[Any, float, Bar], float]]

MA_KERNELS: Dict[MAType, MAKernel] = {
    MAType.EMA:      (ema_make,            _ema_step),
    MAType.LWMA:     (_window_make,        _wma_step),
    MAType.HMA:      (_hma_make,           _hma_step),
    MAType.VWMA:     (_volume_window_make, _vwma_step),
    MAType.WMA:      (_window_make,        _wma_step),
    MAType.VWAP:     (_volume_window_make, _vwap_step),
    MAType.ALMA:     (_window_make,        _alma_step),
    MAType.TEMA:     (_tema_make,          _tema_step),
    MAType.WWSMA:    (_wwsma_make,         _wwsma_step),
    MAType.ZLEMA:    (_zlema_make,         _zlema_step),
    MAType.LSMA:     (_window_make,        _lsma_step),
    MAType.KAMA:     (_kama_make,          _kama_step),
    MAType.VIDYA:    (_vidya_make,         _vidya_step),
    MAType.SMMA:     (_smma_make,          _smma_step),
    MAType.MCGINLEY: (_mcginley_make,      _mcginley_step),
    MAType.SWMA:     (_swma_make,          _swma_step),
}


# ===========================================================================
# Moving-average bank
# ===========================================================================

@dataclass
class MABankState:
    ma_type: MAType
    length:  int
    source:  str
    kernel:  Any


def ma_bank_make(ma_type: Any, length: int, source: str = "close") -> MABankState:
    """Configure one moving average.  Bad names or lengths raise ``ValueError``."""
    kind = parse_ma_type(ma_type)
    length = _as_int(length, "ma_length", 1, 500)
    make, _ = MA_KERNELS[kind]
    return MABankState(ma_type=kind, length=length, source=parse_source(source), kernel=make(length))


def ma_bank_update(bank: MABankState, bar: Bar) -> float:
    src = source_price(bar, bank.source)
    _, step = MA_KERNELS[bank.ma_type]
    return step(bank.kernel, src, bar)


def ma_bar_usable(bank: MABankState, bar: Bar) -> bool:
    """False when *bar* lacks a field this bank reads."""
    if _is_nan(source_price(bar, bank.source)):
        return False
    if bank.ma_type is MAType.VWAP and (_is_nan(bar.high) or _is_nan(bar.low) or _is_nan(bar.close)):
        return False
    if bank.ma_type in MA_USES_VOLUME and _is_nan(bar.volume):
        return False
    return True


# ===========================================================================
# MA  (replay_only)  -- one bank as a standalone indicator
# ===========================================================================

@dataclass
class MAState:
    bank: MABankState
    live: LiveBar = field(default_factory=LiveBar)
    last: float = NAN


def _ma_init(params: Dict[str, Any]) -> MAState:
    bank = ma_bank_make(
        _param(params, "ma_type", "EMA", "maType"),
        _param(params, "ma_length", 30, "maLength", "length"),
        _param(params, "source", "close"),
    )
    return MAState(bank=bank)


def _ma_update(
    state: MAState, bar: Any, params: Dict[str, Any]
) -> Tuple[List[float], MAState]:
    bar = _coerce_bar(bar)
    if not ma_bar_usable(state.bank, bar):
        return [state.last], state
    state.bank = begin_bar(state.live, state.bank, bar.time)
    state.last = ma_bank_update(state.bank, bar)
    return [state.last], state


def _ma_output_names(params: Dict[str, Any]) -> List[str]:
    kind = parse_ma_type(_param(params, "ma_type", "EMA", "maType"))
    length = _param(params, "ma_length", 30, "maLength", "length")
    return [f"{kind.value.upper()}_{length}"]


def _ma_seed(series: Dict[str, Any], params: Dict[str, Any]) -> MAState:
    return replay_seed("ma", series, params)


STATEFUL_REGISTRY["ma"] = StatefulIndicator(
    kind="ma",
    inputs=("open", "high", "low", "close", "volume", "time"),
    init=_ma_init,
    update=_ma_update,
    output_names=_ma_output_names,
)
SEED_REGISTRY["ma"] = _ma_seed
