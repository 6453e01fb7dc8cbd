# -*- coding: utf-8 -*-
"""pandas-ta-overlay stateful – volatility indicators.

Registered kinds
----------------
atr, atrbot
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import logging

from ._base import (
    NAN,
    ATRState,
    StatefulIndicator,
    STATEFUL_REGISTRY,
    SEED_REGISTRY,
    _as_float,
    _as_int,
    _coerce_bar,
    _is_nan,
    _param,
    atr_update_raw,
    replay_seed,
)
from ._live import LiveBar, begin_bar
from ._overlap import (
    MABankState,
    MAType,
    ma_bank_make,
    ma_bank_update,
    ma_bar_usable,
    parse_ma_type,
    parse_source,
)

logger = logging.getLogger(__name__)


def _hlc_valid(high: float, low: float, close: float) -> bool:
    return not (_is_nan(high) or _is_nan(low) or _is_nan(close))


# ===========================================================================
# ATR  -- Wilder RMA of true range, seeded with the first true range
# ===========================================================================

@dataclass
class ATRIndicatorState:
    atr: ATRState
    live: LiveBar = field(default_factory=LiveBar)
    last: float = NAN


def _atr_init(params: Dict[str, Any]) -> ATRIndicatorState:
    length = _as_int(_param(params, "length", 14, "atr_length", "atrLength"), "length", 1, 500)
    return ATRIndicatorState(atr=ATRState(length=length))


def _atr_update(
    state: ATRIndicatorState, bar: Any, params: Dict[str, Any]
) -> Tuple[List[float], ATRIndicatorState]:
    bar = _coerce_bar(bar)
    if not _hlc_valid(bar.high, bar.low, bar.close):
        return [state.last], state
    state.atr = begin_bar(state.live, state.atr, bar.time)
    state.last, state.atr = atr_update_raw(state.atr, bar.high, bar.low, bar.close)
    return [state.last], state


def _atr_output_names(params: Dict[str, Any]) -> List[str]:
    length = _param(params, "length", 14, "atr_length", "atrLength")
    return [f"ATRr_{length}"]


def _atr_seed(series: Dict[str, Any], params: Dict[str, Any]) -> ATRIndicatorState:
    """Reconstruct ATR state by replaying over the raw input series."""
    return replay_seed("atr", series, params)


STATEFUL_REGISTRY["atr"] = StatefulIndicator(
    kind="atr",
    inputs=("high", "low", "close", "time"),
    init=_atr_init,
    update=_atr_update,
    output_names=_atr_output_names,
)
SEED_REGISTRY["atr"] = _atr_seed


# ===========================================================================
# ATRBOT  -- MA trail (Trail1) + ATR hysteresis stop (Trail2)
# ===========================================================================
# stop = ATR * multiplier
# if trail1 > trail2[1]:
#     trail2 = max(trail2[1], trail1 - stop)  if trail1[1] > trail2[1]  else trail1 - stop
# elif trail1 < trail2[1] and trail1[1] < trail2[1]:
#     trail2 = min(trail2[1], trail1 + stop)
# else:
#     trail2 = trail1 + stop
# trail2[1] is 0 before the first bar, trail1[1] is trail1 on the first bar.
# Outputs: trail1, trail2, trail1 when above trail2 (else NaN),
#          trail1 when at/below trail2 (else NaN).

@dataclass(frozen=True)
class ATRBotConfig:
    atr_length: int = 14
    atr_mult:   float = 2.0
    source:     str = "close"
    ma_type:    MAType = MAType.EMA
    ma_length:  int = 30

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "ATRBotConfig":
        """Validate host parameters; raises ``ValueError`` on bad input."""
        return cls(
            atr_length=_as_int(
                _param(params, "atr_length", 14, "atrLength"), "atr_length", 1, 500),
            atr_mult=_as_float(
                _param(params, "atr_mult", 2.0, "atrMultiplier", "atr_multiplier"),
                "atr_mult", 0.1, 10.0),
            source=parse_source(_param(params, "source", "close")),
            ma_type=parse_ma_type(_param(params, "ma_type", "EMA", "maType")),
            ma_length=_as_int(
                _param(params, "ma_length", 30, "maLength"), "ma_length", 1, 500),
        )


@dataclass
class TrailState:
    ma:          MABankState
    atr:         ATRState
    trail1_prev: Optional[float] = None
    trail2_prev: Optional[float] = None


@dataclass
class ATRBotState:
    config: ATRBotConfig
    trail:  TrailState
    live:   LiveBar = field(default_factory=LiveBar)
    last:   List[float] = field(default_factory=lambda: [NAN, NAN, NAN, NAN])


def trail_step(trail1: float, trail1_prev: float, trail2_prev: float, stop: float) -> float:
    """One step of the Trail2 hysteresis."""
    if trail1 > trail2_prev:
        if trail1_prev > trail2_prev:
            return max(trail2_prev, trail1 - stop)
        return trail1 - stop
    if trail1 < trail2_prev and trail1_prev < trail2_prev:
        return min(trail2_prev, trail1 + stop)
    return trail1 + stop


def split_bias(trail1: float, trail2: float) -> Tuple[float, float]:
    """(green, red) fill series: trail1 on its own side of trail2, else NaN."""
    if trail1 > trail2:
        return trail1, NAN
    return NAN, trail1


def _atrbot_init(params: Dict[str, Any]) -> ATRBotState:
    config = ATRBotConfig.from_params(params)
    trail = TrailState(
        ma=ma_bank_make(config.ma_type, config.ma_length, config.source),
        atr=ATRState(length=config.atr_length),
    )
    logger.debug("atrbot configured: %s", config)
    return ATRBotState(config=config, trail=trail)


def _atrbot_step(trail: TrailState, bar: Any, mult: float) -> List[float]:
    trail1 = ma_bank_update(trail.ma, bar)
    atr, trail.atr = atr_update_raw(trail.atr, bar.high, bar.low, bar.close)
    stop = atr * mult

    trail2_prev = 0.0 if trail.trail2_prev is None else trail.trail2_prev
    trail1_prev = trail1 if trail.trail1_prev is None else trail.trail1_prev
    trail2 = trail_step(trail1, trail1_prev, trail2_prev, stop)

    trail.trail1_prev = trail1
    trail.trail2_prev = trail2
    green, red = split_bias(trail1, trail2)
    return [trail1, trail2, green, red]


def _atrbot_update(
    state: ATRBotState, bar: Any, params: Dict[str, Any]
) -> Tuple[List[float], ATRBotState]:
    bar = _coerce_bar(bar)
    if not (_hlc_valid(bar.high, bar.low, bar.close) and ma_bar_usable(state.trail.ma, bar)):
        logger.debug("atrbot skipped invalid bar at %r", bar.time)
        return list(state.last), state

    state.trail = begin_bar(state.live, state.trail, bar.time)
    state.last = _atrbot_step(state.trail, bar, state.config.atr_mult)
    return list(state.last), state


def _atrbot_output_names(params: Dict[str, Any]) -> List[str]:
    c = ATRBotConfig.from_params(params)
    _props = f"_{c.ma_type.value.upper()}_{c.ma_length}_{c.atr_length}_{c.atr_mult}"
    return [
        f"ATRBOT{_props}_T1",
        f"ATRBOT{_props}_T2",
        f"ATRBOT{_props}_T1g",
        f"ATRBOT{_props}_T1r",
    ]


def _atrbot_seed(series: Dict[str, Any], params: Dict[str, Any]) -> ATRBotState:
    """replay_only: Trail2 is path dependent, so replay every bar."""
    return replay_seed("atrbot", series, params)


STATEFUL_REGISTRY["atrbot"] = StatefulIndicator(
    kind="atrbot",
    inputs=("open", "high", "low", "close", "volume", "time"),
    init=_atrbot_init,
    update=_atrbot_update,
    output_names=_atrbot_output_names,
)
SEED_REGISTRY["atrbot"] = _atrbot_seed
