# -*- coding: utf-8 -*-
"""pandas-ta-overlay stateful – volume indicators.

Registered kinds
----------------
session_vp
"""
from __future__ import annotations

import logging
import numbers
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from ._base import (
    StatefulIndicator,
    STATEFUL_REGISTRY,
    SEED_REGISTRY,
    _as_choice,
    _as_float,
    _as_int,
    _coerce_bar,
    _is_nan,
    _param,
    replay_seed,
)
from ._profile import (
    EMPTY_RESULT,
    PriceProfile,
    ValueAreaResult,
    add_bar_volume,
    value_area,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Period identifiers
# ---------------------------------------------------------------------------

class Period(str, Enum):
    SESSION = "Session"
    WEEK    = "Week"
    MONTH   = "Month"


_PERIOD_NAMES: Dict[str, Period] = {p.value.lower(): p for p in Period}


def to_utc_timestamp(value: Any) -> pd.Timestamp:
    """Bar time as a UTC ``pd.Timestamp``.

    Naive datetimes are taken as UTC.  Plain numbers are epoch seconds,
    or epoch milliseconds when larger than 1e11.
    """
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        ts = pd.Timestamp(value, unit="ms" if abs(value) > 1e11 else "s")
    else:
        ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def period_key(time: Any, period: Period) -> str:
    """``2024-3-15`` (Session), ``2024-W12`` (ISO week), ``2024-M3`` (Month)."""
    ts = to_utc_timestamp(time)
    if period is Period.WEEK:
        iso_year, week, _ = ts.isocalendar()
        return f"{iso_year}-W{week}"
    if period is Period.MONTH:
        return f"{ts.year}-M{ts.month}"
    return f"{ts.year}-{ts.month}-{ts.day}"


# ===========================================================================
# SESSION_VP  -- session / week / month volume profile
# ===========================================================================
# committed : rows from bars of the current period that are finished
# pending   : the newest bar, possibly still forming; replaced on revision
# display   : committed + pending, rebuilt on every update, never stored
# On a period change the pending bar is committed, the profile is frozen
# into ``history`` with its POC/VAL/VAH, and a new empty profile starts.
# Outputs: POC, VAL, VAH, VAL (fill), VAH (fill).

@dataclass(frozen=True)
class SessionVPConfig:
    period:         Period = Period.SESSION
    row_size:       float = 0.0001
    value_area_pct: int = 70
    history_limit:  int = 64

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "SessionVPConfig":
        """Validate host parameters; raises ``ValueError`` on bad input."""
        period = _param(params, "period", Period.SESSION)
        if not isinstance(period, Period):
            period = _as_choice(period, "period", _PERIOD_NAMES)
        return cls(
            period=period,
            row_size=_as_float(
                _param(params, "row_size", 0.0001, "rowSize"), "row_size", 0.0, 1000.0, lo_open=True),
            value_area_pct=_as_int(
                _param(params, "value_area_pct", 70, "valueAreaPct", "valueAreaVolume"),
                "value_area_pct", 10, 100),
            history_limit=_as_int(
                _param(params, "history_limit", 64), "history_limit", 0, 100_000),
        )


@dataclass(frozen=True)
class PendingBar:
    time:   Any
    low:    float
    high:   float
    volume: float


@dataclass(frozen=True)
class FinalizedProfile:
    period_id: str
    profile:   Mapping[float, float]
    stats:     ValueAreaResult


@dataclass
class SessionVPState:
    config:    SessionVPConfig
    committed: PriceProfile = field(default_factory=dict)
    period_id: Optional[str] = None
    pending:   Optional[PendingBar] = None
    stats:     ValueAreaResult = EMPTY_RESULT      # last finalized period
    history:   deque = field(default_factory=deque)
    closed_id: Optional[str] = None               # last frozen period


def _session_vp_init(params: Dict[str, Any]) -> SessionVPState:
    config = SessionVPConfig.from_params(params)
    logger.debug("session_vp configured: %s", config)
    return SessionVPState(config=config, history=deque(maxlen=config.history_limit))


def _bar_usable(bar: Any) -> bool:
    if bar.time is None or _is_nan(bar.high) or _is_nan(bar.low) or _is_nan(bar.volume):
        return False
    return bar.volume > 0


def _commit(state: SessionVPState, pending: PendingBar) -> None:
    add_bar_volume(state.committed, pending.low, pending.high,
                   pending.volume, state.config.row_size)


def close_period(state: SessionVPState) -> Optional[FinalizedProfile]:
    """Finish the current period: commit the pending bar, freeze, reset.

    Called automatically when a bar from a new period arrives; hosts may
    call it at a session end they know about.  Returns the frozen profile,
    or None when the period held no volume.  Bars stamped in a frozen
    period are ignored from then on.
    """
    if state.pending is not None:
        _commit(state, state.pending)
        state.pending = None

    finished = None
    if state.committed:
        stats = value_area(state.committed, state.config.value_area_pct)
        finished = FinalizedProfile(
            period_id=state.period_id or "",
            profile=MappingProxyType(state.committed),
            stats=stats,
        )
        state.stats = stats
        state.history.append(finished)
        logger.debug(
            "session_vp period %s closed: POC=%s VAL=%s VAH=%s",
            finished.period_id, stats.poc, stats.val, stats.vah,
        )

    state.committed = {}
    state.closed_id = state.period_id
    return finished


def _row(stats: ValueAreaResult) -> List[float]:
    return [stats.poc, stats.val, stats.vah, stats.val, stats.vah]


def _session_vp_update(
    state: SessionVPState, bar: Any, params: Dict[str, Any]
) -> Tuple[List[float], SessionVPState]:
    bar = _coerce_bar(bar)
    if not _bar_usable(bar):
        logger.debug("session_vp skipped invalid bar at %r", bar.time)
        return _row(state.stats), state

    key = period_key(bar.time, state.config.period)
    if key == state.closed_id:
        logger.debug("session_vp ignored bar at %r from closed period %s", bar.time, key)
        return _row(state.stats), state
    if state.period_id is not None and key != state.period_id:
        close_period(state)
    state.period_id = key

    # a new bar time means the previous pending bar is final
    if state.pending is not None and bar.time != state.pending.time:
        _commit(state, state.pending)
    state.pending = PendingBar(time=bar.time, low=bar.low, high=bar.high, volume=bar.volume)

    display = dict(state.committed)
    add_bar_volume(display, bar.low, bar.high, bar.volume, state.config.row_size)
    return _row(value_area(display, state.config.value_area_pct)), state


def _session_vp_output_names(params: Dict[str, Any]) -> List[str]:
    period = SessionVPConfig.from_params(params).period.value.upper()
    return [
        f"SVP_{period}_POC",
        f"SVP_{period}_VAL",
        f"SVP_{period}_VAH",
        f"SVP_{period}_VALf",
        f"SVP_{period}_VAHf",
    ]


def _session_vp_seed(series: Dict[str, Any], params: Dict[str, Any]) -> SessionVPState:
    """replay_only: the profile is the whole period's history."""
    return replay_seed("session_vp", series, params)


STATEFUL_REGISTRY["session_vp"] = StatefulIndicator(
    kind="session_vp",
    inputs=("high", "low", "volume", "time"),
    init=_session_vp_init,
    update=_session_vp_update,
    output_names=_session_vp_output_names,
)
SEED_REGISTRY["session_vp"] = _session_vp_seed
