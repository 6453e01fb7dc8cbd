# -*- coding: utf-8 -*-
"""pandas-ta-overlay stateful – price profiles and value area.

A profile maps a quantized price (row) to the volume traded there.
``add_bar_volume`` spreads one bar's volume over the rows it spans and
``value_area`` derives POC / VAL / VAH from a finished or live profile.
"""
from __future__ import annotations

import math
from typing import Dict, Mapping, NamedTuple

from ._base import NAN

PriceProfile = Dict[float, float]

# Keys are rounded so that repeated float steps land on the same row.
KEY_DECIMALS = 10


class ValueAreaResult(NamedTuple):
    poc: float
    val: float
    vah: float


EMPTY_RESULT = ValueAreaResult(NAN, NAN, NAN)


def price_key(price: float) -> float:
    return round(price, KEY_DECIMALS)


def quantize(price: float, row_size: float) -> float:
    return math.floor(price / row_size) * row_size


def add_bar_volume(profile: PriceProfile, low: float, high: float,
                   volume: float, row_size: float) -> None:
    """Distribute *volume* evenly over every row from *low* to *high*.

    A bar whose low and high fall in the same row puts all of its volume
    there.  Exactly ``steps`` rows are credited, so the profile total
    grows by exactly *volume*.
    """
    lo = quantize(low, row_size)
    hi = quantize(high, row_size)
    if lo == hi:
        key = price_key(lo)
        profile[key] = profile.get(key, 0.0) + volume
        return

    steps = round((hi - lo) / row_size) + 1
    per_step = volume / steps
    for i in range(steps):
        key = price_key(lo + i * row_size)
        profile[key] = profile.get(key, 0.0) + per_step


def value_area(profile: Mapping[float, float], pct: float) -> ValueAreaResult:
    """POC plus the Value Area holding *pct* percent of the volume.

    Starting at the POC row the window grows one row at a time toward
    the neighbour with more volume (up on ties) until the target is met.
    If both neighbours are empty the window stops short of the target.
    """
    if not profile:
        return EMPTY_RESULT
    levels = sorted(profile.items())
    total = sum(vol for _, vol in levels)
    if total <= 0:
        return EMPTY_RESULT

    poc_idx = 0
    for i, (_, vol) in enumerate(levels):
        if vol > levels[poc_idx][1]:
            poc_idx = i

    target = total * pct / 100.0
    top = len(levels) - 1
    current = levels[poc_idx][1]
    up_idx = down_idx = poc_idx

    while current < target and (up_idx < top or down_idx > 0):
        up_vol = levels[up_idx + 1][1] if up_idx < top else 0.0
        down_vol = levels[down_idx - 1][1] if down_idx > 0 else 0.0
        if up_vol == 0 and down_vol == 0:
            break
        if up_vol >= down_vol and up_idx < top:
            up_idx += 1
            current += up_vol
        elif down_idx > 0:
            down_idx -= 1
            current += down_vol
        else:
            break

    return ValueAreaResult(
        poc=levels[poc_idx][0],
        val=levels[down_idx][0],
        vah=levels[up_idx][0],
    )


def profile_volume(profile: Mapping[float, float], low: float, high: float) -> float:
    """Volume held in rows priced within ``[low, high]``."""
    return sum(vol for price, vol in profile.items() if low <= price <= high)
