# -*- coding: utf-8 -*-
"""pandas-ta-overlay stateful – live (still forming) bar handling.

Hosts call ``update`` again for the last bar every time it ticks.  The
tick must replace the previous tick, not stack on top of it, so each
indicator keeps a copy of its computation state as it was *before* the
current bar and rewinds to it whenever the same bar comes back.
"""
from __future__ import annotations

import copy
import warnings
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")


@dataclass
class LiveBar:
    time: Any = None
    saved: Any = None
    warned: bool = False


def begin_bar(live: LiveBar, core: T, time: Any) -> T:
    """Return the state to update for the bar stamped *time*.

    A new *time* snapshots *core* and hands it back unchanged.  A repeated
    *time* hands back a fresh copy of the snapshot, discarding whatever
    the previous tick of that bar did.
    """
    if live.time is not None and time is not None and time == live.time:
        return copy.deepcopy(live.saved)
    if live.time is not None and time is not None and time < live.time and not live.warned:
        warnings.warn(
            f"Bar time {time!r} is earlier than the previous bar {live.time!r}; "
            "bars must arrive in time order. Treating it as a new bar.",
            UserWarning,
            stacklevel=3,
        )
        live.warned = True
    live.time = time
    live.saved = copy.deepcopy(core)
    return core
