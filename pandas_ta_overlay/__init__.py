# -*- coding: utf-8 -*-
from importlib.metadata import PackageNotFoundError, version as _version

try:
    version = _version("pandas_ta_overlay")
except PackageNotFoundError:
    version = "0.0.0"

from pandas_ta_overlay.stateful import *
from pandas_ta_overlay.stateful import __all__ as stateful_all


def atrbot(**params) -> IndicatorHandle:
    """ATR trail overlay attached with *params* (see ``ATRBotConfig``)."""
    return IndicatorHandle("atrbot", params)


def session_vp(**params) -> IndicatorHandle:
    """Session / week / month volume profile (see ``SessionVPConfig``)."""
    return IndicatorHandle("session_vp", params)


__all__ = [
    "version",
    "atrbot",
    "session_vp",
]

__all__ += stateful_all
