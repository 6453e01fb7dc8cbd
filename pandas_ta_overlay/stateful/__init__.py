# -*- coding: utf-8 -*-
"""pandas-ta-overlay.stateful – streaming / stateful overlay indicators.

Category modules populate STATEFUL_REGISTRY and SEED_REGISTRY at import
time.  This package re-exports them plus the shared base API.
"""
from __future__ import annotations

# Base API (always available)
from ._base import (
    NAN,
    SOURCES,
    Bar,
    EMAState,
    ATRState,
    StatefulIndicator,
    IndicatorHandle,
    STATEFUL_REGISTRY,
    SEED_REGISTRY,
    ema_make,
    ema_update_raw,
    true_range,
    atr_update_raw,
    replay_seed,
    replay_frame,
    resolve_output_names,
    stateful_supported_kinds,
    source_price,
)
from ._live import LiveBar, begin_bar
from ._profile import (
    PriceProfile,
    ValueAreaResult,
    add_bar_volume,
    price_key,
    profile_volume,
    quantize,
    value_area,
)

# ---------------------------------------------------------------------------
# Category modules – each populates the shared registries on import
# ---------------------------------------------------------------------------
from ._overlap import (      # ma
    MAType,
    MABankState,
    MA_KERNELS,
    ma_bank_make,
    ma_bank_update,
)
from ._volatility import (   # atr, atrbot
    ATRBotConfig,
    ATRBotState,
    TrailState,
    split_bias,
    trail_step,
)
from ._volume import (       # session_vp
    FinalizedProfile,
    Period,
    SessionVPConfig,
    SessionVPState,
    close_period,
    period_key,
)

__all__ = [
    # base
    "NAN",
    "SOURCES",
    "Bar",
    "EMAState",
    "ATRState",
    "StatefulIndicator",
    "IndicatorHandle",
    "STATEFUL_REGISTRY",
    "SEED_REGISTRY",
    "ema_make",
    "ema_update_raw",
    "true_range",
    "atr_update_raw",
    "replay_seed",
    "replay_frame",
    "resolve_output_names",
    "stateful_supported_kinds",
    "source_price",
    "LiveBar",
    "begin_bar",
    # profile
    "PriceProfile",
    "ValueAreaResult",
    "add_bar_volume",
    "price_key",
    "profile_volume",
    "quantize",
    "value_area",
    # moving averages
    "MAType",
    "MABankState",
    "MA_KERNELS",
    "ma_bank_make",
    "ma_bank_update",
    # trail
    "ATRBotConfig",
    "ATRBotState",
    "TrailState",
    "split_bias",
    "trail_step",
    # volume profile
    "FinalizedProfile",
    "Period",
    "SessionVPConfig",
    "SessionVPState",
    "close_period",
    "period_key",
]
