"""
Unit tests for true range / ATR and the ATR trail (atrbot).
"""

import math

import pytest

from pandas_ta_overlay import (
    ATRBotConfig,
    ATRState,
    IndicatorHandle,
    MAType,
    atr_update_raw,
    split_bias,
    trail_step,
    true_range,
)

from conftest import flat_bar


def feed(handle, bars):
    return [handle.update(b) for b in bars]


class TestTrueRangeATR:
    """Tests for true range and Wilder ATR."""

    def test_first_bar_is_high_low(self) -> None:
        assert true_range(12.0, 10.0, None) == 2.0

    def test_gap_uses_previous_close(self) -> None:
        assert true_range(12.0, 11.0, 8.0) == 4.0
        assert true_range(9.0, 7.0, 12.0) == 5.0

    def test_atr_seeds_with_first_true_range(self) -> None:
        state = ATRState(length=14)
        atr, state = atr_update_raw(state, 12.0, 10.0, 11.0)
        assert atr == 2.0

    def test_atr_wilder_recursion(self) -> None:
        state = ATRState(length=4)
        atr_update_raw(state, 12.0, 10.0, 11.0)
        atr, _ = atr_update_raw(state, 13.0, 12.0, 12.5)
        assert atr == pytest.approx((2.0 * 3 + 2.0) / 4)

    def test_atr_indicator_kind(self, make_bar) -> None:
        handle = IndicatorHandle("atr", {"length": 3})
        out = feed(handle, [make_bar(0, 10.0, high=11.0, low=9.0), make_bar(1, 10.0, high=10.5, low=9.5)])
        assert out[0] == [2.0]
        assert out[1] == [pytest.approx((2.0 * 2 + 1.0) / 3)]


class TestTrailStep:
    """Tests for the Trail2 hysteresis branches."""

    def test_uptrend_continues_ratchets_up(self) -> None:
        assert trail_step(110.0, 105.0, 100.0, 5.0) == 105.0
        assert trail_step(110.0, 105.0, 100.0, 20.0) == 100.0

    def test_new_uptrend(self) -> None:
        assert trail_step(110.0, 95.0, 100.0, 20.0) == 90.0

    def test_downtrend_continues_ratchets_down(self) -> None:
        assert trail_step(90.0, 95.0, 100.0, 5.0) == 95.0
        assert trail_step(90.0, 95.0, 100.0, 20.0) == 100.0

    def test_new_downtrend(self) -> None:
        assert trail_step(90.0, 105.0, 100.0, 5.0) == 95.0

    def test_touching_previous_stop_starts_downtrend(self) -> None:
        assert trail_step(100.0, 95.0, 100.0, 5.0) == 105.0

    def test_split_bias(self) -> None:
        green, red = split_bias(10.0, 9.0)
        assert green == 10.0 and math.isnan(red)
        green, red = split_bias(9.0, 9.0)
        assert math.isnan(green) and red == 9.0


class TestConfig:
    """Tests for atrbot parameter validation."""

    def test_defaults(self) -> None:
        c = ATRBotConfig.from_params({})
        assert (c.atr_length, c.atr_mult, c.source, c.ma_type, c.ma_length) == (
            14, 2.0, "close", MAType.EMA, 30)

    def test_camel_case_aliases(self) -> None:
        c = ATRBotConfig.from_params(
            {"atrLength": 10, "atrMultiplier": 1.5, "maType": "hull", "maLength": 9, "source": "HL2"})
        assert (c.atr_length, c.atr_mult, c.ma_type, c.ma_length, c.source) == (
            10, 1.5, MAType.HMA, 9, "hl2")

    @pytest.mark.parametrize("params", [
        {"atr_length": 0},
        {"atr_length": 501},
        {"atr_mult": 0.05},
        {"atr_mult": 10.5},
        {"atr_mult": "wide"},
        {"ma_type": "FRAMA"},
        {"ma_length": 0},
        {"source": "typical"},
    ])
    def test_rejects_bad_params(self, params) -> None:
        with pytest.raises(ValueError):
            IndicatorHandle("atrbot", params)


class TestATRBot:
    """Tests for the streaming trail engine."""

    def test_scenario_ema_flat_bars(self) -> None:
        """Flat bars still gap close to close, so true range is not zero."""
        handle = IndicatorHandle("atrbot", {"ma_type": "EMA", "ma_length": 3, "atr_mult": 2.0})
        closes = [100.0, 102.0, 101.0, 105.0, 98.0]
        out = feed(handle, [flat_bar(i, c) for i, c in enumerate(closes)])
        trail1 = [row[0] for row in out]
        trail2 = [row[1] for row in out]
        assert trail1 == pytest.approx([100.0, 101.0, 101.0, 103.0, 100.5])

        atr = [0.0]
        for tr in (2.0, 1.0, 4.0, 7.0):
            atr.append((atr[-1] * 13 + tr) / 14)
        expected = [
            100.0,                  # max(0, 100 - 0)
            101.0 - 2 * atr[1],     # new uptrend
            101.0 - 2 * atr[1],     # ratchet holds
            103.0 - 2 * atr[3],     # ratchet rises
            100.5 + 2 * atr[4],     # new downtrend
        ]
        assert trail2 == pytest.approx(expected)

    def test_zero_range_trail2_tracks_trail1(self) -> None:
        handle = IndicatorHandle("atrbot", {"ma_type": "EMA", "ma_length": 10, "atr_mult": 2.0})
        for row in feed(handle, [flat_bar(i, 100.0) for i in range(5)]):
            assert row[1] == row[0]

    @pytest.mark.parametrize("ma_type", list(MAType))
    def test_constant_price(self, ma_type) -> None:
        handle = IndicatorHandle("atrbot", {"ma_type": ma_type.value, "ma_length": 10, "atr_length": 5})
        out = feed(handle, [flat_bar(i, 50.0) for i in range(60)])
        trail1, trail2 = out[-1][0], out[-1][1]
        assert trail1 == pytest.approx(50.0)
        assert trail2 == pytest.approx(50.0)
        assert handle.state.trail.atr.atr == 0.0

    @pytest.mark.parametrize("ma_type", ["EMA", "WMA"])
    def test_monotonic_uptrend_containment(self, ma_type) -> None:
        handle = IndicatorHandle("atrbot", {"ma_type": ma_type, "ma_length": 30, "atr_mult": 2.0})
        out = feed(handle, [flat_bar(i, 100.0 + i) for i in range(200)])
        trail1 = [row[0] for row in out]
        trail2 = [row[1] for row in out]
        assert all(t2 <= t1 for t1, t2 in zip(trail1, trail2))
        assert all(b >= a for a, b in zip(trail2[1:], trail2[2:]))

    def test_first_bar_is_defined(self, make_bar) -> None:
        handle = IndicatorHandle("atrbot", {"ma_type": "SMMA"})
        row = handle.update(make_bar(0, 10.0, high=11.0, low=9.0))
        assert row[0] == 10.0
        # trail2 starts at 0 and trail1 starts above it
        assert row[1] == pytest.approx(10.0 - 2.0 * 2.0)
        assert row[2] == 10.0 and math.isnan(row[3])

    def test_fill_series_follow_side(self, ohlcv) -> None:
        handle = IndicatorHandle("atrbot", {"ma_length": 10})
        for r in ohlcv.itertuples():
            trail1, trail2, green, red = handle.update(
                {"time": r.Index, "open": r.open, "high": r.high, "low": r.low,
                 "close": r.close, "volume": r.volume})
            if trail1 > trail2:
                assert green == trail1 and math.isnan(red)
            else:
                assert red == trail1 and math.isnan(green)

    def test_invalid_bar_reemits_previous(self, make_bar) -> None:
        handle = IndicatorHandle("atrbot", {"ma_length": 5})
        good = handle.update(make_bar(0, 10.0, high=11.0, low=9.0))
        bad = handle.update(make_bar(1, float("nan")))
        assert bad == pytest.approx(good, nan_ok=True)

        clean = IndicatorHandle("atrbot", {"ma_length": 5})
        clean.update(make_bar(0, 10.0, high=11.0, low=9.0))
        assert handle.update(make_bar(2, 12.0)) == pytest.approx(
            clean.update(make_bar(2, 12.0)), nan_ok=True)

    def test_nan_volume_only_matters_for_volume_averages(self, make_bar) -> None:
        ema = IndicatorHandle("atrbot", {"ma_type": "EMA"})
        vwma = IndicatorHandle("atrbot", {"ma_type": "VWMA"})
        ema.update(make_bar(0, 10.0))
        vwma.update(make_bar(0, 10.0))
        assert ema.update(make_bar(1, 12.0, volume=float("nan")))[0] != 10.0
        assert vwma.update(make_bar(1, 12.0, volume=float("nan")))[0] == 10.0

    def test_nan_does_not_poison(self, ohlcv) -> None:
        handle = IndicatorHandle("atrbot", {"ma_type": "KAMA", "ma_length": 14})
        for i, r in enumerate(ohlcv.itertuples()):
            close = float("nan") if i % 50 == 7 else r.close
            row = handle.update({"time": r.Index, "open": r.open, "high": r.high,
                                 "low": r.low, "close": close, "volume": r.volume})
            assert math.isfinite(row[0]) and math.isfinite(row[1])


class TestLiveRevision:
    """Repeated updates of the forming bar must not compound."""

    @pytest.mark.parametrize("ma_type", ["EMA", "KAMA", "SMMA", "HMA", "VIDYA"])
    def test_revision_equals_final_tick(self, make_bar, ma_type) -> None:
        params = {"ma_type": ma_type, "ma_length": 4, "atr_length": 3}
        live = IndicatorHandle("atrbot", params)
        replayed = IndicatorHandle("atrbot", params)
        history = [make_bar(i, 100.0 + i, high=101.0 + i, low=99.0 + i) for i in range(6)]
        feed(live, history)
        feed(replayed, history)

        for close in (104.0, 110.0, 103.0, 107.5):
            live_row = live.update(make_bar(6, close, high=max(close, 106.0), low=min(close, 104.0)))
        final = make_bar(6, 107.5, high=107.5, low=104.0)
        assert live_row == pytest.approx(replayed.update(final), nan_ok=True)

        after = make_bar(7, 108.0, high=109.0, low=107.0)
        assert live.update(after) == pytest.approx(replayed.update(after), nan_ok=True)

    def test_out_of_order_bar_warns(self, make_bar) -> None:
        handle = IndicatorHandle("atrbot", {})
        handle.update(make_bar(5, 10.0))
        with pytest.warns(UserWarning, match="time order"):
            handle.update(make_bar(1, 11.0))
