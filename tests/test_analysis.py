"""Tests for structural and pattern analyzers."""

import pytest

from cryptosignal.analysis.candlestick import detect_candlestick_patterns
from cryptosignal.analysis.divergence import detect_divergence
from cryptosignal.analysis.liquidation import LiquidationCluster, LiquidationData, analyze_liquidations
from cryptosignal.analysis.regime import classify_volatility, detect_market_regime
from cryptosignal.analysis.trend import check_trend_alignment, detect_market_structure, detect_trend
from cryptosignal.core.types import Candle, IndicatorSet


def _tf(price, ema20, ema50=None):
    return IndicatorSet({"price": price, "ema20": ema20, "ema50": ema50})


class TestDetectTrend:
    """EMA stacking trend classification."""

    def test_strong_uptrend(self):
        result = detect_trend(110, 105, 100, 90)
        assert result.trend == "uptrend"
        assert result.strength == 3

    def test_moderate_downtrend_without_ema200(self):
        result = detect_trend(90, 95, 100)
        assert result.trend == "downtrend"
        assert result.strength == 2

    def test_weak_trend(self):
        result = detect_trend(101, 100, 105, 110)
        assert result.trend == "uptrend"
        assert result.strength == 1

    def test_missing_data(self):
        assert detect_trend(None, 100).trend == "neutral"
        assert detect_trend(100, None).strength == 0


class TestMarketStructure:
    """Higher-high / lower-low structure."""

    def test_uptrend_structure(self):
        highs = [float(i) for i in range(10, 30)]
        lows = [h - 1 for h in highs]
        result = detect_market_structure(highs, lows, lookback=20)
        assert result.higher_highs
        assert result.higher_lows
        assert result.structure == "uptrend"

    def test_downtrend_structure(self):
        highs = [float(i) for i in range(30, 10, -1)]
        lows = [h - 1 for h in highs]
        result = detect_market_structure(highs, lows, lookback=20)
        assert result.lower_lows
        assert result.lower_highs
        assert result.structure == "downtrend"

    def test_short_history_is_neutral(self):
        assert detect_market_structure([1.0, 2.0], [0.5, 1.0], lookback=20).structure == "neutral"


class TestTrendAlignment:
    """Multi-timeframe alignment scoring."""

    def test_no_daily_data(self):
        result = check_trend_alignment({"4h": _tf(10, 9)})
        assert result.alignment_score == 0
        assert result.daily_trend == "neutral"
        assert result.reason == "Daily timeframe data not available"

    def test_fully_aligned_uptrend(self):
        result = check_trend_alignment({
            "1d": _tf(110, 105, 100),
            "4h": _tf(110, 108),
            "1h": _tf(110, 109),
        })
        assert result.daily_trend == "uptrend"
        assert result.alignment_score == 100
        assert result.aligned
        assert result.trend_direction == 1

    def test_one_lower_timeframe_against(self):
        result = check_trend_alignment({
            "1d": _tf(90, 95, 100),
            "4h": _tf(90, 95),
            "1h": _tf(96, 95),
        })
        assert result.daily_trend == "downtrend"
        assert result.h4_aligned
        assert not result.h1_aligned
        assert result.alignment_score == 70
        assert not result.aligned

    def test_missing_lower_timeframes_count_as_aligned(self):
        result = check_trend_alignment({"1d": _tf(110, 105, 100)})
        assert result.alignment_score == 100

    def test_neutral_daily_with_agreeing_lower_timeframes(self):
        result = check_trend_alignment({
            "1d": _tf(102, 100, 105),
            "4h": _tf(110, 108),
            "1h": _tf(110, 109),
        })
        assert result.daily_trend == "neutral"
        assert result.alignment_score == 60
        assert not result.aligned


class TestMarketRegime:
    """ADX / ATR regime classification."""

    def test_trending(self):
        regime = detect_market_regime(IndicatorSet({"adx": 30.0, "atr": 1.5, "price": 100.0}))
        assert regime.regime == "trending"
        assert regime.volatility == "normal"
        assert regime.strength == 100
        assert regime.atr_pct == pytest.approx(1.5)

    def test_volatile(self):
        regime = detect_market_regime(IndicatorSet({"adx": 10.0, "atr": 5.0, "price": 100.0}))
        assert regime.regime == "volatile"
        assert regime.volatility == "high"
        assert regime.strength == 25

    def test_choppy_between_thresholds(self):
        regime = detect_market_regime(IndicatorSet({"adx": 22.0, "atr": 0.5, "price": 100.0}))
        assert regime.regime == "choppy"
        assert regime.volatility == "low"
        assert regime.strength == 40

    def test_missing_adx_is_choppy(self):
        regime = detect_market_regime(IndicatorSet({"price": 100.0}))
        assert regime.regime == "choppy"
        assert regime.adx is None
        assert regime.atr_pct is None

    def test_relative_volatility_uses_history(self, flat_candles):
        candles = flat_candles(40)
        # Flat candles have ATR% of 1%, so 2% is more than 1.5x the average
        assert classify_volatility(2.0, candles) == "high"
        assert classify_volatility(1.0, candles) == "normal"
        assert classify_volatility(0.4, candles) == "low"

    def test_strength_bounded(self):
        for adx in (None, 5.0, 22.0, 60.0):
            for atr in (0.1, 2.0, 10.0):
                regime = detect_market_regime(IndicatorSet({"adx": adx, "atr": atr, "price": 100.0}))
                assert 0 <= regime.strength <= 100


class TestDivergence:
    """Price vs oscillator divergence."""

    def test_bullish(self):
        result = detect_divergence([10, 12, 11, 9, 8], [50, 60, 40, 30, 35], lookback=5)
        assert result.bullish
        assert result.divergence == "bullish"

    def test_bearish(self):
        result = detect_divergence([10, 8, 9, 11, 12], [50, 40, 45, 70, 65], lookback=5)
        assert result.bearish
        assert result.divergence == "bearish"

    def test_none_when_confirmed(self):
        result = detect_divergence([10, 12, 11, 9, 8], [50, 60, 40, 30, 25], lookback=5)
        assert result.divergence is None

    def test_nan_or_short_input(self):
        assert detect_divergence([1, 2], [1, 2], lookback=5).divergence is None
        nan = float("nan")
        assert detect_divergence([10, 12, 11, 9, 8], [nan, 60, 40, 30, 35], lookback=5).divergence is None


class TestCandlestickPatterns:
    """Reversal pattern recognition."""

    def _c(self, o, h, l, c):
        return Candle(time=0, open=o, high=h, low=l, close=c, volume=1.0)

    def test_bullish_engulfing(self):
        candles = [self._c(10, 10.1, 8.9, 9), self._c(8.9, 10.6, 8.8, 10.5)]
        patterns = detect_candlestick_patterns(candles, lookback=2)
        assert [p.type for p in patterns] == ["bullish_engulfing"]
        assert patterns[0].bullish

    def test_bearish_engulfing(self):
        candles = [self._c(9, 10.1, 8.9, 10), self._c(10.1, 10.2, 8.4, 8.5)]
        patterns = detect_candlestick_patterns(candles, lookback=2)
        assert [p.type for p in patterns] == ["bearish_engulfing"]

    def test_hammer(self):
        candles = [self._c(10, 10.2, 9.9, 10.1), self._c(10, 10.25, 9.0, 10.2)]
        patterns = detect_candlestick_patterns(candles, lookback=2)
        assert [p.type for p in patterns] == ["hammer"]

    def test_doji(self):
        candles = [self._c(10, 10.2, 9.9, 10.1), self._c(10, 10.5, 9.5, 10.01)]
        patterns = detect_candlestick_patterns(candles, lookback=2)
        assert [p.type for p in patterns] == ["doji"]

    def test_short_history(self):
        assert detect_candlestick_patterns([self._c(1, 2, 0.5, 1.5)], lookback=5) == []


class TestLiquidationAnalysis:
    """Liquidation cluster analysis."""

    @pytest.fixture
    def data(self):
        return LiquidationData(
            clusters=(
                LiquidationCluster(price=101.0, size=600.0, side="short"),
                LiquidationCluster(price=104.0, size=1000.0, side="long"),
                LiquidationCluster(price=90.0, size=5000.0, side="long"),
            ),
            long_liquidations_24h=5000.0,
            short_liquidations_24h=5000.0,
        )

    def test_nearest_cluster(self, data):
        result = analyze_liquidations(data, 100.0)
        assert result.nearest.price == 101.0
        assert result.nearest_distance_pct == pytest.approx(1.0)
        assert len(result.long_clusters) == 2
        assert len(result.short_clusters) == 1

    def test_liquidity_grab(self, data):
        result = analyze_liquidations(data, 100.0)
        assert result.liquidity_grab
        assert result.grab_side == "short"
        assert result.grab_zone == pytest.approx((100.495, 101.505))

    def test_stop_hunt_targets_largest_nearby(self, data):
        result = analyze_liquidations(data, 100.0)
        assert result.stop_hunt
        assert result.stop_hunt_target == 104.0
        assert result.stop_hunt_side == "long"

    def test_cascade_low_relative_to_open_interest(self, data):
        result = analyze_liquidations(data, 100.0)
        assert result.cascade_risk == "low"
        assert result.cascade_trigger is None

    def test_cascade_high(self):
        data = LiquidationData(
            clusters=(LiquidationCluster(price=101.0, size=500.0, side="short"),),
            long_liquidations_24h=50.0,
            short_liquidations_24h=50.0,
        )
        result = analyze_liquidations(data, 100.0)
        assert result.cascade_risk == "high"
        assert result.cascade_trigger == 101.0

    def test_safe_entry_defaults(self, data):
        result = analyze_liquidations(data, 100.0)
        assert result.safe_entry_confidence == 1.0
        assert result.safe_entry_zones == [pytest.approx((99.0, 101.0))]

    def test_safe_entry_close_to_liquidations(self):
        result = analyze_liquidations(LiquidationData(liquidation_distance=2.0), 100.0)
        assert result.safe_entry_confidence == pytest.approx(0.2)
        assert result.safe_entry_zones == []

    def test_no_clusters(self):
        result = analyze_liquidations(LiquidationData(), 100.0)
        assert result.nearest is None
        assert result.nearest_distance_pct == 100.0
        assert not result.liquidity_grab
        assert not result.stop_hunt
