"""Trend detection, market structure and multi-timeframe alignment."""

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from cryptosignal.core.types import IndicatorSet, TrendAlignment


@dataclass(frozen=True)
class TrendDetection:
    """Single-timeframe trend read from EMA stacking.

    Attributes:
        trend: "uptrend", "downtrend" or "neutral"
        strength: 0 (none) to 3 (price and all EMAs stacked)
        reason: Human-readable explanation
    """
    trend: str
    strength: int
    reason: str


@dataclass(frozen=True)
class MarketStructure:
    """Swing structure over a lookback window."""
    higher_highs: bool = False
    lower_lows: bool = False
    higher_lows: bool = False
    lower_highs: bool = False
    structure: str = "neutral"  # uptrend / downtrend / bullish / bearish / neutral


def detect_trend(
    price: Optional[float],
    ema20: Optional[float],
    ema50: Optional[float] = None,
    ema200: Optional[float] = None,
) -> TrendDetection:
    """Classify trend from price vs EMA20/50/200 stacking.

    Uses as many EMAs as are available; EMA20 is required.

    Args:
        price: Current price
        ema20: Latest EMA20
        ema50: Latest EMA50 (optional)
        ema200: Latest EMA200 (optional)

    Returns:
        TrendDetection
    """
    if price is None or ema20 is None:
        return TrendDetection("neutral", 0, "Insufficient data")

    if ema50 is not None and ema200 is not None:
        if price > ema20 > ema50 > ema200:
            return TrendDetection("uptrend", 3, "Strong uptrend: Price > EMA20 > EMA50 > EMA200")
        if price < ema20 < ema50 < ema200:
            return TrendDetection("downtrend", 3, "Strong downtrend: Price < EMA20 < EMA50 < EMA200")

    if ema50 is not None:
        if price > ema20 > ema50:
            return TrendDetection("uptrend", 2, "Moderate uptrend: Price > EMA20 > EMA50")
        if price < ema20 < ema50:
            return TrendDetection("downtrend", 2, "Moderate downtrend: Price < EMA20 < EMA50")

    if price > ema20:
        return TrendDetection("uptrend", 1, "Weak uptrend: Price > EMA20")
    if price < ema20:
        return TrendDetection("downtrend", 1, "Weak downtrend: Price < EMA20")

    return TrendDetection("neutral", 0, "Price at EMA20")


def detect_market_structure(
    highs: Sequence[float],
    lows: Sequence[float],
    lookback: int = 20,
) -> MarketStructure:
    """Detect higher-high / lower-low structure.

    Higher highs (lower lows) mean the extreme of the window is the latest bar.
    Higher lows (lower highs) compare the average of the second half of the
    window to the first half.

    Args:
        highs: High prices, oldest first
        lows: Low prices, oldest first
        lookback: Window size

    Returns:
        MarketStructure (neutral when history is short)
    """
    if lookback < 2 or len(highs) < lookback or len(lows) < lookback:
        return MarketStructure()

    recent_highs = list(highs[-lookback:])
    recent_lows = list(lows[-lookback:])

    highest = max(recent_highs)
    lowest = min(recent_lows)
    higher_highs = recent_highs.index(highest) == lookback - 1
    lower_lows = recent_lows.index(lowest) == lookback - 1

    half = lookback // 2
    higher_lows = _mean(recent_lows[half:]) > _mean(recent_lows[:half])
    lower_highs = _mean(recent_highs[half:]) < _mean(recent_highs[:half])

    if higher_highs and higher_lows:
        structure = "uptrend"
    elif lower_lows and lower_highs:
        structure = "downtrend"
    elif higher_highs or higher_lows:
        structure = "bullish"
    elif lower_lows or lower_highs:
        structure = "bearish"
    else:
        structure = "neutral"

    return MarketStructure(
        higher_highs=higher_highs,
        lower_lows=lower_lows,
        higher_lows=higher_lows,
        lower_highs=lower_highs,
        structure=structure,
    )


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _side_of_ema20(indicators: Optional[IndicatorSet]) -> int:
    """+1 above EMA20, -1 below, 0 at or unknown."""
    if indicators is None or not indicators.has("price", "ema20"):
        return 0
    if indicators.price > indicators.ema20:
        return 1
    if indicators.price < indicators.ema20:
        return -1
    return 0


def check_trend_alignment(timeframe_indicators: Optional[Mapping[str, IndicatorSet]]) -> TrendAlignment:
    """Summarize agreement between daily, 4h and 1h trends.

    Scoring:
    - Daily trend present: 40, plus 30 each for 4h and 1h agreeing
    - Daily neutral but 4h and 1h on the same side of their EMA20: 60
    - No daily data: 0

    A missing 4h/1h timeframe does not count against alignment.

    Args:
        timeframe_indicators: Mapping with keys "1d", "4h", "1h"

    Returns:
        TrendAlignment
    """
    daily = (timeframe_indicators or {}).get("1d")
    if daily is None:
        return TrendAlignment(reason="Daily timeframe data not available")

    if not daily.has("price", "ema20", "ema50"):
        return TrendAlignment(reason="Daily EMA data not available")

    price, ema20, ema50 = daily.price, daily.ema20, daily.ema50
    if price > ema20 > ema50:
        daily_trend = "uptrend"
    elif price < ema20 < ema50:
        daily_trend = "downtrend"
    else:
        daily_trend = "neutral"

    h4_side = _side_of_ema20(timeframe_indicators.get("4h"))
    h1_side = _side_of_ema20(timeframe_indicators.get("1h"))

    direction = {"uptrend": 1, "downtrend": -1}.get(daily_trend, 0)
    # Only an opposing lower timeframe breaks alignment
    h4_aligned = not (direction and h4_side == -direction)
    h1_aligned = not (direction and h1_side == -direction)

    if daily_trend != "neutral":
        score = 40 + (30 if h4_aligned else 0) + (30 if h1_aligned else 0)
        reason = "All timeframes aligned" if h4_aligned and h1_aligned else "Lower timeframes not aligned"
    else:
        score = 60 if h4_side != 0 and h4_side == h1_side else 0
        reason = "Daily trend is neutral"

    return TrendAlignment(
        daily_trend=daily_trend,
        h4_aligned=h4_aligned,
        h1_aligned=h1_aligned,
        alignment_score=float(score),
        aligned=daily_trend != "neutral" and h4_aligned and h1_aligned,
        reason=reason,
    )
