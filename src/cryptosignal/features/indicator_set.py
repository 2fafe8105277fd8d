"""IndicatorSet builder.

Computes the latest value of every indicator from a candle window and
packages them as an immutable IndicatorSet. An indicator whose history is too
short, or whose latest value is NaN, is reported as None.
"""

import math
from typing import Dict, Optional, Sequence

import pandas as pd

from cryptosignal.core.types import Candle, IndicatorSet
from cryptosignal.data.candles import candles_to_frame
from cryptosignal.features.indicators import (
    calculate_aroon,
    calculate_atr,
    calculate_bollinger_bands,
    calculate_cci,
    calculate_dmi,
    calculate_ema,
    calculate_macd,
    calculate_mfi,
    calculate_obv,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_support_resistance,
    calculate_vol_ratio,
    calculate_vwap,
    calculate_williams_r,
)

# Minimum candles before each indicator group is considered usable
MIN_HISTORY: Dict[str, int] = {
    "ema8": 8,
    "ema20": 20,
    "ema50": 50,
    "ema200": 200,
    "sma20": 20,
    "rsi14": 15,
    "rsi7": 8,
    "macd": 34,  # slow EMA + signal EMA warm-up
    "bollinger": 20,
    "atr": 15,
    "dmi": 28,  # DI smoothing + ADX smoothing
    "aroon": 26,
    "obv": 2,
    "vwap": 1,
    "stochastic": 16,
    "cci": 20,
    "williams_r": 14,
    "mfi": 15,
    "levels": 20,
    "volume_ratio": 20,
}

INDICATOR_NAMES = (
    "price",
    "ema8", "ema20", "ema50", "ema200", "sma20",
    "rsi14", "rsi7",
    "macd", "macd_signal", "macd_histogram",
    "bb_upper", "bb_middle", "bb_lower", "bb_pct_b",
    "atr",
    "adx", "plus_di", "minus_di",
    "aroon_up", "aroon_down",
    "obv", "vwap",
    "stoch_k", "stoch_d",
    "cci", "williams_r", "mfi",
    "support", "resistance",
    "volume_ratio",
)


def _last(series: pd.Series) -> Optional[float]:
    """Latest finite value of a series, else None."""
    if series is None or len(series) == 0:
        return None
    value = series.iloc[-1]
    if value is None or pd.isna(value):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def build_indicator_set(
    candles: Sequence[Candle],
    current_price: Optional[float] = None,
) -> IndicatorSet:
    """Compute the latest indicator snapshot for a candle window.

    Args:
        candles: Canonical candles, oldest first
        current_price: Live price; defaults to the last close

    Returns:
        IndicatorSet with every name in INDICATOR_NAMES (None = unavailable)
    """
    values: Dict[str, Optional[float]] = {name: None for name in INDICATOR_NAMES}

    if current_price is not None and current_price > 0:
        values["price"] = float(current_price)

    n = len(candles)
    if n == 0:
        return IndicatorSet(values)

    df = candles_to_frame(candles)
    close = df["close"]
    high = df["high"]
    low = df["low"]
    volume = df["volume"]

    if values["price"] is None:
        values["price"] = float(close.iloc[-1])

    def ready(group: str) -> bool:
        return n >= MIN_HISTORY[group]

    for period in (8, 20, 50, 200):
        if ready(f"ema{period}"):
            values[f"ema{period}"] = _last(calculate_ema(close, period))
    if ready("sma20"):
        values["sma20"] = _last(calculate_sma(close, 20))

    if ready("rsi14"):
        values["rsi14"] = _last(calculate_rsi(close, 14))
    if ready("rsi7"):
        values["rsi7"] = _last(calculate_rsi(close, 7))

    if ready("macd"):
        macd_line, signal_line, histogram = calculate_macd(close)
        values["macd"] = _last(macd_line)
        values["macd_signal"] = _last(signal_line)
        values["macd_histogram"] = _last(histogram)

    if ready("bollinger"):
        upper, middle, lower, pct_b = calculate_bollinger_bands(close)
        values["bb_upper"] = _last(upper)
        values["bb_middle"] = _last(middle)
        values["bb_lower"] = _last(lower)
        values["bb_pct_b"] = _last(pct_b)

    if ready("atr"):
        values["atr"] = _last(calculate_atr(high, low, close))

    if ready("dmi"):
        adx, plus_di, minus_di = calculate_dmi(df)
        values["adx"] = _last(adx)
        values["plus_di"] = _last(plus_di)
        values["minus_di"] = _last(minus_di)

    if ready("aroon"):
        aroon_up, aroon_down = calculate_aroon(high, low)
        values["aroon_up"] = _last(aroon_up)
        values["aroon_down"] = _last(aroon_down)

    if ready("obv"):
        values["obv"] = _last(calculate_obv(close, volume))
    if ready("vwap"):
        values["vwap"] = _last(calculate_vwap(df))

    if ready("stochastic"):
        stoch_k, stoch_d = calculate_stochastic(high, low, close)
        values["stoch_k"] = _last(stoch_k)
        values["stoch_d"] = _last(stoch_d)

    if ready("cci"):
        values["cci"] = _last(calculate_cci(df))
    if ready("williams_r"):
        values["williams_r"] = _last(calculate_williams_r(df))
    if ready("mfi"):
        values["mfi"] = _last(calculate_mfi(df))

    if ready("levels"):
        support, resistance = calculate_support_resistance(high, low)
        values["support"] = _last(support)
        values["resistance"] = _last(resistance)

    if ready("volume_ratio"):
        values["volume_ratio"] = _last(calculate_vol_ratio(volume))

    return IndicatorSet(values)


def build_timeframe_indicators(
    timeframe_candles: Dict[str, Sequence[Candle]],
    min_candles: int = 14,
    current_price: Optional[float] = None,
) -> Dict[str, IndicatorSet]:
    """Build one IndicatorSet per timeframe.

    Timeframes with fewer than min_candles candles are skipped.

    Args:
        timeframe_candles: Mapping like {"1d": [...], "4h": [...], "1h": [...]}
        min_candles: Minimum history for a timeframe to be included
        current_price: Live price applied to every timeframe; defaults to each last close

    Returns:
        Mapping timeframe -> IndicatorSet
    """
    result: Dict[str, IndicatorSet] = {}
    for timeframe, candles in (timeframe_candles or {}).items():
        if candles and len(candles) >= min_candles:
            result[timeframe] = build_indicator_set(candles, current_price=current_price)
    return result
