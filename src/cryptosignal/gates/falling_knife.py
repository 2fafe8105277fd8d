"""Falling-knife veto.

Blocks a long entry only when the downtrend is confirmed on every axis. Any
missing input makes the gate pass (returns False).
"""

from typing import Optional

from cryptosignal.core.types import IndicatorSet, TrendAlignment

MACD_HISTOGRAM_LIMIT = -20.0
OBV_SEVERE = -5_000_000.0
OBV_DOWNTREND = -1_000_000.0


def is_catching_falling_knife(
    indicators: Optional[IndicatorSet],
    alignment: Optional[TrendAlignment],
) -> bool:
    """Return True when entering long would be catching a falling knife.

    Conditions (all required):
    1. alignment score is 100 with a daily downtrend
    2. price below EMA20, EMA50 and EMA200
    3. MACD histogram < -20
    4. OBV < -5M, or OBV < -1M with a daily downtrend
    """
    if indicators is None or alignment is None:
        return False

    if not indicators.has("price", "ema20", "ema50", "ema200", "macd_histogram", "obv"):
        return False

    daily_down = alignment.daily_trend == "downtrend"
    all_down = alignment.alignment_score == 100 and daily_down

    price = indicators.price
    below_emas = price < indicators.ema20 and price < indicators.ema50 and price < indicators.ema200

    macd_bearish = indicators.macd_histogram < MACD_HISTOGRAM_LIMIT

    obv = indicators.obv
    obv_negative = obv < OBV_SEVERE or (obv < OBV_DOWNTREND and daily_down)

    return all_down and below_emas and macd_bearish and obv_negative
