"""Market regime classification.

Regime is read from ADX (trend strength) and ATR% relative to its own recent
average (volatility):

- volatile: ATR% well above its recent average (or above 3% without history)
- trending: ADX > 25
- choppy:   everything else, including missing ADX

Strength is 80 for ADX > 25, 20 for ADX < 20, 30 in between, plus 20 / 10 / 5
for normal / low / high volatility.
"""

import logging
from typing import Optional, Sequence

from cryptosignal.core.types import Candle, IndicatorSet, MarketRegime
from cryptosignal.data.candles import candles_to_frame
from cryptosignal.features.indicators import calculate_atr

logger = logging.getLogger(__name__)

TRENDING_ADX = 25.0
MODERATE_ADX = 20.0

HIGH_VOL_MULT = 1.5
LOW_VOL_MULT = 0.5
HIGH_ATR_PCT = 3.0
LOW_ATR_PCT = 1.0


def classify_volatility(
    atr_pct: Optional[float],
    candles: Sequence[Candle] = (),
    atr_period: int = 14,
    lookback: int = 20,
) -> str:
    """Classify volatility as low / normal / high.

    Compares current ATR% with the mean ATR% over the last lookback bars when
    enough history exists, otherwise uses absolute 1% / 3% thresholds.
    """
    if atr_pct is None:
        return "normal"

    if len(candles) >= atr_period + lookback:
        df = candles_to_frame(candles)
        atr_series = calculate_atr(df["high"], df["low"], df["close"], atr_period)
        atr_pct_series = (atr_series / df["close"] * 100).iloc[-lookback:].dropna()
        if len(atr_pct_series) > 0:
            avg = float(atr_pct_series.mean())
            if atr_pct > avg * HIGH_VOL_MULT:
                return "high"
            if atr_pct < avg * LOW_VOL_MULT:
                return "low"
            return "normal"

    if atr_pct > HIGH_ATR_PCT:
        return "high"
    if atr_pct < LOW_ATR_PCT:
        return "low"
    return "normal"


def detect_market_regime(
    indicators: IndicatorSet,
    candles: Sequence[Candle] = (),
) -> MarketRegime:
    """Detect market regime with a 0-100 strength score.

    Args:
        indicators: Primary timeframe IndicatorSet (uses adx, atr, price)
        candles: Candle window used for the relative volatility baseline

    Returns:
        MarketRegime
    """
    adx = indicators.adx
    atr_pct = None
    if indicators.has("atr", "price") and indicators.price > 0:
        atr_pct = indicators.atr / indicators.price * 100

    volatility = classify_volatility(atr_pct, candles)

    if volatility == "high":
        regime = "volatile"
    elif adx is not None and adx > TRENDING_ADX:
        regime = "trending"
    else:
        regime = "choppy"

    # Score from the ADX band (trending 80, ranging 20, in-between 30) plus volatility
    if adx is not None and adx > TRENDING_ADX:
        score = 80.0
    elif adx is not None and adx < MODERATE_ADX:
        score = 20.0
    else:
        score = 30.0

    score += {"normal": 20, "low": 10, "high": 5}[volatility]
    score = max(0.0, min(100.0, score))

    logger.debug("Regime %s (adx=%s, atr_pct=%s, volatility=%s)", regime, adx, atr_pct, volatility)

    return MarketRegime(
        regime=regime,
        strength=score,
        volatility=volatility,
        adx=adx,
        atr_pct=atr_pct,
    )
