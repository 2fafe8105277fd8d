"""Candlestick pattern recognition."""

from dataclasses import dataclass
from typing import List, Sequence

from cryptosignal.core.types import Candle


@dataclass(frozen=True)
class CandlestickPattern:
    """Detected pattern.

    Attributes:
        type: doji, hammer, bullish_engulfing or bearish_engulfing
        index: Position inside the lookback window
        bullish: Pattern bias
    """
    type: str
    index: int
    bullish: bool


def detect_candlestick_patterns(candles: Sequence[Candle], lookback: int = 5) -> List[CandlestickPattern]:
    """Scan the last lookback candles for reversal patterns.

    Args:
        candles: Canonical candles, oldest first
        lookback: Number of trailing candles to scan

    Returns:
        Patterns in window order (empty when history is short)
    """
    if len(candles) < lookback or lookback < 2:
        return []

    window = list(candles[-lookback:])
    patterns: List[CandlestickPattern] = []

    for i in range(1, len(window)):
        cur = window[i]
        prev = window[i - 1]
        body = cur.body
        total = cur.range
        if total <= 0:
            continue

        if body < total * 0.1 and (cur.upper_wick > total * 0.3 or cur.lower_wick > total * 0.3):
            patterns.append(CandlestickPattern("doji", i, cur.is_bullish))

        if body < total * 0.3 and cur.lower_wick > body * 2 and cur.upper_wick < body * 0.5:
            patterns.append(CandlestickPattern("hammer", i, True))

        if (
            prev.is_bearish
            and cur.is_bullish
            and cur.open < prev.close
            and cur.close > prev.open
            and body > prev.body * 1.1
        ):
            patterns.append(CandlestickPattern("bullish_engulfing", i, True))

        if (
            prev.is_bullish
            and cur.is_bearish
            and cur.open > prev.close
            and cur.close < prev.open
            and body > prev.body * 1.1
        ):
            patterns.append(CandlestickPattern("bearish_engulfing", i, False))

    return patterns
