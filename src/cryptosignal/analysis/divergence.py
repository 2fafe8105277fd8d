"""Price vs oscillator divergence detection."""

import math
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class DivergenceResult:
    """Divergence read over a lookback window."""
    bullish: bool = False
    bearish: bool = False

    @property
    def divergence(self) -> Optional[str]:
        if self.bullish:
            return "bullish"
        if self.bearish:
            return "bearish"
        return None


def detect_divergence(
    prices: Sequence[float],
    indicator_values: Sequence[Optional[float]],
    lookback: int = 20,
) -> DivergenceResult:
    """Detect divergence between price and an oscillator (RSI, MACD...).

    Bullish: the window low comes after the window high, price is still falling
    into that low, but the oscillator is rising into it.
    Bearish: mirror image at the window high.

    Args:
        prices: Close prices, oldest first
        indicator_values: Oscillator values aligned with prices (NaN/None allowed)
        lookback: Window size

    Returns:
        DivergenceResult
    """
    if len(prices) < lookback or len(indicator_values) < lookback or lookback < 2:
        return DivergenceResult()

    recent_prices = list(prices[-lookback:])
    recent_ind = list(indicator_values[-lookback:])

    if any(v is None or (isinstance(v, float) and math.isnan(v)) for v in recent_ind):
        return DivergenceResult()

    high_idx = recent_prices.index(max(recent_prices))
    low_idx = recent_prices.index(min(recent_prices))

    bullish = False
    if low_idx > high_idx:
        prev = low_idx - 1
        if recent_prices[low_idx] < recent_prices[prev] and recent_ind[low_idx] > recent_ind[prev]:
            bullish = True

    bearish = False
    if high_idx > low_idx:
        prev = high_idx - 1
        if recent_prices[high_idx] > recent_prices[prev] and recent_ind[high_idx] < recent_ind[prev]:
            bearish = True

    return DivergenceResult(bullish=bullish, bearish=bearish)
