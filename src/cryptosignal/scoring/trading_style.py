"""Trading style classification (Long Term vs Short Term)."""

from typing import Optional

from cryptosignal.core.types import IndicatorSet, MarketRegime, SignalAction, TrendAlignment

LONG_TERM = "Long Term"
SHORT_TERM = "Short Term"


def determine_trading_style(
    signal: SignalAction,
    indicators: Optional[IndicatorSet],
    alignment: Optional[TrendAlignment],
    regime: Optional[MarketRegime],
) -> str:
    """Classify a signal as a Long Term or Short Term trade.

    Long Term requires all of:
    - daily trend in the signal's direction
    - 4h and 1h aligned, or alignment score >= 75
    - ADX > 25
    - trending regime
    """
    if alignment is None or indicators is None or regime is None:
        return SHORT_TERM

    expected = {
        SignalAction.BUY_TO_ENTER: "uptrend",
        SignalAction.SELL_TO_ENTER: "downtrend",
    }.get(signal)

    daily_matches = expected is not None and alignment.daily_trend == expected
    mtf_aligned = (alignment.h4_aligned and alignment.h1_aligned) or alignment.alignment_score >= 75
    strong_trend = indicators.adx is not None and indicators.adx > 25

    if daily_matches and mtf_aligned and strong_trend and regime.regime == "trending":
        return LONG_TERM
    return SHORT_TERM
