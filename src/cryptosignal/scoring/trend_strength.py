"""Trend Strength Index (TSI).

Composite directional score in [-1, +1] built from four terms:

    EMA stacking     +/-0.30 (full stack) or +/-0.20 (price/EMA20/EMA50);
                     needs price and all three EMAs
    ADX direction    0.25 * min(1, adx/50) * clamp((+DI - -DI)/25)
    Aroon            0.20 * (up - down) / 100
    Multi-timeframe  0.25 * (alignment_score / 100) * daily direction

Each term is evaluated once against its own inputs. A term whose inputs are
missing is Unavailable and is excluded from both the sum and the divisor.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union

from cryptosignal.core.types import IndicatorSet, TrendAlignment

EMA_FULL_WEIGHT = 0.30
EMA_PARTIAL_WEIGHT = 0.20
ADX_WEIGHT = 0.25
AROON_WEIGHT = 0.20
MTF_WEIGHT = 0.25


class _Unavailable:
    """Marker for a term whose inputs are missing."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Unavailable"

    def __bool__(self) -> bool:
        return False


Unavailable = _Unavailable()

TermValue = Union[float, _Unavailable]


@dataclass(frozen=True)
class TrendStrength:
    """TSI value with its per-term breakdown."""
    value: float
    terms: Dict[str, TermValue]

    @property
    def contributing(self) -> int:
        return sum(1 for v in self.terms.values() if v is not Unavailable)


def _clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _sign(value: float) -> float:
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


def ema_alignment_term(ind: IndicatorSet) -> TermValue:
    if not ind.has("price", "ema20", "ema50", "ema200"):
        return Unavailable
    price, ema20, ema50, ema200 = ind.price, ind.ema20, ind.ema50, ind.ema200

    if price > ema20 > ema50 > ema200:
        return EMA_FULL_WEIGHT
    if price < ema20 < ema50 < ema200:
        return -EMA_FULL_WEIGHT
    if price > ema20 > ema50:
        return EMA_PARTIAL_WEIGHT
    if price < ema20 < ema50:
        return -EMA_PARTIAL_WEIGHT
    return 0.0


def adx_direction_term(ind: IndicatorSet) -> TermValue:
    if ind.adx is None:
        return Unavailable
    strength = min(1.0, ind.adx / 50)
    if ind.has("plus_di", "minus_di"):
        return ADX_WEIGHT * strength * _clamp((ind.plus_di - ind.minus_di) / 25)
    if ind.has("price", "ema20"):
        return ADX_WEIGHT * strength * _sign(ind.price - ind.ema20)
    return Unavailable


def aroon_term(ind: IndicatorSet) -> TermValue:
    if not ind.has("aroon_up", "aroon_down"):
        return Unavailable
    return AROON_WEIGHT * (ind.aroon_up - ind.aroon_down) / 100


def alignment_term(alignment: Optional[TrendAlignment]) -> TermValue:
    if alignment is None:
        return Unavailable
    return MTF_WEIGHT * (alignment.alignment_score / 100) * alignment.trend_direction


def trend_strength_index(
    indicators: IndicatorSet,
    alignment: Optional[TrendAlignment] = None,
) -> TrendStrength:
    """Compute the Trend Strength Index.

    Args:
        indicators: Primary timeframe IndicatorSet
        alignment: Multi-timeframe alignment (None excludes the MTF term)

    Returns:
        TrendStrength with value in [-1, 1] (0 when no term is available)
    """
    terms: Dict[str, TermValue] = {
        "ema_alignment": ema_alignment_term(indicators),
        "adx_direction": adx_direction_term(indicators),
        "aroon": aroon_term(indicators),
        "mtf_alignment": alignment_term(alignment),
    }

    available = [v for v in terms.values() if v is not Unavailable]
    if not available:
        return TrendStrength(value=0.0, terms=terms)

    return TrendStrength(value=_clamp(sum(available) / len(available)), terms=terms)
