"""Composite scorers."""

from .trading_style import LONG_TERM, SHORT_TERM, determine_trading_style
from .trend_strength import TrendStrength, Unavailable, trend_strength_index

__all__ = [
    "LONG_TERM",
    "SHORT_TERM",
    "determine_trading_style",
    "TrendStrength",
    "Unavailable",
    "trend_strength_index",
]
