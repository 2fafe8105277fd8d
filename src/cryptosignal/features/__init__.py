"""Indicator library and snapshot builder."""

from .indicator_set import INDICATOR_NAMES, build_indicator_set, build_timeframe_indicators

__all__ = [
    "INDICATOR_NAMES",
    "build_indicator_set",
    "build_timeframe_indicators",
]
