"""Core data contracts, context and collaborator interfaces."""

from .types import (
    Side,
    SignalAction,
    ExitReason,
    EXIT_PRIORITY,
    Candle,
    IndicatorSet,
    TrendAlignment,
    MarketRegime,
    Signal,
    ExitCondition,
    PositionState,
    SizingConstraints,
    PositionSize,
)
from .warnings import SignalWarning, WarningLog, EvaluationContext
from .interfaces import CandleFetcher, PositionStore, InMemoryPositionStore

__all__ = [
    "Side",
    "SignalAction",
    "ExitReason",
    "EXIT_PRIORITY",
    "Candle",
    "IndicatorSet",
    "TrendAlignment",
    "MarketRegime",
    "Signal",
    "ExitCondition",
    "PositionState",
    "SizingConstraints",
    "PositionSize",
    "SignalWarning",
    "WarningLog",
    "EvaluationContext",
    "CandleFetcher",
    "PositionStore",
    "InMemoryPositionStore",
]
