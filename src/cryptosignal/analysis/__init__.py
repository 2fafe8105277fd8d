"""Structural and pattern analyzers."""

from .candlestick import CandlestickPattern, detect_candlestick_patterns
from .divergence import DivergenceResult, detect_divergence
from .liquidation import LiquidationAnalysis, LiquidationCluster, LiquidationData, analyze_liquidations
from .regime import classify_volatility, detect_market_regime
from .trend import MarketStructure, TrendDetection, check_trend_alignment, detect_market_structure, detect_trend

__all__ = [
    "CandlestickPattern",
    "detect_candlestick_patterns",
    "DivergenceResult",
    "detect_divergence",
    "LiquidationAnalysis",
    "LiquidationCluster",
    "LiquidationData",
    "analyze_liquidations",
    "classify_volatility",
    "detect_market_regime",
    "MarketStructure",
    "TrendDetection",
    "check_trend_alignment",
    "detect_market_structure",
    "detect_trend",
]
