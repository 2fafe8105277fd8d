"""Crypto signal generation and risk-sizing core."""

from .config import ConfigError, PipelineConfig, RiskConfig, load_config
from .core.types import PositionState, Side, Signal, SignalAction
from .core.warnings import EvaluationContext
from .exits.engine import check_exit_conditions
from .pipeline import EvaluationResult, SignalPipeline

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "PipelineConfig",
    "RiskConfig",
    "load_config",
    "PositionState",
    "Side",
    "Signal",
    "SignalAction",
    "EvaluationContext",
    "check_exit_conditions",
    "EvaluationResult",
    "SignalPipeline",
]
