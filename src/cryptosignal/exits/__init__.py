"""Exit condition engine and checkers."""

from .emergency import FuturesData, check_emergency, liquidation_distance_pct
from .engine import check_exit_conditions
from .signal_reversal import check_signal_reversal
from .stop_loss import check_stop_loss
from .take_profit import TakeProfitLevel, calculate_take_profit_levels, check_take_profit
from .trailing_stop import check_trailing_stop, trailing_stop_level, update_trailing_stop

__all__ = [
    "FuturesData",
    "check_emergency",
    "liquidation_distance_pct",
    "check_exit_conditions",
    "check_signal_reversal",
    "check_stop_loss",
    "TakeProfitLevel",
    "calculate_take_profit_levels",
    "check_take_profit",
    "check_trailing_stop",
    "trailing_stop_level",
    "update_trailing_stop",
]
