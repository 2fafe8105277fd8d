"""Position sizing and price-level helpers."""

from .levels import (
    LiquidationPrice,
    calculate_dynamic_leverage,
    calculate_liquidation_price,
    calculate_stop_loss,
    calculate_take_profit,
)
from .sizer import calculate_position_size, kelly_fraction

__all__ = [
    "LiquidationPrice",
    "calculate_dynamic_leverage",
    "calculate_liquidation_price",
    "calculate_stop_loss",
    "calculate_take_profit",
    "calculate_position_size",
    "kelly_fraction",
]
