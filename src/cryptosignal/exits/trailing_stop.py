"""Trailing stop exit checker."""

import logging
from dataclasses import replace
from typing import Optional, Tuple

from cryptosignal.config import TrailingStopConfig
from cryptosignal.core.types import EXIT_PRIORITY, ExitCondition, ExitReason, PositionState, Side

logger = logging.getLogger(__name__)


def _gain_pct(position: PositionState, current_price: float) -> float:
    if position.side is Side.LONG:
        return (current_price - position.entry_price) / position.entry_price * 100
    return (position.entry_price - current_price) / position.entry_price * 100


def _extremes(position: PositionState, current_price: float) -> Tuple[float, float]:
    highest = current_price if position.highest_price is None else max(position.highest_price, current_price)
    lowest = current_price if position.lowest_price is None else min(position.lowest_price, current_price)
    return highest, lowest


def trailing_stop_level(position: PositionState, current_price: float, distance_pct: float) -> float:
    """Stop level distance_pct below the high (LONG) or above the low (SHORT)."""
    highest, lowest = _extremes(position, current_price)
    if position.side is Side.LONG:
        return highest * (1 - distance_pct / 100)
    return lowest * (1 + distance_pct / 100)


def check_trailing_stop(
    position: PositionState,
    current_price: float,
    config: TrailingStopConfig,
    timestamp: int = 0,
) -> Optional[ExitCondition]:
    """Fire a full exit when price retraces distance_pct from its best level.

    Only active once gain reaches activate_after_gain_pct.
    """
    if not config.enabled or position.entry_price <= 0:
        return None

    gain = _gain_pct(position, current_price)
    if gain < config.activate_after_gain_pct:
        return None

    level = trailing_stop_level(position, current_price, config.distance_pct)
    if position.side is Side.LONG:
        hit = current_price <= level
    else:
        hit = current_price >= level

    if not hit:
        return None

    highest, lowest = _extremes(position, current_price)
    logger.info("Trailing stop hit for %s at %.4f", position.symbol, level)

    return ExitCondition(
        reason=ExitReason.TRAILING,
        priority=EXIT_PRIORITY[ExitReason.TRAILING],
        should_exit=True,
        exit_size=100.0,
        exit_price=level,
        metadata={
            "trailing_stop_level": level,
            "current_price": current_price,
            "highest_price": highest if position.side is Side.LONG else None,
            "lowest_price": lowest if position.side is Side.SHORT else None,
            "distance_pct": config.distance_pct,
            "gain_pct": gain,
            "side": position.side.value,
        },
        timestamp=timestamp,
        description=(
            f"Trailing stop hit at {level:.4f} (current: {current_price:.4f}, "
            f"{config.distance_pct}% from {'high' if position.side is Side.LONG else 'low'})"
        ),
    )


def update_trailing_stop(
    position: PositionState,
    current_price: float,
    config: TrailingStopConfig,
) -> PositionState:
    """Return a new PositionState with the tracked high/low advanced.

    Extremes only move once the trailing stop is active; otherwise the same
    state is returned.
    """
    if position.entry_price <= 0 or _gain_pct(position, current_price) < config.activate_after_gain_pct:
        return position
    highest, lowest = _extremes(position, current_price)
    return replace(position, highest_price=highest, lowest_price=lowest)
