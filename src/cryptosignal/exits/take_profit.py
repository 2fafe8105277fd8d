"""Take-profit exit checker with cumulative multi-level sizing.

Level hit state is not stored here. A level counts as hit when the position's
exit history holds a TAKE_PROFIT condition recording that level.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from cryptosignal.config import TakeProfitConfig
from cryptosignal.core.types import EXIT_PRIORITY, ExitCondition, ExitReason, PositionState, Side

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TakeProfitLevel:
    """One configured take-profit level resolved against a position."""
    level: float  # percent from entry
    price: float
    size_pct: float
    cumulative_size_pct: float
    hit: bool


def calculate_take_profit_levels(position: PositionState, config: TakeProfitConfig) -> List[TakeProfitLevel]:
    """Resolve configured levels to trigger prices and cumulative sizes.

    Sizes missing for trailing levels count as 0.
    """
    hit_levels = {
        ec.metadata.get("tp_level")
        for ec in position.exit_conditions
        if ec.reason == ExitReason.TAKE_PROFIT
    }

    levels = []
    cumulative = 0.0
    for i, level_pct in enumerate(config.levels):
        size_pct = config.sizes[i] if i < len(config.sizes) else 0.0
        cumulative += size_pct
        if position.side is Side.LONG:
            price = position.entry_price * (1 + level_pct / 100)
        else:
            price = position.entry_price * (1 - level_pct / 100)
        levels.append(
            TakeProfitLevel(
                level=level_pct,
                price=price,
                size_pct=size_pct,
                cumulative_size_pct=cumulative,
                hit=level_pct in hit_levels,
            )
        )
    return levels


def _reached(side: Side, current_price: float, target: float) -> bool:
    if side is Side.LONG:
        return current_price >= target
    return current_price <= target


def check_take_profit(
    position: PositionState,
    current_price: float,
    config: TakeProfitConfig,
    timestamp: int = 0,
) -> Optional[ExitCondition]:
    """Check take-profit targets.

    Without configured levels this is a single threshold on
    position.take_profit closing 100%. With levels, scans from the furthest
    level down and fires on the first not-yet-hit level whose price was
    reached, closing cumulative size minus what TAKE_PROFIT exits already
    closed.

    Args:
        position: Position with its exit history
        current_price: Current price
        config: Take-profit configuration
        timestamp: Epoch milliseconds to stamp the condition

    Returns:
        ExitCondition or None
    """
    if not config.enabled:
        return None

    priority = EXIT_PRIORITY[ExitReason.TAKE_PROFIT]

    if not config.levels:
        target = position.take_profit
        if not target or not _reached(position.side, current_price, target):
            return None
        return ExitCondition(
            reason=ExitReason.TAKE_PROFIT,
            priority=priority,
            should_exit=True,
            exit_size=100.0,
            exit_price=target,
            metadata={"tp_level": target, "current_price": current_price, "side": position.side.value},
            timestamp=timestamp,
            description=f"Take profit hit at {target:.4f} (current: {current_price:.4f})",
        )

    exit_level = None
    for level in reversed(calculate_take_profit_levels(position, config)):
        if not level.hit and _reached(position.side, current_price, level.price):
            exit_level = level
            break

    if exit_level is None:
        return None

    already_closed = position.closed_pct(ExitReason.TAKE_PROFIT)
    new_size = exit_level.cumulative_size_pct - already_closed
    if new_size <= 0:
        return None
    new_size = min(new_size, 100.0)

    move_stop = bool(
        config.auto_move_stop_loss_to_breakeven
        and config.sizes
        and exit_level.cumulative_size_pct >= config.sizes[0]
    )

    logger.info(
        "Take profit level %.2f%% hit for %s, closing %.1f%%",
        exit_level.level, position.symbol, new_size,
    )

    return ExitCondition(
        reason=ExitReason.TAKE_PROFIT,
        priority=priority,
        should_exit=True,
        exit_size=new_size,
        exit_price=exit_level.price,
        metadata={
            "tp_level": exit_level.level,
            "tp_price": exit_level.price,
            "current_price": current_price,
            "cumulative_size": exit_level.cumulative_size_pct,
            "already_closed": already_closed,
            "side": position.side.value,
            "should_move_stop_loss": move_stop,
        },
        timestamp=timestamp,
        description=(
            f"Take profit level {exit_level.level}% hit at {exit_level.price:.4f} (close {new_size:.1f}%)"
        ),
    )
