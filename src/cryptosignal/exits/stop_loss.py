"""Stop-loss exit checker."""

import logging
from typing import Optional

from cryptosignal.config import StopLossConfig
from cryptosignal.core.types import EXIT_PRIORITY, ExitCondition, ExitReason, PositionState, Side

logger = logging.getLogger(__name__)


def check_stop_loss(
    position: PositionState,
    current_price: float,
    config: StopLossConfig,
    timestamp: int = 0,
) -> Optional[ExitCondition]:
    """Fire a full exit when price crosses the position's stop-loss.

    LONG fires on price <= stop, SHORT on price >= stop.
    """
    if not config.enabled or not position.stop_loss:
        return None

    level = position.stop_loss
    if position.side is Side.LONG:
        hit = current_price <= level
        distance = (current_price - level) / position.entry_price * 100
    else:
        hit = current_price >= level
        distance = (level - current_price) / position.entry_price * 100

    if not hit:
        return None

    logger.info("Stop loss hit for %s at %.4f (current %.4f)", position.symbol, level, current_price)

    return ExitCondition(
        reason=ExitReason.STOP_LOSS,
        priority=EXIT_PRIORITY[ExitReason.STOP_LOSS],
        should_exit=True,
        exit_size=100.0,
        exit_price=level,
        metadata={
            "stop_loss_level": level,
            "current_price": current_price,
            "distance_from_sl": distance,
            "side": position.side.value,
        },
        timestamp=timestamp,
        description=f"Stop loss hit at {level:.4f} (current: {current_price:.4f})",
    )
