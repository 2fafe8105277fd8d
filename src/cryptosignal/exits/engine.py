"""Exit condition engine.

Evaluates every enabled checker for one (position, price) pair and returns
the single firing condition with the highest priority (lowest number). The
engine holds no state: the caller appends the returned condition to the
position history and may call again to find the next one.
"""

import logging
import time
from typing import List, Optional

from cryptosignal.config import ExitConfig
from cryptosignal.core.types import ExitCondition, PositionState, Signal

from .emergency import FuturesData, check_emergency
from .signal_reversal import check_signal_reversal
from .stop_loss import check_stop_loss
from .take_profit import check_take_profit
from .trailing_stop import check_trailing_stop

logger = logging.getLogger(__name__)


def check_exit_conditions(
    position: PositionState,
    current_price: float,
    config: ExitConfig,
    new_signal: Optional[Signal] = None,
    futures: Optional[FuturesData] = None,
    timestamp: Optional[int] = None,
) -> Optional[ExitCondition]:
    """Return the highest-priority firing exit condition, if any.

    Args:
        position: Open position with its exit history
        current_price: Current price
        config: Exit configuration
        new_signal: Latest signal for the same asset (reversal check)
        futures: Funding/mark data (emergency check)
        timestamp: Epoch milliseconds for the condition (wall clock if None)

    Returns:
        ExitCondition or None
    """
    if current_price <= 0:
        return None
    if timestamp is None:
        timestamp = int(time.time() * 1000)

    candidates: List[Optional[ExitCondition]] = [
        check_emergency(position, current_price, config.emergency, futures, timestamp),
        check_stop_loss(position, current_price, config.stop_loss, timestamp),
        check_take_profit(position, current_price, config.take_profit, timestamp),
        check_trailing_stop(position, current_price, config.trailing_stop, timestamp),
        check_signal_reversal(position, new_signal, config.signal_reversal, timestamp),
    ]
    fired = [c for c in candidates if c is not None and c.should_exit]
    if not fired:
        return None

    fired.sort(key=lambda c: c.priority)
    if len(fired) > 1:
        logger.debug(
            "%s: %d exit conditions fired, taking %s",
            position.symbol, len(fired), fired[0].reason.value,
        )
    return fired[0]
