"""Emergency exit checker.

Overrides every other exit when the position is close to liquidation or
funding costs are extreme:

    liquidation distance < buffer        -> close all (critical)
    liquidation distance < 2 * buffer    -> reduce 50% (high)
    |funding rate| > 2 * threshold       -> close all (critical)
    |funding rate| > threshold           -> reduce 50% (high)

The most urgent trigger wins.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cryptosignal.config import EmergencyConfig
from cryptosignal.core.types import EXIT_PRIORITY, ExitCondition, ExitReason, PositionState
from cryptosignal.risk.levels import calculate_liquidation_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FuturesData:
    """Futures market snapshot supplied by a data collaborator."""
    funding_rate: Optional[float] = None  # per funding interval, e.g. 0.0001 = 0.01%
    mark_price: Optional[float] = None


def liquidation_distance_pct(position: PositionState, current_price: float) -> Optional[float]:
    """Percent distance from current price to the position's liquidation price.

    None when the position cannot be evaluated (no entry, leverage or price).
    """
    if position.entry_price <= 0 or position.leverage <= 0 or current_price <= 0:
        return None
    liq = calculate_liquidation_price(position.entry_price, position.leverage, position.side)
    return abs(current_price - liq.liquidation_price) / current_price * 100


def check_emergency(
    position: PositionState,
    current_price: float,
    config: EmergencyConfig,
    futures: Optional[FuturesData] = None,
    timestamp: int = 0,
) -> Optional[ExitCondition]:
    """Check liquidation proximity and funding stress."""
    if not config.enabled:
        return None

    # (exit_size, severity, trigger, description)
    triggers: List[Tuple[float, str, str, str]] = []
    buffer = config.min_liquidation_buffer_pct

    price = futures.mark_price if futures is not None and futures.mark_price else current_price
    distance = liquidation_distance_pct(position, price)
    if distance is not None:
        if distance < buffer:
            triggers.append((100.0, "critical", "liquidation",
                             f"Liquidation distance {distance:.2f}% below {buffer}%"))
        elif distance < buffer * 2:
            triggers.append((50.0, "high", "liquidation",
                             f"Liquidation distance {distance:.2f}% below {buffer * 2}%"))

    funding = futures.funding_rate if futures is not None else None
    threshold = config.funding_rate_threshold
    if funding is not None:
        if abs(funding) > threshold * 2:
            triggers.append((100.0, "critical", "funding",
                             f"Funding rate {funding * 100:.3f}% above {threshold * 200:.3f}%"))
        elif abs(funding) > threshold:
            triggers.append((50.0, "high", "funding",
                             f"Funding rate {funding * 100:.3f}% above {threshold * 100:.3f}%"))

    if not triggers:
        return None

    exit_size, severity, trigger, description = max(triggers, key=lambda t: t[0])
    logger.warning("Emergency exit for %s: %s", position.symbol, description)

    return ExitCondition(
        reason=ExitReason.EMERGENCY,
        priority=EXIT_PRIORITY[ExitReason.EMERGENCY],
        should_exit=True,
        exit_size=exit_size,
        exit_price=current_price,
        metadata={
            "severity": severity,
            "trigger": trigger,
            "liquidation_distance": distance,
            "funding_rate": funding,
            "current_price": current_price,
            "side": position.side.value,
        },
        timestamp=timestamp,
        description=description,
    )
