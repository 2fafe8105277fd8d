"""Signal reversal exit checker."""

import logging
from typing import Optional

from cryptosignal.config import SignalReversalConfig
from cryptosignal.core.types import EXIT_PRIORITY, ExitCondition, ExitReason, PositionState, Side, Signal, SignalAction

logger = logging.getLogger(__name__)

MEANINGFUL_CONFIDENCE = 40.0
RELAXED_THRESHOLD = 50.0


def effective_threshold(confidence: float, threshold: float) -> float:
    """Threshold relaxed to at most 50 once confidence is above 40."""
    if confidence > MEANINGFUL_CONFIDENCE:
        return min(threshold, RELAXED_THRESHOLD)
    return threshold


def check_signal_reversal(
    position: PositionState,
    new_signal: Optional[Signal],
    config: SignalReversalConfig,
    timestamp: int = 0,
) -> Optional[ExitCondition]:
    """Exit when a new signal opposes the open position with enough confidence."""
    if not config.enabled or new_signal is None:
        return None

    opposing = {
        Side.LONG: SignalAction.SELL_TO_ENTER,
        Side.SHORT: SignalAction.BUY_TO_ENTER,
    }[position.side]
    if new_signal.signal is not opposing:
        return None

    confidence = new_signal.confidence or 0.0
    threshold = effective_threshold(confidence, config.confidence_threshold)
    if confidence < threshold:
        logger.debug(
            "Reversal candidate for %s below threshold (%.1f < %.1f)",
            position.symbol, confidence, threshold,
        )
        return None

    logger.info(
        "Signal reversal for %s: %s position, %s at %.1f%%",
        position.symbol, position.side.value, new_signal.signal.value, confidence,
    )

    return ExitCondition(
        reason=ExitReason.SIGNAL_REVERSAL,
        priority=EXIT_PRIORITY[ExitReason.SIGNAL_REVERSAL],
        should_exit=True,
        exit_size=100.0,
        metadata={
            "new_signal_type": new_signal.signal.value,
            "new_signal_confidence": confidence,
            "old_position_side": position.side.value,
            "threshold": config.confidence_threshold,
        },
        timestamp=timestamp,
        description=(
            f"Signal reversal detected: Position {position.side.value} but new signal "
            f"{new_signal.signal.value} with confidence {confidence:.1f}% "
            f"(threshold: {config.confidence_threshold}%)"
        ),
    )
