"""Position sizing strategies.

Converts a Signal plus a RiskConfig into a position size in quote currency and
base quantity. Every branch records a reasoning string describing the formula
and any cap that fired.
"""

from typing import Optional, Tuple

import structlog

from cryptosignal.config import RiskConfig
from cryptosignal.core.types import PositionSize, Signal, SizingConstraints

logger = structlog.get_logger(__name__)

KELLY_CAP = 0.25
RANK_MULTIPLIERS = {1: 2.0, 2: 1.5}
RISK_PARITY_MIN_SCALE = 0.25
RISK_PARITY_MAX_SCALE = 2.0


def kelly_fraction(win_rate: float, average_win: float, average_loss: float) -> float:
    """Kelly fraction clamped to [0, 0.25].

    f = (w * avg_win - (1 - w) * |avg_loss|) / avg_win

    Args:
        win_rate: Win probability 0-1
        average_win: Average winning trade (must be > 0)
        average_loss: Average losing trade (sign ignored)

    Returns:
        Clamped fraction of available capital
    """
    if average_win <= 0:
        return 0.0
    raw = (win_rate * average_win - (1 - win_rate) * abs(average_loss)) / average_win
    return min(max(raw, 0.0), KELLY_CAP)


def _equal(available: float, existing_positions_count: int) -> Tuple[float, int]:
    slots = max(1, existing_positions_count + 1)
    return available / slots, slots


def calculate_position_size(
    signal: Signal,
    config: RiskConfig,
    existing_positions_count: int = 0,
    volatility_pct: Optional[float] = None,
) -> PositionSize:
    """Calculate position size for a signal.

    Args:
        signal: Signal to size (confidence and entry_price are read)
        config: Capital and strategy configuration
        existing_positions_count: Number of positions already open
        volatility_pct: ATR as percent of price (risk_parity only)

    Returns:
        PositionSize with size_usd <= total_capital * max_position_size_pct / 100
    """
    available = config.available_capital
    max_size = config.max_size_usd
    strategy = config.strategy
    log = logger.bind(coin=signal.coin, strategy=strategy)

    if strategy == "equal":
        size_usd, slots = _equal(available, existing_positions_count)
        reasoning = f"Equal weight: {available:.2f} / {slots} = {size_usd:.2f}"

    elif strategy == "confidence_weighted":
        confidence = signal.confidence if signal.confidence is not None else 50.0
        base, _ = _equal(available, existing_positions_count)
        size_usd = base * (confidence / 50)
        reasoning = (
            f"Confidence weighted: base {base:.2f} x confidence {confidence:.1f}% / 50 = {size_usd:.2f}"
        )

    elif strategy == "ranking_weighted":
        rank = config.top_n_ranking if config.top_n_ranking is not None else 1
        if config.top_n_ranking is None:
            log.info("sizing_rank_missing", fallback_rank=1)
        base, _ = _equal(available, existing_positions_count)
        multiplier = RANK_MULTIPLIERS.get(rank, 1.0)
        size_usd = base * multiplier
        reasoning = f"Ranking weighted: rank {rank} = {base:.2f} x {multiplier}x = {size_usd:.2f}"

    elif strategy == "risk_parity":
        base, slots = _equal(available, existing_positions_count)
        if volatility_pct is None or volatility_pct <= 0:
            log.info("sizing_fallback", reason="volatility_unavailable", fallback="equal")
            size_usd = base
            reasoning = f"Risk parity: volatility unavailable, equal weight {available:.2f} / {slots} = {size_usd:.2f}"
        else:
            scale = config.target_volatility_pct / volatility_pct
            scale = min(max(scale, RISK_PARITY_MIN_SCALE), RISK_PARITY_MAX_SCALE)
            size_usd = base * scale
            reasoning = (
                f"Risk parity: base {base:.2f} x target {config.target_volatility_pct:.2f}% / "
                f"ATR {volatility_pct:.2f}% (scale {scale:.2f}) = {size_usd:.2f}"
            )

    elif strategy == "kelly":
        size_usd, slots = _equal(available, existing_positions_count)
        if config.win_rate is None or config.average_win is None or config.average_loss is None:
            log.info("sizing_fallback", reason="kelly_inputs_missing", fallback="equal")
            reasoning = "Kelly criterion: insufficient data, using equal weight"
        elif config.average_win <= 0:
            log.info("sizing_fallback", reason="invalid_average_win", fallback="equal")
            reasoning = "Kelly criterion: invalid avgWin, using equal weight"
        elif config.win_rate <= 0:
            log.info("sizing_fallback", reason="zero_win_rate", fallback="equal")
            reasoning = "Kelly criterion: zero win rate, using equal weight"
        else:
            fraction = kelly_fraction(config.win_rate, config.average_win, config.average_loss)
            size_usd = available * fraction
            reasoning = f"Kelly criterion: {fraction * 100:.1f}% of capital = {size_usd:.2f}"

    else:
        # RiskConfig validates strategy names; unreachable for validated configs
        raise ValueError(f"Unknown sizing strategy: {strategy}")

    size_usd = max(0.0, size_usd)

    applied = False
    if size_usd > max_size:
        applied = True
        size_usd = max_size
        reasoning += f" (capped at max {config.max_position_size_pct}% = {max_size:.2f})"

    entry_price = signal.entry_price or 0.0
    quantity = size_usd / entry_price if entry_price > 0 else 0.0

    log.debug("position_sized", size_usd=round(size_usd, 2), quantity=quantity, capped=applied)

    return PositionSize(
        size_usd=size_usd,
        quantity=quantity,
        strategy=strategy,
        reasoning=reasoning,
        constraints=SizingConstraints(
            max_size_pct=config.max_position_size_pct,
            reserve_capital_pct=config.reserve_capital_pct,
            applied=applied,
        ),
    )
