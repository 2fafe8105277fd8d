"""Price-level helpers: stop-loss, take-profit, leverage, liquidation."""

import math
from dataclasses import dataclass
from typing import Optional

from cryptosignal.core.types import IndicatorSet, Side, Signal


def calculate_stop_loss(
    entry_price: float,
    side: Side,
    stop_loss_pct: Optional[float] = None,
    default_stop_loss_pct: float = 2.0,
) -> float:
    """Stop-loss price pct percent against the position."""
    pct = stop_loss_pct if stop_loss_pct is not None else default_stop_loss_pct
    if side is Side.LONG:
        return entry_price * (1 - pct / 100)
    return entry_price * (1 + pct / 100)


def calculate_take_profit(
    entry_price: float,
    side: Side,
    take_profit_pct: Optional[float] = None,
    default_take_profit_pct: float = 5.0,
) -> float:
    """Take-profit price pct percent in favour of the position."""
    pct = take_profit_pct if take_profit_pct is not None else default_take_profit_pct
    if side is Side.LONG:
        return entry_price * (1 + pct / 100)
    return entry_price * (1 - pct / 100)


def calculate_dynamic_leverage(
    indicators: Optional[IndicatorSet],
    signal: Signal,
    entry_price: float,
    max_leverage: float = 10.0,
) -> float:
    """Scale leverage from 1x with volatility, trend strength, confidence and R:R.

    Increments:
    - ATR% <1: +2, <2: +1.5, <3: +1, else +0.5
    - ADX >50: +2, >=40: +1.5, >=25: +1, else +0.5
    - confidence >70%: +1.5, >=60%: +1, >=50%: +0.5
    - reward/risk >3: +1, >=2: +0.5

    Args:
        indicators: Primary IndicatorSet (atr, adx)
        signal: Signal carrying confidence (0-100) and stop/target prices
        entry_price: Planned entry
        max_leverage: Upper clamp

    Returns:
        Leverage rounded to 0.1, clamped to [1, max_leverage]
    """
    leverage = 1.0
    if indicators is None or entry_price <= 0:
        return leverage

    atr = indicators.atr
    if atr is not None and atr > 0:
        atr_pct = atr / entry_price * 100
        if atr_pct < 1.0:
            leverage += 2.0
        elif atr_pct < 2.0:
            leverage += 1.5
        elif atr_pct < 3.0:
            leverage += 1.0
        else:
            leverage += 0.5

    adx = indicators.adx
    if adx is not None and adx > 0:
        if adx > 50:
            leverage += 2.0
        elif adx >= 40:
            leverage += 1.5
        elif adx >= 25:
            leverage += 1.0
        else:
            leverage += 0.5

    confidence = (signal.confidence or 0.0) / 100
    if confidence > 0.7:
        leverage += 1.5
    elif confidence >= 0.6:
        leverage += 1.0
    elif confidence >= 0.5:
        leverage += 0.5

    if signal.take_profit and signal.stop_loss:
        reward = abs(signal.take_profit - entry_price)
        risk = abs(entry_price - signal.stop_loss)
        if risk > 0:
            ratio = reward / risk
            if ratio > 3.0:
                leverage += 1.0
            elif ratio >= 2.0:
                leverage += 0.5

    return max(1.0, min(max_leverage, round(leverage * 10) / 10))


@dataclass(frozen=True)
class LiquidationPrice:
    """Liquidation estimate for a leveraged position."""
    entry_price: float
    leverage: float
    side: Side
    liquidation_price: float
    distance_pct: float
    margin_buffer_pct: float


def calculate_liquidation_price(
    entry_price: float,
    leverage: float,
    side: Side,
    margin_buffer_pct: float = 0.0,
) -> LiquidationPrice:
    """Estimate the liquidation price.

    LONG:  entry * (1 - (1/leverage) * (1 - buffer/100))
    SHORT: entry * (1 + (1/leverage) * (1 - buffer/100))

    Raises:
        ValueError: entry_price or leverage non-positive or non-finite
    """
    if (
        entry_price <= 0
        or leverage <= 0
        or not math.isfinite(entry_price)
        or not math.isfinite(leverage)
    ):
        raise ValueError(f"Invalid entry price or leverage: entry={entry_price}, leverage={leverage}")

    margin_rate = (1 / leverage) * (1 - margin_buffer_pct / 100)
    if side is Side.LONG:
        price = entry_price * (1 - margin_rate)
    else:
        price = entry_price * (1 + margin_rate)

    return LiquidationPrice(
        entry_price=entry_price,
        leverage=leverage,
        side=side,
        liquidation_price=price,
        distance_pct=abs(price - entry_price) / entry_price * 100,
        margin_buffer_pct=margin_buffer_pct,
    )
