"""Shared candle builders."""

import pytest

from cryptosignal.core.types import Candle

T0 = 1_700_000_000_000
MINUTE_MS = 60_000


def build_trend_candles(n, start=100.0, step=0.5, volume=1000.0, interval_ms=MINUTE_MS):
    """Linear trend: close moves by step each bar, body is half a step.

    step > 0 gives bullish candles with rising highs and lows, step < 0 the
    mirror image.
    """
    candles = []
    for i in range(n):
        close = start + step * i
        open_ = close - step * 0.5
        candles.append(
            Candle(
                time=T0 + i * interval_ms,
                open=open_,
                high=max(open_, close) + 0.2,
                low=min(open_, close) - 0.2,
                close=close,
                volume=volume,
            )
        )
    return candles


def build_flat_candles(n, price=100.0, volume=1000.0):
    """Flat market: every candle opens and closes at price."""
    return [
        Candle(time=T0 + i * MINUTE_MS, open=price, high=price + 0.5, low=price - 0.5, close=price, volume=volume)
        for i in range(n)
    ]


@pytest.fixture
def trend_candles():
    return build_trend_candles


@pytest.fixture
def flat_candles():
    return build_flat_candles
