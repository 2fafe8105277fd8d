"""Candle normalizer.

Raw candles arrive in several shapes depending on the upstream source:

- 6-element arrays, timestamp first: [time, open, high, low, close, volume]
- 6-element arrays, timestamp last:  [open, high, low, close, volume, time]
- 5-element arrays without volume:    [time, open, high, low, close]
- keyed objects with full or abbreviated keys (open/o, high/h, low/l, close/c,
  volume/v, time/t/timestamp)

Each raw item is decoded once into a tagged variant and then converted to the
canonical Candle. Nothing downstream branches on input shape.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd
import structlog

from cryptosignal.core.types import Candle

logger = structlog.get_logger(__name__)

# Anything above this is a millisecond epoch, not a price
MS_TIMESTAMP_THRESHOLD = 1e12

# Fraction of (range * mid price) used as a stand-in when volume is absent
VOLUME_ESTIMATE_FACTOR = 0.1

CANDLE_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True)
class ArrayCandle:
    """Positional candle, already ordered as time/open/high/low/close/volume."""
    time: Any
    open: Any
    high: Any
    low: Any
    close: Any
    volume: Any = None


@dataclass(frozen=True)
class KeyedCandle:
    """Candle given as a mapping."""
    fields: Mapping[str, Any]


RawCandle = Union[ArrayCandle, KeyedCandle]


def decode_raw_candle(item: Any) -> Optional[RawCandle]:
    """Decode one raw item into a tagged variant.

    Args:
        item: Raw candle (list/tuple, mapping or an already canonical Candle)

    Returns:
        ArrayCandle or KeyedCandle, or None for unsupported shapes
    """
    if isinstance(item, Candle):
        return ArrayCandle(item.time, item.open, item.high, item.low, item.close, item.volume)

    if isinstance(item, Mapping):
        return KeyedCandle(fields=item)

    if isinstance(item, (list, tuple)):
        if len(item) == 6:
            first = item[0]
            if isinstance(first, (int, float)) and not isinstance(first, bool) and first > MS_TIMESTAMP_THRESHOLD:
                return ArrayCandle(*item)
            o, h, l, c, v, t = item
            return ArrayCandle(time=t, open=o, high=h, low=l, close=c, volume=v)
        if len(item) == 5:
            t, o, h, l, c = item
            return ArrayCandle(time=t, open=o, high=h, low=l, close=c, volume=None)

    return None


def _first_present(fields: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = fields.get(key)
        if value is not None and value != "":
            return value
    return None


def _to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def estimate_volume(high: float, low: float) -> float:
    """Crude liquidity proxy used when a source omits volume.

    This is an approximation, not traded volume: (high-low) * mid * 0.1.
    """
    return (high - low) * ((high + low) / 2) * VOLUME_ESTIMATE_FACTOR


def to_candle(raw: RawCandle, default_time: int = 0) -> Candle:
    """Convert a decoded variant into a canonical Candle.

    Args:
        raw: Decoded raw candle
        default_time: Time used when the source has none

    Returns:
        Candle (not yet validated)

    Raises:
        ValueError: If a numeric field cannot be parsed
    """
    if isinstance(raw, KeyedCandle):
        f = raw.fields
        time_value = _first_present(f, "time", "t", "timestamp")
        open_ = _to_float(_first_present(f, "open", "o"))
        high = _to_float(_first_present(f, "high", "h"))
        low = _to_float(_first_present(f, "low", "l"))
        close = _to_float(_first_present(f, "close", "c"))
        volume = _to_float(_first_present(f, "volume", "v"))
    else:
        time_value = raw.time
        open_ = _to_float(raw.open)
        high = _to_float(raw.high)
        low = _to_float(raw.low)
        close = _to_float(raw.close)
        volume = _to_float(raw.volume)

    time_ms = int(float(time_value)) if time_value not in (None, "") else default_time

    if not volume:
        volume = estimate_volume(high, low)

    return Candle(time=time_ms, open=open_, high=high, low=low, close=close, volume=volume)


def is_valid_candle(candle: Candle) -> bool:
    """Candle invariant: positive open/close and high >= low."""
    return candle.close > 0 and candle.open > 0 and candle.high >= candle.low


def parse_candles(raw_candles: Optional[Iterable[Any]], default_time: int = 0) -> List[Candle]:
    """Normalize heterogeneous raw candles.

    Invalid or unparseable items are dropped; order is preserved.

    Args:
        raw_candles: Raw candles from a fetcher (may be None or empty)
        default_time: Time assigned to candles that carry none

    Returns:
        List of canonical Candles
    """
    if not raw_candles:
        return []

    candles: List[Candle] = []
    dropped = 0
    estimated = 0

    for item in raw_candles:
        raw = decode_raw_candle(item)
        if raw is None:
            dropped += 1
            continue
        try:
            candle = to_candle(raw, default_time=default_time)
        except (TypeError, ValueError):
            dropped += 1
            continue
        if not is_valid_candle(candle):
            dropped += 1
            continue
        if _missing_volume(raw):
            estimated += 1
        candles.append(candle)

    if dropped or estimated:
        logger.debug(
            "Normalized candles",
            kept=len(candles),
            dropped=dropped,
            estimated_volume=estimated,
        )

    return candles


def _missing_volume(raw: RawCandle) -> bool:
    if isinstance(raw, KeyedCandle):
        value = _first_present(raw.fields, "volume", "v")
    else:
        value = raw.volume
    try:
        return not _to_float(value)
    except (TypeError, ValueError):
        return True


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Convert canonical candles to an OHLCV DataFrame.

    Args:
        candles: Canonical candles

    Returns:
        DataFrame with columns time, open, high, low, close, volume
    """
    if not candles:
        return pd.DataFrame(columns=CANDLE_COLUMNS, dtype=float)

    return pd.DataFrame(
        {
            "time": [c.time for c in candles],
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        }
    )
