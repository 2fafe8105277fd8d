"""Candle ingestion."""
from .candles import (
    ArrayCandle,
    KeyedCandle,
    decode_raw_candle,
    estimate_volume,
    parse_candles,
    candles_to_frame,
)

__all__ = [
    "ArrayCandle",
    "KeyedCandle",
    "decode_raw_candle",
    "estimate_volume",
    "parse_candles",
    "candles_to_frame",
]
