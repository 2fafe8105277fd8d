"""Tests for the candle normalizer."""

import pandas as pd
import pytest

from cryptosignal.core.types import Candle
from cryptosignal.data.candles import (
    ArrayCandle,
    KeyedCandle,
    candles_to_frame,
    decode_raw_candle,
    estimate_volume,
    parse_candles,
)


class TestDecodeRawCandle:
    """Shape decoding happens once, into a tagged variant."""

    def test_timestamp_first_six_elements(self):
        raw = decode_raw_candle([1700000000000, 100, 110, 90, 105, "50"])
        assert isinstance(raw, ArrayCandle)
        assert raw.time == 1700000000000
        assert raw.open == 100
        assert raw.volume == "50"

    def test_timestamp_last_six_elements(self):
        raw = decode_raw_candle([100, 110, 90, 105, 50, 1700000000000])
        assert raw.time == 1700000000000
        assert raw.open == 100
        assert raw.close == 105
        assert raw.volume == 50

    def test_five_elements_have_no_volume(self):
        raw = decode_raw_candle([1700000000000, 100, 110, 90, 105])
        assert raw.volume is None
        assert raw.close == 105

    def test_mapping_is_keyed(self):
        raw = decode_raw_candle({"o": 1, "h": 2, "l": 0.5, "c": 1.5})
        assert isinstance(raw, KeyedCandle)

    def test_unsupported_shapes(self):
        assert decode_raw_candle([1, 2, 3]) is None
        assert decode_raw_candle("candle") is None
        assert decode_raw_candle(None) is None

    def test_canonical_candle_passes_through(self):
        candle = Candle(time=1, open=1.0, high=2.0, low=0.5, close=1.5, volume=10.0)
        raw = decode_raw_candle(candle)
        assert raw == ArrayCandle(1, 1.0, 2.0, 0.5, 1.5, 10.0)


class TestParseCandles:
    """Tests for parse_candles."""

    def test_timestamp_first_example(self):
        candles = parse_candles([[1700000000000, 100, 110, 90, 105, "50"]])
        assert candles == [
            Candle(time=1700000000000, open=100.0, high=110.0, low=90.0, close=105.0, volume=50.0)
        ]

    def test_invalid_high_low_dropped(self):
        candles = parse_candles([
            [1700000000000, 100, 110, 90, 105, 50],
            [1700000060000, 92, 90, 95, 93, 50],
        ])
        assert len(candles) == 1
        assert candles[0].time == 1700000000000

    def test_non_positive_prices_dropped(self):
        candles = parse_candles([
            {"open": 0, "high": 1, "low": 0.5, "close": 1, "volume": 1, "time": 1},
            {"open": 1, "high": 1, "low": 0.5, "close": -1, "volume": 1, "time": 2},
        ])
        assert candles == []

    def test_unparseable_items_dropped(self):
        candles = parse_candles([
            ["a", "b", "c", "d", "e", "f"],
            [1700000000000, 100, 110, 90, 105, 50],
            "garbage",
        ])
        assert len(candles) == 1

    def test_missing_volume_is_estimated(self):
        candles = parse_candles([[1700000000000, 100, 110, 90, 105]])
        # (110 - 90) * ((110 + 90) / 2) * 0.1
        assert candles[0].volume == pytest.approx(200.0)

    def test_zero_volume_is_estimated(self):
        candles = parse_candles([[1700000000000, 100, 110, 90, 105, 0]])
        assert candles[0].volume == pytest.approx(estimate_volume(110, 90))

    def test_abbreviated_keys(self):
        candles = parse_candles([{"t": 5, "o": "1.0", "h": "1.2", "l": "0.9", "c": "1.1", "v": "7"}])
        assert candles == [Candle(time=5, open=1.0, high=1.2, low=0.9, close=1.1, volume=7.0)]

    def test_full_keys_with_timestamp(self):
        candles = parse_candles([{"timestamp": 9, "open": 1, "high": 2, "low": 1, "close": 2, "volume": 3}])
        assert candles[0].time == 9

    def test_missing_time_uses_default(self):
        candles = parse_candles([{"o": 1, "h": 2, "l": 1, "c": 2, "v": 3}], default_time=42)
        assert candles[0].time == 42

    def test_order_preserved(self):
        raw = [[1700000000000 + i, 100 + i, 110 + i, 90 + i, 105 + i, 50] for i in (3, 1, 2)]
        candles = parse_candles(raw)
        assert [c.open for c in candles] == [103.0, 101.0, 102.0]

    def test_empty_inputs(self):
        assert parse_candles([]) == []
        assert parse_candles(None) == []


class TestCandlesToFrame:
    """Tests for candles_to_frame."""

    def test_columns_and_values(self):
        candles = parse_candles([[1700000000000, 100, 110, 90, 105, 50]])
        df = candles_to_frame(candles)
        assert list(df.columns) == ["time", "open", "high", "low", "close", "volume"]
        assert df["close"].iloc[0] == 105.0

    def test_empty_frame(self):
        df = candles_to_frame([])
        assert isinstance(df, pd.DataFrame)
        assert df.empty
        assert "close" in df.columns
