"""Tests for exit checkers and the exit engine."""

import pytest

from cryptosignal.config import (
    ConfigError,
    EmergencyConfig,
    ExitConfig,
    SignalReversalConfig,
    StopLossConfig,
    TakeProfitConfig,
    TrailingStopConfig,
)
from cryptosignal.core.types import ExitReason, PositionState, Side, Signal, SignalAction
from cryptosignal.exits import (
    FuturesData,
    calculate_take_profit_levels,
    check_emergency,
    check_exit_conditions,
    check_signal_reversal,
    check_stop_loss,
    check_take_profit,
    check_trailing_stop,
    update_trailing_stop,
)


def _long(**kwargs):
    params = {"symbol": "BTC", "side": Side.LONG, "entry_price": 100.0, "quantity": 1.0}
    params.update(kwargs)
    return PositionState(**params)


def _short(**kwargs):
    params = {"symbol": "ETH", "side": Side.SHORT, "entry_price": 100.0, "quantity": 1.0}
    params.update(kwargs)
    return PositionState(**params)


class TestStopLoss:
    """Stop-loss threshold checks."""

    def test_long_stop_fires(self):
        condition = check_stop_loss(_long(stop_loss=95.0), 94.0, StopLossConfig())
        assert condition is not None
        assert condition.reason == ExitReason.STOP_LOSS
        assert condition.exit_size == 100.0
        assert condition.exit_price == 95.0
        assert condition.metadata["distance_from_sl"] == pytest.approx(-1.0)

    def test_long_stop_not_reached(self):
        assert check_stop_loss(_long(stop_loss=95.0), 96.0, StopLossConfig()) is None

    def test_short_stop(self):
        position = _short(stop_loss=105.0)
        assert check_stop_loss(position, 105.5, StopLossConfig()) is not None
        assert check_stop_loss(position, 104.0, StopLossConfig()) is None

    def test_disabled_or_unset(self):
        assert check_stop_loss(_long(stop_loss=95.0), 90.0, StopLossConfig(enabled=False)) is None
        assert check_stop_loss(_long(), 90.0, StopLossConfig()) is None


class TestTakeProfit:
    """Single and multi-level take-profit."""

    @pytest.fixture
    def tp_config(self):
        return TakeProfitConfig(levels=[2.0, 4.0, 6.0], sizes=[30.0, 30.0, 40.0], auto_move_stop_loss_to_breakeven=True)

    def test_single_target(self):
        position = _long(take_profit=105.0)
        condition = check_take_profit(position, 105.0, TakeProfitConfig())
        assert condition.exit_size == 100.0
        assert condition.exit_price == 105.0
        assert check_take_profit(position, 104.0, TakeProfitConfig()) is None

    def test_single_target_requires_price(self):
        assert check_take_profit(_long(), 200.0, TakeProfitConfig()) is None

    def test_levels_resolved(self, tp_config):
        levels = calculate_take_profit_levels(_short(), tp_config)
        assert [lv.price for lv in levels] == pytest.approx([98.0, 96.0, 94.0])
        assert [lv.cumulative_size_pct for lv in levels] == [30.0, 60.0, 100.0]
        assert not any(lv.hit for lv in levels)

    def test_multi_level_sequence(self, tp_config):
        position = _long()

        first = check_take_profit(position, 104.5, tp_config)
        assert first.exit_size == pytest.approx(60.0)
        assert first.metadata["tp_level"] == 4.0
        assert first.metadata["should_move_stop_loss"] is True
        position = position.with_exit(first)

        # Lower level already covered by the cumulative exit
        assert check_take_profit(position, 104.5, tp_config) is None

        second = check_take_profit(position, 106.5, tp_config)
        assert second.exit_size == pytest.approx(40.0)
        position = position.with_exit(second)

        assert check_take_profit(position, 120.0, tp_config) is None
        assert position.closed_pct(ExitReason.TAKE_PROFIT) == pytest.approx(100.0)

    def test_stepwise_levels_never_exceed_full_position(self, tp_config):
        position = _long()
        for price in (102.1, 102.5, 104.1, 105.0, 106.1, 107.0, 110.0):
            condition = check_take_profit(position, price, tp_config)
            if condition is not None:
                position = position.with_exit(condition)
        assert position.closed_pct(ExitReason.TAKE_PROFIT) <= 100.0
        assert [ec.exit_size for ec in position.exit_conditions] == pytest.approx([30.0, 30.0, 40.0])

    def test_sizes_over_100_rejected(self):
        with pytest.raises(ConfigError):
            TakeProfitConfig(levels=[1.0, 2.0], sizes=[60.0, 50.0])


class TestTrailingStop:
    """Trailing stop activation and ratcheting."""

    @pytest.fixture
    def trail(self):
        return TrailingStopConfig(enabled=True, distance_pct=1.0, activate_after_gain_pct=1.0)

    def test_fires_on_retrace_from_high(self, trail):
        position = _long(highest_price=110.0)
        condition = check_trailing_stop(position, 108.5, trail)
        assert condition.reason == ExitReason.TRAILING
        assert condition.exit_price == pytest.approx(108.9)
        assert check_trailing_stop(position, 109.5, trail) is None

    def test_short_retrace_from_low(self, trail):
        position = _short(lowest_price=90.0)
        condition = check_trailing_stop(position, 91.0, trail)
        assert condition.exit_price == pytest.approx(90.9)

    def test_inactive_below_activation_gain(self, trail):
        assert check_trailing_stop(_long(highest_price=100.5), 100.4, trail) is None

    def test_disabled_by_default(self):
        assert check_trailing_stop(_long(highest_price=110.0), 105.0, TrailingStopConfig()) is None

    def test_update_advances_extremes(self, trail):
        position = _long(highest_price=105.0)
        updated = update_trailing_stop(position, 112.0, trail)
        assert updated.highest_price == 112.0
        assert position.highest_price == 105.0
        assert update_trailing_stop(updated, 108.0, trail).highest_price == 112.0

    def test_update_inactive_returns_same_state(self, trail):
        position = _long()
        assert update_trailing_stop(position, 100.5, trail) is position


class TestSignalReversal:
    """Opposing signal exits."""

    def _sell(self, confidence):
        return Signal(coin="BTC", signal=SignalAction.SELL_TO_ENTER, confidence=confidence)

    def test_relaxed_threshold(self):
        condition = check_signal_reversal(_long(), self._sell(55.0), SignalReversalConfig())
        assert condition.reason == ExitReason.SIGNAL_REVERSAL
        assert condition.exit_size == 100.0

    def test_low_confidence_ignored(self):
        assert check_signal_reversal(_long(), self._sell(35.0), SignalReversalConfig()) is None

    def test_same_direction_ignored(self):
        buy = Signal(coin="BTC", signal=SignalAction.BUY_TO_ENTER, confidence=90.0)
        assert check_signal_reversal(_long(), buy, SignalReversalConfig()) is None

    def test_short_reversed_by_buy(self):
        buy = Signal(coin="ETH", signal=SignalAction.BUY_TO_ENTER, confidence=70.0)
        assert check_signal_reversal(_short(), buy, SignalReversalConfig()) is not None


class TestEmergency:
    """Liquidation and funding emergencies."""

    def test_critical_liquidation_distance(self):
        condition = check_emergency(_long(leverage=10.0), 93.0, EmergencyConfig())
        assert condition.exit_size == 100.0
        assert condition.metadata["severity"] == "critical"
        assert condition.metadata["trigger"] == "liquidation"

    def test_high_liquidation_distance(self):
        condition = check_emergency(_long(leverage=10.0), 98.0, EmergencyConfig())
        assert condition.exit_size == 50.0
        assert condition.metadata["severity"] == "high"

    def test_safe_distance(self):
        assert check_emergency(_long(leverage=10.0), 100.0, EmergencyConfig()) is None

    def test_mark_price_preferred(self):
        futures = FuturesData(mark_price=93.0)
        assert check_emergency(_long(leverage=10.0), 100.0, EmergencyConfig(), futures).exit_size == 100.0

    def test_funding_thresholds(self):
        position = _long(leverage=1.0)
        high = check_emergency(position, 100.0, EmergencyConfig(), FuturesData(funding_rate=0.003))
        assert high.exit_size == 50.0
        assert high.metadata["trigger"] == "funding"
        critical = check_emergency(position, 100.0, EmergencyConfig(), FuturesData(funding_rate=-0.005))
        assert critical.exit_size == 100.0
        assert check_emergency(position, 100.0, EmergencyConfig(), FuturesData(funding_rate=0.001)) is None

    def test_most_urgent_trigger_wins(self):
        futures = FuturesData(funding_rate=0.005)
        condition = check_emergency(_long(leverage=10.0), 98.0, EmergencyConfig(), futures)
        assert condition.exit_size == 100.0
        assert condition.metadata["trigger"] == "funding"


class TestExitEngine:
    """Priority resolution across checkers."""

    def test_emergency_beats_stop_loss(self):
        position = _long(leverage=10.0, stop_loss=95.0)
        condition = check_exit_conditions(position, 93.0, ExitConfig(), timestamp=1)
        assert condition.reason == ExitReason.EMERGENCY
        assert condition.priority == 1

    def test_stop_loss_beats_reversal(self):
        position = _long(stop_loss=95.0)
        sell = Signal(coin="BTC", signal=SignalAction.SELL_TO_ENTER, confidence=90.0)
        condition = check_exit_conditions(position, 94.0, ExitConfig(), new_signal=sell, timestamp=1)
        assert condition.reason == ExitReason.STOP_LOSS

    def test_nothing_fires(self):
        position = _long(stop_loss=95.0, take_profit=110.0)
        assert check_exit_conditions(position, 101.0, ExitConfig(), timestamp=1) is None

    def test_invalid_price(self):
        assert check_exit_conditions(_long(stop_loss=95.0), 0.0, ExitConfig()) is None

    def test_timestamps(self):
        position = _long(stop_loss=95.0)
        assert check_exit_conditions(position, 94.0, ExitConfig(), timestamp=42).timestamp == 42
        assert check_exit_conditions(position, 94.0, ExitConfig()).timestamp > 0
