"""Data contracts for the signal pipeline.

Defines the standardized types passed between pipeline stages:
Candles -> IndicatorSet -> Analyzers(TrendAlignment, MarketRegime) -> Scorers -> Sizer/ExitEngine -> Signal
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple


class Side(Enum):
    """Position side."""
    LONG = "LONG"
    SHORT = "SHORT"


class SignalAction(Enum):
    """Action carried by an emitted Signal."""
    BUY_TO_ENTER = "buy_to_enter"
    SELL_TO_ENTER = "sell_to_enter"
    REDUCE = "reduce"
    CLOSE_ALL = "close_all"
    HOLD = "hold"

    @property
    def is_entry(self) -> bool:
        return self in (SignalAction.BUY_TO_ENTER, SignalAction.SELL_TO_ENTER)


class ExitReason(Enum):
    """Exit condition reason, ordered by default priority."""
    EMERGENCY = "EMERGENCY"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    TRAILING = "TRAILING"
    SIGNAL_REVERSAL = "SIGNAL_REVERSAL"


# Lower number = higher priority
EXIT_PRIORITY: Dict[ExitReason, int] = {
    ExitReason.EMERGENCY: 1,
    ExitReason.STOP_LOSS: 2,
    ExitReason.TAKE_PROFIT: 3,
    ExitReason.TRAILING: 4,
    ExitReason.SIGNAL_REVERSAL: 5,
}


@dataclass(frozen=True)
class Candle:
    """Canonical OHLCV candle."""
    time: int  # epoch milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def body(self) -> float:
        """Absolute body size."""
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        """High - Low."""
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


class IndicatorSet(Mapping[str, Optional[float]]):
    """Immutable snapshot of indicator values.

    Values are floats or None. None means the indicator is unavailable
    (insufficient history) and must never be read as zero.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, Optional[float]]] = None):
        object.__setattr__(self, "_values", dict(values or {}))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("IndicatorSet is immutable")

    def __getitem__(self, key: str) -> Optional[float]:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Optional[float]:
        # Unknown indicator names read as unavailable
        if name.startswith("_"):
            raise AttributeError(name)
        return self._values.get(name)

    def has(self, *names: str) -> bool:
        """True if every named indicator is available."""
        return all(self._values.get(n) is not None for n in names)

    def available(self) -> Dict[str, float]:
        """Only the indicators that have values."""
        return {k: v for k, v in self._values.items() if v is not None}

    def to_dict(self) -> Dict[str, Optional[float]]:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"IndicatorSet({len(self.available())}/{len(self._values)} available)"


@dataclass(frozen=True)
class TrendAlignment:
    """Cross-timeframe trend agreement summary."""
    daily_trend: str = "neutral"  # uptrend / downtrend / neutral
    h4_aligned: bool = False
    h1_aligned: bool = False
    alignment_score: float = 0.0  # 0-100
    aligned: bool = False
    reason: str = ""

    @property
    def trend_direction(self) -> int:
        if self.daily_trend == "uptrend":
            return 1
        if self.daily_trend == "downtrend":
            return -1
        return 0


@dataclass(frozen=True)
class MarketRegime:
    """Market regime classification.

    Attributes:
        regime: "trending", "choppy" or "volatile"
        strength: Regime score 0-100
        volatility: "low", "normal" or "high"
        adx: ADX value used for classification (None if unavailable)
        atr_pct: ATR as percent of price (None if unavailable)
    """
    regime: str
    strength: float
    volatility: str = "normal"
    adx: Optional[float] = None
    atr_pct: Optional[float] = None


@dataclass(frozen=True)
class Signal:
    """Trading signal emitted once per evaluation cycle.

    Immutable: sizing and exit logic derive new Signals via dataclasses.replace.
    """
    coin: str
    signal: SignalAction = SignalAction.HOLD
    confidence: Optional[float] = None  # 0-100, None = not scored
    entry_price: float = 0.0
    quantity: float = 0.0
    leverage: float = 1.0
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "coin": self.coin,
            "signal": self.signal.value,
            "confidence": self.confidence,
            "entry_price": self.entry_price,
            "quantity": self.quantity,
            "leverage": self.leverage,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
        }


@dataclass(frozen=True)
class ExitCondition:
    """A fired exit decision.

    Recorded append-only in PositionState.exit_conditions; never edited.
    """
    reason: ExitReason
    priority: int
    should_exit: bool
    exit_size: float  # percent of position, (0, 100]
    exit_price: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    description: str = ""


@dataclass(frozen=True)
class PositionState:
    """Open position as supplied by the caller's position store."""
    symbol: str
    side: Side
    entry_price: float
    quantity: float = 0.0
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    leverage: float = 1.0
    highest_price: Optional[float] = None
    lowest_price: Optional[float] = None
    exit_conditions: Tuple[ExitCondition, ...] = ()

    def with_exit(self, condition: ExitCondition) -> "PositionState":
        """Return a copy with the condition appended to history."""
        return replace(self, exit_conditions=self.exit_conditions + (condition,))

    def closed_pct(self, reason: ExitReason) -> float:
        """Sum of exit sizes recorded for the given reason."""
        return sum(ec.exit_size for ec in self.exit_conditions if ec.reason == reason)


@dataclass(frozen=True)
class SizingConstraints:
    """Constraint bookkeeping for a sizing decision."""
    max_size_pct: float
    reserve_capital_pct: float
    applied: bool = False


@dataclass(frozen=True)
class PositionSize:
    """Result of position sizing."""
    size_usd: float
    quantity: float
    strategy: str
    reasoning: str
    constraints: SizingConstraints
