"""Collaborator contracts.

The signal core never fetches data or persists positions itself. These
interfaces describe what it consumes from the outside world.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from .types import PositionState, Signal, SignalAction


class CandleFetcher(ABC):
    """Market data source.

    Implementations must not retry and must fail closed: any fetch, parse or
    rate-limit error returns an empty list instead of raising.
    """

    @abstractmethod
    def fetch_candles(self, asset: str, interval: str, limit: int) -> Sequence:
        """Fetch raw candles (any shape the normalizer accepts), oldest first."""


class PositionStore(ABC):
    """External position store."""

    @abstractmethod
    def get_active_positions(self) -> Dict[str, PositionState]:
        """Open positions keyed by symbol."""

    @abstractmethod
    def update_active_positions(self, signal: Signal) -> None:
        """Request an update after a signal was acted on."""


class InMemoryPositionStore(PositionStore):
    """Dict-backed position store for tests and local runs."""

    def __init__(self, positions: Dict[str, PositionState] = None):
        self._positions: Dict[str, PositionState] = dict(positions or {})
        self.updates: List[Signal] = []

    def get_active_positions(self) -> Dict[str, PositionState]:
        return dict(self._positions)

    def put(self, position: PositionState) -> None:
        self._positions[position.symbol] = position

    def update_active_positions(self, signal: Signal) -> None:
        self.updates.append(signal)
        if signal.signal is SignalAction.CLOSE_ALL:
            self._positions.pop(signal.coin, None)
