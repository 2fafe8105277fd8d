"""Per-evaluation warning collection.

Warnings are non-fatal anomalies recorded for later inspection. They are
tagged by asset, append-only, and never consulted for control flow.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class SignalWarning:
    """Single warning entry."""
    asset: str
    message: str
    details: Optional[Tuple[str, ...]] = None
    timestamp: int = 0


class WarningLog:
    """Append-only warning list."""

    def __init__(self):
        self._entries: List[SignalWarning] = []

    def collect(
        self,
        asset: str,
        message: str,
        details: Optional[List[str]] = None,
        timestamp: int = 0,
    ) -> SignalWarning:
        """Record a warning for an asset.

        Args:
            asset: Asset symbol the warning belongs to
            message: Short description
            details: Optional extra lines
            timestamp: Epoch milliseconds

        Returns:
            The stored warning
        """
        entry = SignalWarning(
            asset=asset,
            message=message,
            details=tuple(details) if details else None,
            timestamp=timestamp,
        )
        self._entries.append(entry)
        return entry

    def for_asset(self, asset: str) -> List[SignalWarning]:
        """All warnings recorded for one asset, oldest first."""
        return [w for w in self._entries if w.asset == asset]

    def __iter__(self) -> Iterator[SignalWarning]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class EvaluationContext:
    """Explicit per-call context replacing module-level registries.

    Attributes:
        warnings: Warning log shared across the evaluations using this context
        clock: Millisecond clock used to stamp warnings and exit conditions
    """
    warnings: WarningLog = field(default_factory=WarningLog)
    clock: Callable[[], int] = _now_ms

    def warn(self, asset: str, message: str, details: Optional[List[str]] = None) -> SignalWarning:
        return self.warnings.collect(asset, message, details, timestamp=self.clock())
