"""Configuration loader for the signal pipeline."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


SIZING_STRATEGIES = ("equal", "confidence_weighted", "ranking_weighted", "risk_parity", "kelly")


class ConfigError(ValueError):
    """Error raised when a configuration has a malformed shape or value."""

    pass


@dataclass
class RiskConfig:
    """Capital and sizing configuration supplied per evaluation.

    Attributes:
        total_capital: Account capital in quote currency
        reserve_capital_pct: Percent of capital kept out of sizing
        max_position_size_pct: Hard cap per position as percent of total capital
        strategy: Sizing strategy name
        win_rate: Historical win rate 0-1 (kelly)
        average_win: Average winning trade (kelly)
        average_loss: Average losing trade, sign ignored (kelly)
        top_n_ranking: Signal rank among candidates (ranking_weighted)
        target_volatility_pct: ATR% at which risk_parity sizes at 1x base
    """

    total_capital: float
    reserve_capital_pct: float = 10.0
    max_position_size_pct: float = 25.0
    strategy: str = "equal"
    win_rate: Optional[float] = None
    average_win: Optional[float] = None
    average_loss: Optional[float] = None
    top_n_ranking: Optional[int] = None
    target_volatility_pct: float = 2.0

    def __post_init__(self):
        if self.strategy not in SIZING_STRATEGIES:
            raise ConfigError(
                f"Unknown sizing strategy: {self.strategy!r} (expected one of {', '.join(SIZING_STRATEGIES)})"
            )
        if self.total_capital < 0:
            raise ConfigError(f"total_capital must be >= 0, got {self.total_capital}")
        if not 0 <= self.reserve_capital_pct <= 100:
            raise ConfigError(f"reserve_capital_pct must be in [0, 100], got {self.reserve_capital_pct}")
        if not 0 <= self.max_position_size_pct <= 100:
            raise ConfigError(f"max_position_size_pct must be in [0, 100], got {self.max_position_size_pct}")
        if self.win_rate is not None and not 0 <= self.win_rate <= 1:
            raise ConfigError(f"win_rate must be in [0, 1], got {self.win_rate}")
        if self.target_volatility_pct <= 0:
            raise ConfigError(f"target_volatility_pct must be > 0, got {self.target_volatility_pct}")

    @property
    def available_capital(self) -> float:
        """Capital left after the reserve."""
        return self.total_capital * (1 - self.reserve_capital_pct / 100)

    @property
    def max_size_usd(self) -> float:
        """Per-position cap in quote currency."""
        return self.total_capital * (self.max_position_size_pct / 100)


@dataclass
class StopLossConfig:
    """Stop-loss exit configuration."""

    enabled: bool = True
    default_stop_loss_pct: float = 2.0


@dataclass
class TakeProfitConfig:
    """Take-profit exit configuration.

    levels are percent distances from entry; sizes are percent of the
    position closed at each level (cumulative across levels).
    """

    enabled: bool = True
    default_take_profit_pct: float = 5.0
    levels: List[float] = field(default_factory=list)
    sizes: List[float] = field(default_factory=list)
    auto_move_stop_loss_to_breakeven: bool = False

    def __post_init__(self):
        if any(s < 0 for s in self.sizes):
            raise ConfigError(f"take-profit sizes must be >= 0, got {self.sizes}")
        if sum(self.sizes) > 100:
            raise ConfigError(f"take-profit sizes sum to {sum(self.sizes)} (> 100)")


@dataclass
class TrailingStopConfig:
    """Trailing stop configuration."""

    enabled: bool = False
    distance_pct: float = 1.0
    activate_after_gain_pct: float = 1.0


@dataclass
class SignalReversalConfig:
    """Signal reversal exit configuration."""

    enabled: bool = True
    confidence_threshold: float = 60.0


@dataclass
class EmergencyConfig:
    """Emergency exit configuration."""

    enabled: bool = True
    min_liquidation_buffer_pct: float = 5.0
    funding_rate_threshold: float = 0.002  # 0.2% per funding interval


@dataclass
class ExitConfig:
    """Exit engine configuration."""

    stop_loss: StopLossConfig = field(default_factory=StopLossConfig)
    take_profit: TakeProfitConfig = field(default_factory=TakeProfitConfig)
    trailing_stop: TrailingStopConfig = field(default_factory=TrailingStopConfig)
    signal_reversal: SignalReversalConfig = field(default_factory=SignalReversalConfig)
    emergency: EmergencyConfig = field(default_factory=EmergencyConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExitConfig":
        """Create exit config from a nested dictionary."""
        data = data or {}
        _reject_unknown(data, ("stop_loss", "take_profit", "trailing_stop", "signal_reversal", "emergency"), "exits")
        return cls(
            stop_loss=_build(StopLossConfig, data.get("stop_loss")),
            take_profit=_build(TakeProfitConfig, data.get("take_profit")),
            trailing_stop=_build(TrailingStopConfig, data.get("trailing_stop")),
            signal_reversal=_build(SignalReversalConfig, data.get("signal_reversal")),
            emergency=_build(EmergencyConfig, data.get("emergency")),
        )


@dataclass
class PipelineConfig:
    """Signal pipeline configuration."""

    # Direction threshold on |TSI|
    entry_threshold: float = 0.1
    # Veto buy signals when the falling-knife gate fires
    block_on_safety_gate: bool = True

    # Leverage
    use_dynamic_leverage: bool = True
    default_leverage: float = 1.0
    max_leverage: float = 10.0

    # Stop/target distances for new entries (percent from entry);
    # None falls back to exits.stop_loss / exits.take_profit defaults
    stop_loss_pct: Optional[float] = None
    take_profit_pct: Optional[float] = None

    # Analysis lookbacks
    divergence_lookback: int = 20
    pattern_lookback: int = 5
    structure_lookback: int = 20

    # Higher timeframes used for trend alignment
    higher_timeframes: List[str] = field(default_factory=lambda: ["1d", "4h", "1h"])
    primary_interval: str = "5m"
    candle_limit: int = 200

    exits: ExitConfig = field(default_factory=ExitConfig)
    risk: Optional[RiskConfig] = None

    def __post_init__(self):
        if self.entry_threshold < 0:
            raise ConfigError(f"entry_threshold must be >= 0, got {self.entry_threshold}")
        if self.max_leverage < 1:
            raise ConfigError(f"max_leverage must be >= 1, got {self.max_leverage}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """Create config from dictionary."""
        data = dict(data or {})
        exits = ExitConfig.from_dict(data.pop("exits", None))
        risk_data = data.pop("risk", None)
        risk = _build(RiskConfig, risk_data) if risk_data else None
        return _build(cls, data, exits=exits, risk=risk)


def _reject_unknown(data: Dict[str, Any], allowed, section: str) -> None:
    unknown = set(data) - set(allowed)
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {sorted(unknown)}")


def _build(cls, data: Optional[Dict[str, Any]], **extra):
    """Instantiate a config dataclass, turning shape errors into ConfigError."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{cls.__name__} expects a mapping, got {type(data).__name__}")
    try:
        return cls(**data, **extra)
    except TypeError as e:
        raise ConfigError(f"Invalid {cls.__name__}: {e}") from e


def load_config(config_path: str | Path, overrides: Optional[Dict[str, Any]] = None) -> PipelineConfig:
    """Read a YAML pipeline config and apply dot-notation overrides on top.

    Raises:
        FileNotFoundError: config_path does not exist
        ConfigError: the document is not a mapping, or a section is malformed
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level config must be a mapping: {config_path}")

    for key, value in (overrides or {}).items():
        _set_nested_value(data, key, value)

    return PipelineConfig.from_dict(data)


def _set_nested_value(data: dict, key: str, value: Any) -> None:
    """Assign value at a dotted path such as "exits.stop_loss.enabled".

    Missing or null sections along the path become empty mappings.
    """
    *parents, leaf = key.split(".")
    node = data
    for name in parents:
        child = node.get(name)
        if child is None:
            child = node[name] = {}
        elif not isinstance(child, dict):
            raise ConfigError(f"Cannot override '{key}': '{name}' is not a section")
        node = child
    node[leaf] = value


def parse_overrides(override_args: List[str]) -> Dict[str, Any]:
    """Turn "key=value" CLI arguments into typed overrides.

    Values are read as YAML scalars/flow collections, so "5" -> 5,
    "true" -> True, "null" -> None and "[1, 2]" -> [1, 2]. Arguments without
    "=" are ignored.
    """
    overrides: Dict[str, Any] = {}
    for arg in override_args:
        key, sep, raw = arg.partition("=")
        if not sep:
            continue
        try:
            overrides[key] = yaml.safe_load(raw)
        except yaml.YAMLError:
            overrides[key] = raw
    return overrides
