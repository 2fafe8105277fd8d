"""Tests for configuration loading and the CLI entry point."""

import json
import sys
from pathlib import Path

import pytest

from cryptosignal.config import (
    ConfigError,
    ExitConfig,
    PipelineConfig,
    RiskConfig,
    load_config,
    parse_overrides,
)
from cryptosignal.run_signal import main

CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "signal.yaml"


class TestLoadConfig:
    """YAML loading with dot-notation overrides."""

    def test_sample_config(self):
        config = load_config(CONFIG_PATH)
        assert isinstance(config, PipelineConfig)
        assert config.entry_threshold == 0.1
        assert config.higher_timeframes == ["1d", "4h", "1h"]
        assert isinstance(config.risk, RiskConfig)
        assert config.risk.strategy == "equal"
        assert config.risk.available_capital == pytest.approx(9000.0)
        assert config.exits.take_profit.levels == [2.0, 4.0, 6.0]
        assert config.exits.trailing_stop.enabled is False

    def test_overrides_are_typed(self):
        overrides = parse_overrides([
            "risk.strategy=kelly",
            "risk.win_rate=0.55",
            "max_leverage=5",
            "exits.trailing_stop.enabled=true",
        ])
        config = load_config(CONFIG_PATH, overrides)
        assert config.risk.strategy == "kelly"
        assert config.risk.win_rate == 0.55
        assert config.max_leverage == 5
        assert config.exits.trailing_stop.enabled is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_non_mapping_top_level(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.risk is None
        assert config.exits.stop_loss.enabled

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigError):
            PipelineConfig.from_dict({"entry_treshold": 0.2})
        with pytest.raises(ConfigError):
            ExitConfig.from_dict({"stoploss": {}})
        with pytest.raises(ConfigError):
            PipelineConfig.from_dict({"exits": {"stop_loss": {"pct": 1.0}}})

    def test_invalid_values_rejected(self):
        with pytest.raises(ConfigError):
            PipelineConfig.from_dict({"risk": {"total_capital": 1000.0, "reserve_capital_pct": 150.0}})
        with pytest.raises(ConfigError):
            PipelineConfig.from_dict({"max_leverage": 0.5})
        with pytest.raises(ConfigError):
            PipelineConfig.from_dict({"exits": {"take_profit": "fast"}})

    def test_parse_overrides_skips_malformed(self):
        assert parse_overrides(["a.b=1", "junk", "c=x=y"]) == {"a.b": 1, "c": "x=y"}

    def test_override_values_parsed_as_yaml(self):
        overrides = parse_overrides(["stop_loss_pct=null", "exits.take_profit.levels=[1.5, 3]", "risk.strategy="])
        assert overrides == {"stop_loss_pct": None, "exits.take_profit.levels": [1.5, 3], "risk.strategy": None}

        config = load_config(CONFIG_PATH, parse_overrides(["exits.take_profit.levels=[1.5, 3]", "exits.take_profit.sizes=[50, 50]"]))
        assert config.exits.take_profit.levels == [1.5, 3]

    def test_override_through_scalar_rejected(self):
        with pytest.raises(ConfigError):
            load_config(CONFIG_PATH, {"entry_threshold.value": 1})

    def test_default_exit_distances_feed_entries(self):
        config = load_config(CONFIG_PATH, parse_overrides(["exits.stop_loss.default_stop_loss_pct=3.5"]))
        assert config.stop_loss_pct is None
        assert config.exits.stop_loss.default_stop_loss_pct == 3.5


class TestCli:
    """run_signal main()."""

    def _write_candles(self, path, candles):
        rows = [[c.time, c.open, c.high, c.low, c.close, c.volume] for c in candles]
        path.write_text(json.dumps(rows))

    def _run(self, monkeypatch, capsys, *args):
        monkeypatch.setattr(sys, "argv", ["cryptosignal", *args])
        main()
        out = capsys.readouterr().out
        return json.loads(out[out.index("{\n"):])

    def test_prints_signal_json(self, tmp_path, monkeypatch, capsys, trend_candles):
        candles_path = tmp_path / "btc.json"
        self._write_candles(candles_path, trend_candles(250))

        output = self._run(
            monkeypatch, capsys,
            "--config", str(CONFIG_PATH), "--candles", str(candles_path), "--asset", "BTC",
        )
        assert output["signal"]["signal"] == "buy_to_enter"
        assert output["position_size"]["strategy"] == "equal"
        assert output["regime"] == "trending"

    def test_position_payload(self, tmp_path, monkeypatch, capsys, flat_candles):
        candles_path = tmp_path / "btc.json"
        rows = [[c.time, c.open, c.high, c.low, c.close, c.volume] for c in flat_candles(30, price=94.0)]
        payload = {"candles": rows, "position": {"side": "long", "entry_price": 100.0, "quantity": 1.0, "stop_loss": 95.0}}
        candles_path.write_text(json.dumps(payload))

        output = self._run(monkeypatch, capsys, "--config", str(CONFIG_PATH), "--candles", str(candles_path))
        assert output["signal"]["signal"] == "close_all"
        assert output["exit"]["reason"] == "STOP_LOSS"

    def test_missing_candle_file_exits(self, tmp_path, monkeypatch):
        monkeypatch.setattr(
            sys, "argv",
            ["cryptosignal", "--config", str(CONFIG_PATH), "--candles", str(tmp_path / "missing.json")],
        )
        with pytest.raises(SystemExit):
            main()
