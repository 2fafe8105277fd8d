"""Evaluate one asset from a JSON candle file.

Usage:
    python -m cryptosignal.run_signal --config configs/signal.yaml --candles data/btc.json --asset BTC
    python -m cryptosignal.run_signal --config configs/signal.yaml --candles data/btc.json \\
        --override risk.strategy=kelly risk.win_rate=0.55

The candle file is either a plain list of raw candles or an object:
    {"candles": [...], "higher_timeframes": {"1d": [...], "4h": [...], "1h": [...]},
     "position": {"side": "LONG", "entry_price": 100.0, ...}}
"""

import argparse
import json
import sys
from pathlib import Path

import structlog

# Configure logging
structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(min_level=20),  # INFO
)

logger = structlog.get_logger(__name__)


def _load_position(asset: str, data: dict):
    from cryptosignal.core.types import PositionState, Side

    return PositionState(
        symbol=data.get("symbol", asset),
        side=Side(str(data["side"]).upper()),
        entry_price=float(data["entry_price"]),
        quantity=float(data.get("quantity", 0.0)),
        stop_loss=data.get("stop_loss"),
        take_profit=data.get("take_profit"),
        leverage=float(data.get("leverage", 1.0)),
    )


def main():
    """Evaluate a candle file and print the signal as JSON."""
    parser = argparse.ArgumentParser(description="Crypto signal evaluation")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to config YAML file",
    )
    parser.add_argument(
        "--candles",
        type=str,
        required=True,
        help="Path to JSON candle file",
    )
    parser.add_argument(
        "--asset",
        type=str,
        default="BTC",
        help="Asset symbol (default: BTC)",
    )
    parser.add_argument(
        "--positions",
        type=int,
        default=0,
        help="Number of positions already open (sizing)",
    )
    parser.add_argument(
        "--override",
        type=str,
        nargs="*",
        default=[],
        help="Config overrides in format key=value (e.g., risk.strategy=kelly)",
    )
    args = parser.parse_args()

    from cryptosignal.config import load_config, parse_overrides
    from cryptosignal.core.warnings import EvaluationContext
    from cryptosignal.pipeline import SignalPipeline

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        sys.exit(1)

    candles_path = Path(args.candles)
    if not candles_path.exists():
        logger.error(f"Candle file not found: {candles_path}")
        sys.exit(1)

    overrides = parse_overrides(args.override) if args.override else None
    config = load_config(config_path, overrides=overrides)

    if overrides:
        logger.info("Config overrides applied", overrides=overrides)

    with open(candles_path, "r") as f:
        payload = json.load(f)

    if isinstance(payload, list):
        payload = {"candles": payload}

    position = None
    if payload.get("position"):
        position = _load_position(args.asset, payload["position"])

    logger.info(
        "Evaluating",
        asset=args.asset,
        candles=len(payload.get("candles") or []),
        timeframes=sorted((payload.get("higher_timeframes") or {}).keys()),
        strategy=config.risk.strategy if config.risk else None,
        has_position=position is not None,
    )

    context = EvaluationContext()
    result = SignalPipeline(config).evaluate(
        args.asset,
        payload.get("candles") or [],
        risk_config=config.risk,
        position_state=position,
        higher_timeframes=payload.get("higher_timeframes"),
        context=context,
        existing_positions_count=args.positions,
    )

    for warning in context.warnings:
        logger.warning("Evaluation warning", asset=warning.asset, message=warning.message)

    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    main()
