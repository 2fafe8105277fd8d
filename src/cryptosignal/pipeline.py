"""Signal pipeline.

One evaluation turns a candle window (plus optional higher timeframes and an
open position) into a Signal:

    candles -> IndicatorSet -> alignment / regime / divergence / patterns
            -> Trend Strength Index -> direction + confidence
            -> falling-knife gate
            -> exit engine (open position) or sizing + levels (new entry)

The pipeline keeps no mutable state between calls. Warnings go to the
EvaluationContext passed in by the caller.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from cryptosignal.analysis.candlestick import CandlestickPattern, detect_candlestick_patterns
from cryptosignal.analysis.divergence import DivergenceResult, detect_divergence
from cryptosignal.analysis.liquidation import LiquidationAnalysis, LiquidationData, analyze_liquidations
from cryptosignal.analysis.regime import detect_market_regime
from cryptosignal.analysis.trend import (
    MarketStructure,
    TrendDetection,
    check_trend_alignment,
    detect_market_structure,
    detect_trend,
)
from cryptosignal.config import PipelineConfig, RiskConfig
from cryptosignal.core.interfaces import CandleFetcher
from cryptosignal.core.types import (
    Candle,
    ExitCondition,
    IndicatorSet,
    MarketRegime,
    PositionSize,
    PositionState,
    Side,
    Signal,
    SignalAction,
    TrendAlignment,
)
from cryptosignal.core.warnings import EvaluationContext, SignalWarning
from cryptosignal.data.candles import candles_to_frame, parse_candles
from cryptosignal.exits.emergency import FuturesData
from cryptosignal.exits.engine import check_exit_conditions
from cryptosignal.features.indicator_set import build_indicator_set, build_timeframe_indicators
from cryptosignal.features.indicators import calculate_rsi
from cryptosignal.gates.falling_knife import is_catching_falling_knife
from cryptosignal.risk.levels import calculate_dynamic_leverage, calculate_stop_loss, calculate_take_profit
from cryptosignal.risk.sizer import calculate_position_size
from cryptosignal.scoring.trading_style import SHORT_TERM, determine_trading_style
from cryptosignal.scoring.trend_strength import TrendStrength, trend_strength_index

logger = structlog.get_logger(__name__)

# |TSI| at which confidence saturates (four fully agreeing terms average ~0.25)
TSI_FULL_CONFIDENCE = 0.25


@dataclass
class EvaluationResult:
    """Signal plus every intermediate analysis that produced it."""
    signal: Signal
    indicators: IndicatorSet
    timeframe_indicators: Dict[str, IndicatorSet] = field(default_factory=dict)
    trend: Optional[TrendDetection] = None
    structure: Optional[MarketStructure] = None
    alignment: Optional[TrendAlignment] = None
    regime: Optional[MarketRegime] = None
    divergence: Optional[DivergenceResult] = None
    patterns: List[CandlestickPattern] = field(default_factory=list)
    trend_strength: Optional[TrendStrength] = None
    trading_style: str = SHORT_TERM
    falling_knife: bool = False
    position_size: Optional[PositionSize] = None
    exit_condition: Optional[ExitCondition] = None
    liquidation: Optional[LiquidationAnalysis] = None
    warnings: List[SignalWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Summary suitable for JSON output."""
        return {
            "signal": self.signal.to_dict(),
            "trend_strength": self.trend_strength.value if self.trend_strength else None,
            "trend": self.trend.trend if self.trend else None,
            "structure": self.structure.structure if self.structure else None,
            "alignment_score": self.alignment.alignment_score if self.alignment else None,
            "daily_trend": self.alignment.daily_trend if self.alignment else None,
            "regime": self.regime.regime if self.regime else None,
            "regime_strength": self.regime.strength if self.regime else None,
            "divergence": self.divergence.divergence if self.divergence else None,
            "patterns": [p.type for p in self.patterns],
            "trading_style": self.trading_style,
            "falling_knife": self.falling_knife,
            "position_size": (
                {
                    "size_usd": self.position_size.size_usd,
                    "quantity": self.position_size.quantity,
                    "strategy": self.position_size.strategy,
                    "reasoning": self.position_size.reasoning,
                    "capped": self.position_size.constraints.applied,
                }
                if self.position_size
                else None
            ),
            "exit": (
                {
                    "reason": self.exit_condition.reason.value,
                    "exit_size": self.exit_condition.exit_size,
                    "description": self.exit_condition.description,
                }
                if self.exit_condition
                else None
            ),
            "warnings": [w.message for w in self.warnings],
        }


def tsi_to_action(tsi: float, entry_threshold: float) -> SignalAction:
    """Direction from the Trend Strength Index."""
    if abs(tsi) < entry_threshold or tsi == 0:
        return SignalAction.HOLD
    return SignalAction.BUY_TO_ENTER if tsi > 0 else SignalAction.SELL_TO_ENTER


def tsi_to_confidence(tsi: float) -> float:
    """Confidence 0-100 from |TSI|."""
    return min(100.0, abs(tsi) / TSI_FULL_CONFIDENCE * 100)


class SignalPipeline:
    """Stateless signal evaluator.

    Args:
        config: Pipeline configuration (defaults when None)
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

    def evaluate(
        self,
        asset: str,
        candles: Optional[Sequence[Any]],
        risk_config: Optional[RiskConfig] = None,
        position_state: Optional[PositionState] = None,
        higher_timeframes: Optional[Mapping[str, Sequence[Any]]] = None,
        context: Optional[EvaluationContext] = None,
        existing_positions_count: int = 0,
        futures: Optional[FuturesData] = None,
        liquidations: Optional[LiquidationData] = None,
        current_price: Optional[float] = None,
    ) -> EvaluationResult:
        """Evaluate one asset.

        Args:
            asset: Asset symbol
            candles: Primary timeframe candles, raw or canonical, oldest first
            risk_config: Capital configuration (falls back to config.risk)
            position_state: Open position for this asset, if any
            higher_timeframes: Raw candles keyed by timeframe ("1d", "4h", "1h")
            context: Warning sink and clock (a fresh one when None)
            existing_positions_count: Open positions across the portfolio
            futures: Funding/mark data for emergency exits
            liquidations: Liquidation snapshot for cluster analysis
            current_price: Live price (defaults to last close)

        Returns:
            EvaluationResult
        """
        ctx = context or EvaluationContext()
        cfg = self.config
        log = logger.bind(asset=asset)
        warnings_before = len(ctx.warnings)

        parsed = parse_candles(candles, default_time=0)
        indicators = build_indicator_set(parsed, current_price=current_price)
        price = indicators.price

        if not parsed:
            ctx.warn(asset, "No candle data available", [f"interval={cfg.primary_interval}"])

        tf_candles = {
            tf: parse_candles(raw)
            for tf, raw in (higher_timeframes or {}).items()
            if tf in cfg.higher_timeframes
        }
        tf_indicators = build_timeframe_indicators(tf_candles, current_price=current_price)
        alignment = check_trend_alignment(tf_indicators)

        trend = detect_trend(price, indicators.ema20, indicators.ema50, indicators.ema200)
        structure = detect_market_structure(
            [c.high for c in parsed], [c.low for c in parsed], cfg.structure_lookback
        )
        regime = detect_market_regime(indicators, parsed) if parsed else None
        divergence = self._rsi_divergence(parsed)
        patterns = detect_candlestick_patterns(parsed, cfg.pattern_lookback)

        tsi = trend_strength_index(indicators, alignment if tf_indicators else None)
        action = tsi_to_action(tsi.value, cfg.entry_threshold) if parsed else SignalAction.HOLD
        confidence = tsi_to_confidence(tsi.value) if parsed else 0.0

        falling_knife = False
        if action is SignalAction.BUY_TO_ENTER:
            falling_knife = is_catching_falling_knife(indicators, alignment)
            if falling_knife:
                ctx.warn(asset, "Falling knife: buy against a fully confirmed downtrend")
                if cfg.block_on_safety_gate:
                    log.info("signal_vetoed", gate="falling_knife", tsi=round(tsi.value, 4))
                    action = SignalAction.HOLD

        signal = Signal(
            coin=asset,
            signal=action,
            confidence=confidence,
            entry_price=price or 0.0,
            leverage=cfg.default_leverage,
        )

        liquidation = analyze_liquidations(liquidations, price) if liquidations is not None and price else None

        result = EvaluationResult(
            signal=signal,
            indicators=indicators,
            timeframe_indicators=tf_indicators,
            trend=trend,
            structure=structure,
            alignment=alignment,
            regime=regime,
            divergence=divergence,
            patterns=patterns,
            trend_strength=tsi,
            trading_style=determine_trading_style(action, indicators, alignment, regime),
            falling_knife=falling_knife,
            liquidation=liquidation,
        )

        if position_state is not None:
            self._apply_exits(result, position_state, price, futures, ctx)
        elif action.is_entry:
            self._size_entry(result, risk_config or cfg.risk, existing_positions_count, ctx)

        result.warnings = list(ctx.warnings)[warnings_before:]
        log.debug(
            "signal_evaluated",
            signal=result.signal.signal.value,
            confidence=round(result.signal.confidence or 0.0, 1),
            tsi=round(tsi.value, 4),
            candles=len(parsed),
        )
        return result

    def evaluate_asset(
        self,
        fetcher: CandleFetcher,
        asset: str,
        risk_config: Optional[RiskConfig] = None,
        position_state: Optional[PositionState] = None,
        context: Optional[EvaluationContext] = None,
        **kwargs,
    ) -> EvaluationResult:
        """Fetch candles for the primary and higher timeframes, then evaluate.

        An empty fetch is treated as "no history", never as an error.
        """
        cfg = self.config
        candles = fetcher.fetch_candles(asset, cfg.primary_interval, cfg.candle_limit) or []
        higher = {}
        for tf in cfg.higher_timeframes:
            raw = fetcher.fetch_candles(asset, tf, cfg.candle_limit) or []
            if raw:
                higher[tf] = raw
        return self.evaluate(
            asset,
            candles,
            risk_config=risk_config,
            position_state=position_state,
            higher_timeframes=higher,
            context=context,
            **kwargs,
        )

    def _rsi_divergence(self, candles: Sequence[Candle]) -> Optional[DivergenceResult]:
        lookback = self.config.divergence_lookback
        if len(candles) < lookback:
            return None
        close = candles_to_frame(candles)["close"]
        rsi = calculate_rsi(close, 14)
        return detect_divergence(close.tolist(), rsi.tolist(), lookback)

    def _apply_exits(
        self,
        result: EvaluationResult,
        position: PositionState,
        price: Optional[float],
        futures: Optional[FuturesData],
        ctx: EvaluationContext,
    ) -> None:
        """Turn an open position plus the fresh signal into an exit decision."""
        if not price:
            ctx.warn(position.symbol, "Exit check skipped: no current price")
            result.signal = replace(result.signal, signal=SignalAction.HOLD)
            return

        condition = check_exit_conditions(
            position,
            price,
            self.config.exits,
            new_signal=result.signal,
            futures=futures,
            timestamp=ctx.clock(),
        )
        result.exit_condition = condition

        if condition is None:
            # Already positioned; a same-side or weak signal is a hold
            result.signal = replace(result.signal, signal=SignalAction.HOLD)
            return

        full = condition.exit_size >= 100
        quantity = position.quantity * min(condition.exit_size, 100.0) / 100
        result.signal = replace(
            result.signal,
            signal=SignalAction.CLOSE_ALL if full else SignalAction.REDUCE,
            quantity=quantity,
            leverage=position.leverage,
        )
        logger.info(
            "exit_signal",
            asset=position.symbol,
            reason=condition.reason.value,
            exit_size=condition.exit_size,
        )

    def _size_entry(
        self,
        result: EvaluationResult,
        risk_config: Optional[RiskConfig],
        existing_positions_count: int,
        ctx: EvaluationContext,
    ) -> None:
        """Attach stop/target, leverage and size to an entry signal."""
        cfg = self.config
        signal = result.signal
        entry = signal.entry_price
        side = Side.LONG if signal.signal is SignalAction.BUY_TO_ENTER else Side.SHORT

        signal = replace(
            signal,
            stop_loss=calculate_stop_loss(
                entry, side, cfg.stop_loss_pct, cfg.exits.stop_loss.default_stop_loss_pct
            ),
            take_profit=calculate_take_profit(
                entry, side, cfg.take_profit_pct, cfg.exits.take_profit.default_take_profit_pct
            ),
        )
        if cfg.use_dynamic_leverage:
            leverage = calculate_dynamic_leverage(result.indicators, signal, entry, cfg.max_leverage)
            signal = replace(signal, leverage=leverage)

        if risk_config is None:
            ctx.warn(signal.coin, "No risk configuration: entry left unsized")
            result.signal = signal
            return

        volatility_pct = result.regime.atr_pct if result.regime else None
        size = calculate_position_size(signal, risk_config, existing_positions_count, volatility_pct)
        result.position_size = size
        result.signal = replace(signal, quantity=size.quantity)
