"""Technical indicators for signal generation.

Provides vectorized pandas implementations used by the IndicatorSet builder,
the regime detector and the divergence analyzer.

Includes:
- Moving Averages: EMA, SMA
- Momentum: RSI, MACD, Stochastic, CCI, Williams %R
- Volatility: ATR, Bollinger Bands
- Trend: ADX with +DI/-DI, Aroon
- Volume: OBV, VWAP, MFI, Volume Ratio
- Levels: rolling support/resistance

All functions are pure: same input, same output, no global state.
Warm-up rows are NaN; callers decide when a value is usable.
"""

from typing import Tuple

import numpy as np
import pandas as pd


def _true_range(high: pd.Series, low: pd.Series, close: pd.Series) -> pd.Series:
    prev_close = close.shift(1)
    tr = pd.concat(
        [high - low, (high - prev_close).abs(), (low - prev_close).abs()],
        axis=1,
    ).max(axis=1)
    return tr


def calculate_ema(close: pd.Series, period: int) -> pd.Series:
    """EMA seeded with the first close (adjust=False)."""
    return close.ewm(span=period, adjust=False).mean()


def calculate_sma(close: pd.Series, period: int) -> pd.Series:
    """Rolling mean over period closes."""
    return close.rolling(window=period).mean()


def calculate_rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """Wilder RSI, 0-100.

    Args:
        close: Close prices
        period: Smoothing period

    Returns:
        RSI series; 100 when the window had no losses, 50 when it was flat
    """
    delta = close.diff()

    gains = delta.where(delta > 0, 0.0)
    losses = (-delta).where(delta < 0, 0.0)

    # Wilder's smoothing
    avg_gains = gains.ewm(alpha=1 / period, adjust=False).mean()
    avg_losses = losses.ewm(alpha=1 / period, adjust=False).mean()

    rs = avg_gains / avg_losses.replace(0, np.nan)
    rsi = 100 - (100 / (1 + rs))

    # No losses in window: fully overbought, flat window: neutral
    rsi = rsi.where(avg_losses != 0, np.where(avg_gains > 0, 100.0, 50.0))
    rsi.iloc[:1] = np.nan

    return rsi


def calculate_macd(
    close: pd.Series,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """MACD line (fast EMA - slow EMA), its signal EMA and the histogram."""
    macd_line = calculate_ema(close, fast_period) - calculate_ema(close, slow_period)
    signal_line = macd_line.ewm(span=signal_period, adjust=False).mean()
    histogram = macd_line - signal_line

    return macd_line, signal_line, histogram


def calculate_stochastic(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    k_period: int = 14,
    d_period: int = 3,
) -> Tuple[pd.Series, pd.Series]:
    """Calculate Stochastic Oscillator (%K and %D), 0-100.

    Returns:
        Tuple of (stoch_k, stoch_d) Series
    """
    lowest_low = low.rolling(window=k_period).min()
    highest_high = high.rolling(window=k_period).max()

    range_hl = (highest_high - lowest_low).replace(0, np.nan)

    stoch_k = ((close - lowest_low) / range_hl) * 100
    stoch_d = stoch_k.rolling(window=d_period).mean()

    return stoch_k, stoch_d


def calculate_atr(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    period: int = 14,
) -> pd.Series:
    """Calculate Average True Range (ATR) with Wilder's smoothing."""
    return _true_range(high, low, close).ewm(alpha=1 / period, adjust=False).mean()


def calculate_bollinger_bands(
    close: pd.Series,
    period: int = 20,
    std_dev: float = 2.0,
) -> Tuple[pd.Series, pd.Series, pd.Series, pd.Series]:
    """Bollinger Bands with %B.

    Uses population std (ddof=0). %B is NaN when the bands collapse.

    Returns:
        Tuple of (upper, middle, lower, pct_b) Series
    """
    middle = close.rolling(window=period).mean()
    std = close.rolling(window=period).std(ddof=0)

    upper = middle + std_dev * std
    lower = middle - std_dev * std

    band_range = (upper - lower).replace(0, np.nan)
    pct_b = (close - lower) / band_range

    return upper, middle, lower, pct_b


def calculate_dmi(df: pd.DataFrame, period: int = 14) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Directional Movement Index: ADX with +DI and -DI, all Wilder-smoothed.

    ADX above 25 reads as trending; +DI above -DI as upward pressure.

    Args:
        df: Frame with high, low and close columns
        period: Smoothing period

    Returns:
        Tuple of (adx, plus_di, minus_di) Series
    """
    high = df["high"]
    low = df["low"]

    tr = _true_range(high, low, df["close"])

    up_move = high - high.shift(1)
    down_move = low.shift(1) - low

    plus_dm = up_move.where((up_move > down_move) & (up_move > 0), 0.0)
    minus_dm = down_move.where((down_move > up_move) & (down_move > 0), 0.0)

    atr = tr.ewm(alpha=1 / period, adjust=False).mean().replace(0, np.nan)
    plus_di = 100 * (plus_dm.ewm(alpha=1 / period, adjust=False).mean() / atr)
    minus_di = 100 * (minus_dm.ewm(alpha=1 / period, adjust=False).mean() / atr)

    di_sum = (plus_di + minus_di).replace(0, np.nan)
    dx = 100 * (plus_di - minus_di).abs() / di_sum

    adx = dx.ewm(alpha=1 / period, adjust=False).mean()

    return adx, plus_di, minus_di


def calculate_aroon(high: pd.Series, low: pd.Series, period: int = 25) -> Tuple[pd.Series, pd.Series]:
    """Calculate Aroon Up/Down (0-100).

    Aroon Up is 100 when the highest high of the last period+1 bars is the
    current bar and decays linearly with its age; Aroon Down mirrors it for lows.

    Returns:
        Tuple of (aroon_up, aroon_down) Series
    """
    window = period + 1
    # argmax returns the first occurrence; index from the window start
    bars_since_high = high.rolling(window=window).apply(lambda x: period - np.argmax(x), raw=True)
    bars_since_low = low.rolling(window=window).apply(lambda x: period - np.argmin(x), raw=True)

    aroon_up = 100 * (period - bars_since_high) / period
    aroon_down = 100 * (period - bars_since_low) / period

    return aroon_up, aroon_down


def calculate_cci(df: pd.DataFrame, period: int = 20) -> pd.Series:
    """Calculate Commodity Channel Index (CCI)."""
    typical = (df["high"] + df["low"] + df["close"]) / 3
    sma = typical.rolling(window=period).mean()
    mean_dev = typical.rolling(window=period).apply(lambda x: np.mean(np.abs(x - x.mean())), raw=True)
    return (typical - sma) / (0.015 * mean_dev.replace(0, np.nan))


def calculate_williams_r(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """Calculate Williams %R (-100 to 0)."""
    highest_high = df["high"].rolling(window=period).max()
    lowest_low = df["low"].rolling(window=period).min()
    range_hl = (highest_high - lowest_low).replace(0, np.nan)
    return -100 * (highest_high - df["close"]) / range_hl


def calculate_obv(close: pd.Series, volume: pd.Series) -> pd.Series:
    """Calculate On Balance Volume (OBV).

    Cumulative signed volume, starting at 0 on the first bar.
    """
    direction = np.sign(close.diff()).fillna(0)
    return (direction * volume).cumsum()


def calculate_vwap(df: pd.DataFrame) -> pd.Series:
    """Calculate cumulative Volume Weighted Average Price over the window."""
    typical = (df["high"] + df["low"] + df["close"]) / 3
    cum_volume = df["volume"].cumsum().replace(0, np.nan)
    return (typical * df["volume"]).cumsum() / cum_volume


def calculate_mfi(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """Calculate Money Flow Index (volume-weighted RSI, 0-100)."""
    typical = (df["high"] + df["low"] + df["close"]) / 3
    raw_flow = typical * df["volume"]
    change = typical.diff()

    positive = raw_flow.where(change > 0, 0.0).rolling(window=period).sum()
    negative = raw_flow.where(change < 0, 0.0).rolling(window=period).sum()

    ratio = positive / negative.replace(0, np.nan)
    mfi = 100 - (100 / (1 + ratio))
    mfi = mfi.where(negative != 0, 100.0)
    mfi.iloc[:period] = np.nan

    return mfi


def calculate_vol_ratio(volume: pd.Series, period: int = 20) -> pd.Series:
    """Calculate volume ratio (current volume vs average volume).

    - 1.0: Average volume
    - >2.0: Volume spike
    - <0.5: Thin trading
    """
    avg_volume = volume.rolling(window=period).mean().replace(0, np.nan)
    return volume / avg_volume


def calculate_support_resistance(
    high: pd.Series,
    low: pd.Series,
    lookback: int = 20,
) -> Tuple[pd.Series, pd.Series]:
    """Rolling support (lowest low) and resistance (highest high).

    Returns:
        Tuple of (support, resistance) Series
    """
    return low.rolling(window=lookback).min(), high.rolling(window=lookback).max()
