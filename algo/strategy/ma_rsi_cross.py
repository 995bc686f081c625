"""均线交叉 + RSI 持续超买/超卖确认策略。

两种交叉模式由配置选择（同一实现）：
- simple：快线在慢线之上/之下即可；
- confirmed：要求快慢线关系恰好在当前 bar 翻转，避免均线保持交叉时反复触发。
"""

from __future__ import annotations

from algo.factors.atr import ATRFactor
from algo.factors.base import Factor
from algo.factors.ma import MAFactor
from algo.factors.rsi import RSIFactor
from algo.strategy.base import SignalEvaluator
from shared.models.models import IndicatorSnapshot, RiskParameters, Signal

CROSS_MODES = ("simple", "confirmed")


def _rsi_window(snapshot: IndicatorSnapshot, feature: str, lookback: int) -> list[float]:
    # 先取完整窗口：历史不足时无论是否已出现违例都抛 MissingIndicatorHistory
    return [snapshot.history(feature, i) for i in range(max(0, int(lookback)))]


def is_rsi_below_threshold(snapshot: IndicatorSnapshot, feature: str, level: float, lookback: int) -> bool:
    """回看窗口内每个 RSI 值都严格低于 level（等于算违例）。"""
    return all(v < level for v in _rsi_window(snapshot, feature, lookback))


def is_rsi_above_threshold(snapshot: IndicatorSnapshot, feature: str, level: float, lookback: int) -> bool:
    """回看窗口内每个 RSI 值都严格高于 level（等于算违例）。"""
    return all(v > level for v in _rsi_window(snapshot, feature, lookback))


class MaRsiCrossStrategy(SignalEvaluator):
    def __init__(
        self,
        fast_period: int = 10,
        slow_period: int = 50,
        rsi_period: int = 14,
        rsi_overbought: float = 70,
        rsi_oversold: float = 30,
        atr_period: int = 14,
        cross_mode: str = "simple",
        label: str | None = None,
    ):
        if cross_mode not in CROSS_MODES:
            raise ValueError(f"cross_mode must be one of {CROSS_MODES}, got {cross_mode!r}")
        if rsi_oversold >= rsi_overbought:
            raise ValueError("rsi_oversold must be < rsi_overbought")
        self.fast_period = int(fast_period)
        self.slow_period = int(slow_period)
        self.rsi_period = int(rsi_period)
        self.rsi_overbought = float(rsi_overbought)
        self.rsi_oversold = float(rsi_oversold)
        self.atr_period = int(atr_period)
        self.cross_mode = cross_mode
        self.label = label

        self.fast_feature = "ma_fast"
        self.slow_feature = "ma_slow"
        self.rsi_feature = "rsi"
        self.atr_feature = "atr"

    def required_factors(self) -> list[Factor]:
        return [
            MAFactor(window=self.fast_period, out_col=self.fast_feature),
            MAFactor(window=self.slow_period, out_col=self.slow_feature),
            RSIFactor(period=self.rsi_period, out_col=self.rsi_feature),
            ATRFactor(period=self.atr_period, out_col=self.atr_feature),
        ]

    def required_features(self) -> tuple[str, ...]:
        return (self.fast_feature, self.slow_feature, self.rsi_feature, self.atr_feature)

    def required_depth(self, params: RiskParameters) -> int:
        ma_depth = 2 if self.cross_mode == "confirmed" else 1
        return max(ma_depth, int(params.rsi_lookback), 1)

    def evaluate(self, snapshot: IndicatorSnapshot, params: RiskParameters) -> Signal:
        rsi_below = is_rsi_below_threshold(snapshot, self.rsi_feature, self.rsi_oversold, params.rsi_lookback)
        rsi_above = is_rsi_above_threshold(snapshot, self.rsi_feature, self.rsi_overbought, params.rsi_lookback)

        fast = snapshot.latest(self.fast_feature)
        slow = snapshot.latest(self.slow_feature)

        crossed_up = crossed_down = True
        if self.cross_mode == "confirmed":
            prev_fast = snapshot.history(self.fast_feature, 1)
            prev_slow = snapshot.history(self.slow_feature, 1)
            crossed_up = prev_fast <= prev_slow
            crossed_down = prev_fast >= prev_slow

        if fast > slow and crossed_up and rsi_below:
            return Signal.BUY
        if fast < slow and crossed_down and rsi_above:
            return Signal.SELL
        return Signal.NONE
