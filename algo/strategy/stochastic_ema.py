"""随机指标交叉 + 高周期 EMA 趋势过滤策略。"""

from __future__ import annotations

from algo.factors.atr import ATRFactor
from algo.factors.base import Factor
from algo.factors.ema import EMAFactor
from algo.factors.stochastic import StochasticFactor
from algo.strategy.base import SignalEvaluator
from shared.models.models import IndicatorSnapshot, RiskParameters, Signal


class StochasticEmaStrategy(SignalEvaluator):
    """%K/%D 同处超卖区且 %K 在上、价格在 EMA 之上 -> Buy；超买区镜像 -> Sell。

    `signal_offset` 指定读取随机指标的 bar（0 = 刚收盘的 bar）。
    """

    def __init__(
        self,
        k_period: int = 8,
        d_period: int = 3,
        slowing: int = 3,
        atr_period: int = 14,
        ema_period: int = 50,
        ema_timeframe: str | None = "1h",
        oversold: float = 30,
        overbought: float = 70,
        signal_offset: int = 0,
        label: str | None = "StochasticCrossover",
    ):
        if signal_offset < 0:
            raise ValueError("signal_offset must be >= 0")
        self.k_period = int(k_period)
        self.d_period = int(d_period)
        self.slowing = int(slowing)
        self.atr_period = int(atr_period)
        self.ema_period = int(ema_period)
        self.ema_timeframe = ema_timeframe or None
        self.oversold = float(oversold)
        self.overbought = float(overbought)
        self.signal_offset = int(signal_offset)
        self.label = label

        self.k_feature = "stoch_k"
        self.d_feature = "stoch_d"
        self.ema_feature = "ema_trend"
        self.atr_feature = "atr"

    def required_factors(self) -> list[Factor]:
        return [
            StochasticFactor(
                k_period=self.k_period,
                d_period=self.d_period,
                slowing=self.slowing,
                k_col=self.k_feature,
                d_col=self.d_feature,
            ),
            EMAFactor(period=self.ema_period, timeframe=self.ema_timeframe, out_col=self.ema_feature),
            ATRFactor(period=self.atr_period, out_col=self.atr_feature),
        ]

    def required_features(self) -> tuple[str, ...]:
        return (self.k_feature, self.d_feature, self.ema_feature, self.atr_feature, "close")

    def required_depth(self, params: RiskParameters) -> int:
        return self.signal_offset + 1

    def evaluate(self, snapshot: IndicatorSnapshot, params: RiskParameters) -> Signal:
        k = snapshot.history(self.k_feature, self.signal_offset)
        d = snapshot.history(self.d_feature, self.signal_offset)
        ema = snapshot.latest(self.ema_feature)
        close = snapshot.latest("close")

        if k < self.oversold and d < self.oversold and k > d and close > ema:
            return Signal.BUY
        if k > self.overbought and d > self.overbought and k < d and close < ema:
            return Signal.SELL
        return Signal.NONE
