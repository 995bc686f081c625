from __future__ import annotations

from abc import ABC, abstractmethod

from algo.factors.base import Factor
from shared.models.models import IndicatorSnapshot, RiskParameters, Signal


class SignalEvaluator(ABC):
    """信号评估器：指标快照 -> Buy/Sell/None，无副作用。"""

    strategy_id: str = ""
    # 止损/止盈使用的波动率列
    atr_feature: str = "atr"
    # None 表示按方向使用 "Buy"/"Sell"
    label: str | None = None

    @abstractmethod
    def required_factors(self) -> list[Factor]:
        """计算快照所需的因子。"""

    @abstractmethod
    def required_features(self) -> tuple[str, ...]:
        """evaluate 会读取的快照列。"""

    @abstractmethod
    def required_depth(self, params: RiskParameters) -> int:
        """evaluate 最多回看的 bar 数（含当前 bar）。"""

    @abstractmethod
    def evaluate(self, snapshot: IndicatorSnapshot, params: RiskParameters) -> Signal:
        """
        输入一个快照，输出一个方向信号。
        """
        ...
