"""止损距离优先：volume = 风险金额 / (止损 pips * pip 价值)。"""

from __future__ import annotations

from dataclasses import dataclass

from algo.sizing.base import SizingResult, risk_amount, risk_volume


@dataclass(frozen=True)
class StopDistanceFirstSizer:
    name: str = "stop_first"

    def size(
        self,
        *,
        equity: float,
        risk_percent: float,
        stop_pips: float,
        pip_value: float,
        volume_step: float | None = None,
        min_volume: float | None = None,
    ) -> SizingResult:
        # volume 原样交给执行端归一化；止损距离保持不变
        volume = risk_volume(equity, risk_percent, stop_pips, pip_value)
        return SizingResult(
            volume=volume,
            stop_pips=float(stop_pips),
            risk_amount=risk_amount(equity, risk_percent),
        )
