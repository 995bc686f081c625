"""Sizer 抽象与构建逻辑。

两种协议刻意保留为两个具名实现，而不是合并：
- stop_first：先定止损距离，再按风险金额算 volume（不取整、不回算止损）；
- volume_first：先按波动率止损算 volume，向下取整到 volume 步进后回算止损距离。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from shared.errors import InvalidRisk


@dataclass(frozen=True)
class SizingResult:
    volume: float
    stop_pips: float
    risk_amount: float
    # volume 取整后止损距离是否被回算
    stop_recomputed: bool = False


def risk_amount(equity: float, risk_percent: float) -> float:
    if risk_percent <= 0:
        raise InvalidRisk(f"risk_percent must be > 0, got {risk_percent}")
    if equity <= 0:
        raise InvalidRisk(f"equity must be > 0, got {equity}")
    return equity * risk_percent / 100.0


def risk_volume(equity: float, risk_percent: float, stop_pips: float, pip_value: float) -> float:
    """riskAmount / (stop_pips * pip_value)。

    Raises
    ------
    InvalidRisk
        止损距离、风险比例、pip 价值或权益非正。
    """
    if stop_pips <= 0:
        raise InvalidRisk(f"stop distance must be > 0 pips, got {stop_pips}")
    if pip_value <= 0:
        raise InvalidRisk(f"pip_value must be > 0, got {pip_value}")
    return risk_amount(equity, risk_percent) / (stop_pips * pip_value)


class Sizer(Protocol):
    """Sizer：根据权益与止损距离给出下单量。"""

    name: str

    def size(
        self,
        *,
        equity: float,
        risk_percent: float,
        stop_pips: float,
        pip_value: float,
        volume_step: float | None = None,
        min_volume: float | None = None,
    ) -> SizingResult: ...


def build_sizer(name: str | None) -> Sizer:
    """按配置名构建 sizer（默认 stop_first）。"""
    from algo.sizing.stop_first import StopDistanceFirstSizer
    from algo.sizing.volume_first import VolumeFirstSizer

    mode = str(name or "stop_first").strip().lower().replace("-", "_")
    if mode == "stop_first":
        return StopDistanceFirstSizer()
    if mode == "volume_first":
        return VolumeFirstSizer()
    raise ValueError(f"Unknown sizing protocol: {name}")
