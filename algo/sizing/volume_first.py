"""volume 优先：先向下取整 volume，再用取整后的 volume 回算止损距离。

取整只向下，回算后的实际风险 volume * stop_pips * pip_value 恒等于风险金额，
不会因为取整多承担风险。
"""

from __future__ import annotations

from dataclasses import dataclass

from algo.sizing.base import SizingResult, risk_amount, risk_volume
from shared.errors import InvalidRisk
from shared.utils.precision import floor_to_step


@dataclass(frozen=True)
class VolumeFirstSizer:
    name: str = "volume_first"

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
        amount = risk_amount(equity, risk_percent)
        raw_volume = risk_volume(equity, risk_percent, stop_pips, pip_value)
        volume = floor_to_step(raw_volume, volume_step)
        if volume <= 0:
            raise InvalidRisk(f"volume {raw_volume} rounds down to 0 with step {volume_step}")
        if min_volume is not None and volume < min_volume:
            raise InvalidRisk(f"volume {volume} below min_volume {min_volume}")

        recomputed = amount / (volume * pip_value)
        return SizingResult(
            volume=volume,
            stop_pips=recomputed,
            risk_amount=amount,
            stop_recomputed=True,
        )
