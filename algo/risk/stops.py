"""基于波动率（ATR）的止损/止盈计算。"""

from __future__ import annotations

from dataclasses import dataclass

from shared.errors import InvalidRisk
from shared.models.models import Direction
from shared.utils.precision import normalize_price


@dataclass(frozen=True)
class StopTarget:
    stop: float
    target: float


def stops_for(
    direction: Direction,
    reference_price: float,
    volatility: float,
    stop_mult: float,
    target_mult: float,
    price_precision: int,
) -> StopTarget:
    """多头：ref - vol*stop_mult / ref + vol*target_mult；空头镜像。

    价格只在算术完成后按 `price_precision` 取整一次。
    """
    if volatility <= 0:
        raise InvalidRisk(f"volatility must be > 0, got {volatility}")
    stop_offset = volatility * stop_mult
    target_offset = volatility * target_mult
    if direction is Direction.LONG:
        stop = reference_price - stop_offset
        target = reference_price + target_offset
    else:
        stop = reference_price + stop_offset
        target = reference_price - target_offset
    return StopTarget(
        stop=normalize_price(stop, price_precision),
        target=normalize_price(target, price_precision),
    )


def price_to_pips(distance: float, pip_size: float) -> float:
    if pip_size <= 0:
        raise ValueError("pip_size must be > 0")
    return abs(distance) / pip_size


def stop_pips_for(volatility: float, stop_mult: float, pip_size: float) -> float:
    return price_to_pips(volatility * stop_mult, pip_size)


def target_pips_for(volatility: float, target_mult: float, pip_size: float) -> float:
    return price_to_pips(volatility * target_mult, pip_size)
