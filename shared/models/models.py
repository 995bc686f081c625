"""核心数据结构：Bar/IndicatorSnapshot/Signal/Position/OrderRequest/DispatchPlan。"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

from shared.errors import InvalidRisk, MissingIndicatorHistory


class Direction(Enum):
    """持仓方向。"""

    LONG = "long"
    SHORT = "short"

    @property
    def opposite(self) -> "Direction":
        return Direction.SHORT if self is Direction.LONG else Direction.LONG


class Signal(Enum):
    """策略在一根 bar 上给出的方向信号。"""

    BUY = "buy"
    SELL = "sell"
    NONE = "none"

    @property
    def direction(self) -> Direction | None:
        if self is Signal.BUY:
            return Direction.LONG
        if self is Signal.SELL:
            return Direction.SHORT
        return None


class CloseReason(Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    CLOSED = "closed"


@dataclass(frozen=True)
class Bar:
    """已收盘的 K 线（只追加、不可变）。"""
    symbol: str
    open_ts: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class Quote:
    bid: float
    ask: float


@dataclass(frozen=True)
class SymbolInfo:
    """品种交易规则。

    Attributes
    ----------
    digits:
        价格精度（小数位数）。
    pip_size:
        1 pip 对应的价格增量，例如 EURUSD 为 0.0001。
    pip_value:
        每单位 volume 每 pip 的货币价值。
    volume_step / min_volume:
        交易所允许的最小下单步进与最小下单量。
    """
    symbol: str
    digits: int
    pip_size: float
    pip_value: float
    volume_step: float | None = None
    min_volume: float | None = None


@dataclass(frozen=True)
class IndicatorSnapshot:
    """某根 bar 收盘时的指标快照。

    `values[name]` 按“最新在前”排列：offset 0 为当前 bar，offset 越大越旧。
    """
    ts: datetime | None
    values: Mapping[str, tuple[float, ...]] = field(default_factory=dict)

    def history(self, name: str, offset: int) -> float:
        series = self.values.get(name)
        if series is None:
            raise MissingIndicatorHistory(f"indicator '{name}' not in snapshot")
        if offset < 0 or offset >= len(series):
            raise MissingIndicatorHistory(
                f"indicator '{name}' has {len(series)} points, offset {offset} requested"
            )
        val = series[offset]
        if val is None or math.isnan(val) or math.isinf(val):
            raise MissingIndicatorHistory(f"indicator '{name}' not warmed up at offset {offset}")
        return float(val)

    def latest(self, name: str) -> float:
        return self.history(name, 0)


@dataclass(frozen=True)
class RiskParameters:
    """一次运行内不可变的风控参数。"""
    risk_percent: float = 1.0
    atr_stop_multiplier: float = 2.0
    atr_target_multiplier: float = 2.0
    rsi_lookback: int = 5
    close_on_reversal: bool = True
    trading_enabled: bool = True
    # 同一品种存在任意方向持仓时不再开新仓
    exclusive_position: bool = False


@dataclass
class Position:
    """交易所侧持有的一笔敞口（引擎只读）。"""
    position_id: str
    symbol: str
    direction: Direction
    volume: float
    entry_price: float
    stop_price: float | None = None
    target_price: float | None = None
    open_ts: datetime | None = None
    label: str | None = None


@dataclass(frozen=True)
class OrderRequest:
    """引擎输出的市价单请求。

    止损/止盈既可以是价格（stop_price/target_price），也可以是 pip 距离
    （stop_pips/target_pips），由执行端换算。
    """
    symbol: str
    direction: Direction
    volume: float
    label: str
    stop_price: float | None = None
    target_price: float | None = None
    stop_pips: float | None = None
    target_pips: float | None = None
    reference_price: float | None = None
    client_order_id: str | None = None

    def __post_init__(self):
        if not self.volume > 0:
            raise InvalidRisk(f"order volume must be > 0, got {self.volume}")


@dataclass(frozen=True)
class SignalMarker:
    """交易关闭时替代下单的图表标记。"""
    name: str
    direction: Direction
    ts: datetime | None
    price: float


@dataclass(frozen=True)
class DispatchPlan:
    """单个周期的执行计划：先平仓，再开仓。"""
    closes: tuple[Position, ...] = ()
    opens: tuple[OrderRequest, ...] = ()
    markers: tuple[SignalMarker, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.closes or self.opens or self.markers)


@dataclass(frozen=True)
class PositionClosedEvent:
    position: Position
    close_price: float
    profit_loss: float
    close_reason: CloseReason
    closed_ts: datetime | None = None
