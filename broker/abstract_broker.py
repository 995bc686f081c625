"""Broker 抽象接口与运行模式定义。"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from shared.models.models import OrderRequest, Position, PositionClosedEvent, Quote, SymbolInfo

PositionClosedListener = Callable[[PositionClosedEvent], None]


class BrokerMode(Enum):
    """Broker 运行模式枚举。"""

    DRY_RUN = "dry-run"
    PAPER = "paper"


class Venue(ABC):
    """账户/行情只读视图。

    决策引擎在每个周期开始时读取一次，并把结果当作冻结快照使用。
    """

    @abstractmethod
    def balance(self) -> float:
        """账户余额。"""

    @abstractmethod
    def quote(self, symbol: str) -> Quote:
        """当前买卖报价。"""

    @abstractmethod
    def symbol_info(self, symbol: str) -> SymbolInfo:
        """品种精度、pip 大小/价值与 volume 步进。"""

    @abstractmethod
    def open_positions(self, symbol: str) -> tuple[Position, ...]:
        """某个品种当前所有未平仓持仓（副本，调用方修改不影响 venue）。"""


class OrderExecutor(ABC):
    """下单/平仓执行接口。

    返回值至少包含 `status` 字段；`status != "filled"/"closed"` 视为被拒绝。
    实现也可以直接抛异常表示拒绝。
    """

    @abstractmethod
    def submit(self, order: OrderRequest) -> dict:
        """提交市价单。"""

    @abstractmethod
    def close(self, position: Position) -> dict:
        """平掉一笔持仓。"""


class Broker(Venue, OrderExecutor):
    """交易执行抽象层：venue 视图 + 执行 + 平仓事件订阅。

    Attributes
    ----------
    realized_pnl_all:
        累计已实现盈亏。
    """

    realized_pnl_all: float

    @abstractmethod
    def on_position_closed(self, listener: PositionClosedListener) -> None:
        """订阅平仓事件（止损、止盈、主动平仓）。"""
