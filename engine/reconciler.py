"""持仓对账：信号 + 当前持仓 -> 本周期执行计划。

规则（按顺序）：
1. 无信号 -> 空计划；
2. close_on_reversal 时，所有反向持仓进入 closes（先于任何开仓）；
3. 同向已有持仓 -> 不再开仓；
4. exclusive_position 时，只要还有剩余持仓 -> 不再开仓；
5. trading_enabled -> 一笔开仓单；否则只给出一个图表标记。

反向平仓在 trading_enabled=False 时同样执行。

引擎分两步使用：先 `reversal_closes` 得到平仓列表并派发，平仓确认后
再对剩余持仓调用 `reconcile`，此时 `build_order` 读取的是平仓后的余额。
"""

from __future__ import annotations

from typing import Callable, Sequence

from shared.models.models import (
    Direction,
    DispatchPlan,
    OrderRequest,
    Position,
    RiskParameters,
    Signal,
    SignalMarker,
)

OrderBuilder = Callable[[Direction], OrderRequest]
MarkerBuilder = Callable[[Direction], SignalMarker]


def reversal_closes(
    signal: Signal,
    open_positions: Sequence[Position],
    params: RiskParameters,
    *,
    symbol: str,
) -> tuple[Position, ...]:
    """本周期需要平掉的反向持仓（不调用任何 builder）。"""
    direction = signal.direction
    if direction is None or not params.close_on_reversal:
        return ()
    return tuple(p for p in open_positions if p.symbol == symbol and p.direction is direction.opposite)


def reconcile(
    signal: Signal,
    open_positions: Sequence[Position],
    params: RiskParameters,
    *,
    symbol: str,
    build_order: OrderBuilder,
    build_marker: MarkerBuilder,
) -> DispatchPlan:
    direction = signal.direction
    if direction is None:
        return DispatchPlan()

    mine = [p for p in open_positions if p.symbol == symbol]
    closes = reversal_closes(signal, mine, params, symbol=symbol)

    closing_ids = {p.position_id for p in closes}
    remaining = [p for p in mine if p.position_id not in closing_ids]

    if any(p.direction is direction for p in remaining):
        return DispatchPlan(closes=closes)
    if params.exclusive_position and remaining:
        return DispatchPlan(closes=closes)

    # build_order 只在确实需要开仓时调用，其异常（如 InvalidRisk）原样抛出
    if params.trading_enabled:
        return DispatchPlan(closes=closes, opens=(build_order(direction),))
    return DispatchPlan(closes=closes, markers=(build_marker(direction),))
