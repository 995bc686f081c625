"""执行计划派发：先平仓，后开仓，最后画标记。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from broker.abstract_broker import OrderExecutor
from shared.errors import DispatchFailure
from shared.models.models import DispatchPlan, SignalMarker
from shared.utils.logging import setup_logger

_CLOSE_OK = {"closed"}
_OPEN_OK = {"filled", "duplicate"}


class MarkerSink(Protocol):
    """图表标记输出（例如在 K 线图上画买卖箭头）。"""

    def draw(self, marker: SignalMarker) -> None: ...


class LogMarkerSink:
    """把标记写进日志的默认实现。"""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or setup_logger("dispatcher")
        self.markers: list[SignalMarker] = []

    def draw(self, marker: SignalMarker) -> None:
        self.markers.append(marker)
        self.logger.info(
            "Signal marker %s (%s) at %s price=%s",
            marker.name,
            marker.direction.value,
            marker.ts,
            marker.price,
        )


@dataclass
class DispatchReport:
    closed: list[dict[str, Any]] = field(default_factory=list)
    opened: list[dict[str, Any]] = field(default_factory=list)
    markers: list[SignalMarker] = field(default_factory=list)


def _call(action: str, fn, arg) -> dict[str, Any]:
    try:
        res = fn(arg)
    except Exception as exc:
        raise DispatchFailure(f"{action} rejected: {exc}") from exc
    if not isinstance(res, dict):
        raise DispatchFailure(f"{action} returned unexpected result: {res!r}")
    return res


def dispatch(
    plan: DispatchPlan,
    executor: OrderExecutor,
    marker_sink: MarkerSink | None = None,
    *,
    logger: logging.Logger | None = None,
) -> DispatchReport:
    """按顺序执行计划。

    任意平仓失败时抛 `DispatchFailure`，且不提交任何开仓；
    开仓失败同样抛 `DispatchFailure`（已完成的平仓不回滚）。
    标记输出失败只记日志。
    """
    logger = logger or setup_logger("dispatcher")
    report = DispatchReport()

    for pos in plan.closes:
        res = _call(f"close {pos.position_id}", executor.close, pos)
        if res.get("status") not in _CLOSE_OK:
            raise DispatchFailure(f"close {pos.position_id} rejected: {res}")
        logger.info("Closed %s %s volume=%s: %s", pos.direction.value, pos.symbol, pos.volume, res)
        report.closed.append(res)

    for order in plan.opens:
        res = _call(f"submit {order.direction.value} {order.symbol}", executor.submit, order)
        status = res.get("status")
        if status not in _OPEN_OK:
            raise DispatchFailure(f"submit {order.direction.value} {order.symbol} rejected: {res}")
        if status == "duplicate":
            logger.warning("Duplicate order ignored by venue: %s", order.client_order_id)
        else:
            logger.info("Order result: %s", res)
        report.opened.append(res)

    for marker in plan.markers:
        report.markers.append(marker)
        if marker_sink is None:
            continue
        try:
            marker_sink.draw(marker)
        except Exception as exc:
            logger.warning("Marker sink failed for %s: %s", marker.name, exc)

    return report
