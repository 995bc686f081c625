"""引擎错误分类。

每个周期的所有异常都在 `TradingEngine.on_bar_closed` 统一捕获并归类，
不会冒泡到宿主进程。
"""

from __future__ import annotations


class EngineError(Exception):
    """引擎内可预期错误的基类。"""


class InvalidRisk(EngineError, ValueError):
    """止损距离/风险比例非正，或 volume 无法取到正值：本周期不下单。"""


class MissingIndicatorHistory(EngineError, LookupError):
    """指标历史不足（预热中或缺列）：本周期视为无信号。"""


class DispatchFailure(EngineError):
    """交易所拒绝下单/平仓：保持原状态，下一根 bar 自然重试。"""


class NotificationFailure(EngineError):
    """通知发送失败：只记录日志，永不影响交易逻辑。"""
