"""平仓通知（邮件/日志）。通知失败永不影响交易。"""

from notify.base import LogNotifier, PositionClosedNotifier, build_notifier, safe_notify
from notify.email import EmailNotifier

__all__ = ["EmailNotifier", "LogNotifier", "PositionClosedNotifier", "build_notifier", "safe_notify"]
