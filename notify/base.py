from __future__ import annotations

import logging
from typing import Callable, Protocol

from shared.config.schema import NotifyConfig
from shared.errors import NotificationFailure
from shared.models.models import PositionClosedEvent
from shared.utils.logging import setup_logger


class PositionClosedNotifier(Protocol):
    def notify_position_closed(self, event: PositionClosedEvent) -> None: ...


def format_subject(event: PositionClosedEvent) -> str:
    return f"Position Closed: {event.position.direction.value.capitalize()}"


def format_body(event: PositionClosedEvent) -> str:
    pos = event.position
    lines = [
        f"Position {pos.direction.value.capitalize()} closed.",
        f"Symbol: {pos.symbol}",
        f"Volume: {pos.volume}",
        f"Profit/Loss: {event.profit_loss:.2f}",
        f"Closed by: {event.close_reason.value}",
    ]
    if pos.label:
        lines.append(f"Label: {pos.label}")
    return "\n".join(lines)


class LogNotifier:
    """只写日志的通知器（notify.enabled = false 时使用）。"""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or setup_logger("notify")

    def notify_position_closed(self, event: PositionClosedEvent) -> None:
        self.logger.info("%s | %s", format_subject(event), format_body(event).replace("\n", ", "))


def safe_notify(
    notifier: PositionClosedNotifier,
    logger: logging.Logger | None = None,
) -> Callable[[PositionClosedEvent], None]:
    """包装通知器：任何异常都转成 NotificationFailure 记日志后丢弃。"""
    logger = logger or setup_logger("notify")

    def _listener(event: PositionClosedEvent) -> None:
        try:
            try:
                notifier.notify_position_closed(event)
            except NotificationFailure:
                raise
            except Exception as exc:
                raise NotificationFailure(str(exc)) from exc
        except NotificationFailure as exc:
            logger.warning("Position-closed notification failed (%s): %s", event.position.position_id, exc)

    return _listener


def build_notifier(cfg: NotifyConfig | None) -> PositionClosedNotifier:
    if cfg is None or not cfg.enabled:
        return LogNotifier()
    from notify.email import EmailNotifier

    return EmailNotifier.from_config(cfg)
