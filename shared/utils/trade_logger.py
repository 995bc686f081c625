"""成交日志持久化（CSV 按日切分）。"""

import csv
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional, TextIO

_HEADER = [
    "ts",
    "symbol",
    "action",
    "direction",
    "volume",
    "price",
    "label",
    "reason",
    "profit_loss",
    "balance_after",
]


@dataclass
class TradeRecord:
    """单笔开仓/平仓记录。"""
    ts: Any
    symbol: str
    action: str  # "open" / "close"
    direction: str
    volume: float
    price: float
    label: str | None
    reason: str | None
    profit_loss: float | None
    balance_after: float


class TradeLogger:
    """按日切 CSV 记录成交。

    文件日期取记录自身的 ts（回放时与 bar 时间一致），ts 不是 datetime 时取当前 UTC 日期。

    Parameters
    ----------
    base_dir:
        输出目录。
    digits:
        价格写出精度。
    """

    def __init__(self, base_dir: str | Path = "data/trades", digits: int = 5):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.digits = int(digits)
        self.current_date: date | None = None
        self.file: Optional[TextIO] = None
        self.writer: Any = None

    def _ensure_file(self, day: date):
        if self.current_date == day and self.file:
            return

        if self.file:
            self.file.close()

        self.current_date = day
        file_path = self.base_dir / f"trades_{day}.csv"
        new_file = not file_path.exists()
        self.file = file_path.open("a", newline="", encoding="utf-8")
        self.writer = csv.writer(self.file)
        if new_file:
            self.writer.writerow(_HEADER)

    def log(self, record: TradeRecord):
        """写入一条成交记录。"""
        ts = record.ts
        if isinstance(ts, datetime):
            day = ts.date()
            ts_val = ts.strftime("%Y-%m-%d %H:%M:%S")
        else:
            day = datetime.now(timezone.utc).date()
            ts_val = str(ts)
        self._ensure_file(day)

        if self.writer is None or self.file is None:
            raise RuntimeError("TradeLogger not initialized")

        self.writer.writerow(
            [
                ts_val,
                record.symbol,
                record.action,
                record.direction,
                f"{record.volume:.4f}",
                f"{record.price:.{self.digits}f}",
                record.label or "",
                record.reason or "",
                f"{record.profit_loss:.2f}" if record.profit_loss is not None else "",
                f"{record.balance_after:.2f}",
            ]
        )
        self.file.flush()

    def close(self):
        """关闭当前文件句柄。"""
        if self.file:
            self.file.close()
            self.file = None
            self.writer = None
