"""历史 bar 加载。

CSV 至少包含 ts（或 open_ts/start_ts）、open、high、low、close 列；
symbol 列缺省时使用调用方传入的品种，volume 列可选。
"""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Iterator

from shared.models.models import Bar

_TS_COLS = ("ts", "open_ts", "start_ts", "time")


def _parse_dt(val: str) -> datetime:
    try:
        if val.isdigit():
            ts_int = int(val)
            if ts_int > 1e12:
                return datetime.fromtimestamp(ts_int / 1000, tz=timezone.utc)
            return datetime.fromtimestamp(ts_int, tz=timezone.utc)
        dt = datetime.fromisoformat(val.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except Exception as exc:
        raise ValueError(f"Invalid datetime value: {val}") from exc


def _row_ts(row: dict[str, str]) -> datetime:
    for col in _TS_COLS:
        val = row.get(col)
        if val:
            return _parse_dt(val.strip())
    raise ValueError(f"CSV row has no timestamp column (expected one of {_TS_COLS}): {row}")


def load_bars_from_csv(
    path: str | Path,
    symbol: str | None = None,
    tz: timezone = timezone.utc,
    parser: Callable[[dict[str, str]], Bar] | None = None,
) -> Iterator[Bar]:
    """从 CSV 读取已收盘 bar 流。

    Parameters
    ----------
    path:
        CSV 路径。
    symbol:
        只保留该品种；CSV 无 symbol 列时作为 bar 的品种。
    parser:
        自定义行解析函数。
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Bar file not found: {csv_path}")
    with csv_path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            if parser:
                yield parser(row)
                continue
            row_symbol = (row.get("symbol") or symbol or "").strip()
            if not row_symbol:
                raise ValueError("CSV has no symbol column and no symbol was given")
            if symbol and row_symbol != symbol:
                continue
            yield Bar(
                symbol=row_symbol,
                open_ts=_row_ts(row).astimezone(tz),
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                volume=float(row.get("volume", 0) or 0),
            )


def iter_bars(source: Iterable[Bar], max_bars: int | None = None) -> Iterator[Bar]:
    """按时间顺序产出 bar；`max_bars` 限制数量。"""
    for i, bar in enumerate(source):
        if max_bars is not None and i >= max_bars:
            return
        yield bar
