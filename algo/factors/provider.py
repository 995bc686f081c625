"""指标快照提供者。

每根 bar 收盘时把 bar 追加到滚动 DataFrame，重算因子列，
再按“最新在前”切出只读的 `IndicatorSnapshot` 交给决策引擎。
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Protocol, Sequence

import pandas as pd

from algo.factors.base import Factor
from algo.factors.registry import apply_factors
from shared.errors import MissingIndicatorHistory
from shared.models.models import Bar, IndicatorSnapshot


class IndicatorProvider(Protocol):
    """快照提供者协议（offset 0 为当前 bar，越大越旧）。"""

    def on_bar(self, bar: Bar) -> None: ...

    def latest(self, name: str) -> float: ...

    def history(self, name: str, offset: int) -> float: ...

    def snapshot(self, names: Iterable[str], depth: int) -> IndicatorSnapshot: ...


class FrameIndicatorProvider:
    """基于 pandas 因子的快照提供者。

    Parameters
    ----------
    factors:
        需要计算的因子列表。
    max_bars:
        保留的最大 bar 数；EMA 等递归指标在截断后会有轻微差异，需要足够长的窗口。
    """

    def __init__(self, factors: Sequence[Factor], *, max_bars: int = 500):
        if max_bars <= 0:
            raise ValueError("max_bars must be > 0")
        self.factors = list(factors)
        self.max_bars = int(max_bars)
        self._rows: Deque[dict] = deque(maxlen=self.max_bars)
        self._frame: pd.DataFrame | None = None
        self.bar_count = 0

    def on_bar(self, bar: Bar) -> None:
        self._rows.append(
            {
                "ts": bar.open_ts,
                "symbol": bar.symbol,
                "open": float(bar.open),
                "high": float(bar.high),
                "low": float(bar.low),
                "close": float(bar.close),
                "volume": float(bar.volume),
            }
        )
        self.bar_count += 1
        df = pd.DataFrame(list(self._rows))
        self._frame = apply_factors(df, self.factors)

    def snapshot(self, names: Iterable[str], depth: int) -> IndicatorSnapshot:
        if self._frame is None or self._frame.empty:
            raise MissingIndicatorHistory("no bars received yet")
        if depth <= 0:
            raise ValueError("snapshot depth must be > 0")

        frame = self._frame
        values: dict[str, tuple[float, ...]] = {}
        for name in names:
            if name not in frame.columns:
                raise MissingIndicatorHistory(f"indicator '{name}' is not computed by any factor")
            recent = frame[name].iloc[-depth:].astype(float).to_list()
            values[name] = tuple(reversed(recent))
        ts = frame["ts"].iloc[-1]
        return IndicatorSnapshot(ts=ts.to_pydatetime() if hasattr(ts, "to_pydatetime") else ts, values=values)

    def history(self, name: str, offset: int) -> float:
        return self.snapshot([name], offset + 1).history(name, offset)

    def latest(self, name: str) -> float:
        return self.history(name, 0)
