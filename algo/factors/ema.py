"""EMA 因子。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd

# 常见周期写法 -> pandas offset alias
_TIMEFRAME_ALIASES = {
    "minute": "1min",
    "m1": "1min",
    "m5": "5min",
    "m15": "15min",
    "m30": "30min",
    "hour": "1h",
    "h1": "1h",
    "h4": "4h",
    "daily": "1D",
    "day": "1D",
    "d1": "1D",
}


def resolve_timeframe(timeframe: str) -> str:
    tf = str(timeframe).strip()
    return _TIMEFRAME_ALIASES.get(tf.lower(), tf)


@dataclass(frozen=True)
class EMAFactor:
    """指数移动平均（EMA）。

    `timeframe` 非空时在更高周期上计算：已完成的高周期 bar 用收盘价做 EMA，
    当前未完成的高周期 bar 用本行收盘价作为“最新值”，不会看到未来数据。
    """

    period: int = 14
    price_col: str = "close"
    ts_col: str = "ts"
    timeframe: str | None = None
    out_col: str | None = None
    name: str = "ema"
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.period <= 0:
            raise ValueError("EMA period must be > 0")
        object.__setattr__(
            self,
            "params",
            {
                "period": self.period,
                "price_col": self.price_col,
                "timeframe": self.timeframe,
                "out_col": self.out_col,
            },
        )

    @property
    def out_cols(self) -> tuple[str, ...]:
        return (self.out_col or f"ema_{self.period}",)

    def compute(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.price_col not in df.columns:
            raise ValueError(f"EMAFactor requires column: {self.price_col}")
        out = self.out_cols[0]
        price = df[self.price_col].astype(float)

        if not self.timeframe:
            df[out] = price.ewm(span=self.period, adjust=False, min_periods=self.period).mean()
            return df

        if self.ts_col not in df.columns:
            raise ValueError(f"EMAFactor with timeframe requires column: {self.ts_col}")
        ts = pd.to_datetime(df[self.ts_col], utc=True)
        bucket = ts.dt.floor(resolve_timeframe(self.timeframe))

        bucket_close = price.groupby(bucket).last()
        completed = bucket_close.ewm(span=self.period, adjust=False, min_periods=self.period).mean()
        prev_ema = bucket.map(completed.shift(1))

        alpha = 2.0 / (self.period + 1)
        df[out] = alpha * price + (1.0 - alpha) * prev_ema.astype(float)
        return df
