"""随机指标（Stochastic Oscillator）因子。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd


@dataclass(frozen=True)
class StochasticFactor:
    """慢速随机指标：%K 经 `slowing` 平滑，%D 为 %K 的 SMA。"""

    k_period: int = 8
    d_period: int = 3
    slowing: int = 3
    high_col: str = "high"
    low_col: str = "low"
    close_col: str = "close"
    k_col: str | None = None
    d_col: str | None = None
    name: str = "stochastic"
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.k_period <= 0 or self.d_period <= 0 or self.slowing <= 0:
            raise ValueError("Stochastic periods must be > 0")
        object.__setattr__(
            self,
            "params",
            {
                "k_period": self.k_period,
                "d_period": self.d_period,
                "slowing": self.slowing,
                "k_col": self.k_col,
                "d_col": self.d_col,
            },
        )

    @property
    def out_cols(self) -> tuple[str, ...]:
        return (
            self.k_col or f"stoch_k_{self.k_period}",
            self.d_col or f"stoch_d_{self.k_period}",
        )

    def compute(self, df: pd.DataFrame) -> pd.DataFrame:
        for col in (self.high_col, self.low_col, self.close_col):
            if col not in df.columns:
                raise ValueError(f"StochasticFactor requires column: {col}")
        k_out, d_out = self.out_cols

        lowest = df[self.low_col].rolling(self.k_period, min_periods=self.k_period).min()
        highest = df[self.high_col].rolling(self.k_period, min_periods=self.k_period).max()
        num = (df[self.close_col] - lowest).rolling(self.slowing, min_periods=self.slowing).sum()
        den = (highest - lowest).rolling(self.slowing, min_periods=self.slowing).sum()

        k = 100.0 * num / den
        # 区间无波动时记为中值
        k = k.mask(den == 0, 50.0)
        df[k_out] = k
        df[d_out] = k.rolling(self.d_period, min_periods=self.d_period).mean()
        return df
