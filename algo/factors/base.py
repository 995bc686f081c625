"""因子（Factors/Features）抽象协议。

因子层是“纯计算”：输入 bar 序列（pandas DataFrame），输出添加列后的 DataFrame。
指标数学本身对决策引擎是可插拔的外部协作者。
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

import pandas as pd


class Factor(Protocol):
    """因子协议：`compute(df) -> df`。"""

    name: str
    params: Mapping[str, Any]

    @property
    def out_cols(self) -> tuple[str, ...]:
        """该因子写出的列名。"""
        ...

    def compute(self, df: pd.DataFrame) -> pd.DataFrame:
        """对输入 df 添加/更新因子列并返回 df。"""
        ...
