"""因子注册表：字符串 -> 因子实现，以及按顺序把因子应用到 bar 表。"""

from __future__ import annotations

import inspect
from typing import Any, Iterable, Mapping

import pandas as pd

from algo.factors.atr import ATRFactor
from algo.factors.base import Factor
from algo.factors.ema import EMAFactor
from algo.factors.ma import MAFactor
from algo.factors.rsi import RSIFactor
from algo.factors.stochastic import StochasticFactor

_REGISTRY: dict[str, type] = {}


def register_factor(name: str, cls: type) -> None:
    _REGISTRY[name] = cls


def get_factor_cls(name: str) -> type:
    if name not in _REGISTRY:
        raise ValueError(f"Unknown factor: {name} (known: {', '.join(sorted(_REGISTRY))})")
    return _REGISTRY[name]


def build_factor(name: str, params: Mapping[str, Any] | None = None) -> Factor:
    """按注册名构建单个因子；未知参数直接报错。"""
    cls = get_factor_cls(name)
    params = dict(params or {})
    allowed = set(inspect.signature(cls).parameters) - {"name", "params"}
    unknown = sorted(set(params) - allowed)
    if unknown:
        raise ValueError(f"Invalid params for factor '{name}': {', '.join(unknown)}")
    return cls(**params)


def build_factors(items: Iterable[Mapping[str, Any]]) -> list[Factor]:
    """从 `[{"type": "ma", "window": 5, ...}, ...]` 形式的配置构建因子列表。"""
    factors: list[Factor] = []
    for item in items:
        name = str(item.get("type") or "")
        if not name:
            raise ValueError("factor item missing type")
        factors.append(build_factor(name, {k: v for k, v in item.items() if k != "type"}))
    return factors


def apply_factors(df: pd.DataFrame, factors: Iterable[Factor]) -> pd.DataFrame:
    """依次计算因子；输出列已存在的因子（例如两个策略共用 ATR）只算一次。"""
    seen: set[str] = set()
    for f in factors:
        cols = tuple(f.out_cols)
        if cols and set(cols) <= seen:
            continue
        df = f.compute(df)
        seen.update(cols)
    return df


# 默认注册
register_factor("ma", MAFactor)
register_factor("ema", EMAFactor)
register_factor("rsi", RSIFactor)
register_factor("atr", ATRFactor)
register_factor("stochastic", StochasticFactor)
