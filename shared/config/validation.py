"""配置 Schema 预校验。

目标：
- 在启动阶段尽早失败，并对拼写错误给出 “did you mean” 提示；
- 对核心配置块（顶层/instrument/risk/notify/replay）做 key 校验；
  对策略参数等“开放字段”保持兼容（由策略模块自行解释）。

类型与取值范围的严格校验交给 `shared.config.schema`（pydantic）。
"""

from __future__ import annotations

import difflib
from typing import Any, Iterable

from shared.config.schema import (
    InstrumentConfig,
    LoggingConfig,
    MainConfig,
    NotifyConfig,
    ReplayConfig,
    RiskConfig,
)


def _suggest_key(key: str, allowed: Iterable[str]) -> str | None:
    matches = difflib.get_close_matches(key, list(allowed), n=1, cutoff=0.75)
    return matches[0] if matches else None


def _ensure_allowed_keys(block: dict[str, Any], *, allowed: set[str], ctx: str) -> None:
    unknown = [k for k in block.keys() if k not in allowed]
    if not unknown:
        return
    parts = []
    for k in sorted(unknown):
        suggestion = _suggest_key(k, allowed)
        if suggestion:
            parts.append(f"{k} (did you mean '{suggestion}'?)")
        else:
            parts.append(k)
    raise ValueError(f"{ctx} contains unknown keys: {', '.join(parts)}")


def _require(block: dict[str, Any], key: str, *, ctx: str) -> Any:
    if key not in block:
        raise ValueError(f"Missing required config key: {ctx}.{key}")
    return block[key]


def _expect_dict(val: Any, *, ctx: str) -> dict[str, Any]:
    if not isinstance(val, dict):
        raise ValueError(f"{ctx} must be a dict")
    return val


def _expect_str(val: Any, *, ctx: str) -> str:
    if not isinstance(val, str) or not val.strip():
        raise ValueError(f"{ctx} must be a non-empty string")
    return val


_BLOCKS: dict[str, type] = {
    "instrument": InstrumentConfig,
    "risk": RiskConfig,
    "notify": NotifyConfig,
    "replay": ReplayConfig,
    "logging": LoggingConfig,
}


def validate_raw_config(cfg: dict[str, Any]) -> None:
    """校验 raw config dict（来自 YAML + env 展开后）。"""
    if not isinstance(cfg, dict):
        raise ValueError("Config root must be a dict")

    _ensure_allowed_keys(cfg, allowed=set(MainConfig.model_fields), ctx="config")
    _expect_str(_require(cfg, "symbol", ctx="config"), ctx="config.symbol")

    for name, model in _BLOCKS.items():
        block = cfg.get(name)
        if block is None:
            continue
        block = _expect_dict(block, ctx=f"config.{name}")
        _ensure_allowed_keys(block, allowed=set(model.model_fields), ctx=f"config.{name}")

    strategy = cfg.get("strategy")
    if strategy is not None:
        strategy = _expect_dict(strategy, ctx="config.strategy")
        # 只强约束 type；其余参数留给策略层解释
        if "type" in strategy:
            _expect_str(strategy["type"], ctx="config.strategy.type")
