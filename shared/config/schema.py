"""配置架构定义（Pydantic Schema）。

目标：
- 让配置成为“强类型 + 不可变”的边界协议，一次运行内不允许热更新；
- 启动阶段尽早失败，避免 typo/类型错误在实盘或长回放中“隐蔽爆炸”；
- 业务代码只读模型属性，不做 `cfg.get(...)` 与深层字典索引。
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared.models.models import RiskParameters, SymbolInfo


class InstrumentConfig(BaseModel):
    """品种交易规则（纸面 venue 使用；实盘由交易所提供）。"""
    digits: int = Field(default=5, ge=0)
    pip_size: float = Field(default=0.0001, gt=0)
    pip_value: float = Field(default=1.0, gt=0)
    volume_step: Optional[float] = Field(default=None, gt=0)
    min_volume: Optional[float] = Field(default=None, gt=0)
    spread_pips: float = Field(default=0.0, ge=0)
    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_symbol_info(self, symbol: str) -> SymbolInfo:
        return SymbolInfo(
            symbol=symbol,
            digits=self.digits,
            pip_size=self.pip_size,
            pip_value=self.pip_value,
            volume_step=self.volume_step,
            min_volume=self.min_volume,
        )


class RiskConfig(BaseModel):
    """风控配置。"""
    risk_percent: float = Field(default=1.0, gt=0)
    atr_stop_multiplier: float = Field(default=2.0, gt=0)
    atr_target_multiplier: float = Field(default=2.0, gt=0)
    rsi_lookback: int = Field(default=5, ge=0)
    close_on_reversal: bool = True
    trading_enabled: bool = True
    exclusive_position: bool = False
    sizing: Literal["stop_first", "volume_first"] = "stop_first"
    label: Optional[str] = None
    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_params(self) -> RiskParameters:
        return RiskParameters(
            risk_percent=self.risk_percent,
            atr_stop_multiplier=self.atr_stop_multiplier,
            atr_target_multiplier=self.atr_target_multiplier,
            rsi_lookback=self.rsi_lookback,
            close_on_reversal=self.close_on_reversal,
            trading_enabled=self.trading_enabled,
            exclusive_position=self.exclusive_position,
        )


class StrategyConfig(BaseModel):
    """策略配置（type + params）。

    说明：
    - 策略参数不允许“散落在顶层”：必须进入 `params`；
    - `strategy:` 下的扁平字段会被自动挪到 `params`，从而实现：
      - 用户写起来方便
      - schema 又能做到严格（forbid extra keys）
    """
    type: str = "ma_rsi_cross"
    params: Dict[str, Any] = Field(default_factory=dict)
    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _pack_flat_params(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "params" in data and isinstance(data.get("params"), dict) and set(data.keys()) <= {"type", "params"}:
            return data
        strat_type = data.get("type", "ma_rsi_cross")
        params = {k: v for k, v in data.items() if k not in {"type", "params"}}
        existing = data.get("params")
        if isinstance(existing, dict):
            params = {**params, **existing}
        return {"type": strat_type, "params": params}


class NotifyConfig(BaseModel):
    """平仓邮件通知配置。"""
    enabled: bool = False
    smtp_host: str = "smtp.example.com"
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    email_from: Optional[str] = None
    email_to: List[str] = Field(default_factory=list)
    use_tls: bool = True
    timeout: float = 10.0
    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _split_recipients(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("email_to"), str):
            data = dict(data)
            data["email_to"] = [s.strip() for s in data["email_to"].split(",") if s.strip()]
        return data


class ReplayConfig(BaseModel):
    """CSV 回放配置。"""
    data_path: str = "dataset/bars.csv"
    max_bars: Optional[int] = Field(default=None, gt=0)
    history_bars: int = Field(default=500, gt=0)
    trade_log_dir: Optional[str] = None
    model_config = ConfigDict(extra="forbid", frozen=True)


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _upper_level(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("level"), str):
            data = {**data, "level": data["level"].upper()}
        return data


class MainConfig(BaseModel):
    """应用总配置。"""
    symbol: str
    mode: Literal["paper", "dry-run"] = "paper"
    equity_base: float = Field(default=10000.0, gt=0)

    # 子模块配置
    instrument: InstrumentConfig = Field(default_factory=InstrumentConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)
    replay: ReplayConfig = Field(default_factory=ReplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_mode(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("mode"), str):
            data = {**data, "mode": data["mode"].replace("_", "-").lower()}
        return data
