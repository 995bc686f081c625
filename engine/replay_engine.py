"""CSV 回放引擎（ReplayEngine）。

配置 → 纸面 broker → bar 流 → 每根 bar：先撮合止损止盈，再跑一个决策周期 → 总结。
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from broker.abstract_broker import BrokerMode
from broker.paper_broker import DryRunBroker, PaperBroker
from engine.base_engine import BaseEngine, EngineResult
from engine.dispatcher import LogMarkerSink
from engine.trading_engine import CycleError, TradingEngine
from market_data.loader import iter_bars, load_bars_from_csv
from shared.config.config_loader import load_config
from shared.config.schema import MainConfig
from shared.models.models import Bar
from shared.utils.logging import set_level, setup_logger
from shared.utils.trade_logger import TradeLogger

LOGGER_NAMES = ("engine", "dispatcher", "paper-broker", "notify", "replay")


def build_broker(cfg: MainConfig, *, trade_logger: TradeLogger | None = None) -> PaperBroker:
    info = cfg.instrument.to_symbol_info(cfg.symbol)
    kwargs = dict(
        symbols=[info],
        initial_balance=cfg.equity_base,
        spread_pips=cfg.instrument.spread_pips,
        trade_logger=trade_logger,
    )
    if cfg.mode == BrokerMode.DRY_RUN.value:
        return DryRunBroker(**kwargs)
    return PaperBroker(mode=BrokerMode.PAPER, **kwargs)


class ReplayEngine(BaseEngine):
    """按 bar 顺序回放历史数据。

    Parameters
    ----------
    cfg_path:
        配置文件路径（cfg_obj 为空时使用）。
    cfg_obj:
        已解析的配置。
    bars:
        直接注入的 bar 序列；为空时从 `replay.data_path` 读取。
    """

    def __init__(
        self,
        *,
        cfg_path: str = "config/config.yml",
        cfg_obj: MainConfig | None = None,
        bars: Iterable[Bar] | None = None,
        max_bars: int | None = None,
    ):
        self._cfg_path = cfg_path
        self._cfg_obj = cfg_obj
        self._bars = bars
        self._max_bars = max_bars

        self.broker: PaperBroker | None = None
        self.engine: TradingEngine | None = None

    def _load_cfg(self) -> MainConfig:
        return self._cfg_obj or load_config(self._cfg_path)

    def run(self) -> EngineResult:
        cfg = self._load_cfg()
        set_level(cfg.logging.level, LOGGER_NAMES)
        logger = setup_logger("replay")

        trade_logger = TradeLogger(cfg.replay.trade_log_dir, digits=cfg.instrument.digits) if cfg.replay.trade_log_dir else None
        broker = build_broker(cfg, trade_logger=trade_logger)
        marker_sink = LogMarkerSink()
        engine = TradingEngine.from_config(cfg, broker=broker, marker_sink=marker_sink)
        self.broker = broker
        self.engine = engine

        bars = self._bars if self._bars is not None else load_bars_from_csv(cfg.replay.data_path, symbol=cfg.symbol)
        max_bars = self._max_bars or cfg.replay.max_bars

        errors: Counter[str] = Counter()
        signals: Counter[str] = Counter()
        n_bars = 0
        try:
            for bar in iter_bars(bars, max_bars):
                n_bars += 1
                broker.on_bar(bar)
                res = engine.on_bar_closed(bar)
                if isinstance(res, CycleError):
                    errors[res.kind.value] += 1
                else:
                    signals[res.signal.value] += 1
        finally:
            if trade_logger:
                trade_logger.close()

        summary = self._build_summary(broker, n_bars=n_bars, signals=signals, errors=errors)
        logger.info("Replay finished: %s", summary)
        return EngineResult(
            summary=summary,
            artifacts={"closed_events": list(broker.closed_events), "markers": list(marker_sink.markers)},
        )

    @staticmethod
    def _build_summary(
        broker: PaperBroker,
        *,
        n_bars: int,
        signals: Counter,
        errors: Counter,
    ) -> dict[str, Any]:
        closed = broker.closed_events
        return {
            "bars": n_bars,
            "signals": dict(signals),
            "errors": dict(errors),
            "orders": len(broker.fills),
            "closed_trades": len(closed),
            "wins": sum(1 for e in closed if e.profit_loss > 0),
            "realized_pnl": broker.realized_pnl_all,
            "balance": broker.balance(),
            "open_positions": len(broker.positions),
        }
