"""bar 收盘驱动的交易决策引擎（TradingEngine）。

每根已收盘 bar 执行一个周期：
指标快照 -> 信号 -> 读取持仓（冻结）-> 反向平仓并确认 -> 对账剩余持仓（定量 + 止损止盈）-> 开仓。

周期内所有异常在 `on_bar_closed` 统一捕获并归类为 `CycleError`，不向宿主抛出，
也不在周期内重试。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from algo.factors.provider import FrameIndicatorProvider, IndicatorProvider
from algo.risk.stops import price_to_pips, stop_pips_for, stops_for, target_pips_for
from algo.sizing.base import Sizer, build_sizer
from algo.strategy.base import SignalEvaluator
from algo.strategy.registry import build_strategy
from broker.abstract_broker import Broker
from engine.dispatcher import DispatchReport, MarkerSink, dispatch
from engine.reconciler import reconcile, reversal_closes
from notify.base import PositionClosedNotifier, build_notifier, safe_notify
from shared.config.schema import MainConfig
from shared.errors import DispatchFailure, InvalidRisk, MissingIndicatorHistory
from shared.models.models import (
    Bar,
    Direction,
    DispatchPlan,
    IndicatorSnapshot,
    OrderRequest,
    RiskParameters,
    Signal,
    SignalMarker,
)
from shared.utils.client_order_id import make_client_order_id
from shared.utils.logging import setup_logger


class ErrorKind(Enum):
    INVALID_RISK = "invalid_risk"
    MISSING_INDICATOR_HISTORY = "missing_indicator_history"
    DISPATCH_FAILURE = "dispatch_failure"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class CycleOk:
    signal: Signal
    plan: DispatchPlan
    report: DispatchReport = field(default_factory=DispatchReport)

    ok = True


@dataclass(frozen=True)
class CycleError:
    kind: ErrorKind
    message: str
    bar: Bar
    exc: BaseException | None = None

    ok = False


CycleResult = Union[CycleOk, CycleError]


def classify_error(exc: BaseException) -> ErrorKind:
    if isinstance(exc, InvalidRisk):
        return ErrorKind.INVALID_RISK
    if isinstance(exc, MissingIndicatorHistory):
        return ErrorKind.MISSING_INDICATOR_HISTORY
    if isinstance(exc, DispatchFailure):
        return ErrorKind.DISPATCH_FAILURE
    return ErrorKind.UNEXPECTED


class TradingEngine:
    """单品种、单线程的 bar 收盘引擎。

    Parameters
    ----------
    symbol:
        交易品种。
    strategy:
        信号评估器；其 `required_factors()` 决定快照内容。
    params:
        本次运行不可变的风控参数。
    broker:
        venue 视图 + 执行器。
    provider:
        指标快照提供者；缺省时按策略所需因子构建 `FrameIndicatorProvider`。
    sizer:
        定量协议，缺省 stop_first。
    label:
        订单标签；None 时使用策略标签，再缺省为 "Buy"/"Sell"。
    """

    def __init__(
        self,
        *,
        symbol: str,
        strategy: SignalEvaluator,
        params: RiskParameters,
        broker: Broker,
        provider: IndicatorProvider | None = None,
        sizer: Sizer | None = None,
        notifier: PositionClosedNotifier | None = None,
        marker_sink: MarkerSink | None = None,
        label: str | None = None,
        history_bars: int = 500,
        logger: logging.Logger | None = None,
    ):
        self.symbol = symbol
        self.strategy = strategy
        self.params = params
        self.broker = broker
        self.provider = provider or FrameIndicatorProvider(strategy.required_factors(), max_bars=history_bars)
        self.sizer = sizer or build_sizer("stop_first")
        self.marker_sink = marker_sink
        self.label = label
        self.logger = logger or setup_logger("engine")
        self.cycles = 0

        if notifier is not None:
            broker.on_position_closed(safe_notify(notifier))

    @classmethod
    def from_config(
        cls,
        cfg: MainConfig,
        *,
        broker: Broker,
        notifier: PositionClosedNotifier | None = None,
        marker_sink: MarkerSink | None = None,
    ) -> "TradingEngine":
        strat = build_strategy(cfg.strategy)
        return cls(
            symbol=cfg.symbol,
            strategy=strat,
            params=cfg.risk.to_params(),
            broker=broker,
            sizer=build_sizer(cfg.risk.sizing),
            notifier=notifier if notifier is not None else build_notifier(cfg.notify),
            marker_sink=marker_sink,
            label=cfg.risk.label,
            history_bars=cfg.replay.history_bars,
        )

    # ---- 周期 ----

    def on_bar_closed(self, bar: Bar) -> CycleResult:
        """处理一根已收盘 bar，返回 CycleOk 或 CycleError（不抛异常）。"""
        self.cycles += 1
        try:
            result = self._run_cycle(bar)
        except Exception as exc:
            kind = classify_error(exc)
            if kind is ErrorKind.MISSING_INDICATOR_HISTORY:
                self.logger.debug("Skip %s bar %s: %s", bar.symbol, bar.open_ts, exc)
            elif kind is ErrorKind.UNEXPECTED:
                self.logger.exception("Unexpected error on %s bar %s: %s", bar.symbol, bar.open_ts, exc)
            else:
                self.logger.warning("%s on %s bar %s: %s", kind.value, bar.symbol, bar.open_ts, exc)
            return CycleError(kind=kind, message=str(exc), bar=bar, exc=exc)
        finally:
            self._log_balance(bar)
        return result

    def _run_cycle(self, bar: Bar) -> CycleOk:
        self.provider.on_bar(bar)
        snapshot = self.provider.snapshot(
            self.strategy.required_features(),
            self.strategy.required_depth(self.params),
        )
        signal = self.strategy.evaluate(snapshot, self.params)
        self.logger.debug("Signal %s on %s bar %s", signal.value, bar.symbol, bar.open_ts)
        if signal is Signal.NONE:
            return CycleOk(signal=signal, plan=DispatchPlan())

        positions = tuple(self.broker.open_positions(self.symbol))

        # 第一步：反向平仓，全部确认后才计算开仓
        closes = reversal_closes(signal, positions, self.params, symbol=self.symbol)
        closed = DispatchReport()
        if closes:
            closed = dispatch(DispatchPlan(closes=closes), self.broker, logger=self.logger)

        # 第二步：对剩余持仓对账；build_order 此时读取平仓后的余额
        closing_ids = {p.position_id for p in closes}
        remaining = tuple(p for p in positions if p.position_id not in closing_ids)
        opening = reconcile(
            signal,
            remaining,
            self.params,
            symbol=self.symbol,
            build_order=lambda d: self._build_order(d, snapshot=snapshot, bar=bar),
            build_marker=lambda d: self._build_marker(d, bar=bar),
        )
        opened = dispatch(opening, self.broker, self.marker_sink, logger=self.logger)

        plan = DispatchPlan(closes=closes, opens=opening.opens, markers=opening.markers)
        report = DispatchReport(closed=closed.closed, opened=opened.opened, markers=opened.markers)
        return CycleOk(signal=signal, plan=plan, report=report)

    # ---- 订单构建 ----

    def _order_label(self, direction: Direction) -> str:
        label = self.label or self.strategy.label
        if label:
            return label
        return "Buy" if direction is Direction.LONG else "Sell"

    def _build_order(self, direction: Direction, *, snapshot: IndicatorSnapshot, bar: Bar) -> OrderRequest:
        info = self.broker.symbol_info(self.symbol)
        quote = self.broker.quote(self.symbol)
        equity = self.broker.balance()
        volatility = snapshot.latest(self.strategy.atr_feature)
        if volatility <= 0:
            raise InvalidRisk(f"volatility must be > 0, got {volatility}")

        # 多头以 bid、空头以 ask 作为止损止盈的参考价
        reference = quote.bid if direction is Direction.LONG else quote.ask
        label = self._order_label(direction)
        cid = make_client_order_id(
            label=label,
            symbol=self.symbol,
            direction=direction.value,
            intent_ts=bar.open_ts,
        )
        sizing_kwargs = dict(
            equity=equity,
            risk_percent=self.params.risk_percent,
            pip_value=info.pip_value,
            volume_step=info.volume_step,
            min_volume=info.min_volume,
        )

        if self.sizer.name == "volume_first":
            sized = self.sizer.size(
                stop_pips=stop_pips_for(volatility, self.params.atr_stop_multiplier, info.pip_size),
                **sizing_kwargs,
            )
            # 止损距离被回算：以 pip 距离下单，由执行端按成交价换算
            return OrderRequest(
                symbol=self.symbol,
                direction=direction,
                volume=sized.volume,
                label=label,
                stop_pips=sized.stop_pips,
                target_pips=target_pips_for(volatility, self.params.atr_target_multiplier, info.pip_size),
                reference_price=reference,
                client_order_id=cid,
            )

        levels = stops_for(
            direction,
            reference,
            volatility,
            self.params.atr_stop_multiplier,
            self.params.atr_target_multiplier,
            info.digits,
        )
        sized = self.sizer.size(stop_pips=price_to_pips(reference - levels.stop, info.pip_size), **sizing_kwargs)
        return OrderRequest(
            symbol=self.symbol,
            direction=direction,
            volume=sized.volume,
            label=label,
            stop_price=levels.stop,
            target_price=levels.target,
            reference_price=reference,
            client_order_id=cid,
        )

    def _build_marker(self, direction: Direction, *, bar: Bar) -> SignalMarker:
        prefix = "BuySignal" if direction is Direction.LONG else "SellSignal"
        count = getattr(self.provider, "bar_count", self.cycles)
        quote = self.broker.quote(self.symbol)
        price = quote.bid if direction is Direction.LONG else quote.ask
        return SignalMarker(name=f"{prefix}{count}", direction=direction, ts=bar.open_ts, price=price)

    def _log_balance(self, bar: Bar) -> None:
        try:
            balance = self.broker.balance()
        except Exception as exc:
            self.logger.warning("Balance unavailable after bar %s: %s", bar.open_ts, exc)
            return
        self.logger.info("Bar %s %s close=%s | Balance: %.2f", bar.symbol, bar.open_ts, bar.close, balance)

    def summary(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "strategy": self.strategy.strategy_id,
            "cycles": self.cycles,
            "balance": self.broker.balance(),
        }
