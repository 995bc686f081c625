"""模拟 broker（dry-run / paper）。

- 按 bar 收盘价报价（bid = close，ask = close + 点差），只做本地记账；
- 每根 bar 先检查止损/止盈（同一根 bar 同时触发时按止损处理），再交给引擎决策；
- 平仓时向订阅者推送 `PositionClosedEvent`。
"""

from __future__ import annotations

import copy
import itertools

from broker.abstract_broker import Broker, BrokerMode, PositionClosedListener
from shared.models.models import (
    Bar,
    CloseReason,
    Direction,
    OrderRequest,
    Position,
    PositionClosedEvent,
    Quote,
    SymbolInfo,
)
from shared.utils.logging import setup_logger
from shared.utils.precision import decimals_from_step, floor_to_step, normalize_price, snap_to_decimals
from shared.utils.trade_logger import TradeLogger, TradeRecord


class PaperBroker(Broker):
    """纸面交易 broker：按当前报价成交并更新本地持仓。

    Parameters
    ----------
    symbols:
        可交易品种的交易规则。
    initial_balance:
        初始余额；balance = 初始余额 + 累计已实现盈亏。
    spread_pips:
        ask 相对 bid 的点差。
    """

    def __init__(
        self,
        *,
        symbols: list[SymbolInfo],
        initial_balance: float,
        spread_pips: float = 0.0,
        mode: BrokerMode = BrokerMode.PAPER,
        trade_logger: TradeLogger | None = None,
    ):
        self.mode = mode
        self.logger = setup_logger("paper-broker")
        self.symbol_rules: dict[str, SymbolInfo] = {s.symbol: s for s in symbols}
        self.initial_balance = float(initial_balance)
        self.spread_pips = float(spread_pips)
        self.trade_logger = trade_logger

        self.positions: dict[str, Position] = {}
        self.realized_pnl_all = 0.0
        self.closed_events: list[PositionClosedEvent] = []
        self.fills: list[dict] = []

        self._quotes: dict[str, Quote] = {}
        self._last_ts = None
        self._listeners: list[PositionClosedListener] = []
        self._seen_client_order_ids: set[str] = set()
        self._position_seq = itertools.count(1)

    # ---- Venue ----

    def balance(self) -> float:
        return self.initial_balance + self.realized_pnl_all

    def symbol_info(self, symbol: str) -> SymbolInfo:
        rule = self.symbol_rules.get(symbol)
        if rule is None:
            raise ValueError(f"Unknown symbol: {symbol}")
        return rule

    def quote(self, symbol: str) -> Quote:
        q = self._quotes.get(symbol)
        if q is None:
            raise ValueError(f"No quote yet for {symbol}")
        return q

    def set_quote(self, symbol: str, bid: float, ask: float | None = None) -> None:
        info = self.symbol_info(symbol)
        if ask is None:
            ask = bid + self.spread_pips * info.pip_size
        self._quotes[symbol] = Quote(
            bid=normalize_price(bid, info.digits),
            ask=normalize_price(ask, info.digits),
        )

    def open_positions(self, symbol: str) -> tuple[Position, ...]:
        return tuple(copy.copy(p) for p in self.positions.values() if p.symbol == symbol)

    def on_position_closed(self, listener: PositionClosedListener) -> None:
        self._listeners.append(listener)

    # ---- 执行 ----

    def _validate_and_clip_volume(self, info: SymbolInfo, volume: float) -> float:
        if volume <= 0:
            raise ValueError("volume must be positive")

        adjusted = float(volume)
        if info.volume_step:
            adjusted = floor_to_step(adjusted, float(info.volume_step))
            adjusted = snap_to_decimals(adjusted, decimals_from_step(float(info.volume_step)))
        if adjusted <= 0:
            raise ValueError("volume clipped to 0 by volume_step")
        if info.min_volume and adjusted < info.min_volume:
            raise ValueError(f"volume {adjusted} < min_volume {info.min_volume}")
        return adjusted

    def _resolve_stops(self, order: OrderRequest, info: SymbolInfo, fill_price: float) -> tuple[float | None, float | None]:
        sign = 1.0 if order.direction is Direction.LONG else -1.0
        stop = order.stop_price
        if stop is None and order.stop_pips is not None:
            stop = normalize_price(fill_price - sign * order.stop_pips * info.pip_size, info.digits)
        target = order.target_price
        if target is None and order.target_pips is not None:
            target = normalize_price(fill_price + sign * order.target_pips * info.pip_size, info.digits)
        return stop, target

    def submit(self, order: OrderRequest) -> dict:
        cid = order.client_order_id
        if cid:
            if cid in self._seen_client_order_ids:
                return {"status": "duplicate", "client_order_id": cid}

        info = self.symbol_info(order.symbol)
        quote = self.quote(order.symbol)
        fill_price = quote.ask if order.direction is Direction.LONG else quote.bid

        try:
            volume = self._validate_and_clip_volume(info, order.volume)
        except ValueError as exc:
            return {"status": "blocked", "reason": str(exc)}

        stop, target = self._resolve_stops(order, info, fill_price)
        if cid:
            self._seen_client_order_ids.add(cid)

        position = Position(
            position_id=f"P{next(self._position_seq)}",
            symbol=order.symbol,
            direction=order.direction,
            volume=volume,
            entry_price=fill_price,
            stop_price=stop,
            target_price=target,
            open_ts=self._last_ts,
            label=order.label,
        )
        self.positions[position.position_id] = position

        self.logger.info(
            "[%s ORDER] %s %s volume=%s price=%s sl=%s tp=%s label=%s",
            self.mode.value,
            order.direction.value.upper(),
            order.symbol,
            volume,
            fill_price,
            stop,
            target,
            order.label,
        )
        self._log_trade("open", position, fill_price, reason=None, profit_loss=None)

        res = {
            "status": "filled",
            "position_id": position.position_id,
            "symbol": order.symbol,
            "direction": order.direction.value,
            "volume": volume,
            "price": fill_price,
            "stop_price": stop,
            "target_price": target,
            "client_order_id": cid,
        }
        self.fills.append(res)
        return res

    def close(self, position: Position) -> dict:
        return self._close(position.position_id, reason=CloseReason.CLOSED)

    def _close(self, position_id: str, *, reason: CloseReason, price: float | None = None) -> dict:
        pos = self.positions.get(position_id)
        if pos is None:
            return {"status": "blocked", "reason": "unknown_position", "position_id": position_id}

        if price is None:
            quote = self.quote(pos.symbol)
            price = quote.bid if pos.direction is Direction.LONG else quote.ask
        profit_loss = self._profit_loss(pos, price)

        del self.positions[position_id]
        self.realized_pnl_all += profit_loss

        self.logger.info(
            "[%s CLOSE] %s %s volume=%s price=%s pnl=%.2f reason=%s",
            self.mode.value,
            pos.direction.value.upper(),
            pos.symbol,
            pos.volume,
            price,
            profit_loss,
            reason.value,
        )
        self._log_trade("close", pos, price, reason=reason.value, profit_loss=profit_loss)

        event = PositionClosedEvent(
            position=pos,
            close_price=price,
            profit_loss=profit_loss,
            close_reason=reason,
            closed_ts=self._last_ts,
        )
        self.closed_events.append(event)
        self._emit(event)
        return {
            "status": "closed",
            "position_id": position_id,
            "price": price,
            "profit_loss": profit_loss,
            "reason": reason.value,
        }

    def _profit_loss(self, pos: Position, price: float) -> float:
        info = self.symbol_info(pos.symbol)
        diff = price - pos.entry_price if pos.direction is Direction.LONG else pos.entry_price - price
        return diff / info.pip_size * info.pip_value * pos.volume

    def _emit(self, event: PositionClosedEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                self.logger.warning("Position-closed listener failed: %s", exc)

    def _log_trade(self, action: str, pos: Position, price: float, *, reason: str | None, profit_loss: float | None):
        if not self.trade_logger:
            return
        self.trade_logger.log(
            TradeRecord(
                ts=self._last_ts,
                symbol=pos.symbol,
                action=action,
                direction=pos.direction.value,
                volume=pos.volume,
                price=price,
                label=pos.label,
                reason=reason,
                profit_loss=profit_loss,
                balance_after=self.balance(),
            )
        )

    # ---- 行情推进 ----

    def on_bar(self, bar: Bar) -> list[PositionClosedEvent]:
        """推进一根 bar：先按 high/low 检查止损止盈，再以收盘价刷新报价。"""
        self._last_ts = bar.open_ts
        closed: list[PositionClosedEvent] = []
        for pos in [p for p in self.positions.values() if p.symbol == bar.symbol]:
            hit = self._check_exit(pos, bar)
            if hit is None:
                continue
            reason, price = hit
            res = self._close(pos.position_id, reason=reason, price=price)
            if res.get("status") == "closed":
                closed.append(self.closed_events[-1])
        self.set_quote(bar.symbol, bar.close)
        return closed

    @staticmethod
    def _check_exit(pos: Position, bar: Bar) -> tuple[CloseReason, float] | None:
        if pos.direction is Direction.LONG:
            if pos.stop_price is not None and bar.low <= pos.stop_price:
                return CloseReason.STOP_LOSS, pos.stop_price
            if pos.target_price is not None and bar.high >= pos.target_price:
                return CloseReason.TAKE_PROFIT, pos.target_price
        else:
            if pos.stop_price is not None and bar.high >= pos.stop_price:
                return CloseReason.STOP_LOSS, pos.stop_price
            if pos.target_price is not None and bar.low <= pos.target_price:
                return CloseReason.TAKE_PROFIT, pos.target_price
        return None


class DryRunBroker(PaperBroker):
    """干跑 broker：等价 paper，但默认 mode=DRY_RUN。"""

    def __init__(self, **kwargs):
        kwargs.setdefault("mode", BrokerMode.DRY_RUN)
        super().__init__(**kwargs)
