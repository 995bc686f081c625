from __future__ import annotations

import pytest

from engine.reconciler import reconcile, reversal_closes
from shared.errors import InvalidRisk
from shared.models.models import Direction, OrderRequest, Position, RiskParameters, Signal, SignalMarker


def _pos(pid: str, direction: Direction, symbol: str = "EURUSD") -> Position:
    return Position(position_id=pid, symbol=symbol, direction=direction, volume=1.0, entry_price=1.1)


def _order(direction: Direction) -> OrderRequest:
    return OrderRequest(symbol="EURUSD", direction=direction, volume=1.0, label="t")


def _marker(direction: Direction) -> SignalMarker:
    return SignalMarker(name="m", direction=direction, ts=None, price=1.1)


def _plan(signal, positions, **params):
    return reconcile(
        signal,
        positions,
        RiskParameters(**params),
        symbol="EURUSD",
        build_order=_order,
        build_marker=_marker,
    )


def test_no_signal_gives_empty_plan():
    plan = _plan(Signal.NONE, [_pos("P1", Direction.SHORT)])
    assert plan.is_empty


def test_buy_without_positions_opens_one_order():
    plan = _plan(Signal.BUY, [])
    assert plan.closes == ()
    assert len(plan.opens) == 1
    assert plan.opens[0].direction is Direction.LONG


def test_duplicate_suppression():
    plan = _plan(Signal.BUY, [_pos("P1", Direction.LONG)])
    assert plan.is_empty


def test_reversal_closes_then_opens():
    plan = _plan(Signal.BUY, [_pos("P1", Direction.SHORT), _pos("P2", Direction.SHORT)])
    assert [p.position_id for p in plan.closes] == ["P1", "P2"]
    assert len(plan.opens) == 1
    assert plan.opens[0].direction is Direction.LONG


def test_reversal_disabled_keeps_opposite_position_and_still_opens():
    plan = _plan(Signal.SELL, [_pos("P1", Direction.LONG)], close_on_reversal=False)
    assert plan.closes == ()
    assert plan.opens[0].direction is Direction.SHORT


def test_exclusive_position_blocks_any_new_open():
    plan = _plan(Signal.SELL, [_pos("P1", Direction.LONG)], close_on_reversal=False, exclusive_position=True)
    assert plan.is_empty

    # 反向平仓后不再有剩余持仓，可以开新仓
    plan = _plan(Signal.SELL, [_pos("P1", Direction.LONG)], exclusive_position=True)
    assert len(plan.closes) == 1
    assert len(plan.opens) == 1


def test_trading_disabled_emits_marker_but_still_closes_reversal():
    plan = _plan(Signal.BUY, [_pos("P1", Direction.SHORT)], trading_enabled=False)
    assert [p.position_id for p in plan.closes] == ["P1"]
    assert plan.opens == ()
    assert len(plan.markers) == 1
    assert plan.markers[0].direction is Direction.LONG


def test_other_symbol_positions_are_ignored():
    plan = _plan(Signal.BUY, [_pos("P1", Direction.LONG, symbol="GBPUSD"), _pos("P2", Direction.SHORT, symbol="GBPUSD")])
    assert plan.closes == ()
    assert len(plan.opens) == 1


def test_order_builder_errors_propagate():
    def _bad(direction):
        raise InvalidRisk("zero stop")

    with pytest.raises(InvalidRisk):
        reconcile(
            Signal.BUY,
            [],
            RiskParameters(),
            symbol="EURUSD",
            build_order=_bad,
            build_marker=_marker,
        )


def test_at_most_one_position_per_direction_after_reconcile():
    positions = [_pos("P1", Direction.SHORT)]
    plan = _plan(Signal.BUY, positions)
    remaining = [p for p in positions if p not in plan.closes]
    longs = [p for p in remaining if p.direction is Direction.LONG] + list(plan.opens)
    assert len(longs) == 1


def test_reversal_closes_never_calls_builders():
    positions = [_pos("P1", Direction.SHORT), _pos("P2", Direction.LONG), _pos("P3", Direction.SHORT, symbol="GBPUSD")]
    closes = reversal_closes(Signal.BUY, positions, RiskParameters(), symbol="EURUSD")
    assert [p.position_id for p in closes] == ["P1"]

    assert reversal_closes(Signal.NONE, positions, RiskParameters(), symbol="EURUSD") == ()
    assert reversal_closes(Signal.BUY, positions, RiskParameters(close_on_reversal=False), symbol="EURUSD") == ()


def test_open_is_built_only_after_reversal_closes_are_removed():
    built = []

    def _recording(direction):
        built.append(direction)
        return _order(direction)

    positions = [_pos("P1", Direction.SHORT)]
    closes = reversal_closes(Signal.BUY, positions, RiskParameters(), symbol="EURUSD")
    assert built == []

    remaining = [p for p in positions if p not in closes]
    plan = reconcile(
        Signal.BUY,
        remaining,
        RiskParameters(),
        symbol="EURUSD",
        build_order=_recording,
        build_marker=_marker,
    )
    assert plan.closes == ()
    assert built == [Direction.LONG]
