from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from broker.abstract_broker import BrokerMode
from engine.replay_engine import ReplayEngine, build_broker
from market_data.loader import load_bars_from_csv
from shared.config.config_loader import parse_config

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _write_bars(path: Path, closes: list[float], symbol: str = "EURUSD") -> Path:
    lines = ["ts,symbol,open,high,low,close,volume"]
    for i, c in enumerate(closes):
        ts = (T0 + timedelta(hours=i)).isoformat()
        lines.append(f"{ts},{symbol},{c},{c + 0.001},{c - 0.001},{c},100")
    path.write_text("\n".join(lines) + "\n")
    return path


def _closes() -> list[float]:
    # 横盘 -> 跳涨 -> 缓慢回落：快线仍在慢线上方，RSI 持续为 0
    return [1.0] * 10 + [1.2] + [round(1.19 - 0.01 * i, 2) for i in range(9)]


def _cfg(data_path: Path, **risk):
    return parse_config(
        {
            "symbol": "EURUSD",
            "equity_base": 10000,
            "instrument": {"digits": 5, "pip_size": 0.0001, "pip_value": 1.0, "volume_step": 0.01},
            "strategy": {
                "type": "ma_rsi_cross",
                "fast_period": 2,
                "slow_period": 6,
                "rsi_period": 3,
                "atr_period": 3,
                "cross_mode": "simple",
            },
            "risk": {"rsi_lookback": 1, **risk},
            "replay": {"data_path": str(data_path)},
        }
    )


def test_replay_runs_and_summarizes(tmp_path):
    data = _write_bars(tmp_path / "bars.csv", _closes())
    engine = ReplayEngine(cfg_obj=_cfg(data))
    res = engine.run()
    s = res.summary

    assert s["bars"] == 20
    # 慢线预热期间无快照
    assert s["errors"].get("missing_indicator_history") == 5
    assert s["signals"].get("buy", 0) >= 1
    assert s["orders"] >= 1
    assert s["balance"] == pytest.approx(10000 + s["realized_pnl"])
    assert s["closed_trades"] == len(res.artifacts["closed_events"])


def test_replay_with_trading_disabled_only_draws_markers(tmp_path):
    data = _write_bars(tmp_path / "bars.csv", _closes())
    res = ReplayEngine(cfg_obj=_cfg(data, trading_enabled=False)).run()
    assert res.summary["orders"] == 0
    assert res.summary["balance"] == pytest.approx(10000)
    markers = res.artifacts["markers"]
    assert markers
    assert all(m.name.startswith("BuySignal") for m in markers)


def test_replay_respects_max_bars_and_trade_log(tmp_path):
    data = _write_bars(tmp_path / "bars.csv", _closes())
    cfg = _cfg(data)
    cfg = cfg.model_copy(update={"replay": cfg.replay.model_copy(update={"max_bars": 8, "trade_log_dir": str(tmp_path / "trades")})})
    res = ReplayEngine(cfg_obj=cfg).run()
    assert res.summary["bars"] == 8
    assert (tmp_path / "trades").is_dir()


def test_build_broker_mode():
    cfg = parse_config({"symbol": "EURUSD", "mode": "dry-run"})
    assert build_broker(cfg).mode is BrokerMode.DRY_RUN
    cfg = parse_config({"symbol": "EURUSD"})
    assert build_broker(cfg).mode is BrokerMode.PAPER


def test_load_bars_from_csv_parses_and_filters(tmp_path):
    path = tmp_path / "mixed.csv"
    path.write_text(
        "ts,symbol,open,high,low,close\n"
        "2024-01-01T00:00:00Z,EURUSD,1.1,1.2,1.0,1.15\n"
        "1704070800000,GBPUSD,1.3,1.3,1.3,1.3\n"
        "1704070800,EURUSD,1.15,1.16,1.14,1.155\n"
    )
    bars = list(load_bars_from_csv(path, symbol="EURUSD"))
    assert [b.close for b in bars] == [1.15, 1.155]
    assert bars[0].open_ts == T0
    assert bars[1].open_ts == T0 + timedelta(hours=1)
    assert bars[0].volume == 0.0


def test_load_bars_from_csv_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(load_bars_from_csv(tmp_path / "missing.csv"))

    path = tmp_path / "nosym.csv"
    path.write_text("ts,open,high,low,close\n2024-01-01,1,1,1,1\n")
    with pytest.raises(ValueError):
        list(load_bars_from_csv(path))
    (bar,) = load_bars_from_csv(path, symbol="EURUSD")
    assert bar.symbol == "EURUSD"
