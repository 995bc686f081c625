from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
import pytest

from algo.factors.atr import ATRFactor
from algo.factors.ema import EMAFactor, resolve_timeframe
from algo.factors.ma import MAFactor
from algo.factors.registry import apply_factors, build_factors
from algo.factors.rsi import RSIFactor
from algo.factors.stochastic import StochasticFactor


def _df(prices: list[float], step: timedelta = timedelta(hours=1)) -> pd.DataFrame:
    ts0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    rows = []
    for i, p in enumerate(prices):
        rows.append(
            {
                "ts": ts0 + step * i,
                "symbol": "EURUSD",
                "open": p,
                "high": p + 1,
                "low": p - 1,
                "close": p,
                "volume": 1.0,
            }
        )
    return pd.DataFrame(rows)


def test_ma_factor_adds_column_and_nans_are_limited():
    df = _df([1, 2, 3, 4, 5])
    out = MAFactor(window=3, price_col="close", out_col="ma3").compute(df)
    assert "ma3" in out.columns
    assert out["ma3"].isna().sum() == 2
    assert abs(out["ma3"].iloc[-1] - 4.0) < 1e-9


def test_rsi_factor_outputs_in_0_100_after_warmup():
    df = _df([1, 2, 3, 2, 1, 2, 3, 4, 3, 2, 3, 4, 5, 6, 7])
    out = RSIFactor(period=5, price_col="close", out_col="rsi5").compute(df)
    s = out["rsi5"].dropna()
    assert not s.empty
    assert (s >= 0).all()
    assert (s <= 100).all()


def test_rsi_factor_flat_prices_are_neutral():
    df = _df([5.0] * 8)
    out = RSIFactor(period=3, out_col="rsi").compute(df)
    assert np.allclose(out["rsi"].dropna().to_numpy(), 50.0)


def test_atr_factor_adds_column():
    df = _df([10, 11, 12, 11, 9, 10, 11])
    out = ATRFactor(period=3, out_col="atr3").compute(df)
    assert "atr3" in out.columns
    assert out["atr3"].isna().sum() == 2
    # 最后三根 TR 为 3, 2, 2
    assert abs(out["atr3"].iloc[-1] - 7.0 / 3.0) < 1e-9


def test_ema_factor_adds_column():
    df = _df([1, 2, 3, 4, 5])
    out = EMAFactor(period=3, out_col="ema3").compute(df)
    assert "ema3" in out.columns
    assert out["ema3"].isna().sum() == 2


def test_ema_higher_timeframe_does_not_look_ahead():
    prices = [float(i) for i in range(1, 41)]
    df = _df(prices, step=timedelta(minutes=15))
    full = EMAFactor(period=3, timeframe="hour", out_col="ema_h").compute(df.copy())

    cut = 25
    partial = EMAFactor(period=3, timeframe="hour", out_col="ema_h").compute(df.iloc[:cut].copy())
    assert np.allclose(
        full["ema_h"].iloc[:cut].to_numpy(),
        partial["ema_h"].to_numpy(),
        equal_nan=True,
    )


def test_resolve_timeframe_aliases():
    assert resolve_timeframe("Hour") == "1h"
    assert resolve_timeframe("h4") == "4h"
    assert resolve_timeframe("30min") == "30min"


def test_stochastic_factor_range_and_flat_market():
    df = _df([1, 2, 3, 2, 1, 2, 3, 4, 3, 2, 3, 4, 5, 6, 7])
    out = StochasticFactor(k_period=5, d_period=3, slowing=3, k_col="k", d_col="d").compute(df)
    k = out["k"].dropna()
    d = out["d"].dropna()
    assert not k.empty and not d.empty
    assert ((k >= 0) & (k <= 100)).all()

    flat = _df([3.0] * 10)
    flat["high"] = 3.0
    flat["low"] = 3.0
    out = StochasticFactor(k_period=3, d_period=2, slowing=2, k_col="k", d_col="d").compute(flat)
    assert np.allclose(out["k"].dropna().to_numpy(), 50.0)


def test_build_factors_by_type_rejects_unknown_params():
    factors = build_factors(
        [
            {"type": "ma", "window": 5, "out_col": "ma5"},
            {"type": "rsi", "period": 7},
            {"type": "stochastic", "k_period": 5, "k_col": "k", "d_col": "d"},
        ]
    )
    assert [f.name for f in factors] == ["ma", "rsi", "stochastic"]
    assert factors[0].out_cols == ("ma5",)
    assert factors[1].params["period"] == 7
    assert factors[2].out_cols == ("k", "d")

    with pytest.raises(ValueError):
        build_factors([{"type": "atr", "period": 3, "unknown": 1}])
    with pytest.raises(ValueError):
        build_factors([{"type": "macd"}])


def test_apply_factors_skips_repeated_output_columns():
    df = _df([10, 11, 12, 11, 9, 10, 11])
    out = apply_factors(df, [ATRFactor(period=3, out_col="atr"), ATRFactor(period=5, out_col="atr")])
    # 第二个同名输出被跳过，仍是 3 周期的结果
    assert out["atr"].isna().sum() == 2
