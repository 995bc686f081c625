from pathlib import Path

import pytest

from shared.config.config_loader import MainConfig, load_config, parse_config

EXAMPLE_CFG = Path(__file__).resolve().parents[1] / "config" / "config.yml"


def test_load_example_config_returns_main_config():
    assert EXAMPLE_CFG.exists(), "示例配置缺失"

    cfg = load_config(str(EXAMPLE_CFG), load_env=False)
    assert isinstance(cfg, MainConfig)
    assert cfg.symbol == "EURUSD"
    assert cfg.mode == "paper"
    assert cfg.strategy.type == "ma_rsi_cross"
    assert cfg.strategy.params["cross_mode"] == "confirmed"
    assert cfg.risk.sizing == "stop_first"
    assert cfg.instrument.to_symbol_info(cfg.symbol).digits == 5


def test_load_config_expands_env(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SMTP_PASS", "s3cret")
    cfg_path = tmp_path / "cfg.yml"
    cfg_path.write_text(
        "symbol: EURUSD\n"
        "notify:\n"
        "  enabled: true\n"
        "  password: ${SMTP_PASS}\n"
        "  email_to: a@example.com, b@example.com\n"
    )
    cfg = load_config(str(cfg_path), load_env=False)
    assert cfg.notify.password == "s3cret"
    assert cfg.notify.email_to == ["a@example.com", "b@example.com"]


def test_load_config_missing_env_raises(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("SMTP_PASS", raising=False)
    cfg_path = tmp_path / "cfg.yml"
    cfg_path.write_text("symbol: EURUSD\nnotify:\n  password: ${SMTP_PASS}\n")

    with pytest.raises(ValueError) as exc:
        load_config(str(cfg_path), load_env=False)
    assert "Missing environment variable" in str(exc.value)


def test_load_config_reads_dotenv_next_to_config(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BARCROSS_SYMBOL", "placeholder")
    monkeypatch.delenv("BARCROSS_SYMBOL")
    (tmp_path / ".env").write_text("BARCROSS_SYMBOL='GBPUSD'\n")
    cfg_path = tmp_path / "cfg.yml"
    cfg_path.write_text("symbol: ${BARCROSS_SYMBOL}\n")
    cfg = load_config(str(cfg_path))
    assert cfg.symbol == "GBPUSD"


def test_missing_file_raises():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yml")


def test_unknown_key_suggests_fix():
    with pytest.raises(ValueError) as exc:
        parse_config({"symbol": "EURUSD", "risk": {"risk_percnt": 1}})
    assert "did you mean 'risk_percent'" in str(exc.value)

    with pytest.raises(ValueError) as exc:
        parse_config({"symbol": "EURUSD", "equity_bse": 1})
    assert "equity_base" in str(exc.value)


def test_symbol_is_required_and_types_are_checked():
    with pytest.raises(ValueError):
        parse_config({"mode": "paper"})
    with pytest.raises(ValueError) as exc:
        parse_config({"symbol": "EURUSD", "risk": {"risk_percent": -1}})
    assert "Invalid config" in str(exc.value)
    with pytest.raises(ValueError):
        parse_config({"symbol": "EURUSD", "risk": {"sizing": "kelly"}})


def test_flat_strategy_params_are_packed_and_mode_normalized():
    cfg = parse_config({"symbol": "EURUSD", "mode": "DRY_RUN", "strategy": {"type": "stochastic_ema", "k_period": 5}})
    assert cfg.mode == "dry-run"
    assert cfg.strategy.params == {"k_period": 5}
    assert cfg.logging.level == "INFO"

    params = cfg.risk.to_params()
    assert params.trading_enabled is True
    assert params.rsi_lookback == 5


def test_unused_top_level_keys_are_rejected():
    with pytest.raises(ValueError):
        parse_config({"symbol": "EURUSD", "timeframe": "1h"})
