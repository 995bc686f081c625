from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import main as app_main


@dataclass
class _Res:
    summary: dict[str, Any]


class _FakeReplay:
    def __init__(self, *, cfg_path: str, max_bars: int | None = None, **_kwargs):
        self.cfg_path = cfg_path
        self.max_bars = max_bars

    def run(self):
        return _Res(summary={"cfg_path": self.cfg_path, "max_bars": self.max_bars})


def test_main_replay_uses_replay_engine(monkeypatch):
    monkeypatch.setattr(app_main, "ReplayEngine", _FakeReplay)
    res = app_main.main(["--config", "config/config.yml", "replay", "--max-bars", "12"])
    assert res == {"cfg_path": "config/config.yml", "max_bars": 12}


def test_main_replay_accepts_config_after_subcommand(monkeypatch):
    monkeypatch.setattr(app_main, "ReplayEngine", _FakeReplay)
    res = app_main.main(["replay", "--config", "config/other.yml"])
    assert res == {"cfg_path": "config/other.yml", "max_bars": None}


def test_main_defaults_to_replay(monkeypatch):
    monkeypatch.setattr(app_main, "ReplayEngine", _FakeReplay)
    res = app_main.main([])
    assert res == {"cfg_path": "config/config.yml", "max_bars": None}
