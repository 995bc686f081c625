"""执行引擎层（engine）。

- `TradingEngine.on_bar_closed(bar)`：单个 bar 周期的决策与派发；
- `ReplayEngine.run() -> EngineResult`：CSV 回放驱动；
命令行入口由仓库根目录 `main.py` 统一承载。
"""
