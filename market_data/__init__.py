"""行情数据模块（market_data）。

目前只包含历史 bar 的 CSV 加载（回放使用）。
"""

from market_data.loader import iter_bars, load_bars_from_csv

__all__ = ["iter_bars", "load_bars_from_csv"]
