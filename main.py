"""barcross 统一命令行入口。

该模块提供单一入口 `main.py`，通过子命令驱动不同任务：

- `replay`：读取 CSV 历史 bar，用纸面/干跑 broker 逐 bar 回放决策引擎。
- `test`：运行单元测试。
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any

from engine.replay_engine import ReplayEngine


@dataclass
class CliArgs:
    """命令行参数结构。

    config: 配置文件路径
    task: 要运行的任务类型 (replay/test)
    """
    config: str
    task: str
    max_bars: int | None = None  # 限制回放多少根 bar


def build_parser() -> argparse.ArgumentParser:
    """构建 CLI 参数解析器。"""
    parser = argparse.ArgumentParser(prog="barcross", description="barcross 统一入口")

    def _add_config_arg(p: argparse.ArgumentParser, *, default: Any) -> None:
        p.add_argument(
            "--config",
            default=default,
            help="配置文件路径 (默认: config/config.yml)",
        )

    # 允许 `python main.py --config ... replay`（全局）与 `python main.py replay --config ...`（子命令）
    _add_config_arg(parser, default="config/config.yml")

    sub = parser.add_subparsers(dest="task")

    p_replay = sub.add_parser("replay", help="CSV 历史 bar 回放")
    _add_config_arg(p_replay, default=argparse.SUPPRESS)
    p_replay.add_argument(
        "--max-bars",
        type=int,
        default=None,
        help="回放多少根 bar 后退出",
    )

    p_test = sub.add_parser("test", help="运行 pytest")
    _add_config_arg(p_test, default=argparse.SUPPRESS)

    return parser


def parse_args(argv: list[str] | None = None) -> CliArgs:
    parser = build_parser()
    ns = parser.parse_args(argv)
    return CliArgs(
        config=str(getattr(ns, "config", "config/config.yml")),
        task=ns.task or "replay",
        max_bars=getattr(ns, "max_bars", None),
    )


def main(argv: list[str] | None = None) -> Any:
    """程序主入口。

    Returns
    -------
    Any
        对应子命令的返回结果（replay 为 summary dict，test 为 pytest 退出码）。
    """
    args = parse_args(argv)

    if args.task == "replay":
        return ReplayEngine(cfg_path=args.config, max_bars=args.max_bars).run().summary

    if args.task == "test":
        import pytest

        return pytest.main(["-q"])

    raise ValueError(f"Unknown task: {args.task}")


if __name__ == "__main__":
    main()
