"""统一 logger 构建。"""

import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logger(name: str = "trading", level: int | str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level.upper() if isinstance(level, str) else level)
    elif logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)
    # 控制台 handler（同名 logger 只挂一次）
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(ch)
    return logger


def set_level(level: int | str, names: list[str] | tuple[str, ...]) -> None:
    """按配置统一调整已知 logger 的级别。"""
    for name in names:
        setup_logger(name, level)
