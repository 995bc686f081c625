"""订单幂等 ID（client_order_id）生成。

要求：
- 同一 bar 上的同一交易意图在重放/重启后可重建（deterministic）。
- 长度可控，适配交易所 label/comment 字段限制（用 hash 缩短）。
"""

from __future__ import annotations

import hashlib
from datetime import datetime


def make_client_order_id(
    *,
    label: str,
    symbol: str,
    direction: str,
    intent_ts: datetime | None,
    signal_seq: int = 0,
) -> str:
    raw = "|".join(
        [
            str(label),
            str(symbol),
            str(direction),
            intent_ts.isoformat() if intent_ts is not None else "",
            str(int(signal_seq)),
        ]
    )
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:24]
    return f"bc_{digest}"
