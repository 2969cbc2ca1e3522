from __future__ import annotations

import time
from typing import Callable

# Every service takes an injectable clock returning epoch milliseconds.
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


__all__ = ["Clock", "now_ms"]
