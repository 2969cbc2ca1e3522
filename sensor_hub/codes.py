"""Human-typable 4-digit code allocation.

Session codes and room passwords live in two independent namespaces. Each
namespace gets its own :class:`CodeAllocator` bound to the mapping that holds
its live entries, so "is this code taken" is always answered by the owning
registry itself.
"""
from __future__ import annotations

import logging
import random
from collections import OrderedDict
from typing import Container, Optional

from .constants import CODE_MAX, CODE_MAX_ATTEMPTS, CODE_MIN
from .errors import ResourceExhausted

log = logging.getLogger("sensor_hub.codes")


class CodeAllocator:
    """Allocates codes that are unique among the live entries of one namespace.

    Parameters
    ----------
    live:
        Container of codes currently in use (usually the registry dict).
    recent_limit:
        When positive, remember this many recently issued codes (oldest
        evicted first) and never hand them out again while remembered, even
        after their entry is gone. ``0`` disables the recently-used set.
    rng:
        Random source, injectable for tests.
    """

    def __init__(
        self,
        live: Container[str],
        *,
        name: str = "codes",
        recent_limit: int = 0,
        max_attempts: int = CODE_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ):
        self.name = name
        self._live = live
        self._recent_limit = recent_limit
        self._recent: "OrderedDict[str, None]" = OrderedDict()
        self._max_attempts = max_attempts
        self._rng = rng or random.SystemRandom()

    def is_available(self, code: str) -> bool:
        return code not in self._live and code not in self._recent

    def allocate(self) -> str:
        """Return a fresh code or raise :class:`ResourceExhausted`."""
        for _ in range(self._max_attempts):
            code = str(self._rng.randint(CODE_MIN, CODE_MAX))
            if self.is_available(code):
                self._remember(code)
                log.debug("Allocated %s code %s", self.name, code)
                return code
        log.warning("%s namespace saturated after %d attempts", self.name, self._max_attempts)
        raise ResourceExhausted()

    def _remember(self, code: str) -> None:
        if self._recent_limit <= 0:
            return
        self._recent[code] = None
        while len(self._recent) > self._recent_limit:
            self._recent.popitem(last=False)

    @property
    def recent(self) -> list[str]:
        return list(self._recent)


__all__ = ["CodeAllocator"]
