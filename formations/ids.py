"""Unit id generation.

Ids look like ``"18c3f5a2b41-9f0c22ab"``: the millisecond timestamp in hex,
a dash, and eight random hex digits. The generator remembers every id it
has issued or been told about, so an id is never handed out twice, even
after the unit that carried it was removed.
"""

from __future__ import annotations

import random
import time
from typing import Callable, Iterable


class IdGenerator:
    def __init__(
        self,
        seed: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rng = random.Random(seed)
        self._clock = clock
        self._issued: set[str] = set()

    def reserve(self, ids: Iterable[str]) -> None:
        """Mark ids (e.g. loaded from disk) as taken."""
        self._issued.update(ids)

    def __call__(self) -> str:
        while True:
            stamp = format(int(self._clock() * 1000), "x")
            new_id = f"{stamp}-{self._rng.getrandbits(32):08x}"
            if new_id not in self._issued:
                self._issued.add(new_id)
                return new_id
