"""
Node id factories.

Production flattening draws random UUID4s. DeterministicIdFactory wraps a
seeded local RNG so identical (seed) -> identical id sequence, which keeps
exported seed files and tests reproducible.
"""

from __future__ import annotations

import random
import uuid
from typing import Callable

IdFactory = Callable[[], str]


def random_id() -> str:
    return str(uuid.uuid4())


class DeterministicIdFactory:
    """Local seeded RNG. No global random state touched."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(seed)

    def __call__(self) -> str:
        return str(uuid.UUID(int=self._rng.getrandbits(128), version=4))
