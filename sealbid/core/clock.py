"""
Block height sources.

The engine reads `now()` at the start of every public call. Any object with a
`now() -> int` method works; the two here cover tests and live demos.
"""

import time
from typing import Protocol

from sealbid.core.types import BlockHeight


class Clock(Protocol):
    def now(self) -> BlockHeight:
        ...


class ManualClock:
    """Clock advanced explicitly by the caller. Refuses to move backward."""

    def __init__(self, start: BlockHeight = 0):
        if start < 0:
            raise ValueError("Block height must be non-negative")
        self._height = start

    def now(self) -> BlockHeight:
        return self._height

    def advance(self, blocks: int = 1) -> BlockHeight:
        if blocks < 0:
            raise ValueError("Clock cannot move backward")
        self._height += blocks
        return self._height

    def set(self, height: BlockHeight) -> BlockHeight:
        if height < self._height:
            raise ValueError(f"Clock cannot move backward ({height} < {self._height})")
        self._height = height
        return self._height


class SystemClock:
    """Derives block height from wall time at a fixed block interval."""

    def __init__(self, block_time: float = 5.0, genesis: float = 0.0):
        if block_time <= 0:
            raise ValueError("block_time must be positive")
        self.block_time = block_time
        self.genesis = genesis

    def now(self) -> BlockHeight:
        return max(0, int((time.time() - self.genesis) // self.block_time))


__all__ = ["Clock", "ManualClock", "SystemClock"]
