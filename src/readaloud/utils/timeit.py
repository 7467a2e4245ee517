"""
Timing helpers.

Example:
    with timeit("provider_call") as t:
        audio = provider.synthesize_mp3(...)
    verbose(_LOG, "stage", event="provider_call", seconds=round(t.timing.seconds, 4))
"""
from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional


@dataclass
class Timing:
    """
    A single measurement.

    Attributes:
        name: What was timed.
        seconds: Wall-clock duration.
        meta: Optional context attached by the caller.
    """
    name: str
    seconds: float
    meta: Optional[Dict[str, Any]] = None


class timeit:
    """
    Context manager measuring the wall-clock time of its block.

    The result is available as ``.timing`` after the block exits, also
    when the block raised.
    """

    def __init__(self, name: str, meta: Optional[Dict[str, Any]] = None):
        self.name = name
        self.meta = meta
        self._t0: float | None = None
        self.timing: Timing | None = None

    def __enter__(self) -> "timeit":
        self._t0 = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        t1 = perf_counter()
        assert self._t0 is not None
        self.timing = Timing(name=self.name, seconds=(t1 - self._t0), meta=self.meta)

    @property
    def seconds(self) -> float:
        """Measured seconds, -1.0 while the block is still running."""
        return self.timing.seconds if self.timing else -1.0
