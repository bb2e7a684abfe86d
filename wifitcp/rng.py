"""Random stream management for simulation contexts.

Each simulation context draws one index from a ``SeedManager``. The engine is
seeded with ``(seed, run)`` and every random variable of the context is bound
to a stream number inside the index's own block, so two contexts with
different indices never share draws. Without a reset, successive contexts get
successive indices and therefore different random draws; ``reset()`` rewinds
the index so a repeated trial is reproduced exactly.
"""

from __future__ import annotations

from typing import Callable

from . import constants as c


class SeedManager:
    def __init__(self, seed: int = 1, run: int = 1, start_index: int = 0) -> None:
        if seed < 1:
            raise ValueError("seed must be a positive integer")
        if run < 0 or start_index < 0:
            raise ValueError("run and start_index must be non-negative")
        self.seed = seed
        self.run = run
        self._next_index = start_index

    @property
    def next_index(self) -> int:
        return self._next_index

    def next_streams(self) -> RandomStreams:
        streams = RandomStreams(self.seed, self.run, self._next_index)
        self._next_index += 1
        return streams

    def streams_for(self, index: int) -> RandomStreams:
        """Streams for an explicit index, leaving the counter untouched."""

        return RandomStreams(self.seed, self.run, index)

    def reset(self) -> None:
        self._next_index = 0


class RandomStreams:
    """The block of engine stream numbers owned by one context."""

    def __init__(self, seed: int, run: int, index: int) -> None:
        self.seed = seed
        self.run = run
        self.index = index
        self.first_stream = index * c.STREAMS_PER_CONTEXT
        self._next_stream = self.first_stream

    @property
    def used(self) -> int:
        return self._next_stream - self.first_stream

    def assign(self, assign_streams: Callable[[int], int]) -> int:
        """Bind random variables starting at the next free stream number.

        ``assign_streams`` receives that number and returns how many streams
        it consumed, as the engine helpers' ``AssignStreams`` do.
        """

        used = int(assign_streams(self._next_stream))
        if used < 0:
            raise ValueError("stream count must be non-negative")
        self._next_stream += used
        if self.used > c.STREAMS_PER_CONTEXT:
            raise RuntimeError(f"context {self.index} ran out of random streams")
        return used

    def __repr__(self) -> str:
        return f"RandomStreams(seed={self.seed}, run={self.run}, index={self.index})"
