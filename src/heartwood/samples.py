import asyncio
import random
from collections import deque
from typing import AsyncGenerator

from heartwood.growth import Sample


class HeartRateHistory:
    """
    Rolling window of the latest samples shown on the chart overlay.
    Only the last ``maxlen`` samples are kept, ``count`` keeps growing.
    """

    def __init__(self, maxlen: int = 20):
        if maxlen <= 0:
            raise ValueError("maxlen must be > 0")
        self.maxlen = maxlen
        self._samples: deque[Sample] = deque(maxlen=maxlen)
        self._count = 0

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: Sample) -> None:
        self._samples.append(sample)
        self._count += 1

    @property
    def samples(self) -> list[Sample]:
        return list(self._samples)

    @property
    def latest(self) -> Sample | None:
        return self._samples[-1] if self._samples else None

    @property
    def count(self) -> int:
        return self._count

    def domain(self) -> tuple[int, int]:
        """x-axis window of the chart: slides once the window is full."""
        if self._count > self.maxlen:
            return self._count - self.maxlen, self._count
        return 0, self.maxlen


async def synthetic_samples(
        interval: float = 1.0,
        low: float = 60,
        high: float = 120,
        rng: random.Random | None = None,
        start: int = 1,
) -> AsyncGenerator[Sample, None]:
    """Yields one uniformly random heart-rate sample every ``interval`` seconds.

    Args:
        interval: seconds to wait before each sample.
        low: lowest rate in bpm.
        high: highest rate in bpm.
        rng: random source, for reproducible sequences.
        start: timestamp of the first sample, incremented by one per sample.
    """
    if low > high:
        raise ValueError("low must not exceed high")
    rng = rng if rng is not None else random.Random()
    timestamp = start
    while True:
        await asyncio.sleep(interval)
        yield Sample(timestamp=timestamp, rate=rng.uniform(low, high))
        timestamp += 1
