"""Ring buffer for temporal windows.

Fixed-capacity circular buffer of floats backed by a numpy array. Once full,
the oldest sample is overwritten; chronological order is reconstructed from
``(write_index - count + i) mod capacity``.
"""

from collections.abc import Iterator

import numpy as np
from numpy.typing import NDArray


class RingBuffer:
    """Circular numeric buffer."""

    def __init__(self, capacity: int, dtype=np.float64) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = int(capacity)
        self._data: NDArray = np.zeros(self.capacity, dtype=dtype)
        self.write_index = 0
        self.count = 0

    def push(self, value: float) -> None:
        """Append a value, overwriting the oldest one when full."""
        self._data[self.write_index] = value
        self.write_index = (self.write_index + 1) % self.capacity
        if self.count < self.capacity:
            self.count += 1

    def latest(self, n: int) -> NDArray:
        """
        Return the ``n`` most recent values in chronological order.

        Args:
            n: Number of values (clamped to the current fill)

        Returns:
            Copy of the values, oldest first
        """
        n = max(0, min(int(n), self.count))
        start = (self.write_index - n) % self.capacity
        idx = (start + np.arange(n)) % self.capacity
        return self._data[idx].copy()

    def to_array(self) -> NDArray:
        """All stored values, oldest first."""
        return self.latest(self.count)

    def clear(self) -> None:
        self._data.fill(0)
        self.write_index = 0
        self.count = 0

    @property
    def is_full(self) -> bool:
        return self.count == self.capacity

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[float]:
        for i in range(self.count):
            yield float(self._data[(self.write_index - self.count + i) % self.capacity])

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={self.capacity}, count={self.count})"
