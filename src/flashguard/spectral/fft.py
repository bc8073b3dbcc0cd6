"""Radix-2 FFT.

Iterative in-place Cooley-Tukey transform: bit-reversal permutation followed
by log2(N) butterfly stages using a precomputed twiddle table. Each stage is
vectorized over all butterfly groups with numpy views, so the arrays are
updated in place.
"""

import numpy as np
from numpy.typing import NDArray

from ..core.constants import MAX_SIGNAL_LENGTH
from ..core.exceptions import InvariantViolationError, SignalError

FloatArray = NDArray[np.floating]


def is_power_of_two(n: int) -> bool:
    return n > 1 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    pow2 = 1
    while pow2 < n:
        pow2 <<= 1
    return pow2


def pad_to_power_of_two(signal: FloatArray, max_length: int = MAX_SIGNAL_LENGTH) -> FloatArray:
    """
    Zero-pad a signal to the next power of two.

    Args:
        signal: 1-D samples
        max_length: Upper bound for the padded length

    Returns:
        The signal itself if already a power of two, else a padded copy

    Raises:
        SignalError: If the signal is empty or the padded length exceeds max_length
    """
    n = len(signal)
    if n == 0:
        raise SignalError("Empty signal", length=0)
    pow2 = next_power_of_two(n)
    if pow2 > max_length:
        raise SignalError("Signal too long", length=n, max_length=max_length)
    if pow2 == n:
        return np.asarray(signal, dtype=np.float64)
    padded = np.zeros(pow2, dtype=np.float64)
    padded[:n] = signal
    return padded


class FFTPlan:
    """
    Precomputed tables for a fixed transform size.

    Attributes:
        size: Transform length (power of two)
        reverse_table: Bit-reversal permutation
        cos_table / sin_table: exp(-2*pi*i*k/N) for k < N/2
    """

    def __init__(self, size: int, max_length: int = MAX_SIGNAL_LENGTH) -> None:
        if not is_power_of_two(size):
            raise SignalError("Signal length must be power of 2", length=size)
        if size > max_length:
            raise SignalError("Signal too long", length=size, max_length=max_length)

        self.size = size
        self.levels = size.bit_length() - 1

        # Bit reversal table, built by doubling
        reverse = np.zeros(size, dtype=np.intp)
        limit = 1
        bit = size >> 1
        while limit < size:
            reverse[limit : 2 * limit] = reverse[:limit] + bit
            limit <<= 1
            bit >>= 1
        self.reverse_table = reverse

        k = np.arange(size // 2)
        self.cos_table = np.cos(-2.0 * np.pi * k / size)
        self.sin_table = np.sin(-2.0 * np.pi * k / size)

    def forward(self, signal: FloatArray) -> tuple[FloatArray, FloatArray]:
        """
        Forward transform of a real signal.

        Args:
            signal: Real samples, length must equal the plan size

        Returns:
            (real, imag) arrays of length N

        Raises:
            SignalError: On non-finite samples
            InvariantViolationError: If the buffer length does not match the plan
        """
        signal = np.asarray(signal, dtype=np.float64)
        if signal.ndim != 1 or len(signal) != self.size:
            raise InvariantViolationError(
                "Supplied buffer does not match FFT size",
                details={"fft_size": self.size, "buffer_size": int(signal.size)},
            )
        if not np.all(np.isfinite(signal)):
            bad = int(np.flatnonzero(~np.isfinite(signal))[0])
            raise SignalError(f"Bad value at {bad}", length=self.size)

        real = signal[self.reverse_table].copy()
        imag = np.zeros(self.size, dtype=np.float64)
        self._butterflies(real, imag)
        return real, imag

    def _butterflies(self, real: FloatArray, imag: FloatArray) -> None:
        n = self.size
        half = 1
        while half < n:
            stride = n // (2 * half)
            tw_re = self.cos_table[: half * stride : stride]
            tw_im = self.sin_table[: half * stride : stride]

            # Views: each row is one butterfly group of width 2*half
            re_groups = real.reshape(-1, 2 * half)
            im_groups = imag.reshape(-1, 2 * half)
            a_re, b_re = re_groups[:, :half], re_groups[:, half:]
            a_im, b_im = im_groups[:, :half], im_groups[:, half:]

            tr = tw_re * b_re - tw_im * b_im
            ti = tw_re * b_im + tw_im * b_re

            b_re[...] = a_re - tr
            b_im[...] = a_im - ti
            a_re += tr
            a_im += ti

            half <<= 1


def perform_fft(signal: FloatArray, plan: FFTPlan | None = None) -> tuple[FloatArray, FloatArray]:
    """
    Pad ``signal`` to a power of two and transform it.

    Args:
        signal: Real samples
        plan: Optional plan to reuse when its size matches

    Returns:
        (real, imag) of the padded transform
    """
    padded = pad_to_power_of_two(signal)
    if plan is None or plan.size != len(padded):
        plan = FFTPlan(len(padded))
    return plan.forward(padded)
