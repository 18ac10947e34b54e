"""Signal filters for accelerometer streams.

The gravity estimate is a causal Butterworth low-pass applied per axis; the
posture classifier additionally needs a trailing sliding variance of the
gravity magnitude.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import signal


def butterworth_lowpass(
    data: NDArray[np.float64],
    cutoff_freq: float = 0.5,
    sampling_rate: float = 1.0,
    order: int = 2,
) -> NDArray[np.float64]:
    """Apply a causal Butterworth low-pass filter per channel.

    The filter state is initialised at the steady state of the first sample,
    so a constant input passes through without a start-up transient.

    Args:
        data: Input array of shape (n_samples,) or (n_samples, n_channels).
        cutoff_freq: Cutoff frequency in Hz.
        sampling_rate: Sampling rate in Hz.
        order: Filter order.

    Returns:
        Filtered array of the same shape. The input is returned unchanged
        (as a copy) when the cutoff is at or above the Nyquist frequency.
    """
    data = np.asarray(data, dtype=np.float64)
    if data.shape[0] == 0:
        return data.copy()

    nyquist = sampling_rate / 2
    normalized_cutoff = cutoff_freq / nyquist

    if cutoff_freq <= 0 or normalized_cutoff >= 1.0:
        return data.copy()

    b, a = signal.butter(order, normalized_cutoff, btype="low")
    zi = signal.lfilter_zi(b, a)

    if data.ndim == 1:
        filtered, _ = signal.lfilter(b, a, data, zi=zi * data[0])
        return filtered

    filtered = np.zeros_like(data)
    for i in range(data.shape[1]):
        filtered[:, i], _ = signal.lfilter(b, a, data[:, i], zi=zi * data[0, i])
    return filtered


def sliding_variance(values: NDArray[np.float64], window: int) -> NDArray[np.float64]:
    """Trailing-window population variance.

    The first ``window - 1`` outputs use the shorter window available so far.
    Non-finite values count as zero.

    Args:
        values: 1D input series.
        window: Window length in samples.

    Returns:
        Array of non-negative variances, same length as ``values``.
    """
    x = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    n = len(x)
    if n == 0:
        return np.zeros(0)
    if window <= 1:
        return np.zeros(n)

    csum = np.concatenate(([0.0], np.cumsum(x)))
    csum_sq = np.concatenate(([0.0], np.cumsum(x * x)))
    idx = np.arange(1, n + 1)
    start = np.maximum(0, idx - window)
    length = idx - start

    mean = (csum[idx] - csum[start]) / length
    mean_sq = (csum_sq[idx] - csum_sq[start]) / length
    return np.maximum(0.0, mean_sq - mean * mean)
