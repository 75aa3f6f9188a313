"""
Stream Preprocessing

Elevation smoothing applied before any slope math. GPS and barometric
elevation samples are noisy enough that raw point-to-point grades are useless.
"""

from typing import List, Sequence

import numpy as np
from scipy import signal


def moving_average(values: Sequence[float], half_width: int = 2) -> List[float]:
    """
    Symmetric moving average, clamped at the sequence boundaries.

    Each point is replaced by the mean of the samples within ``half_width``
    positions on either side. Near the ends the window is truncated rather
    than padded, so the output has the same length as the input.

    Args:
        values: Raw samples (e.g. elevation in meters)
        half_width: Samples on each side of the center (2 = 5-point window)

    Returns:
        Smoothed samples as a list
    """
    if half_width < 0:
        raise ValueError(f"half_width must not be negative, got {half_width}")

    n = len(values)
    if n == 0:
        return []
    if half_width == 0 or n == 1:
        return [float(v) for v in values]

    data = np.asarray(values, dtype=float)
    kernel = np.ones(2 * half_width + 1)

    # Full convolution sliced back to n samples also covers windows wider than n
    sums = np.convolve(data, kernel, mode="full")[half_width:half_width + n]
    counts = np.convolve(np.ones(n), kernel, mode="full")[half_width:half_width + n]

    return (sums / counts).tolist()


def savgol_smooth(
    values: Sequence[float], window_length: int = 5, polyorder: int = 2
) -> List[float]:
    """
    Apply Savitzky-Golay filter to smooth noisy elevation data.

    Args:
        values: Raw samples
        window_length: Size of smoothing window (made odd if even)
        polyorder: Polynomial order

    Returns:
        Smoothed samples, or the input unchanged if shorter than the window
    """
    # Ensure window size is odd
    if window_length % 2 == 0:
        window_length += 1

    if len(values) < window_length:
        return [float(v) for v in values]

    smoothed = signal.savgol_filter(
        np.asarray(values, dtype=float),
        window_length=window_length,
        polyorder=min(polyorder, window_length - 1),
    )
    return smoothed.tolist()


SMOOTHING_METHODS = ("moving_average", "savgol")


def smooth_elevation(
    elevations: Sequence[float], half_width: int = 2, method: str = "moving_average"
) -> List[float]:
    """
    Smooth an elevation stream.

    Args:
        elevations: Raw elevation samples in meters
        half_width: Half-width of the smoothing window
        method: "moving_average" (default) or "savgol"

    Returns:
        Smoothed elevation samples, same length as the input
    """
    if method == "moving_average":
        return moving_average(elevations, half_width)
    if method == "savgol":
        return savgol_smooth(elevations, window_length=2 * half_width + 1)
    raise ValueError(
        f"Unknown smoothing method {method!r}, expected one of {SMOOTHING_METHODS}"
    )
