"""Helpers for tying parameters across frequency bands."""

from __future__ import annotations

import numpy as np
from scipy.fft import dct, idct

from ..core import MesslValidationError

TINY = np.finfo(np.float64).tiny
HALF_LOG_2PI = 0.5 * np.log(2.0 * np.pi)


def band_matrix(band: np.ndarray) -> np.ndarray:
    """Return one-hot band membership ``(n_bands, n_freq)``."""
    n_bands = int(band.max()) + 1
    return (band[None, :] == np.arange(n_bands)[:, None]).astype(np.float64)


def dct_smooth(values: np.ndarray, n_basis: int) -> np.ndarray:
    """Project ``values`` (frequency on axis 0) onto the first ``n_basis`` DCT bases."""
    if n_basis <= 0 or n_basis >= values.shape[0]:
        return values
    coeffs = dct(values, type=2, norm="ortho", axis=0)
    coeffs[n_basis:] = 0.0
    return idct(coeffs, type=2, norm="ortho", axis=0)


def source_freq_array(
    value, n_sources: int, n_freq: int, *, name: str
) -> np.ndarray:
    """Broadcast a scalar, ``(n_sources,)`` or ``(n_freq, n_sources)`` value.

    Returns
    -------
    ndarray of shape (n_sources, n_freq)
    """
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim == 0:
        return np.full((n_sources, n_freq), float(arr))
    if arr.ndim == 1 and arr.shape[0] == n_sources:
        return np.repeat(arr[:, None], n_freq, axis=1)
    if arr.ndim == 2 and arr.shape == (n_freq, n_sources):
        return arr.T.copy()
    raise MesslValidationError(
        f"{name} must be a scalar, ({n_sources},) or ({n_freq}, {n_sources}); "
        f"got shape {arr.shape}."
    )
