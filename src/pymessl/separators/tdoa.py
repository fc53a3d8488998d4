"""Least-squares per-microphone delay estimation."""

from __future__ import annotations

import numpy as np


def posterior_mode_delays(
    p_tau_i: np.ndarray,
    tau: np.ndarray,
    n_sources: int,
) -> np.ndarray:
    """Return the delay mode of every pair and genuine source.

    Parameters
    ----------
    p_tau_i : ndarray of shape (n_pairs, n_labels, n_tau)
        Per-pair delay posteriors; rows past ``n_sources`` (garbage) are
        ignored.
    tau : ndarray of shape (n_tau,)
        Delay grid.

    Returns
    -------
    ndarray of shape (n_pairs, n_sources)
    """
    p_tau_i = np.asarray(p_tau_i)
    modes = np.argmax(p_tau_i[:, :n_sources, :], axis=2)
    return np.asarray(tau)[modes]


def per_mic_tdoa_ls(
    per_pair_tdoa: np.ndarray,
    channel_pairs: np.ndarray,
    n_channels: int | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Solve per-microphone delays from pairwise delays by least squares.

    Each pair ``(a, b)`` constrains ``d_b - d_a = tdoa``. Microphone 0 is the
    reference with ``d_0 = 0``.

    Parameters
    ----------
    per_pair_tdoa : ndarray of shape (n_pairs,) or (n_pairs, n_sources)
    channel_pairs : ndarray of shape (n_pairs, 2)
        Zero-based channel indices.
    n_channels : int or None
        Number of microphones; inferred from ``channel_pairs`` when ``None``.

    Returns
    -------
    per_mic : ndarray of shape (n_channels,) or (n_channels, n_sources)
    per_pair : ndarray with the shape of ``per_pair_tdoa``
        Pairwise delays re-derived from ``per_mic``; globally consistent.
    """
    rhs = np.asarray(per_pair_tdoa, dtype=np.float64)
    squeeze = rhs.ndim == 1
    if squeeze:
        rhs = rhs[:, None]
    pairs = np.asarray(channel_pairs, dtype=np.int64)
    if n_channels is None:
        n_channels = int(pairs.max()) + 1

    incidence = np.zeros((pairs.shape[0], n_channels))
    rows = np.arange(pairs.shape[0])
    incidence[rows, pairs[:, 1]] += 1.0
    incidence[rows, pairs[:, 0]] -= 1.0

    solution, *_ = np.linalg.lstsq(incidence[:, 1:], rhs, rcond=None)
    per_mic = np.vstack([np.zeros((1, rhs.shape[1])), solution])
    per_pair = incidence @ per_mic
    if squeeze:
        return per_mic[:, 0], per_pair[:, 0]
    return per_mic, per_pair
