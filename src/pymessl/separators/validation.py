"""Input validation performed before any EM work."""

from __future__ import annotations

import numpy as np

from .core import MesslValidationError

TINY = np.finfo(np.float64).tiny


def validate_inputs(
    mixture,
    tau,
    n_sources: int,
    *,
    ref_mic: int = 0,
) -> tuple[np.ndarray, np.ndarray, int]:
    """Check mixture, delay grid, source count and reference microphone.

    Returns
    -------
    mixture : ndarray of shape (n_freq, n_frame, n_channel)
    tau : ndarray of shape (n_tau,)
    n_sources : int
    """
    mixture = np.asarray(mixture)
    if mixture.ndim != 3:
        raise MesslValidationError(
            f"mixture must have shape (n_freq, n_frame, n_channel); got ndim={mixture.ndim}."
        )
    if not np.issubdtype(mixture.dtype, np.number):
        raise MesslValidationError(f"mixture must be numeric, got dtype {mixture.dtype}.")
    if min(mixture.shape[:2]) < 1:
        raise MesslValidationError(f"mixture has an empty axis: {mixture.shape}.")
    if mixture.shape[2] < 2:
        raise MesslValidationError(
            f"At least two channels are required, got {mixture.shape[2]}."
        )
    if not np.all(np.isfinite(mixture)):
        raise MesslValidationError("mixture contains non-finite values.")

    tau = np.asarray(tau, dtype=np.float64).ravel()
    if tau.size == 0:
        raise MesslValidationError("tau grid is empty.")
    if not np.all(np.isfinite(tau)) or np.any(np.diff(tau) <= 0):
        raise MesslValidationError("tau grid must be finite and strictly ascending.")

    if int(n_sources) != n_sources or int(n_sources) < 1:
        raise MesslValidationError(f"n_sources must be a positive integer, got {n_sources}.")
    n_sources = int(n_sources)
    if n_sources > tau.size:
        raise MesslValidationError(
            f"n_sources ({n_sources}) exceeds the number of delays ({tau.size})."
        )

    n_channels = mixture.shape[2]
    if int(ref_mic) < 0 or int(ref_mic) > n_channels:
        raise MesslValidationError(
            f"ref_mic must be 0 or in 1..{n_channels}, got {ref_mic}."
        )
    return mixture, tau, n_sources


def prepare_log_mask_prior(
    mask_prior,
    n_freq: int,
    n_frame: int,
    n_sources: int,
    garbage: bool,
) -> np.ndarray:
    """Return the log of a ``(F, T, n_labels)`` mask prior.

    A prior over the genuine sources only is padded with a uniform garbage
    slot and renormalised.
    """
    mask = np.asarray(mask_prior, dtype=np.float64)
    n_labels = n_sources + int(garbage)
    if mask.ndim != 3 or mask.shape[:2] != (n_freq, n_frame) or mask.shape[2] not in (
        n_sources,
        n_labels,
    ):
        raise MesslValidationError(
            f"mask prior must have shape ({n_freq}, {n_frame}, {n_labels}); got {mask.shape}."
        )
    if np.any(mask < 0) or not np.all(np.isfinite(mask)):
        raise MesslValidationError("mask prior must be finite and non-negative.")
    if mask.shape[2] < n_labels:
        mask = np.concatenate(
            [mask, np.full((n_freq, n_frame, 1), 1.0 / n_labels)], axis=2
        )
        mask = mask / np.maximum(mask.sum(axis=2, keepdims=True), TINY)
    return np.log(np.maximum(mask, TINY))


def prepare_reliability(reliability, n_freq: int, n_frame: int) -> np.ndarray:
    """Validate per-bin reliability weights ``(F, T)``."""
    weights = np.asarray(reliability, dtype=np.float64)
    if weights.shape != (n_freq, n_frame):
        raise MesslValidationError(
            f"reliability must have shape ({n_freq}, {n_frame}); got {weights.shape}."
        )
    if np.any(weights < 0) or not np.all(np.isfinite(weights)):
        raise MesslValidationError("reliability must be finite and non-negative.")
    return weights


def validate_source_priors(priors, n_sources: int, n_freq: int) -> None:
    """Check that there is one GMM per source, each over ``n_freq`` bins."""
    if len(priors) != n_sources:
        raise MesslValidationError(
            f"Expected {n_sources} source priors, got {len(priors)}."
        )
    for i, prior in enumerate(priors):
        if prior.n_freq != n_freq:
            raise MesslValidationError(
                f"Source prior {i} has {prior.n_freq} frequency bins, mixture has {n_freq}."
            )
