"""Typed result containers returned by MESSL separators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np


@dataclass(slots=True)
class MesslParams:
    """Parameter bundle of one separation run.

    Parameters
    ----------
    pairs:
        Per-pair parameter records (:class:`~pymessl.separators.engine.PairParams`)
        holding the fitted cue models.
    per_mic_tdoa:
        Least-squares per-microphone delays in samples, shape
        ``(n_channel, n_sources)``; microphone 0 is the reference.
    channel_pairs:
        Zero-based channel indices of every pair, shape ``(n_pairs, 2)``.
    tau:
        Delay grid in samples shared by all pairs.
    sample_rate:
        Sampling rate in Hz, used to express delays in seconds.
    """

    pairs: list[Any]
    per_mic_tdoa: np.ndarray
    channel_pairs: np.ndarray
    tau: np.ndarray
    sample_rate: int = 16000

    @property
    def per_mic_tdoa_seconds(self) -> np.ndarray:
        return self.per_mic_tdoa / float(self.sample_rate)


@dataclass(slots=True)
class MesslOutput:
    """Unified MESSL result container.

    Parameters
    ----------
    posterior:
        Soft assignment ``(2, n_freq, n_frame, n_labels)`` of the
        representative pair, replicated across its two channels. ``n_labels``
        includes the garbage source when enabled.
    hard_mask:
        Binary masks ``(n_freq, n_frame, n_channel, n_sources)`` over the
        genuine sources, or ``None`` when decoding was skipped.
    params:
        Fitted parameters and delay estimates.
    ll_history:
        Combined-posterior log-likelihood per pair and repetition,
        shape ``(n_pairs, n_rep_done)``.
    n_sources:
        Number of genuine sources (garbage excluded).
    metadata:
        Free-form run information for logging.
    """

    posterior: np.ndarray
    params: MesslParams
    ll_history: np.ndarray
    n_sources: int
    hard_mask: np.ndarray | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.posterior.ndim != 4 or self.posterior.shape[0] != 2:
            raise ValueError(
                "MesslOutput.posterior must have shape (2, n_freq, n_frame, n_labels)."
            )

    @property
    def mask(self) -> np.ndarray:
        """Soft mask of the genuine sources, shape ``(n_freq, n_frame, n_sources)``."""
        return self.posterior[0, :, :, : self.n_sources]
