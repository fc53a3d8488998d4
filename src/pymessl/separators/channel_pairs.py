"""Microphone pair selection."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations

import numpy as np

from .core import MesslValidationError


@dataclass(frozen=True, slots=True)
class ChannelPairSelection:
    """Selected channel pairs and the evidence rescale factor.

    Attributes
    ----------
    pairs : ndarray of shape (n_pairs, 2)
        Zero-based channel indices.
    overcount_rescale : float
        Weight applied to the summed log-posteriors of the other pairs.
    """

    pairs: np.ndarray
    overcount_rescale: float

    @property
    def n_pairs(self) -> int:
        return int(self.pairs.shape[0])


def select_channel_pairs(n_channels: int, ref_mic: int = 0) -> ChannelPairSelection:
    """Select microphone pairs.

    Parameters
    ----------
    n_channels:
        Number of microphones ``C``.
    ref_mic:
        One-based reference microphone. When positive, the ``C - 1`` pairs
        ``(ref, j)`` are used and no rescaling is applied. When ``0``, all
        ``C (C - 1) / 2`` pairs are used and the other pairs' evidence is
        rescaled by ``C / (n_pairs - 1)``.
    """
    n_channels = int(n_channels)
    ref_mic = int(ref_mic)
    if n_channels < 2:
        raise MesslValidationError(
            f"At least two channels are required, got {n_channels}."
        )
    if ref_mic < 0 or ref_mic > n_channels:
        raise MesslValidationError(
            f"ref_mic must be 0 or in 1..{n_channels}, got {ref_mic}."
        )

    if ref_mic > 0:
        ref = ref_mic - 1
        pairs = np.array(
            [(ref, ch) for ch in range(n_channels) if ch != ref], dtype=np.int64
        )
        return ChannelPairSelection(pairs=pairs, overcount_rescale=1.0)

    pairs = np.array(list(combinations(range(n_channels), 2)), dtype=np.int64)
    n_pairs = pairs.shape[0]
    # TODO: check whether the numerator should be (n_channels - 1).
    rescale = 1.0 if n_pairs == 1 else n_channels / (n_pairs - 1)
    return ChannelPairSelection(pairs=pairs, overcount_rescale=float(rescale))
