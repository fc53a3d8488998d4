"""Cross-pair source label alignment."""

from __future__ import annotations

from dataclasses import dataclass
import logging

import numpy as np

from .core import PermutationRequest, PermutationStrategy
from .strategies import KLPermutationStrategy

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlignmentResult:
    """Aligned per-pair masks and delay posteriors.

    Attributes
    ----------
    masks : ndarray of shape (F, T, n_labels, n_pairs)
    p_tau_i : ndarray of shape (n_pairs, n_labels, n_tau)
    orders : ndarray of shape (n_pairs, n_sources)
        Applied order of each pair: aligned slot ``i`` took slot ``orders[c, i]``.
    """

    masks: np.ndarray
    p_tau_i: np.ndarray
    orders: np.ndarray


class SourcePermutationAligner:
    """Make source labels mean the same physical source in every pair.

    Pairs are processed in order. Each pair is matched against a running
    reference that starts as the first pair's mask and becomes the mean of
    all masks aligned so far. The garbage slot, when present, never moves.
    """

    def __init__(
        self,
        n_sources: int,
        *,
        garbage: bool = False,
        strategy: PermutationStrategy | None = None,
    ) -> None:
        self.n_sources = int(n_sources)
        self.garbage = bool(garbage)
        self.strategy = strategy if strategy is not None else KLPermutationStrategy()

    def align(self, masks: np.ndarray, p_tau_i: np.ndarray) -> AlignmentResult:
        n_src = self.n_sources
        masks = np.array(masks, dtype=np.float64, copy=True)
        p_tau_i = np.array(p_tau_i, dtype=np.float64, copy=True)
        n_pairs = masks.shape[3]
        orders = np.zeros((n_pairs, n_src), dtype=np.int64)

        reference = masks[:, :, :n_src, 0].copy()
        for c in range(n_pairs):
            order = self.strategy.solve(
                PermutationRequest(reference=reference, estimate=masks[:, :, :n_src, c])
            )
            orders[c] = order
            masks[:, :, :n_src, c] = masks[:, :, order, c]
            reference = masks[:, :, :n_src, : c + 1].mean(axis=3)

            full_order = np.concatenate([order, [n_src]]) if self.garbage else order
            p_tau_i[c] = p_tau_i[c][full_order]
            LOGGER.debug("pair %d source order %s", c, order.tolist())
        return AlignmentResult(masks=masks, p_tau_i=p_tau_i, orders=orders)
