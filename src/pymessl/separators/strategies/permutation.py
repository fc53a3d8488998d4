"""Permutation strategies for source alignment."""

from __future__ import annotations

from itertools import permutations
import logging

import numpy as np
from scipy.optimize import linear_sum_assignment

from ..core import PermutationRequest, PermutationStrategy

LOGGER = logging.getLogger(__name__)

TINY = np.finfo(np.float64).tiny


def symmetric_kl(reference: np.ndarray, estimate: np.ndarray) -> float:
    """Symmetrised KL divergence between two flattened masks.

    Computes ``sum((r - e) * log(r / e))`` with both inputs floored at the
    smallest positive double.
    """
    ref = np.maximum(np.ravel(reference), TINY)
    est = np.maximum(np.ravel(estimate), TINY)
    return float(np.dot(ref - est, np.log(ref) - np.log(est)))


def pairwise_symmetric_kl(reference: np.ndarray, estimate: np.ndarray) -> np.ndarray:
    """Return ``cost[i, j]`` = symmetrised KL between source planes ``i`` and ``j``.

    Inputs carry sources on the last axis.
    """
    n_src = reference.shape[-1]
    ref = np.maximum(reference.reshape(-1, n_src), TINY)
    est = np.maximum(estimate.reshape(-1, n_src), TINY)
    diff = ref[:, :, None] - est[:, None, :]
    log_ratio = np.log(ref)[:, :, None] - np.log(est)[:, None, :]
    return np.sum(diff * log_ratio, axis=0)


def _require_masks(request: PermutationRequest) -> tuple[np.ndarray, np.ndarray]:
    reference = request.reference
    estimate = request.estimate
    if not isinstance(reference, np.ndarray) or not isinstance(estimate, np.ndarray):
        raise ValueError("Mask permutation strategies require reference and estimate arrays.")
    if reference.shape != estimate.shape:
        raise ValueError(
            f"reference and estimate shapes differ: {reference.shape} vs {estimate.shape}"
        )
    return reference, estimate


class ScoreMatrixPermutationStrategy(PermutationStrategy):
    """Solve permutation by maximizing a source similarity score matrix.

    Notes
    -----
    Input ``score`` must be a square matrix with shape ``(n_src, n_src)``,
    where ``score[i, j]`` indicates similarity between reference source ``i``
    and estimated source ``j``.
    """

    def solve(self, request: PermutationRequest) -> np.ndarray:
        score = request.score
        if score is None or score.ndim != 2 or score.shape[0] != score.shape[1]:
            raise ValueError("score must be a square 2-D array.")
        row_idx, col_idx = linear_sum_assignment(-score)
        perm = np.zeros(score.shape[0], dtype=np.int64)
        perm[row_idx] = col_idx
        return perm


class ExhaustiveKLPermutationStrategy(PermutationStrategy):
    """Enumerate all source orders and keep the one closest to the reference.

    ``estimate[..., order]`` minimises :func:`symmetric_kl` against
    ``reference``. Ties keep the first order in lexicographic enumeration, so
    the identity wins when nothing is better.
    """

    def __init__(self, max_sources: int = 4) -> None:
        self.max_sources = int(max_sources)

    def solve(self, request: PermutationRequest) -> np.ndarray:
        reference, estimate = _require_masks(request)
        n_src = estimate.shape[-1]
        if n_src > self.max_sources:
            raise ValueError(
                f"Exhaustive search is limited to {self.max_sources} sources, got {n_src}."
            )
        best_order = np.arange(n_src, dtype=np.int64)
        best_cost = np.inf
        for order in permutations(range(n_src)):
            cost = symmetric_kl(reference, estimate[..., list(order)])
            if cost < best_cost:
                best_cost = cost
                best_order = np.asarray(order, dtype=np.int64)
        return best_order


class AssignmentKLPermutationStrategy(PermutationStrategy):
    """Minimum-cost bipartite matching on the per-source KL cost matrix.

    The flattened symmetrised KL decomposes into a sum over source planes, so
    this finds the same optimum as exhaustive enumeration in polynomial time.
    """

    def solve(self, request: PermutationRequest) -> np.ndarray:
        reference, estimate = _require_masks(request)
        cost = pairwise_symmetric_kl(reference, estimate)
        row_idx, col_idx = linear_sum_assignment(cost)
        perm = np.zeros(cost.shape[0], dtype=np.int64)
        perm[row_idx] = col_idx
        return perm


class KLPermutationStrategy(PermutationStrategy):
    """Exhaustive search up to ``max_exhaustive`` sources, matching beyond."""

    def __init__(self, max_exhaustive: int = 4) -> None:
        self.exhaustive = ExhaustiveKLPermutationStrategy(max_sources=max_exhaustive)
        self.assignment = AssignmentKLPermutationStrategy()

    def solve(self, request: PermutationRequest) -> np.ndarray:
        _, estimate = _require_masks(request)
        if estimate.shape[-1] <= self.exhaustive.max_sources:
            return self.exhaustive.solve(request)
        LOGGER.debug(
            "%d sources exceed exhaustive search; using bipartite matching",
            estimate.shape[-1],
        )
        return self.assignment.solve(request)
