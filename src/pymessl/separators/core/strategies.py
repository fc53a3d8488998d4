"""Strategy interfaces for algorithm component injection."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from .strategy_models import PermutationRequest


class PermutationStrategy(ABC):
    """Solves source permutation ambiguity."""

    @abstractmethod
    def solve(self, request: PermutationRequest) -> np.ndarray:
        """Return permutation indices."""


class CueModel(ABC):
    """One statistical cue of a channel pair (IPD, ILD or source prior).

    Every cue keeps its parameters for ``n_labels`` sources; when a garbage
    source is enabled it occupies the last slot and is never re-estimated.
    """

    name: str = "cue"

    def __init__(self, n_sources: int, garbage: bool = False) -> None:
        self.n_sources = int(n_sources)
        self.garbage = bool(garbage)

    @property
    def n_labels(self) -> int:
        return self.n_sources + int(self.garbage)

    @abstractmethod
    def log_likelihood(self, obs) -> np.ndarray:
        """Return the per-bin log-likelihood ``(F, T, n_labels)``."""

    @abstractmethod
    def update(self, resp: np.ndarray, obs, *, tied: bool = False) -> None:
        """Re-estimate parameters of the genuine sources from responsibilities.

        With ``tied`` set, frequency-dependent parameters are estimated as if
        they were frequency independent.
        """

    @abstractmethod
    def permute(self, order: np.ndarray) -> None:
        """Reorder the genuine source slots so that slot ``i`` takes ``order[i]``."""
