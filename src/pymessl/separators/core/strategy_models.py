"""Typed request/response models for strategy and cue interfaces."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(slots=True)
class PermutationRequest:
    """Input container for permutation strategies.

    ``score`` is a square ``(n_src, n_src)`` similarity matrix for
    score-based strategies. Mask-based strategies read ``reference`` and
    ``estimate`` with the source axis last.
    """

    score: np.ndarray | None = None
    reference: np.ndarray | None = None
    estimate: np.ndarray | None = None


@dataclass(slots=True)
class CueLogLikelihoods:
    """Per-cue log-likelihoods of one pair for the current parameters.

    Attributes
    ----------
    ipd_joint:
        IPD log-likelihood jointly with the delay, ``(F, T, I, n_tau)``.
    ipd:
        IPD log-likelihood with the delay marginalised, ``(F, T, I)``.
    ild:
        ILD log-likelihood ``(F, T, I)``.
    sp:
        Source-prior log-likelihood ``(F, T, I)``.
    """

    ipd_joint: np.ndarray | None = None
    ipd: np.ndarray | None = None
    ild: np.ndarray | None = None
    sp: np.ndarray | None = None

    def named(self) -> list[tuple[str, np.ndarray]]:
        """Return enabled ``(cue_name, log_likelihood)`` pairs."""
        items = [("IPD", self.ipd), ("ILD", self.ild), ("SP", self.sp)]
        return [(name, value) for name, value in items if value is not None]


@dataclass(slots=True)
class PosteriorResult:
    """Output of the posterior combiner for one pair.

    Attributes
    ----------
    posterior:
        Soft source assignment ``(F, T, I)``; sums to one over sources.
    log_likelihood:
        Sum over bins of the log-evidence.
    nu_ipd:
        IPD responsibilities over sources and delays ``(F, T, I, n_tau)``.
    nu_ild, nu_sp:
        ILD / source-prior responsibilities ``(F, T, I)``.
    mask_ipd, mask_ild, mask_sp:
        Posterior implied by one cue alone ``(F, T, I)``.
    """

    posterior: np.ndarray
    log_likelihood: float
    nu_ipd: np.ndarray | None = None
    nu_ild: np.ndarray | None = None
    nu_sp: np.ndarray | None = None
    mask_ipd: np.ndarray | None = None
    mask_ild: np.ndarray | None = None
    mask_sp: np.ndarray | None = None
