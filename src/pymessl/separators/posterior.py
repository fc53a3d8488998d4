"""Combination of cue log-likelihoods into per-pair posteriors."""

from __future__ import annotations

import numpy as np
from scipy.special import logsumexp

from .core import CueLogLikelihoods, PosteriorResult
from .mrf import loopy_belief_propagation

TINY = np.finfo(np.float64).tiny


def _softmax(log_values: np.ndarray) -> np.ndarray:
    return np.exp(log_values - logsumexp(log_values, axis=-1, keepdims=True))


class PosteriorCombiner:
    """Normalise summed cue log-likelihoods (plus a log prior) over sources.

    Parameters
    ----------
    compat:
        Optional MRF compatibility table used to smooth the posterior when a
        positive exponent is scheduled.
    lbp_iter:
        Loopy BP iterations for that smoothing.
    """

    def __init__(self, compat: np.ndarray | None = None, lbp_iter: int = 8) -> None:
        self.compat = compat
        self.lbp_iter = int(lbp_iter)

    def combine(
        self,
        lls: CueLogLikelihoods,
        *,
        log_prior: np.ndarray | None = None,
        reliability: np.ndarray | None = None,
        compat_exp: float = 0.0,
    ) -> PosteriorResult:
        terms = [value for _, value in lls.named()]
        if log_prior is not None:
            terms.append(log_prior)
        if not terms:
            raise ValueError("At least one cue or a log prior is required.")
        log_joint = terms[0]
        for term in terms[1:]:
            log_joint = log_joint + term

        log_evidence = logsumexp(log_joint, axis=2, keepdims=True)
        posterior = np.exp(log_joint - log_evidence)
        if self.compat is not None and compat_exp > 0:
            posterior = np.exp(
                loopy_belief_propagation(
                    np.log(np.maximum(posterior, TINY)),
                    self.compat,
                    exponent=compat_exp,
                    n_iter=self.lbp_iter,
                    mode="sum",
                )
            )

        weight = posterior if reliability is None else posterior * reliability[:, :, None]
        result = PosteriorResult(
            posterior=posterior,
            log_likelihood=float(np.sum(log_evidence)),
        )
        if lls.ipd is not None and lls.ipd_joint is not None:
            delay_post = np.exp(lls.ipd_joint - lls.ipd[:, :, :, None])
            result.nu_ipd = weight[:, :, :, None] * delay_post
            result.mask_ipd = _softmax(lls.ipd)
        if lls.ild is not None:
            result.nu_ild = weight
            result.mask_ild = _softmax(lls.ild)
        if lls.sp is not None:
            result.nu_sp = weight
            result.mask_sp = _softmax(lls.sp)
        return result
