"""Source-prior (SP) cue backed by pretrained Gaussian mixture models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.special import logsumexp

from ..core import CueModel, MesslValidationError, PermutationRequest, SourcePriorMode
from ..observations import PairObservation
from ..strategies.permutation import ScoreMatrixPermutationStrategy
from ._tying import TINY, dct_smooth


@dataclass(frozen=True)
class GaussianMixturePrior:
    """Diagonal GMM over dB log-magnitude spectra of one source.

    Attributes
    ----------
    weights : ndarray of shape (n_components,)
    means : ndarray of shape (n_components, n_freq)
    covars : ndarray of shape (n_components, n_freq)
    """

    weights: np.ndarray
    means: np.ndarray
    covars: np.ndarray

    @classmethod
    def from_arrays(cls, weights, means, covars) -> "GaussianMixturePrior":
        weights = np.asarray(weights, dtype=np.float64).ravel()
        means = np.atleast_2d(np.asarray(means, dtype=np.float64))
        covars = np.atleast_2d(np.asarray(covars, dtype=np.float64))
        if means.shape != covars.shape or means.shape[0] != weights.shape[0]:
            raise MesslValidationError(
                "GMM weights (K,), means (K, F) and covars (K, F) are inconsistent: "
                f"{weights.shape}, {means.shape}, {covars.shape}."
            )
        if np.any(covars <= 0) or np.any(weights < 0):
            raise MesslValidationError("GMM covars must be positive and weights >= 0.")
        return cls(weights / weights.sum(), means, covars)

    @property
    def n_components(self) -> int:
        return int(self.weights.shape[0])

    @property
    def n_freq(self) -> int:
        return int(self.means.shape[1])


def _component_terms(
    prior: GaussianMixturePrior, spectrum: np.ndarray, offset: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Return per-bin component log-densities ``(F, T, K)`` and frame posteriors ``(T, K)``."""
    mean = (prior.means + offset[None, :]).T[:, None, :]
    var = prior.covars.T[:, None, :]
    lpc = -0.5 * np.square(spectrum[:, :, None] - mean) / var - 0.5 * np.log(
        2.0 * np.pi * var
    )
    frame = np.log(np.maximum(prior.weights, TINY))[None, :] + lpc.sum(axis=0)
    gamma = np.exp(frame - logsumexp(frame, axis=1, keepdims=True))
    return lpc, gamma


class SourcePriorModel(CueModel):
    """Per-bin expected log-likelihood under each source's GMM.

    A per-source channel response (dB offset per frequency) is adapted
    during EM; the GMMs themselves are pretrained and kept fixed. The model
    stays inactive until :attr:`active` is switched on by the engine.
    """

    name = "SP"

    def __init__(
        self,
        priors: Sequence[GaussianMixturePrior],
        n_freq: int,
        *,
        n_sources: int,
        garbage: bool = False,
        mode: SourcePriorMode = SourcePriorMode.SEPARATE,
        dct: int = 0,
    ) -> None:
        super().__init__(n_sources, garbage)
        if len(priors) != n_sources:
            raise MesslValidationError(
                f"Expected {n_sources} source priors, got {len(priors)}."
            )
        for prior in priors:
            if prior.n_freq != n_freq:
                raise MesslValidationError(
                    f"Source prior has {prior.n_freq} frequency bins, mixture has {n_freq}."
                )
        self.priors = list(priors)
        self.mode = mode
        self.dct = int(dct)
        n_chan = 1 if mode is SourcePriorMode.AVERAGE else 2
        self.channel_response = np.zeros((n_chan, self.n_labels, int(n_freq)))
        self.active = False

    def _spectra(self, obs: PairObservation) -> np.ndarray:
        return obs.log_spectra(average=self.mode is SourcePriorMode.AVERAGE)

    def source_log_likelihood(
        self, obs: PairObservation, prior: GaussianMixturePrior, slot: int
    ) -> np.ndarray:
        """Return ``(F, T)`` log-likelihood of ``prior`` with the response of ``slot``."""
        out = np.zeros((obs.n_freq, obs.n_frame))
        for ch, spectrum in enumerate(self._spectra(obs)):
            lpc, gamma = _component_terms(prior, spectrum, self.channel_response[ch, slot])
            out += np.einsum("ftk,tk->ft", lpc, gamma)
        return out

    def log_likelihood(self, obs: PairObservation) -> np.ndarray:
        out = np.empty((obs.n_freq, obs.n_frame, self.n_labels))
        for i, prior in enumerate(self.priors):
            out[:, :, i] = self.source_log_likelihood(obs, prior, i)
        if self.garbage:
            out[:, :, -1] = out[:, :, : self.n_sources].mean(axis=2)
        return out

    def update(
        self, resp: np.ndarray, obs: PairObservation, *, tied: bool = False
    ) -> None:
        """Re-estimate the channel response of every genuine source.

        The response is always frequency dependent; ``tied`` is ignored.
        """
        for ch, spectrum in enumerate(self._spectra(obs)):
            for i, prior in enumerate(self.priors):
                _, gamma = _component_terms(
                    prior, spectrum, self.channel_response[ch, i]
                )
                prec = 1.0 / prior.covars.T
                weight = resp[:, :, i][:, :, None] * gamma[None, :, :] * prec[:, None, :]
                resid = spectrum[:, :, None] - prior.means.T[:, None, :]
                num = np.sum(weight * resid, axis=(1, 2))
                den = np.sum(weight, axis=(1, 2))
                response = np.where(
                    den > TINY,
                    num / np.maximum(den, TINY),
                    self.channel_response[ch, i],
                )
                if self.dct > 0:
                    response = dct_smooth(response, self.dct)
                self.channel_response[ch, i] = response

    def permute(self, order: np.ndarray) -> None:
        order = np.asarray(order, dtype=np.int64)
        self.priors = [self.priors[j] for j in order]
        self.channel_response[:, : self.n_sources] = self.channel_response[:, order]

    def align_to_mask(self, mask: np.ndarray, obs: PairObservation) -> np.ndarray:
        """Permute the GMMs to best explain a binaural mask ``(F, T, n_sources)``.

        Returns the applied order.
        """
        score = np.empty((self.n_sources, self.n_sources))
        for j, prior in enumerate(self.priors):
            lp = self.source_log_likelihood(obs, prior, j)
            score[:, j] = np.einsum("fti,ft->i", mask, lp)
        order = ScoreMatrixPermutationStrategy().solve(PermutationRequest(score=score))
        self.permute(order)
        return order
