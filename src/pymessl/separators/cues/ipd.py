"""Interaural phase difference (IPD) cue model."""

from __future__ import annotations

import numpy as np
from scipy.special import logsumexp

from ..core import CueMode, CueModel, MesslValidationError, SigmaMode
from ..observations import PairObservation, wrap_phase
from ._tying import HALF_LOG_2PI, TINY, band_matrix

GARBAGE_SIGMA = np.pi


def prepare_delay_posterior(
    p_tau_i: np.ndarray,
    n_sources: int,
    garbage: bool,
    n_tau: int,
) -> np.ndarray:
    """Validate and normalise an initial delay posterior.

    Each row is normalised to one and scaled by ``1 / n_labels`` so the table
    holds the joint mass ``p(i, tau)``. A missing garbage row is filled with a
    uniform distribution.
    """
    p = np.array(p_tau_i, dtype=np.float64)
    n_labels = n_sources + int(garbage)
    if p.ndim != 2 or p.shape[1] != n_tau or p.shape[0] not in (n_sources, n_labels):
        raise MesslValidationError(
            f"p_tau_i must have shape ({n_sources} or {n_labels}, {n_tau}); "
            f"got {p.shape}."
        )
    if np.any(p < 0) or not np.all(np.isfinite(p)):
        raise MesslValidationError("p_tau_i must be finite and non-negative.")
    if p.shape[0] < n_labels:
        p = np.vstack([p, np.ones((1, n_tau))])
    row_sum = p.sum(axis=1, keepdims=True)
    p = np.where(row_sum > 0, p / np.maximum(row_sum, TINY), 1.0 / n_tau)
    return p / n_labels


def gaussian_delay_posterior(
    tau: np.ndarray,
    positions: np.ndarray,
    garbage: bool = False,
) -> np.ndarray:
    """Build ``p(i, tau)`` from Gaussian bumps centred on delay positions."""
    tau = np.asarray(tau, dtype=np.float64)
    positions = np.atleast_1d(np.asarray(positions, dtype=np.float64))
    step = float(np.median(np.diff(tau))) if tau.shape[0] > 1 else 1.0
    width = 2.0 * max(step, TINY)
    bumps = np.exp(-0.5 * ((tau[None, :] - positions[:, None]) / width) ** 2)
    return prepare_delay_posterior(bumps, positions.shape[0], garbage, tau.shape[0])


def cross_correlation_peaks(obs: PairObservation, n_sources: int) -> np.ndarray:
    """Return the ``n_sources`` strongest PHAT cross-correlation delays."""
    score = np.cos(obs.residual).mean(axis=(0, 1))
    padded = np.concatenate([[-np.inf], score, [-np.inf]])
    is_peak = (score >= padded[:-2]) & (score >= padded[2:])
    order = np.argsort(-score, kind="stable")
    ranked = [k for k in order if is_peak[k]] + [k for k in order if not is_peak[k]]
    return obs.tau[np.asarray(ranked[:n_sources], dtype=np.int64)]


class IpdModel(CueModel):
    """Mixture-of-delays model of the interaural phase difference.

    For source $i$ and candidate delay $\\tau$, the IPD residual
    $r_{f,t}(\\tau) = \\mathrm{wrap}(\\angle(L/R) - \\omega_f\\tau)$ is modelled
    as a Gaussian with mean $\\xi_{i,\\tau,f}$ and standard deviation
    $\\sigma_{i,\\tau,f}$, weighted by $\\psi_{i,\\tau} = p(i, \\tau)$:

    $$
       p(r_{f,t} \\mid i) = \\sum_\\tau \\psi_{i,\\tau}
       \\mathcal{N}(\\mathrm{wrap}(r_{f,t}(\\tau) - \\xi_{i,\\tau,f});
       0, \\sigma_{i,\\tau,f}^2)
    $$

    Attributes
    ----------
    p_tau_i : ndarray of shape (n_labels, n_tau)
        Joint delay mass; row-normalise for ``p(tau | i)``.
    xi : ndarray of shape (n_labels, n_tau, n_freq)
    sigma : ndarray of shape (n_labels, n_tau, n_freq)
    """

    name = "IPD"

    def __init__(
        self,
        p_tau_i: np.ndarray,
        n_freq: int,
        *,
        n_sources: int,
        garbage: bool = False,
        xi_mode: CueMode = CueMode("banded", 1),
        sigma_mode: SigmaMode = SigmaMode.PER_SOURCE_DELAY_FREQ,
        sigma_init: float | None = None,
        xi_init: float | None = None,
        min_sigma: float = 1e-2,
    ) -> None:
        super().__init__(n_sources, garbage)
        n_tau = np.asarray(p_tau_i).shape[-1]
        self.p_tau_i = prepare_delay_posterior(p_tau_i, n_sources, garbage, n_tau)
        self.xi_mode = xi_mode
        self.sigma_mode = sigma_mode
        self.min_sigma = float(min_sigma)

        shape = (self.n_labels, n_tau, int(n_freq))
        xi0 = 0.0 if xi_init is None or not xi_mode.enabled else float(xi_init)
        self.xi = np.full(shape, xi0)
        self.sigma = np.full(shape, 1.0 if sigma_init is None else float(sigma_init))
        if garbage:
            self.xi[-1] = 0.0
            self.sigma[-1] = GARBAGE_SIGMA

    @classmethod
    def from_positions(
        cls,
        tau: np.ndarray,
        positions: np.ndarray,
        n_freq: int,
        *,
        garbage: bool = False,
        **kwargs,
    ) -> "IpdModel":
        positions = np.atleast_1d(np.asarray(positions, dtype=np.float64))
        return cls(
            gaussian_delay_posterior(tau, positions, garbage),
            n_freq,
            n_sources=positions.shape[0],
            garbage=garbage,
            **kwargs,
        )

    @property
    def delay_posterior(self) -> np.ndarray:
        """Return ``p(tau | i)`` with shape ``(n_labels, n_tau)``."""
        return self.p_tau_i / np.maximum(self.p_tau_i.sum(axis=1, keepdims=True), TINY)

    def log_likelihood_joint(self, obs: PairObservation) -> np.ndarray:
        """Return ``log p(r, tau | i)`` with shape ``(F, T, n_labels, n_tau)``."""
        log_psi = np.log(np.maximum(self.p_tau_i, TINY))
        out = np.empty(
            (obs.n_freq, obs.n_frame, self.n_labels, obs.n_tau), dtype=np.float64
        )
        for i in range(self.n_labels):
            mean = self.xi[i].T
            std = self.sigma[i].T
            err = wrap_phase(obs.residual - mean[:, None, :])
            out[:, :, i, :] = (
                -0.5 * np.square(err / std[:, None, :])
                - np.log(std)[:, None, :]
                - HALF_LOG_2PI
                + log_psi[i][None, None, :]
            )
        return out

    def log_likelihood(self, obs: PairObservation) -> np.ndarray:
        return logsumexp(self.log_likelihood_joint(obs), axis=3)

    def update(
        self, resp: np.ndarray, obs: PairObservation, *, tied: bool = False
    ) -> None:
        """Re-estimate ``p_tau_i``, ``xi`` and ``sigma`` of the genuine sources.

        Parameters
        ----------
        resp : ndarray of shape (F, T, n_labels, n_tau)
            Responsibilities over sources and delays.
        tied : bool
            Estimate ``xi`` and ``sigma`` frequency independent.
        """
        n_src = self.n_sources
        nu = resp[:, :, :n_src, :]

        mass = nu.sum(axis=(0, 1))
        genuine_total = 1.0 - (float(self.p_tau_i[n_src:].sum()) if self.garbage else 0.0)
        total = float(mass.sum())
        if total > TINY:
            self.p_tau_i[:n_src] = mass / total * genuine_total

        xi_mode = CueMode("tied", 1) if tied else self.xi_mode
        sigma_mode = self.sigma_mode
        if tied and sigma_mode is SigmaMode.PER_SOURCE_DELAY_FREQ:
            sigma_mode = SigmaMode.PER_SOURCE_DELAY
        for i in range(n_src):
            if self.xi_mode.enabled:
                self._update_xi(i, nu[:, :, i, :], obs, xi_mode)
            self._update_sigma(i, nu[:, :, i, :], obs, sigma_mode)

    def _update_xi(
        self, i: int, nu: np.ndarray, obs: PairObservation, mode: CueMode
    ) -> None:
        band = mode.band_index(obs.n_freq)
        onehot = band_matrix(band)
        weight = nu / np.square(self.sigma[i].T)[:, None, :]

        phasor = np.sum(weight * np.exp(1j * obs.residual), axis=1)
        candidate = np.angle(onehot @ phasor)[band]
        current = self.xi[i].T

        # The circular mean is accepted per band only if the weighted squared
        # wrapped error does not grow.
        def band_cost(mean: np.ndarray) -> np.ndarray:
            err = wrap_phase(obs.residual - mean[:, None, :])
            return onehot @ np.sum(weight * np.square(err), axis=1)

        accept = band_cost(candidate) <= band_cost(current)
        self.xi[i] = np.where(accept[band], candidate, current).T

    def _update_sigma(
        self, i: int, nu: np.ndarray, obs: PairObservation, mode: SigmaMode
    ) -> None:
        err2 = np.square(wrap_phase(obs.residual - self.xi[i].T[:, None, :]))
        num = np.sum(nu * err2, axis=1)
        den = np.sum(nu, axis=1)
        if mode is SigmaMode.PER_SOURCE:
            num = np.full_like(num, num.sum())
            den = np.full_like(den, den.sum())
        elif mode is SigmaMode.PER_SOURCE_DELAY:
            num = np.broadcast_to(num.sum(axis=0, keepdims=True), num.shape)
            den = np.broadcast_to(den.sum(axis=0, keepdims=True), den.shape)

        previous = np.square(self.sigma[i].T)
        var = np.where(den > TINY, num / np.maximum(den, TINY), previous)
        self.sigma[i] = np.sqrt(np.maximum(var, self.min_sigma**2)).T

    def permute(self, order: np.ndarray) -> None:
        order = np.asarray(order, dtype=np.int64)
        n_src = self.n_sources
        self.p_tau_i[:n_src] = self.p_tau_i[order]
        self.xi[:n_src] = self.xi[order]
        self.sigma[:n_src] = self.sigma[order]
