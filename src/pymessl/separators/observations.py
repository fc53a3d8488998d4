"""Per-pair observation features derived from a multichannel mixture."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

eps = np.finfo(np.float64).eps


def wrap_phase(angle: np.ndarray) -> np.ndarray:
    """Wrap phase values into ``(-pi, pi]``."""
    return np.angle(np.exp(1j * angle))


@dataclass(frozen=True, slots=True)
class PairObservation:
    """Binaural features of one channel pair.

    Attributes
    ----------
    left, right : ndarray of shape (n_freq, n_frame)
        Complex spectra of the first and second channel of the pair.
    ild : ndarray of shape (n_freq, n_frame)
        Level difference ``20 log10(|L| / |R|)`` in dB.
    ipd : ndarray of shape (n_freq, n_frame)
        Phase difference ``angle(L / R)``.
    omega : ndarray of shape (n_freq,)
        Angular frequency of each bin in radians per sample.
    tau : ndarray of shape (n_tau,)
        Candidate delays in samples.
    residual : ndarray of shape (n_freq, n_frame, n_tau)
        IPD residual ``wrap(ipd - omega * tau)`` for every candidate delay.
    """

    left: np.ndarray
    right: np.ndarray
    ild: np.ndarray
    ipd: np.ndarray
    omega: np.ndarray
    tau: np.ndarray
    residual: np.ndarray

    @property
    def n_freq(self) -> int:
        return int(self.left.shape[0])

    @property
    def n_frame(self) -> int:
        return int(self.left.shape[1])

    @property
    def n_tau(self) -> int:
        return int(self.tau.shape[0])

    def log_spectra(self, average: bool = False) -> np.ndarray:
        """Return dB magnitude spectra, ``(2, F, T)`` or ``(1, F, T)`` if averaged."""
        if average:
            mag = 0.5 * (np.abs(self.left) + np.abs(self.right))
            return 20.0 * np.log10(mag + eps)[None]
        return 20.0 * np.log10(
            np.stack([np.abs(self.left), np.abs(self.right)]) + eps
        )


def bin_frequencies(n_freq: int, nfft: int | None = None) -> np.ndarray:
    """Return angular frequency per bin, assuming a one-sided spectrum."""
    nfft_eff = 2 * (n_freq - 1) if nfft is None else int(nfft)
    if nfft_eff <= 0:
        nfft_eff = 2
    return 2.0 * np.pi * np.arange(n_freq) / nfft_eff


def derive_observation(
    mixture: np.ndarray,
    pair: tuple[int, int] | np.ndarray,
    tau: np.ndarray,
    nfft: int | None = None,
) -> PairObservation:
    """Derive binaural features of ``pair`` from a ``(F, T, C)`` mixture."""
    first, second = (int(ch) for ch in pair)
    left = np.asarray(mixture[:, :, first])
    right = np.asarray(mixture[:, :, second])
    tau = np.asarray(tau, dtype=np.float64)
    omega = bin_frequencies(left.shape[0], nfft)

    ild = 20.0 * np.log10((np.abs(left) + eps) / (np.abs(right) + eps))
    ipd = np.angle(left * np.conj(right))
    residual = wrap_phase(ipd[:, :, None] - omega[:, None, None] * tau[None, None, :])
    return PairObservation(
        left=left,
        right=right,
        ild=ild,
        ipd=ipd,
        omega=omega,
        tau=tau,
        residual=residual,
    )
