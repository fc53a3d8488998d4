"""Interaural level difference (ILD) cue model."""

from __future__ import annotations

import numpy as np

from ..core import CueMode, CueModel
from ..observations import PairObservation
from ._tying import HALF_LOG_2PI, TINY, band_matrix, dct_smooth, source_freq_array


class IldModel(CueModel):
    """Gaussian model of the level difference in dB.

    Means and standard deviations are tied across the frequency bands of
    ``mode``. With ``prior_precision > 0`` the mean is a MAP estimate under a
    Gaussian prior centred on the initial mean.
    """

    name = "ILD"

    def __init__(
        self,
        n_freq: int,
        *,
        n_sources: int,
        garbage: bool = False,
        mode: CueMode = CueMode("banded", 1),
        mean_init=0.0,
        std_init=10.0,
        prior_precision: float = 0.0,
        dct: int = 0,
        min_std: float = 0.5,
    ) -> None:
        super().__init__(n_sources, garbage)
        self.mode = mode
        self.prior_precision = float(prior_precision)
        self.dct = int(dct)
        self.min_std = float(min_std)

        mean = source_freq_array(mean_init, n_sources, n_freq, name="ild_init")
        std = source_freq_array(std_init, n_sources, n_freq, name="ild_std_init")
        self.prior_mean = mean.copy()
        if garbage:
            mean = np.vstack([mean, np.zeros((1, n_freq))])
            std = np.vstack([std, np.full((1, n_freq), 3.0 * float(std.mean()))])
        self.mean = mean
        self.std = np.maximum(std, self.min_std)

    def log_likelihood(self, obs: PairObservation) -> np.ndarray:
        mean = self.mean.T[:, None, :]
        std = self.std.T[:, None, :]
        return (
            -0.5 * np.square((obs.ild[:, :, None] - mean) / std)
            - np.log(std)
            - HALF_LOG_2PI
        )

    def update(
        self, resp: np.ndarray, obs: PairObservation, *, tied: bool = False
    ) -> None:
        n_src = self.n_sources
        nu = resp[:, :, :n_src]
        mode = CueMode("tied", 1) if tied else self.mode
        band = mode.band_index(obs.n_freq)
        onehot = band_matrix(band)
        bins_per_band = onehot.sum(axis=1, keepdims=True)

        count = onehot @ nu.sum(axis=1)
        first = onehot @ np.sum(nu * obs.ild[:, :, None], axis=1)
        prior = (onehot @ self.prior_mean.T) / bins_per_band
        prec = self.prior_precision

        current = (onehot @ self.mean[:n_src].T) / bins_per_band
        denom = count + prec
        mean_band = np.where(
            denom > TINY, (first + prec * prior) / np.maximum(denom, TINY), current
        )
        mean = mean_band[band]
        if self.dct > 0 and mode.frequency_dependent:
            mean = dct_smooth(mean, self.dct)

        second = onehot @ np.sum(
            nu * np.square(obs.ild[:, :, None] - mean[:, None, :]), axis=1
        )
        previous = (onehot @ np.square(self.std[:n_src].T)) / bins_per_band
        var = np.where(count > TINY, second / np.maximum(count, TINY), previous)

        self.mean[:n_src] = mean.T
        self.std[:n_src] = np.sqrt(np.maximum(var, self.min_std**2))[band].T

    def permute(self, order: np.ndarray) -> None:
        order = np.asarray(order, dtype=np.int64)
        n_src = self.n_sources
        self.mean[:n_src] = self.mean[order]
        self.std[:n_src] = self.std[order]
        self.prior_mean = self.prior_mean[order]
