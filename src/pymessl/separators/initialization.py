"""Per-pair parameter initialisation."""

from __future__ import annotations

from dataclasses import dataclass, replace
import copy
import logging
from typing import Any, Sequence

import numpy as np

from ..config_schema import MesslConfig
from .alignment import AlignmentResult, SourcePermutationAligner
from .core import BOOTSTRAP_MODES, CueModes, MesslValidationError, PermutationStrategy
from .cues import IldModel, IpdModel, SourcePriorModel, cross_correlation_peaks
from .cues.ipd import gaussian_delay_posterior, prepare_delay_posterior
from .cues.source_prior import GaussianMixturePrior
from .engine import PairParams
from .observations import PairObservation
from .tdoa import per_mic_tdoa_ls, posterior_mode_delays

LOGGER = logging.getLogger(__name__)


def pair_slice(value: Any, c: int, n_pairs: int, single_ndim: int) -> np.ndarray | None:
    """Return pair ``c``'s entry of a per-pair or shared initial value."""
    if value is None:
        return None
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim == single_ndim + 1:
        if arr.shape[0] != n_pairs:
            raise MesslValidationError(
                f"Per-pair initial value has {arr.shape[0]} entries for {n_pairs} pairs."
            )
        return arr[c]
    return arr


def initial_delay_posterior(
    obs: PairObservation,
    *,
    n_sources: int,
    garbage: bool,
    p_tau_i: np.ndarray | None = None,
    positions: np.ndarray | None = None,
    uniform: bool = False,
) -> np.ndarray:
    """Pick the starting ``p(i, tau)`` of one pair.

    Precedence: an explicit table, explicit delay positions, a uniform table
    (used when a mask prior drives the first repetition), and finally the
    strongest cross-correlation peaks.
    """
    if p_tau_i is not None:
        return prepare_delay_posterior(p_tau_i, n_sources, garbage, obs.n_tau)
    if positions is not None:
        positions = np.atleast_1d(positions)
        if positions.shape[0] != n_sources:
            raise MesslValidationError(
                f"tau_pos_init lists {positions.shape[0]} delays for {n_sources} sources."
            )
        return gaussian_delay_posterior(obs.tau, positions, garbage)
    if uniform:
        return prepare_delay_posterior(
            np.ones((n_sources, obs.n_tau)), n_sources, garbage, obs.n_tau
        )
    peaks = cross_correlation_peaks(obs, n_sources)
    LOGGER.debug("cross-correlation peaks %s", peaks.tolist())
    return gaussian_delay_posterior(obs.tau, peaks, garbage)


def build_pair_params(
    obs: PairObservation,
    pair: Sequence[int],
    *,
    n_sources: int,
    config: MesslConfig,
    modes: CueModes,
    p_tau_i: np.ndarray,
    source_priors: Sequence[GaussianMixturePrior] | None = None,
    sp_start_rep: int = 0,
) -> PairParams:
    """Create fresh cue models for one pair from a starting delay posterior."""
    garbage = config.extended.garbage_src
    ipd = IpdModel(
        p_tau_i,
        obs.n_freq,
        n_sources=n_sources,
        garbage=garbage,
        xi_mode=modes.xi,
        sigma_mode=modes.sigma,
        sigma_init=config.init.sigma_init,
        xi_init=config.init.xi_init,
    )
    ild = None
    if modes.ild.enabled:
        ild = IldModel(
            obs.n_freq,
            n_sources=n_sources,
            garbage=garbage,
            mode=modes.ild,
            mean_init=config.init.ild_init,
            std_init=config.init.ild_std_init,
            prior_precision=config.extended.ild_prior_prec * obs.n_frame / 100.0,
            dct=modes.dct,
        )
    sp = None
    if modes.sp.enabled and source_priors:
        sp = SourcePriorModel(
            source_priors,
            obs.n_freq,
            n_sources=n_sources,
            garbage=garbage,
            mode=modes.sp,
            dct=modes.dct,
        )
    return PairParams(
        pair=(int(pair[0]), int(pair[1])),
        ipd=ipd,
        modes=modes,
        ild=ild,
        sp=sp,
        sp_start_rep=int(sp_start_rep),
    )


@dataclass(frozen=True)
class PairInitialization:
    """Starting delay posteriors of every pair.

    Attributes
    ----------
    p_tau_i : ndarray of shape (n_pairs, n_labels, n_tau)
    tau_positions : ndarray of shape (n_pairs, n_sources) or None
        Globally consistent delays when consistent-TDOA re-derivation ran.
    alignment : AlignmentResult or None
        Bootstrap masks after label alignment; ``None`` when skipped.
    """

    p_tau_i: np.ndarray
    tau_positions: np.ndarray | None = None
    alignment: AlignmentResult | None = None


class PairInitializer:
    """Bootstrap every pair with a short two-channel run and align labels.

    The bootstrap is skipped when a mask prior is supplied; every pair then
    starts from a uniform delay posterior.
    """

    def __init__(
        self,
        n_sources: int,
        tau: np.ndarray,
        config: MesslConfig,
        *,
        strategy: PermutationStrategy | None = None,
    ) -> None:
        self.n_sources = int(n_sources)
        self.tau = np.asarray(tau, dtype=np.float64)
        self.config = config
        self.aligner = SourcePermutationAligner(
            n_sources, garbage=config.extended.garbage_src, strategy=strategy
        )

    def bootstrap_config(self) -> MesslConfig:
        cfg = copy.deepcopy(self.config)
        cfg.run = replace(cfg.run, n_rep=cfg.run.init_rep, vis=False, log_path=None, tol=None)
        cfg.modes = replace(cfg.modes, modes=list(BOOTSTRAP_MODES))
        cfg.multichannel = replace(cfg.multichannel, ref_mic=0, workers=1)
        return cfg

    def initialize(
        self,
        mixture: np.ndarray,
        observations: Sequence[PairObservation],
        pairs: np.ndarray,
        *,
        has_mask_prior: bool = False,
    ) -> PairInitialization:
        from .messl import Messl

        n_pairs = len(observations)
        garbage = self.config.extended.garbage_src
        if has_mask_prior:
            p_tau_i = np.stack(
                [
                    initial_delay_posterior(
                        obs, n_sources=self.n_sources, garbage=garbage, uniform=True
                    )
                    for obs in observations
                ]
            )
            return PairInitialization(p_tau_i=p_tau_i)

        cfg = self.bootstrap_config()
        masks = []
        tables = []
        for c, pair in enumerate(pairs):
            LOGGER.info("bootstrap pair %d: channels %d %d", c, pair[0], pair[1])
            init = replace(
                cfg.init,
                p_tau_i_init=pair_slice(self.config.init.p_tau_i_init, c, n_pairs, 2),
                tau_pos_init=pair_slice(self.config.init.tau_pos_init, c, n_pairs, 1),
            )
            separator = Messl(self.n_sources, self.tau, config=replace(cfg, init=init))
            out = separator.forward(mixture[:, :, list(pair)], decode_hard=False)
            masks.append(out.posterior[0])
            tables.append(out.params.pairs[0].p_tau_i)
            LOGGER.info("bootstrap pair %d done", c)

        alignment = self.aligner.align(np.stack(masks, axis=3), np.stack(tables))
        p_tau_i = alignment.p_tau_i
        positions = None
        if n_pairs > mixture.shape[2] and self.config.multichannel.use_consistent_tdoa:
            per_pair = posterior_mode_delays(p_tau_i, self.tau, self.n_sources)
            _, positions = per_mic_tdoa_ls(per_pair, pairs, mixture.shape[2])
            p_tau_i = np.stack(
                [gaussian_delay_posterior(self.tau, row, garbage) for row in positions]
            )
            LOGGER.info("consistent pairwise delays %s", np.round(positions, 3).tolist())
        return PairInitialization(p_tau_i=p_tau_i, tau_positions=positions, alignment=alignment)
