"""Model-based EM source separation and localization (MESSL)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Sequence
import warnings

import numpy as np

from ..config_schema import MesslConfig
from ..logging_utils import JsonlLogger
from .channel_pairs import ChannelPairSelection, select_channel_pairs
from .core import (
    BaseSeparator,
    ConfigurationWarning,
    CueModes,
    MesslOutput,
    MesslParams,
    MesslValidationError,
)
from .cues.source_prior import GaussianMixturePrior
from .engine import PairEMEngine, PairParams
from .initialization import build_pair_params, initial_delay_posterior, pair_slice
from .mrf import assign_hard_masks, neutral_compat
from .observations import PairObservation, derive_observation
from .posterior import PosteriorCombiner
from .tdoa import per_mic_tdoa_ls, posterior_mode_delays
from .validation import (
    prepare_log_mask_prior,
    prepare_reliability,
    validate_inputs,
    validate_source_priors,
)

LOGGER = logging.getLogger(__name__)


class Messl(BaseSeparator):
    """
    Two-channel MESSL.

    Every time-frequency bin is softly assigned to one of ``n_sources``
    sources (plus an optional garbage source) from its interaural phase
    difference, level difference and, optionally, a pretrained spectral
    prior per source. Parameters are fitted with EM.

    Procedure
    ---------
    ```text

       input: X (F, T, 2), delay grid tau, sources I, repetitions R
       initialize p(i, tau) from cross-correlation peaks (or the config)
       for r = 1..R:
           E: z_{f,t,i} <- p(i | ipd_{f,t}, ild_{f,t}, spectra_{f,t})
           M: update p(i, tau), xi, sigma, ILD mean/std, channel response
       decode one label per bin with loopy BP
    ```

    Parameters
    ----------
    n_sources:
        Number of genuine sources ``I``.
    tau:
        Ascending candidate delays in samples.
    config:
        Options; defaults to :class:`~pymessl.config_schema.MesslConfig`.
    source_priors:
        One pretrained GMM per source for the source-prior cue.
    mask_prior:
        Optional mask ``(F, T, I)`` or ``(F, T, I + garbage)`` used as a
        prior for the first ``init.mask_hold`` repetitions.
    reliability:
        Optional non-negative weights ``(F, T)`` applied to the
        responsibilities in the M-step.
    compat:
        MRF compatibility table ``(n_labels, n_labels)``. When omitted it is
        loaded from ``mrf.compat_file``, or neutral if that is empty.
    observer:
        Optional callable ``observer(rep, engine)`` run after every
        repetition, e.g. :class:`~pymessl.visualization.MaskPlotObserver`.

    References
    ----------
    [1] M. I. Mandel, R. J. Weiss, and D. P. W. Ellis, "Model-based
    expectation-maximization source separation and localization," *IEEE
    Trans. Audio, Speech, and Language Processing*, vol. 18, no. 2,
    pp. 382-394, Feb. 2010, doi: 10.1109/TASL.2009.2029711.
    """

    def __init__(
        self,
        n_sources: int,
        tau,
        *,
        config: MesslConfig | None = None,
        source_priors: Sequence[GaussianMixturePrior] | None = None,
        mask_prior: np.ndarray | None = None,
        reliability: np.ndarray | None = None,
        compat: np.ndarray | None = None,
        observer: Callable[[int, PairEMEngine], None] | None = None,
    ) -> None:
        self._n_sources = n_sources
        self.tau = tau
        self.config = config if config is not None else MesslConfig()
        self.source_priors = list(source_priors) if source_priors else None
        self.mask_prior = mask_prior
        self.reliability = reliability
        self.compat = compat
        self.observer = observer
        self.engine: PairEMEngine | None = None

    @property
    def n_sources(self) -> int:
        return int(self._n_sources)

    @property
    def n_labels(self) -> int:
        return self.n_sources + int(self.config.extended.garbage_src)

    def reset(self) -> None:
        self.engine = None

    def resolve_modes(self) -> CueModes:
        """Parse the numeric mode codes of the config once."""
        cfg = self.config.modes
        if cfg.modes is not None:
            modes = CueModes.from_sequence(cfg.modes)
        else:
            modes = CueModes.from_codes(
                ipd=cfg.ipd, ild=cfg.ild, sp=cfg.sp, xi=cfg.xi, sigma=cfg.sigma, dct=cfg.dct
            )
        if modes.sp.enabled and not self.source_priors:
            warnings.warn(
                "Source-prior cue requested but no source priors were given; "
                "disabling it.",
                ConfigurationWarning,
                stacklevel=3,
            )
            modes = modes.without_source_prior()
        return modes

    def sp_start_rep(self) -> int:
        start = self.config.extended.sp_start_rep
        return self.config.run.n_rep // 2 if start is None else int(start)

    def tied_reps(self) -> int:
        reps = self.config.extended.tied_reps
        return self.config.run.n_rep // 2 if reps is None else int(reps)

    def _select_pairs(self, n_channels: int) -> ChannelPairSelection:
        if n_channels != 2:
            raise MesslValidationError(
                f"Messl expects a two-channel mixture, got {n_channels} channels; "
                "use MultichannelMessl instead."
            )
        return select_channel_pairs(2)

    def _initialize(
        self,
        mixture: np.ndarray,
        observations: Sequence[PairObservation],
        selection: ChannelPairSelection,
        modes: CueModes,
    ) -> list[PairParams]:
        init = self.config.init
        n_pairs = selection.n_pairs
        params = []
        for c, (obs, pair) in enumerate(zip(observations, selection.pairs)):
            p_tau_i = initial_delay_posterior(
                obs,
                n_sources=self.n_sources,
                garbage=self.config.extended.garbage_src,
                p_tau_i=pair_slice(init.p_tau_i_init, c, n_pairs, 2),
                positions=pair_slice(init.tau_pos_init, c, n_pairs, 1),
                uniform=self.mask_prior is not None,
            )
            params.append(self._pair_params(obs, pair, modes, p_tau_i))
        return params

    def _pair_params(
        self,
        obs: PairObservation,
        pair: Sequence[int],
        modes: CueModes,
        p_tau_i: np.ndarray,
    ) -> PairParams:
        return build_pair_params(
            obs,
            pair,
            n_sources=self.n_sources,
            config=self.config,
            modes=modes,
            p_tau_i=p_tau_i,
            source_priors=self.source_priors,
            sp_start_rep=self.sp_start_rep(),
        )

    def forward(self, mixture, *, decode_hard: bool = True) -> MesslOutput:
        """Separate a ``(F, T, C)`` STFT mixture.

        Parameters
        ----------
        mixture:
            Complex STFT with frequency, frame and channel axes.
        decode_hard:
            Whether to decode hard masks after the EM loop.
        """
        cfg = self.config
        mixture, tau, n_sources = validate_inputs(
            mixture, self.tau, self.n_sources, ref_mic=cfg.multichannel.ref_mic
        )
        n_freq, n_frame, n_channels = mixture.shape
        modes = self.resolve_modes()

        selection = self._select_pairs(n_channels)
        LOGGER.info("channel pairs %s", selection.pairs.tolist())
        observations = [
            derive_observation(mixture, pair, tau, cfg.run.nfft) for pair in selection.pairs
        ]

        log_mask_prior = None
        if self.mask_prior is not None:
            log_mask_prior = prepare_log_mask_prior(
                self.mask_prior, n_freq, n_frame, n_sources, cfg.extended.garbage_src
            )
        reliability = None
        if self.reliability is not None:
            reliability = prepare_reliability(self.reliability, n_freq, n_frame)

        if modes.sp.enabled:
            validate_source_priors(self.source_priors, n_sources, n_freq)

        compat = self._compat_table()
        if compat.shape != (self.n_labels, self.n_labels):
            raise MesslValidationError(
                f"compat must have shape ({self.n_labels}, {self.n_labels}); got {compat.shape}."
            )

        params = self._initialize(mixture, observations, selection, modes)
        self.engine = PairEMEngine(
            observations,
            params,
            n_sources=n_sources,
            garbage=cfg.extended.garbage_src,
            overcount_rescale=selection.overcount_rescale,
            log_mask_prior=log_mask_prior,
            mask_hold=cfg.init.mask_hold,
            reliability=reliability,
            combiner=PosteriorCombiner(compat=compat, lbp_iter=cfg.mrf.lbp_iter),
            compat_exp_sched=cfg.mrf.compat_exp_sched,
            workers=cfg.multichannel.workers,
            tol=cfg.run.tol,
            tied_reps=self.tied_reps(),
            step_logger=JsonlLogger(Path(cfg.run.log_path)) if cfg.run.log_path else None,
            observer=self._observer(),
        )
        ll_history = self.engine.run(cfg.run.n_rep)
        return self._assemble(selection, n_channels, tau, compat, ll_history, decode_hard)

    def _compat_table(self) -> np.ndarray:
        if self.compat is not None:
            return np.asarray(self.compat, dtype=np.float64)
        if self.config.mrf.compat_file:
            from ..io import load_compat_table

            return load_compat_table(
                self.config.mrf.compat_file, self.n_sources, self.config.extended.garbage_src
            )
        return neutral_compat(self.n_labels)

    def _observer(self) -> Callable[[int, PairEMEngine], None] | None:
        if self.observer is not None or not self.config.run.vis:
            return self.observer
        from ..visualization import MaskPlotObserver

        return MaskPlotObserver()

    def _assemble(
        self,
        selection: ChannelPairSelection,
        n_channels: int,
        tau: np.ndarray,
        compat: np.ndarray,
        ll_history: np.ndarray,
        decode_hard: bool,
    ) -> MesslOutput:
        engine = self.engine
        if engine is None:
            raise RuntimeError("forward() must run before assembling the output.")
        cfg = self.config

        p_tau_i = np.stack([pair.p_tau_i for pair in engine.params])
        per_pair = posterior_mode_delays(p_tau_i, tau, self.n_sources)
        per_mic, _ = per_mic_tdoa_ls(per_pair, selection.pairs, n_channels)
        LOGGER.info("per-microphone TDOA %s", np.round(per_mic, 3).tolist())

        final = engine.results[-1]
        if final is None:
            raise RuntimeError("EM loop ran no repetition.")
        posterior = np.repeat(final.posterior[None], 2, axis=0)

        hard_mask = None
        if decode_hard:
            hard_mask = assign_hard_masks(
                final.posterior,
                n_sources=self.n_sources,
                n_channels=n_channels,
                nu_ipd=final.nu_ipd,
                nu_ild=final.nu_ild,
                compat=compat,
                exponent=cfg.mrf.hard_compat_exp,
                n_iter=cfg.mrf.lbp_iter,
            )

        return MesslOutput(
            posterior=posterior,
            hard_mask=hard_mask,
            params=MesslParams(
                pairs=engine.params,
                per_mic_tdoa=per_mic,
                channel_pairs=selection.pairs,
                tau=tau,
                sample_rate=cfg.extended.sr,
            ),
            ll_history=ll_history,
            n_sources=self.n_sources,
            metadata={
                "separator": type(self).__name__,
                "n_rep_done": int(ll_history.shape[1]),
                "overcount_rescale": selection.overcount_rescale,
                "garbage_src": cfg.extended.garbage_src,
            },
        )
