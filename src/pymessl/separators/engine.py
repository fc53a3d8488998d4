"""Two-phase EM over microphone pairs.

Every repetition runs two passes over the pairs:

1. Local pass: each pair computes its cue log-likelihoods and a posterior
   from its own evidence (plus the persistent mask prior). The log of that
   posterior is written into the shared global table.
2. Consensus pass: each pair recombines its cached cue log-likelihoods with
   the other pairs' local log-posteriors as a prior, records the
   log-likelihood, and re-estimates its cue parameters.

The local pass of all pairs finishes before any consensus step starts, and
all consensus steps finish before the next repetition. Within a pass the
pairs are independent and may run on a thread pool.
"""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
import logging
import time
from typing import Callable, Iterable, Sequence
import warnings

import numpy as np
from scipy.special import logsumexp

from .core import (
    CueLogLikelihoods,
    CueModes,
    NumericalWarning,
    PosteriorResult,
)
from .cues import IldModel, IpdModel, SourcePriorModel
from .observations import PairObservation
from .posterior import PosteriorCombiner

LOGGER = logging.getLogger(__name__)

TINY = np.finfo(np.float64).tiny


@dataclass(slots=True)
class PairParams:
    """Fitted cue models of one microphone pair.

    ``ild`` and ``sp`` are ``None`` when the cue is disabled. The IPD model is
    always present because its delay posterior drives the TDOA estimate; it
    only contributes to the posterior when ``modes.ipd`` is set.
    """

    pair: tuple[int, int]
    ipd: IpdModel
    modes: CueModes
    ild: IldModel | None = None
    sp: SourcePriorModel | None = None
    sp_start_rep: int = 0

    @property
    def p_tau_i(self) -> np.ndarray:
        return self.ipd.p_tau_i

    @property
    def sp_active(self) -> bool:
        return self.sp is not None and self.sp.active


@dataclass(slots=True)
class LocalEstimate:
    """Cue log-likelihoods and local posterior of one pair."""

    lls: CueLogLikelihoods
    result: PosteriorResult


class PairEMEngine:
    """Run the multichannel EM loop over prepared pairs.

    Parameters
    ----------
    observations:
        Per-pair features, in pair order.
    params:
        Per-pair cue models, mutated in place by the maximisation step.
    n_sources:
        Number of genuine sources.
    garbage:
        Whether the last label is a garbage source.
    overcount_rescale:
        Weight of the other pairs' summed log-posteriors.
    log_mask_prior:
        Optional persistent log prior ``(F, T, n_labels)``.
    mask_hold:
        Number of repetitions the mask prior stays active (at least one).
    reliability:
        Optional per-bin weights ``(F, T)`` applied to responsibilities.
    combiner:
        Posterior combiner; a plain one is built when omitted.
    compat_exp_sched:
        MRF exponent per repetition; the last entry repeats.
    workers:
        Thread pool size for the per-pair passes; ``1`` runs sequentially.
    tol:
        Relative log-likelihood change below which the loop stops early.
    tied_reps:
        Number of leading repetitions whose M-step ties frequency-dependent
        parameters across frequency.
    step_logger:
        Optional object with ``write(record)`` receiving one record per
        repetition.
    observer:
        Optional callable ``observer(rep, engine)`` run after each
        repetition. It must not mutate the engine.
    """

    def __init__(
        self,
        observations: Sequence[PairObservation],
        params: Sequence[PairParams],
        *,
        n_sources: int,
        garbage: bool = False,
        overcount_rescale: float = 1.0,
        log_mask_prior: np.ndarray | None = None,
        mask_hold: int = 0,
        reliability: np.ndarray | None = None,
        combiner: PosteriorCombiner | None = None,
        compat_exp_sched: Sequence[float] = (0.0,),
        workers: int = 1,
        tol: float | None = None,
        tied_reps: int = 0,
        step_logger=None,
        observer: Callable[[int, "PairEMEngine"], None] | None = None,
    ) -> None:
        if len(observations) != len(params):
            raise ValueError(
                f"Got {len(observations)} observations for {len(params)} pairs."
            )
        self.observations = list(observations)
        self.params = list(params)
        self.n_sources = int(n_sources)
        self.garbage = bool(garbage)
        self.overcount_rescale = float(overcount_rescale)
        self.log_mask_prior = log_mask_prior
        self.mask_hold = max(int(mask_hold), 1)
        self.reliability = reliability
        self.combiner = combiner if combiner is not None else PosteriorCombiner()
        self.compat_exp_sched = [float(value) for value in compat_exp_sched] or [0.0]
        self.workers = max(int(workers), 1)
        self.tol = tol
        self.tied_reps = int(tied_reps)
        self.step_logger = step_logger
        self.observer = observer

        first = self.observations[0]
        self.global_log_posterior = np.zeros(
            (first.n_freq, first.n_frame, self.n_labels, self.n_pairs)
        )
        self.results: list[PosteriorResult | None] = [None] * self.n_pairs
        self.ll_history: list[np.ndarray] = []

    @property
    def n_labels(self) -> int:
        return self.n_sources + int(self.garbage)

    @property
    def n_pairs(self) -> int:
        return len(self.params)

    def compat_exponent(self, rep: int) -> float:
        return self.compat_exp_sched[min(rep, len(self.compat_exp_sched) - 1)]

    def mask_prior(self, rep: int) -> np.ndarray | None:
        """Return the persistent log prior if it is still held at ``rep``."""
        if self.log_mask_prior is None or rep >= self.mask_hold:
            return None
        return self.log_mask_prior

    def run(self, n_rep: int) -> np.ndarray:
        """Run up to ``n_rep`` repetitions and return ``ll_history (Np, reps)``."""
        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                self._loop(int(n_rep), pool)
        else:
            self._loop(int(n_rep), None)
        return self.history

    @property
    def history(self) -> np.ndarray:
        if not self.ll_history:
            return np.zeros((self.n_pairs, 0))
        return np.stack(self.ll_history, axis=1)

    def _map(self, fn: Callable[[int], object], pool: Executor | None) -> list:
        indices: Iterable[int] = range(self.n_pairs)
        if pool is None:
            return [fn(c) for c in indices]
        return list(pool.map(fn, indices))

    def _loop(self, n_rep: int, pool: Executor | None) -> None:
        for rep in range(n_rep):
            start = time.perf_counter()

            local: list[LocalEstimate] = self._map(
                lambda c: self.local_step(c, rep), pool
            )
            for c, estimate in enumerate(local):
                self.global_log_posterior[:, :, :, c] = np.log(
                    np.maximum(estimate.result.posterior, TINY)
                )

            self.results = self._map(
                lambda c: self.consensus_step(c, rep, local[c].lls), pool
            )
            lls = np.array([result.log_likelihood for result in self.results])
            self.ll_history.append(lls)
            elapsed = time.perf_counter() - start

            for c, value in enumerate(lls):
                LOGGER.info("rep=%02d pair=%d ll=%.3e", rep + 1, c, value)
            if self.step_logger is not None:
                self.step_logger.write(
                    {"rep": rep + 1, "ll": lls, "elapsed_sec": elapsed}
                )
            if self.observer is not None:
                self.observer(rep, self)
            if self._converged():
                LOGGER.info("log-likelihood plateau reached after %d repetitions", rep + 1)
                break

    def _converged(self) -> bool:
        if self.tol is None or len(self.ll_history) < 2:
            return False
        previous = float(np.sum(self.ll_history[-2]))
        current = float(np.sum(self.ll_history[-1]))
        return abs(current - previous) <= float(self.tol) * max(abs(previous), TINY)

    def local_step(self, c: int, rep: int) -> LocalEstimate:
        """Compute pair ``c``'s cue log-likelihoods and local posterior."""
        lls = self.cue_log_likelihoods(c, rep)
        result = self.combiner.combine(
            lls,
            log_prior=self.mask_prior(rep),
            reliability=self.reliability,
            compat_exp=self.compat_exponent(rep),
        )
        return LocalEstimate(lls=lls, result=result)

    def consensus_step(
        self, c: int, rep: int, lls: CueLogLikelihoods
    ) -> PosteriorResult:
        """Recombine pair ``c`` with the other pairs' evidence and update it."""
        others = np.delete(self.global_log_posterior, c, axis=3).sum(axis=3)
        log_prior = self.overcount_rescale * others
        held = self.mask_prior(rep)
        if held is not None:
            log_prior = log_prior + held
        result = self.combiner.combine(
            lls,
            log_prior=log_prior,
            reliability=self.reliability,
            compat_exp=self.compat_exponent(rep),
        )
        self.maximize(c, rep, result)
        return result

    def cue_log_likelihoods(self, c: int, rep: int) -> CueLogLikelihoods:
        params = self.params[c]
        obs = self.observations[c]
        lls = CueLogLikelihoods()
        if params.modes.ipd:
            lls.ipd_joint = params.ipd.log_likelihood_joint(obs)
            lls.ipd = logsumexp(lls.ipd_joint, axis=3)
        if params.ild is not None:
            lls.ild = params.ild.log_likelihood(obs)

        if params.sp is not None and not params.sp.active and rep >= params.sp_start_rep:
            self._activate_source_prior(c, lls)
        if params.sp_active:
            lls.sp = params.sp.log_likelihood(obs)

        for name, value in lls.named():
            if not np.all(np.isfinite(value)):
                warnings.warn(
                    f"{name} log-likelihood is not finite (pair {c}, repetition {rep + 1}).",
                    NumericalWarning,
                    stacklevel=2,
                )
        return lls

    def _activate_source_prior(self, c: int, lls: CueLogLikelihoods) -> None:
        params = self.params[c]
        obs = self.observations[c]
        binaural = np.zeros((obs.n_freq, obs.n_frame, self.n_sources))
        for value in (lls.ipd, lls.ild):
            if value is not None:
                binaural = binaural + value[:, :, : self.n_sources]
        mask = np.exp(binaural - logsumexp(binaural, axis=2, keepdims=True))
        order = params.sp.align_to_mask(mask, obs)
        params.sp.active = True
        LOGGER.debug("pair %d source prior active, GMM order %s", c, order.tolist())

    def maximize(self, c: int, rep: int, result: PosteriorResult) -> None:
        """Update the enabled cue models of pair ``c`` from ``result``."""
        params = self.params[c]
        obs = self.observations[c]
        tied = rep < self.tied_reps
        if params.modes.ipd and result.nu_ipd is not None:
            params.ipd.update(result.nu_ipd, obs, tied=tied)
        if params.ild is not None and result.nu_ild is not None:
            params.ild.update(result.nu_ild, obs, tied=tied)
        if params.sp_active and result.nu_sp is not None:
            params.sp.update(result.nu_sp, obs, tied=tied)
