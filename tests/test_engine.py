import numpy as np
import pytest

from _synthetic import DELAYS_3MIC, GAINS_3MIC, TAU, synthesize
from pymessl import MesslConfig
from pymessl.separators import (
    CueModes,
    PairEMEngine,
    derive_observation,
    select_channel_pairs,
)
from pymessl.separators.cues.ipd import gaussian_delay_posterior
from pymessl.separators.initialization import build_pair_params


class _Recorder:
    def __init__(self) -> None:
        self.records = []

    def write(self, record) -> None:
        self.records.append(record)


def _engine(**kwargs) -> PairEMEngine:
    mixture, _ = synthesize(DELAYS_3MIC, GAINS_3MIC, seed=3)
    selection = select_channel_pairs(3)
    cfg = MesslConfig()
    modes = CueModes.from_codes()
    observations = [derive_observation(mixture, pair, TAU) for pair in selection.pairs]
    params = []
    for obs, pair in zip(observations, selection.pairs):
        truth = DELAYS_3MIC[:, pair[1]] - DELAYS_3MIC[:, pair[0]]
        params.append(
            build_pair_params(
                obs,
                pair,
                n_sources=2,
                config=cfg,
                modes=modes,
                p_tau_i=gaussian_delay_posterior(TAU, truth),
            )
        )
    kwargs.setdefault("overcount_rescale", selection.overcount_rescale)
    return PairEMEngine(observations, params, n_sources=2, **kwargs)


def test_engine_rejects_mismatched_pairs() -> None:
    engine = _engine()
    with pytest.raises(ValueError):
        PairEMEngine(engine.observations, engine.params[:2], n_sources=2)


def test_compat_exponent_repeats_last_entry() -> None:
    engine = _engine(compat_exp_sched=[0.0, 0.5])
    assert engine.compat_exponent(0) == 0.0
    assert engine.compat_exponent(1) == 0.5
    assert engine.compat_exponent(7) == 0.5


def test_mask_prior_is_held_for_mask_hold_repetitions() -> None:
    log_prior = np.log(np.full((65, 40, 2), 0.5))
    assert _engine().mask_prior(0) is None

    engine = _engine(log_mask_prior=log_prior, mask_hold=0)
    assert engine.mask_prior(0) is log_prior
    assert engine.mask_prior(1) is None

    engine = _engine(log_mask_prior=log_prior, mask_hold=3)
    assert engine.mask_prior(2) is log_prior
    assert engine.mask_prior(3) is None


def test_consensus_without_rescale_matches_local_posterior() -> None:
    engine = _engine(overcount_rescale=0.0)
    local = [engine.local_step(c, 0) for c in range(engine.n_pairs)]
    for c, estimate in enumerate(local):
        engine.global_log_posterior[:, :, :, c] = np.log(np.maximum(estimate.result.posterior, 1e-300))
    result = engine.consensus_step(0, 0, local[0].lls)
    np.testing.assert_allclose(result.posterior, local[0].result.posterior)
    assert result.log_likelihood == pytest.approx(local[0].result.log_likelihood)


def test_consensus_prior_sharpens_posterior() -> None:
    engine = _engine()
    local = [engine.local_step(c, 0) for c in range(engine.n_pairs)]
    for c, estimate in enumerate(local):
        engine.global_log_posterior[:, :, :, c] = np.log(np.maximum(estimate.result.posterior, 1e-300))
    result = engine.consensus_step(0, 0, local[0].lls)
    assert np.mean(np.max(result.posterior, axis=2)) > np.mean(
        np.max(local[0].result.posterior, axis=2)
    )


def test_run_records_history_and_steps() -> None:
    recorder = _Recorder()
    seen = []
    engine = _engine(step_logger=recorder, observer=lambda rep, eng: seen.append(rep))
    history = engine.run(3)
    assert history.shape == (3, 3)
    assert np.all(np.isfinite(history))
    assert [record["rep"] for record in recorder.records] == [1, 2, 3]
    assert all(record["ll"].shape == (3,) for record in recorder.records)
    assert seen == [0, 1, 2]
    for result in engine.results:
        np.testing.assert_allclose(result.posterior.sum(axis=2), 1.0)


def test_run_stops_on_plateau() -> None:
    engine = _engine(tol=1e6)
    history = engine.run(10)
    assert history.shape == (3, 2)


def test_thread_pool_matches_sequential_run() -> None:
    sequential = _engine()
    pooled = _engine(workers=3)
    np.testing.assert_allclose(sequential.run(3), pooled.run(3))
    for a, b in zip(sequential.params, pooled.params):
        np.testing.assert_allclose(a.p_tau_i, b.p_tau_i)
