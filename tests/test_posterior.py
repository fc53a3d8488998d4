import numpy as np
import pytest
from scipy.special import logsumexp

from pymessl.separators import PosteriorCombiner
from pymessl.separators.core import CueLogLikelihoods
from pymessl.separators.mrf import neutral_compat


def _random_lls(rng: np.random.Generator) -> CueLogLikelihoods:
    joint = rng.normal(size=(6, 7, 3, 5))
    return CueLogLikelihoods(
        ipd_joint=joint,
        ipd=logsumexp(joint, axis=3),
        ild=rng.normal(size=(6, 7, 3)),
    )


def test_posterior_sums_to_one_and_ll_is_log_evidence() -> None:
    rng = np.random.default_rng(0)
    lls = _random_lls(rng)
    log_prior = rng.normal(size=(6, 7, 3))
    result = PosteriorCombiner().combine(lls, log_prior=log_prior)

    np.testing.assert_allclose(result.posterior.sum(axis=2), 1.0, atol=1e-6)
    expected = np.sum(logsumexp(lls.ipd + lls.ild + log_prior, axis=2))
    assert result.log_likelihood == pytest.approx(expected)


def test_responsibilities_follow_posterior_and_reliability() -> None:
    rng = np.random.default_rng(1)
    lls = _random_lls(rng)
    reliability = rng.uniform(0.0, 1.0, size=(6, 7))
    result = PosteriorCombiner().combine(lls, reliability=reliability)

    weighted = result.posterior * reliability[:, :, None]
    np.testing.assert_allclose(result.nu_ipd.sum(axis=3), weighted)
    np.testing.assert_allclose(result.nu_ild, weighted)
    assert result.nu_sp is None
    np.testing.assert_allclose(result.mask_ipd.sum(axis=2), 1.0)
    np.testing.assert_allclose(result.mask_ild.sum(axis=2), 1.0)


def test_neutral_compat_smoothing_leaves_posterior_unchanged() -> None:
    rng = np.random.default_rng(2)
    lls = _random_lls(rng)
    plain = PosteriorCombiner().combine(lls)
    smoothed = PosteriorCombiner(compat=neutral_compat(3), lbp_iter=4).combine(
        lls, compat_exp=0.5
    )
    np.testing.assert_allclose(smoothed.posterior, plain.posterior, atol=1e-10)


def test_combine_requires_some_evidence() -> None:
    with pytest.raises(ValueError):
        PosteriorCombiner().combine(CueLogLikelihoods())
