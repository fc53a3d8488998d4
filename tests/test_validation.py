import numpy as np
import pytest

from pymessl.separators import MesslValidationError, validate_inputs
from pymessl.separators.validation import prepare_log_mask_prior, prepare_reliability


def _mixture(n_channels: int = 3) -> np.ndarray:
    rng = np.random.default_rng(0)
    shape = (5, 6, n_channels)
    return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)


def test_validate_inputs_accepts_well_formed_inputs() -> None:
    mixture, tau, n_sources = validate_inputs(_mixture(), [-1, 0, 1], 2, ref_mic=3)
    assert mixture.shape == (5, 6, 3)
    assert tau.dtype == np.float64
    assert n_sources == 2


@pytest.mark.parametrize(
    "mixture,tau,n_sources,ref_mic",
    [
        (np.zeros((5, 6)), [0.0, 1.0], 1, 0),
        (np.zeros((5, 6, 1)), [0.0, 1.0], 1, 0),
        (np.zeros((5, 6, 2)), [], 1, 0),
        (np.zeros((5, 6, 2)), [1.0, 0.0], 1, 0),
        (np.zeros((5, 6, 2)), [0.0, 0.0], 1, 0),
        (np.zeros((5, 6, 2)), [0.0, 1.0], 0, 0),
        (np.zeros((5, 6, 2)), [0.0, 1.0], 3, 0),
        (np.zeros((5, 6, 2)), [0.0, 1.0], 1, 3),
        (np.full((5, 6, 2), np.nan), [0.0, 1.0], 1, 0),
    ],
)
def test_validate_inputs_rejects_malformed_inputs(mixture, tau, n_sources, ref_mic) -> None:
    with pytest.raises(MesslValidationError):
        validate_inputs(mixture, tau, n_sources, ref_mic=ref_mic)


def test_mask_prior_gets_garbage_slot() -> None:
    mask = np.random.default_rng(0).dirichlet(np.ones(2), size=(5, 6))
    log_prior = prepare_log_mask_prior(mask, 5, 6, 2, garbage=True)
    assert log_prior.shape == (5, 6, 3)
    np.testing.assert_allclose(np.exp(log_prior).sum(axis=2), 1.0)


def test_mask_prior_and_reliability_shapes_are_checked() -> None:
    with pytest.raises(MesslValidationError):
        prepare_log_mask_prior(np.ones((5, 6, 4)), 5, 6, 2, garbage=False)
    with pytest.raises(MesslValidationError):
        prepare_reliability(np.ones((5, 5)), 5, 6)
    with pytest.raises(MesslValidationError):
        prepare_reliability(-np.ones((5, 6)), 5, 6)
