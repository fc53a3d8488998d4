from pathlib import Path

import numpy as np
import pytest

from pymessl import GaussianMixturePrior, MesslOutput, MesslParams, MesslValidationError
from pymessl.io import load_compat_table, load_source_priors, save_output, save_source_priors


def test_compat_table_defaults_to_neutral() -> None:
    np.testing.assert_array_equal(load_compat_table("", 2, garbage=True), np.ones((3, 3)))


def test_compat_table_is_padded_for_garbage(tmp_path: Path) -> None:
    table = np.array([[2.0, 0.5], [0.5, 2.0]])
    np.save(tmp_path / "compat.npy", table)
    loaded = load_compat_table(tmp_path / "compat.npy", 2, garbage=True)
    assert loaded.shape == (3, 3)
    np.testing.assert_array_equal(loaded[:2, :2], table)
    np.testing.assert_array_equal(loaded[2], 1.0)
    np.testing.assert_array_equal(loaded[:, 2], 1.0)


def test_compat_table_from_npz_is_validated(tmp_path: Path) -> None:
    np.savez(tmp_path / "compat.npz", compat=np.ones((4, 4)))
    with pytest.raises(MesslValidationError):
        load_compat_table(tmp_path / "compat.npz", 2)
    np.savez(tmp_path / "negative.npz", compat=-np.ones((2, 2)))
    with pytest.raises(MesslValidationError):
        load_compat_table(tmp_path / "negative.npz", 2)


def test_source_priors_keep_order(tmp_path: Path) -> None:
    rng = np.random.default_rng(0)
    priors = [
        GaussianMixturePrior.from_arrays(
            rng.uniform(size=3), rng.standard_normal((3, 5)), rng.uniform(1.0, 2.0, (3, 5))
        )
        for _ in range(2)
    ]
    path = save_source_priors(tmp_path / "priors.npz", priors)
    loaded = load_source_priors(path)
    assert len(loaded) == 2
    for expected, actual in zip(priors, loaded):
        np.testing.assert_allclose(actual.weights, expected.weights)
        np.testing.assert_allclose(actual.means, expected.means)
        np.testing.assert_allclose(actual.covars, expected.covars)


def test_load_source_priors_requires_entries(tmp_path: Path) -> None:
    np.savez(tmp_path / "empty.npz", other=np.zeros(2))
    with pytest.raises(MesslValidationError):
        load_source_priors(tmp_path / "empty.npz")


def test_save_output_writes_arrays(tmp_path: Path) -> None:
    posterior = np.full((2, 4, 5, 2), 0.5)
    output = MesslOutput(
        posterior=posterior,
        params=MesslParams(
            pairs=[],
            per_mic_tdoa=np.array([[0.0, 0.0], [8.0, -4.0]]),
            channel_pairs=np.array([[0, 1]]),
            tau=np.arange(-2.0, 3.0),
            sample_rate=8000,
        ),
        ll_history=np.zeros((1, 3)),
        n_sources=2,
    )
    path = save_output(tmp_path / "out" / "masks.npz", output)
    with np.load(path) as data:
        assert set(data.files) == {
            "posterior",
            "per_mic_tdoa",
            "per_mic_tdoa_seconds",
            "channel_pairs",
            "tau",
            "ll_history",
        }
        np.testing.assert_array_equal(data["posterior"], posterior)
        np.testing.assert_allclose(data["per_mic_tdoa_seconds"][1], [1e-3, -5e-4])


def test_output_rejects_bad_posterior_shape() -> None:
    with pytest.raises(ValueError):
        MesslOutput(
            posterior=np.zeros((4, 5, 2)),
            params=MesslParams(
                pairs=[],
                per_mic_tdoa=np.zeros((2, 2)),
                channel_pairs=np.array([[0, 1]]),
                tau=np.arange(3.0),
            ),
            ll_history=np.zeros((1, 1)),
            n_sources=2,
        )
