import numpy as np

from pymessl.separators.core import PermutationRequest
from pymessl.separators.strategies import (
    AssignmentKLPermutationStrategy,
    ExhaustiveKLPermutationStrategy,
    KLPermutationStrategy,
    ScoreMatrixPermutationStrategy,
    pairwise_symmetric_kl,
    symmetric_kl,
)


def _masks(rng: np.random.Generator, n_src: int) -> np.ndarray:
    return rng.dirichlet(np.full(n_src, 0.5), size=(6, 9))


def test_score_matrix_permutation_strategy() -> None:
    score = np.array([[0.1, 0.9], [0.8, 0.2]])
    strategy = ScoreMatrixPermutationStrategy()
    perm = strategy.solve(PermutationRequest(score=score))
    np.testing.assert_array_equal(perm, np.array([1, 0]))


def test_symmetric_kl_properties() -> None:
    rng = np.random.default_rng(0)
    a, b = _masks(rng, 2), _masks(rng, 2)
    assert symmetric_kl(a, a) == 0.0
    assert symmetric_kl(a, b) > 0.0
    np.testing.assert_allclose(symmetric_kl(a, b), symmetric_kl(b, a))
    np.testing.assert_allclose(np.trace(pairwise_symmetric_kl(a, b)), symmetric_kl(a, b))


def test_exhaustive_kl_recovers_permutation() -> None:
    rng = np.random.default_rng(1)
    reference = _masks(rng, 3)
    estimate = reference[..., [2, 0, 1]]
    order = ExhaustiveKLPermutationStrategy().solve(
        PermutationRequest(reference=reference, estimate=estimate)
    )
    np.testing.assert_array_equal(estimate[..., order], reference)


def test_exhaustive_kl_ties_keep_identity() -> None:
    reference = np.full((4, 5, 3), 1.0 / 3.0)
    order = ExhaustiveKLPermutationStrategy().solve(
        PermutationRequest(reference=reference, estimate=reference.copy())
    )
    np.testing.assert_array_equal(order, [0, 1, 2])


def test_assignment_matches_exhaustive_search() -> None:
    rng = np.random.default_rng(2)
    reference = _masks(rng, 4)
    noisy = reference[..., [3, 1, 0, 2]] + 0.05 * rng.uniform(size=reference.shape)
    noisy /= noisy.sum(axis=-1, keepdims=True)
    request = PermutationRequest(reference=reference, estimate=noisy)
    np.testing.assert_array_equal(
        AssignmentKLPermutationStrategy().solve(request),
        ExhaustiveKLPermutationStrategy().solve(request),
    )


def test_kl_strategy_falls_back_to_matching_for_many_sources() -> None:
    rng = np.random.default_rng(3)
    reference = _masks(rng, 6)
    perm = np.array([5, 3, 1, 0, 2, 4])
    estimate = reference[..., perm]
    order = KLPermutationStrategy(max_exhaustive=4).solve(
        PermutationRequest(reference=reference, estimate=estimate)
    )
    np.testing.assert_array_equal(estimate[..., order], reference)
