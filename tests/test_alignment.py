import numpy as np

from pymessl.separators import SourcePermutationAligner


def _pair_inputs(rng: np.random.Generator) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    base = rng.dirichlet(np.full(3, 0.5), size=(7, 9))
    masks = np.stack([base, base[:, :, [1, 0, 2]], base], axis=3)
    p_tau_i = rng.uniform(size=(3, 3, 5))
    return base, masks, p_tau_i


def test_aligner_undoes_label_swaps_and_keeps_garbage_row() -> None:
    rng = np.random.default_rng(0)
    base, masks, p_tau_i = _pair_inputs(rng)
    result = SourcePermutationAligner(2, garbage=True).align(masks, p_tau_i)

    np.testing.assert_array_equal(result.orders, [[0, 1], [1, 0], [0, 1]])
    for c in range(3):
        np.testing.assert_allclose(result.masks[:, :, :2, c], base[:, :, :2])
    np.testing.assert_allclose(result.p_tau_i[1], p_tau_i[1][[1, 0, 2]])
    np.testing.assert_allclose(result.p_tau_i[:, 2], p_tau_i[:, 2])
    np.testing.assert_allclose(result.p_tau_i[0], p_tau_i[0])


def test_aligner_is_deterministic() -> None:
    rng = np.random.default_rng(1)
    _, masks, p_tau_i = _pair_inputs(rng)
    masks = masks + 0.01 * rng.uniform(size=masks.shape)
    aligner = SourcePermutationAligner(2, garbage=True)
    first = aligner.align(masks, p_tau_i)
    second = aligner.align(masks, p_tau_i)
    np.testing.assert_array_equal(first.orders, second.orders)
    np.testing.assert_array_equal(first.masks, second.masks)
    np.testing.assert_array_equal(first.p_tau_i, second.p_tau_i)


def test_aligner_does_not_mutate_inputs() -> None:
    rng = np.random.default_rng(2)
    _, masks, p_tau_i = _pair_inputs(rng)
    masks_before, p_before = masks.copy(), p_tau_i.copy()
    SourcePermutationAligner(2, garbage=True).align(masks, p_tau_i)
    np.testing.assert_array_equal(masks, masks_before)
    np.testing.assert_array_equal(p_tau_i, p_before)
