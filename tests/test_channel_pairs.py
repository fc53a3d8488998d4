from itertools import combinations

import numpy as np
import pytest

from pymessl.separators import MesslValidationError, select_channel_pairs


def test_all_pairs_without_reference_mic() -> None:
    selection = select_channel_pairs(4)
    assert selection.n_pairs == 6
    assert [tuple(pair) for pair in selection.pairs.tolist()] == list(
        combinations(range(4), 2)
    )
    assert selection.overcount_rescale == pytest.approx(4 / 5)


def test_reference_mic_pairs_contain_reference() -> None:
    selection = select_channel_pairs(4, ref_mic=2)
    assert selection.n_pairs == 3
    assert all(1 in pair for pair in selection.pairs.tolist())
    assert selection.overcount_rescale == 1.0
    np.testing.assert_array_equal(selection.pairs[:, 0], [1, 1, 1])


def test_two_channels_yield_single_pair_with_unit_rescale() -> None:
    selection = select_channel_pairs(2)
    np.testing.assert_array_equal(selection.pairs, [[0, 1]])
    assert selection.overcount_rescale == 1.0


@pytest.mark.parametrize("n_channels,ref_mic", [(1, 0), (3, 4), (3, -1)])
def test_invalid_pair_selection_raises(n_channels: int, ref_mic: int) -> None:
    with pytest.raises(MesslValidationError):
        select_channel_pairs(n_channels, ref_mic=ref_mic)
