import numpy as np
import pytest

from pymessl.separators import (
    CueMode,
    CueModes,
    MesslValidationError,
    SigmaMode,
    SourcePriorMode,
)


def test_cue_mode_codes() -> None:
    assert not CueMode.from_code(0).enabled
    tied = CueMode.from_code(1)
    assert tied == CueMode("tied", 1)
    assert not tied.frequency_dependent
    np.testing.assert_array_equal(tied.band_index(5), np.zeros(5))

    banded = CueMode.from_code(-1)
    assert banded.frequency_dependent
    np.testing.assert_array_equal(banded.band_index(5), np.arange(5))


def test_cue_mode_band_layout() -> None:
    np.testing.assert_array_equal(
        CueMode.from_code(3).band_index(9), [0, 0, 0, 1, 1, 1, 2, 2, 2]
    )
    np.testing.assert_array_equal(
        CueMode.from_code(-4).band_index(10), [0, 0, 0, 0, 1, 1, 1, 1, 2, 2]
    )


def test_cue_modes_from_sequence() -> None:
    modes = CueModes.from_sequence([1, 1, 0, 1, 1, 0])
    assert modes.ipd
    assert modes.ild == CueMode("tied", 1)
    assert modes.sp is SourcePriorMode.OFF
    assert modes.sigma is SigmaMode.PER_SOURCE_DELAY


def test_cue_modes_defaults_are_frequency_dependent() -> None:
    modes = CueModes.from_codes()
    assert modes.ild.frequency_dependent
    assert modes.xi.frequency_dependent
    assert modes.sigma is SigmaMode.PER_SOURCE_DELAY_FREQ


def test_without_source_prior_disables_only_sp() -> None:
    modes = CueModes.from_codes(sp=-1)
    assert modes.sp.enabled
    off = modes.without_source_prior()
    assert off.sp is SourcePriorMode.OFF
    assert off.ild == modes.ild


@pytest.mark.parametrize(
    "codes",
    [
        {"sigma": 2},
        {"sp": 3},
        {"ipd": 2},
        {"dct": -1},
    ],
)
def test_unknown_mode_codes_raise(codes: dict[str, int]) -> None:
    with pytest.raises(MesslValidationError):
        CueModes.from_codes(**codes)


def test_mode_sequence_length_is_checked() -> None:
    with pytest.raises(MesslValidationError):
        CueModes.from_sequence([1, 1, 0, 1, 1])
