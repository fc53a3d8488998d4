import numpy as np
import pytest

from pymessl.signal import STFTPlan, multichannel_stft


def test_multichannel_stft_layout() -> None:
    audio = np.random.default_rng(0).standard_normal((4000, 3))
    spec = multichannel_stft(audio, STFTPlan(fft_size=256, hop_size=64), 16000)
    assert spec.ndim == 3
    assert spec.shape[0] == 129
    assert spec.shape[2] == 3
    assert np.iscomplexobj(spec)


def test_multichannel_stft_requires_2d_audio() -> None:
    with pytest.raises(ValueError):
        multichannel_stft(np.zeros(100), STFTPlan(), 16000)
