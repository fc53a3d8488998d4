"""STFT planning and construction utilities."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.signal import ShortTimeFFT, get_window


@dataclass(frozen=True)
class STFTPlan:
    """STFT configuration used by the command-line front end."""

    fft_size: int = 1024
    hop_size: int = 256
    window: str = "hann"


def build_stft(plan: STFTPlan, sample_rate: int) -> ShortTimeFFT:
    """Build a :class:`scipy.signal.ShortTimeFFT` instance from ``plan``."""
    win = get_window(plan.window, plan.fft_size, fftbins=True)
    return ShortTimeFFT(win=win, hop=plan.hop_size, fs=sample_rate)


def multichannel_stft(audio: np.ndarray, plan: STFTPlan, sample_rate: int) -> np.ndarray:
    """Transform ``(n_samples, n_channel)`` audio into ``(n_freq, n_frame, n_channel)``."""
    if audio.ndim != 2:
        raise ValueError("audio must be 2-D shaped (n_samples, n_channel)")
    stft = build_stft(plan, sample_rate)
    spec = stft.stft(audio.T)  # (n_channel, n_freq, n_frame)
    return np.transpose(spec, (1, 2, 0))
