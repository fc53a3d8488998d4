"""Signal processing utilities."""

from .stft import STFTPlan, build_stft, multichannel_stft

__all__ = ["STFTPlan", "build_stft", "multichannel_stft"]
