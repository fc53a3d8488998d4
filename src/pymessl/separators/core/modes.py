"""Tagged cue-mode variants resolved once from numeric mode codes.

Numeric codes follow the MESSL convention:

- ``0`` disables a feature.
- A positive code ``n`` splits the frequency axis into ``n`` bands that share
  one parameter (``1`` is frequency independent).
- A negative code ``-w`` uses bands of ``w`` bins (``-1`` is fully frequency
  dependent).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Sequence

import numpy as np

from .errors import MesslValidationError


@dataclass(frozen=True, slots=True)
class CueMode:
    """Frequency tying of one cue parameter."""

    kind: Literal["disabled", "tied", "banded"]
    size: int = 0

    @classmethod
    def from_code(cls, code: int) -> "CueMode":
        code = int(code)
        if code == 0:
            return cls("disabled")
        if code > 0:
            return cls("tied", code)
        return cls("banded", -code)

    @property
    def enabled(self) -> bool:
        return self.kind != "disabled"

    @property
    def frequency_dependent(self) -> bool:
        return self.kind == "banded" and self.size == 1

    def band_index(self, n_freq: int) -> np.ndarray:
        """Return the band label of every frequency bin, shape ``(n_freq,)``."""
        freq = np.arange(n_freq, dtype=np.int64)
        if self.kind == "tied":
            n_bands = min(self.size, n_freq)
            return np.minimum(freq * n_bands // n_freq, n_bands - 1)
        if self.kind == "banded":
            return freq // self.size
        return np.zeros(n_freq, dtype=np.int64)


class SigmaMode(Enum):
    """Which axes the IPD residual standard deviation varies along."""

    PER_SOURCE = 0
    PER_SOURCE_DELAY = 1
    PER_SOURCE_DELAY_FREQ = -1


class SourcePriorMode(Enum):
    """How the source-prior cue treats the two channels of a pair."""

    OFF = 0
    SEPARATE = 1
    AVERAGE = -1

    @property
    def enabled(self) -> bool:
        return self is not SourcePriorMode.OFF


@dataclass(frozen=True, slots=True)
class CueModes:
    """Resolved mode selection for all cues of one pair model."""

    ipd: bool = True
    ild: CueMode = CueMode("banded", 1)
    sp: SourcePriorMode = SourcePriorMode.OFF
    xi: CueMode = CueMode("banded", 1)
    sigma: SigmaMode = SigmaMode.PER_SOURCE_DELAY_FREQ
    dct: int = 0

    @classmethod
    def from_codes(
        cls,
        ipd: int = 1,
        ild: int = -1,
        sp: int = 0,
        xi: int = -1,
        sigma: int = -1,
        dct: int = 0,
    ) -> "CueModes":
        if int(ipd) not in (0, 1):
            raise MesslValidationError(f"ipd mode must be 0 or 1, got {ipd}")
        try:
            sigma_mode = SigmaMode(int(sigma))
        except ValueError as exc:
            raise MesslValidationError(
                f"sigma mode must be one of 0, 1, -1, got {sigma}"
            ) from exc
        try:
            sp_mode = SourcePriorMode(int(sp))
        except ValueError as exc:
            raise MesslValidationError(
                f"sp mode must be one of 0, 1, -1, got {sp}"
            ) from exc
        if int(dct) < 0:
            raise MesslValidationError(f"dct mode must be non-negative, got {dct}")
        return cls(
            ipd=bool(ipd),
            ild=CueMode.from_code(ild),
            sp=sp_mode,
            xi=CueMode.from_code(xi),
            sigma=sigma_mode,
            dct=int(dct),
        )

    @classmethod
    def from_sequence(cls, modes: Sequence[int]) -> "CueModes":
        """Resolve ``[ipd, ild, sp, xi, sigma, dct]``."""
        if len(modes) != 6:
            raise MesslValidationError(
                f"modes must hold six codes [ipd ild sp xi sigma dct], got {list(modes)}"
            )
        return cls.from_codes(*[int(code) for code in modes])

    def without_source_prior(self) -> "CueModes":
        return CueModes(
            ipd=self.ipd,
            ild=self.ild,
            sp=SourcePriorMode.OFF,
            xi=self.xi,
            sigma=self.sigma,
            dct=self.dct,
        )


#: Modes used by the short per-pair bootstrap runs.
BOOTSTRAP_MODES = (1, 1, 0, 1, 1, 0)
