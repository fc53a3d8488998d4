"""Core abstractions for reusable separator design.

This package provides shared building blocks used by the two-channel and the
multichannel MESSL separators:

- Typed input/output containers.
- Base separator class.
- Strategy and cue-model interfaces.
- Tagged cue-mode variants.
- Error and warning categories.
"""

from .base import BaseSeparator
from .errors import ConfigurationWarning, MesslValidationError, NumericalWarning
from .io_models import MesslOutput, MesslParams
from .modes import (
    BOOTSTRAP_MODES,
    CueMode,
    CueModes,
    SigmaMode,
    SourcePriorMode,
)
from .strategies import CueModel, PermutationStrategy
from .strategy_models import CueLogLikelihoods, PermutationRequest, PosteriorResult

__all__ = [
    "BaseSeparator",
    "MesslOutput",
    "MesslParams",
    "MesslValidationError",
    "ConfigurationWarning",
    "NumericalWarning",
    "CueMode",
    "CueModes",
    "SigmaMode",
    "SourcePriorMode",
    "BOOTSTRAP_MODES",
    "CueModel",
    "PermutationStrategy",
    "CueLogLikelihoods",
    "PermutationRequest",
    "PosteriorResult",
]
