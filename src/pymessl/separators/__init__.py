"""Separator algorithms exposed by pymessl."""

from .alignment import AlignmentResult, SourcePermutationAligner
from .channel_pairs import ChannelPairSelection, select_channel_pairs
from .core import (
    BaseSeparator,
    ConfigurationWarning,
    CueMode,
    CueModes,
    MesslOutput,
    MesslParams,
    MesslValidationError,
    NumericalWarning,
    SigmaMode,
    SourcePriorMode,
)
from .cues import GaussianMixturePrior, IldModel, IpdModel, SourcePriorModel
from .engine import PairEMEngine, PairParams
from .initialization import PairInitialization, PairInitializer
from .messl import Messl
from .multichannel import MultichannelMessl
from .observations import PairObservation, derive_observation
from .posterior import PosteriorCombiner
from .tdoa import per_mic_tdoa_ls, posterior_mode_delays
from .validation import validate_inputs

__all__ = [
    "Messl",
    "MultichannelMessl",
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
    "IpdModel",
    "IldModel",
    "SourcePriorModel",
    "GaussianMixturePrior",
    "PairEMEngine",
    "PairParams",
    "PairInitializer",
    "PairInitialization",
    "SourcePermutationAligner",
    "AlignmentResult",
    "ChannelPairSelection",
    "select_channel_pairs",
    "PairObservation",
    "derive_observation",
    "PosteriorCombiner",
    "per_mic_tdoa_ls",
    "posterior_mode_delays",
    "validate_inputs",
]
