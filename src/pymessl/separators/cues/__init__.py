"""Statistical cue models of one channel pair."""

from .ild import IldModel
from .ipd import IpdModel, cross_correlation_peaks, prepare_delay_posterior
from .source_prior import GaussianMixturePrior, SourcePriorModel

__all__ = [
    "IpdModel",
    "IldModel",
    "SourcePriorModel",
    "GaussianMixturePrior",
    "cross_correlation_peaks",
    "prepare_delay_posterior",
]
