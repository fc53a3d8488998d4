"""pymessl public API."""

from .configs import load_config, load_yaml, save_config
from .config_schema import MesslConfig, parse_messl_config
from .logging_utils import JsonlLogger
from .separators import (
    ConfigurationWarning,
    GaussianMixturePrior,
    Messl,
    MesslOutput,
    MesslParams,
    MesslValidationError,
    MultichannelMessl,
    NumericalWarning,
)

__all__ = [
    "Messl",
    "MultichannelMessl",
    "MesslOutput",
    "MesslParams",
    "MesslConfig",
    "GaussianMixturePrior",
    "MesslValidationError",
    "ConfigurationWarning",
    "NumericalWarning",
    "load_config",
    "load_yaml",
    "save_config",
    "parse_messl_config",
    "JsonlLogger",
]
