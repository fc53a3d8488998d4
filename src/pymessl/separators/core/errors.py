"""Error and warning categories raised by MESSL separators."""

from __future__ import annotations


class MesslValidationError(ValueError):
    """Raised for malformed inputs before any EM work starts."""


class ConfigurationWarning(UserWarning):
    """Issued when a requested option cannot be honoured and is disabled."""


class NumericalWarning(RuntimeWarning):
    """Issued when a cue model produces non-finite log-likelihoods."""
