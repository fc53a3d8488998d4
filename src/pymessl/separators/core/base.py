"""Base classes for MESSL separator execution."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .io_models import MesslOutput


class BaseSeparator(ABC):
    """Common top-level contract for all separators."""

    @property
    @abstractmethod
    def n_sources(self) -> int:
        """Return number of genuine separated sources."""

    def reset(self) -> None:
        """Reset internal state (override in subclasses when needed)."""

    def __call__(self, *args: Any, **kwargs: Any) -> MesslOutput:
        """Alias for :meth:`forward`."""
        return self.forward(*args, **kwargs)

    def forward(self, *args: Any, **kwargs: Any) -> MesslOutput:
        """Execute separation and return a typed output object."""
        raise NotImplementedError(
            f"{self.__class__.__name__} does not implement forward()."
        )
