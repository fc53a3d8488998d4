"""File I/O for compatibility tables, source priors and results."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import numpy as np

from .separators.core import MesslOutput, MesslValidationError
from .separators.cues import GaussianMixturePrior
from .separators.mrf import neutral_compat

LOGGER = logging.getLogger(__name__)


def load_compat_table(
    path: str | Path | None,
    n_sources: int,
    garbage: bool = False,
) -> np.ndarray:
    """Load an MRF compatibility table.

    ``.npy`` files hold the array directly, ``.npz`` files under the key
    ``compat``. A table sized for the genuine sources is padded with a row
    and a column of ones for the garbage source. An empty path yields the
    neutral table.
    """
    n_labels = int(n_sources) + int(garbage)
    if not path:
        return neutral_compat(n_labels)
    path = Path(path)
    if path.suffix == ".npz":
        with np.load(path) as data:
            table = np.asarray(data["compat"], dtype=np.float64)
    else:
        table = np.asarray(np.load(path), dtype=np.float64)

    if garbage and table.shape == (n_sources, n_sources):
        padded = np.ones((n_labels, n_labels))
        padded[:n_sources, :n_sources] = table
        table = padded
    if table.shape != (n_labels, n_labels):
        raise MesslValidationError(
            f"Compatibility table in {path} has shape {table.shape}; "
            f"expected ({n_labels}, {n_labels})."
        )
    if np.any(table < 0):
        raise MesslValidationError("Compatibility table entries must be non-negative.")
    LOGGER.info("loaded compatibility table %s", path)
    return table


def save_source_priors(path: str | Path, priors: Sequence[GaussianMixturePrior]) -> Path:
    """Store GMMs as ``weights_i``, ``means_i`` and ``covars_i`` arrays."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    arrays: dict[str, np.ndarray] = {}
    for i, prior in enumerate(priors):
        arrays[f"weights_{i}"] = prior.weights
        arrays[f"means_{i}"] = prior.means
        arrays[f"covars_{i}"] = prior.covars
    np.savez(out, **arrays)
    return out


def load_source_priors(path: str | Path) -> list[GaussianMixturePrior]:
    """Load GMMs written by :func:`save_source_priors`, in source order."""
    priors = []
    with np.load(Path(path)) as data:
        i = 0
        while f"weights_{i}" in data:
            priors.append(
                GaussianMixturePrior.from_arrays(
                    data[f"weights_{i}"], data[f"means_{i}"], data[f"covars_{i}"]
                )
            )
            i += 1
    if not priors:
        raise MesslValidationError(f"No source priors found in {path}.")
    return priors


def save_output(path: str | Path, output: MesslOutput) -> Path:
    """Write posterior, hard masks, delays (samples and seconds) and history to ``.npz``."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    arrays = {
        "posterior": output.posterior,
        "per_mic_tdoa": output.params.per_mic_tdoa,
        "per_mic_tdoa_seconds": output.params.per_mic_tdoa_seconds,
        "channel_pairs": output.params.channel_pairs,
        "tau": output.params.tau,
        "ll_history": output.ll_history,
    }
    if output.hard_mask is not None:
        arrays["hard_mask"] = output.hard_mask
    np.savez_compressed(out, **arrays)
    return out
