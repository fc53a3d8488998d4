"""Markov random field smoothing and hard-label decoding.

The MRF is a 4-connected grid over time-frequency bins. Pairwise potentials
come from a compatibility table ``compat[a, b]`` between the label ``a`` of a
bin and the label ``b`` of its neighbour, raised to an exponent. Inference is
synchronous loopy belief propagation in the log domain.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from scipy.special import logsumexp

TINY = np.finfo(np.float64).tiny


def neutral_compat(n_labels: int) -> np.ndarray:
    """Return a non-informative compatibility table."""
    return np.ones((int(n_labels), int(n_labels)))


def _normalize(log_values: np.ndarray, mode: str) -> np.ndarray:
    if mode == "max":
        return log_values - np.max(log_values, axis=-1, keepdims=True)
    return log_values - logsumexp(log_values, axis=-1, keepdims=True)


def _send(h: np.ndarray, log_compat: np.ndarray, mode: str) -> np.ndarray:
    """Message over the neighbour label given outgoing evidence ``h`` (F, T, L)."""
    joint = h[:, :, :, None] + log_compat[None, None, :, :]
    if mode == "max":
        return _normalize(np.max(joint, axis=2), mode)
    return _normalize(logsumexp(joint, axis=2), mode)


def loopy_belief_propagation(
    log_unary: np.ndarray,
    compat: np.ndarray,
    *,
    exponent: float = 1.0,
    n_iter: int = 8,
    mode: Literal["max", "sum"] = "max",
) -> np.ndarray:
    """Run loopy BP on the time-frequency grid.

    Parameters
    ----------
    log_unary : ndarray of shape (F, T, L)
        Local log-evidence of every label.
    compat : ndarray of shape (L, L)
        Compatibility table between neighbouring labels.
    exponent : float
        Power applied to ``compat``; ``0`` removes the pairwise term.
    n_iter : int
        Number of synchronous message-passing iterations.
    mode : {"max", "sum"}
        Max-product (max-marginals) or sum-product (marginals).

    Returns
    -------
    ndarray of shape (F, T, L)
        Normalised log-beliefs (log max-marginals in ``"max"`` mode).
    """
    if mode not in ("max", "sum"):
        raise ValueError(f"mode must be 'max' or 'sum', got {mode!r}")
    log_unary = np.asarray(log_unary, dtype=np.float64)
    log_compat = float(exponent) * np.log(np.maximum(np.asarray(compat), TINY))

    # incoming[d]: message a bin receives from its neighbour on side d
    incoming = {side: np.zeros_like(log_unary) for side in ("up", "down", "left", "right")}
    for _ in range(int(n_iter)):
        belief = log_unary + sum(incoming.values())
        updated = {side: np.zeros_like(log_unary) for side in incoming}

        to_next_t = _send(belief - incoming["right"], log_compat, mode)
        updated["left"][:, 1:] = to_next_t[:, :-1]
        to_prev_t = _send(belief - incoming["left"], log_compat, mode)
        updated["right"][:, :-1] = to_prev_t[:, 1:]
        to_next_f = _send(belief - incoming["down"], log_compat, mode)
        updated["up"][1:, :] = to_next_f[:-1, :]
        to_prev_f = _send(belief - incoming["up"], log_compat, mode)
        updated["down"][:-1, :] = to_prev_f[1:, :]
        incoming = updated

    belief = log_unary + sum(incoming.values())
    return belief - logsumexp(belief, axis=-1, keepdims=True)


def _log_normalized(values: np.ndarray) -> np.ndarray:
    values = np.maximum(values, TINY)
    return np.log(values / values.sum(axis=-1, keepdims=True))


def hard_unary(
    posterior: np.ndarray,
    nu_ipd: np.ndarray | None = None,
    nu_ild: np.ndarray | None = None,
) -> np.ndarray:
    """Geometric mean of the combined posterior and the cue responsibilities."""
    estimates = [posterior]
    if nu_ipd is not None:
        estimates.append(nu_ipd.sum(axis=3))
    if nu_ild is not None:
        estimates.append(nu_ild)
    return np.mean([_log_normalized(est) for est in estimates], axis=0)


def assign_hard_masks(
    posterior: np.ndarray,
    *,
    n_sources: int,
    n_channels: int,
    nu_ipd: np.ndarray | None = None,
    nu_ild: np.ndarray | None = None,
    compat: np.ndarray | None = None,
    exponent: float = 0.0,
    n_iter: int = 8,
) -> np.ndarray:
    """Decode one label per bin and return one-hot masks.

    Returns
    -------
    ndarray of bool, shape (F, T, n_channels, n_sources)
        Identical across channels. Bins decoded as the garbage source are
        ``False`` in every plane.
    """
    n_labels = posterior.shape[-1]
    if compat is None:
        compat = neutral_compat(n_labels)
    beliefs = loopy_belief_propagation(
        hard_unary(posterior, nu_ipd, nu_ild),
        compat,
        exponent=exponent,
        n_iter=n_iter,
        mode="max",
    )
    labels = np.argmax(beliefs, axis=-1)
    onehot = labels[:, :, None] == np.arange(int(n_sources))[None, None, :]
    return np.repeat(onehot[:, :, None, :], int(n_channels), axis=2)
