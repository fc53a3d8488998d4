"""Plotting of masks, EM traces and per-pair cue parameters."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np


def plot_masks(mask: np.ndarray, *, title: str | None = None) -> plt.Figure:
    """Plot one panel per source of a ``(n_freq, n_frame, n_sources)`` mask."""
    if mask.ndim != 3:
        raise ValueError("mask must be a 3-D array shaped (n_freq, n_frame, n_sources)")
    n_sources = mask.shape[2]
    fig, axes = plt.subplots(1, n_sources, figsize=(3.0 * n_sources, 3.0), squeeze=False)
    for i, ax in enumerate(axes[0]):
        ax.imshow(mask[:, :, i], origin="lower", aspect="auto", vmin=0.0, vmax=1.0)
        ax.set_title(f"source {i}")
        ax.set_xlabel("frame")
        ax.set_ylabel("bin")
    if title:
        fig.suptitle(title)
    fig.tight_layout()
    return fig


def plot_ll_trace(ll_history: np.ndarray) -> plt.Figure:
    """Plot log-likelihood per repetition, one line per pair."""
    if ll_history.ndim != 2:
        raise ValueError("ll_history must be 2-D shaped (n_pairs, n_rep)")
    fig, ax = plt.subplots(figsize=(4.0, 3.0))
    reps = np.arange(1, ll_history.shape[1] + 1)
    for c, trace in enumerate(ll_history):
        ax.plot(reps, trace, marker="o", linewidth=0.8, label=f"pair {c}")
    ax.set_xlabel("repetition")
    ax.set_ylabel("log-likelihood")
    ax.legend(fontsize="small")
    fig.tight_layout()
    return fig


def plot_pair_params(params, tau: np.ndarray) -> plt.Figure:
    """Plot ``p(tau | i)`` and, when present, the ILD means of one pair."""
    n_panels = 2 if params.ild is not None else 1
    fig, axes = plt.subplots(1, n_panels, figsize=(4.0 * n_panels, 3.0), squeeze=False)
    ax = axes[0, 0]
    for i, row in enumerate(params.ipd.delay_posterior):
        ax.plot(tau, row, linewidth=0.8, label=f"source {i}")
    ax.set_xlabel("delay [samples]")
    ax.set_ylabel("p(tau | i)")
    ax.legend(fontsize="small")
    if params.ild is not None:
        ax = axes[0, 1]
        for i, row in enumerate(params.ild.mean):
            ax.plot(row, linewidth=0.8, label=f"source {i}")
        ax.set_xlabel("bin")
        ax.set_ylabel("ILD mean [dB]")
    fig.tight_layout()
    return fig


class MaskPlotObserver:
    """Engine observer that saves the mean multichannel posterior per repetition.

    Figures are written to ``output_dir`` when given and closed right away.
    The observer only reads engine state.
    """

    def __init__(self, output_dir: str | Path | None = None) -> None:
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.saved: list[Path] = []

    def __call__(self, rep: int, engine) -> None:
        mean_post = np.exp(engine.global_log_posterior.mean(axis=3))
        fig = plot_masks(mean_post, title=f"repetition {rep + 1}")
        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"posterior-rep{rep + 1:02d}.png"
            fig.savefig(path)
            self.saved.append(path)
        plt.close(fig)
