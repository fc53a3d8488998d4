"""Visualization utilities for inspection and reporting."""

from .masks import MaskPlotObserver, plot_ll_trace, plot_masks, plot_pair_params

__all__ = ["MaskPlotObserver", "plot_ll_trace", "plot_masks", "plot_pair_params"]
