"""Multichannel MESSL over microphone pairs."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .channel_pairs import ChannelPairSelection, select_channel_pairs
from .core import CueModes, PermutationStrategy
from .engine import PairParams
from .initialization import PairInitialization, PairInitializer
from .messl import Messl
from .observations import PairObservation


class MultichannelMessl(Messl):
    """
    MESSL on every microphone pair with a shared consensus prior.

    Each pair keeps its own cue models. In every repetition a pair first
    computes a posterior from its own evidence, then recomputes it with the
    summed log-posteriors of all other pairs as a prior before updating its
    parameters. Pairs are bootstrapped with a short two-channel run and
    their source labels aligned before the joint loop starts.

    Procedure
    ---------
    ```text

       select pairs (all C(C-1)/2, or (ref, j) for a reference mic)
       for each pair: short two-channel MESSL run (bootstrap)
       align source labels across pairs (symmetric KL on masks)
       optionally re-derive consistent pairwise delays by least squares
       for r = 1..R:
           for each pair c: local posterior q_c from own cues
           for each pair c: posterior with prior rescale * sum_{c' != c} log q_c'
                            record ll, M-step
       per-microphone TDOA by least squares, hard masks by loopy BP
    ```

    Parameters are those of :class:`~pymessl.separators.messl.Messl`, plus
    ``strategy`` for the cross-pair label alignment.

    Examples
    --------
    ```python

       import numpy as np
       from pymessl import MultichannelMessl, load_config

       cfg = load_config(overrides=["multichannel.ref_mic=1", "run.n_rep=8"])
       X = np.load("mixture_stft.npy")  # (n_freq, n_frame, n_mic)
       out = MultichannelMessl(2, np.arange(-8, 9), config=cfg)(X)
       soft = out.mask            # (n_freq, n_frame, 2)
       hard = out.hard_mask       # (n_freq, n_frame, n_mic, 2)
    ```
    """

    def __init__(
        self,
        n_sources: int,
        tau,
        *,
        strategy: PermutationStrategy | None = None,
        **kwargs,
    ) -> None:
        super().__init__(n_sources, tau, **kwargs)
        self.strategy = strategy
        self.initialization: PairInitialization | None = None

    def reset(self) -> None:
        super().reset()
        self.initialization = None

    def _select_pairs(self, n_channels: int) -> ChannelPairSelection:
        return select_channel_pairs(n_channels, self.config.multichannel.ref_mic)

    def _initialize(
        self,
        mixture: np.ndarray,
        observations: Sequence[PairObservation],
        selection: ChannelPairSelection,
        modes: CueModes,
    ) -> list[PairParams]:
        initializer = PairInitializer(
            self.n_sources,
            np.asarray(self.tau, dtype=np.float64),
            self.config,
            strategy=self.strategy,
        )
        self.initialization = initializer.initialize(
            mixture,
            observations,
            selection.pairs,
            has_mask_prior=self.mask_prior is not None,
        )
        return [
            self._pair_params(obs, pair, modes, self.initialization.p_tau_i[c])
            for c, (obs, pair) in enumerate(zip(observations, selection.pairs))
        ]
