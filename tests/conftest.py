from __future__ import annotations

import numpy as np
import pytest

from _synthetic import DELAYS_3MIC, GAINS_3MIC, TAU, synthesize
from pymessl import MesslConfig


@pytest.fixture
def tau() -> np.ndarray:
    return TAU.copy()


@pytest.fixture
def two_mic_mixture() -> tuple[np.ndarray, np.ndarray]:
    return synthesize(DELAYS_3MIC[:, [0, 2]], GAINS_3MIC[:, [0, 2]], noise=0.05, seed=1)


@pytest.fixture
def three_mic_mixture() -> tuple[np.ndarray, np.ndarray]:
    return synthesize(DELAYS_3MIC, GAINS_3MIC, seed=2)


@pytest.fixture
def fast_config() -> MesslConfig:
    cfg = MesslConfig()
    cfg.run.n_rep = 8
    cfg.run.init_rep = 4
    cfg.mrf.compat_exp_sched = [0.0]
    return cfg
