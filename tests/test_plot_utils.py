from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from _synthetic import TAU
from pymessl import MesslConfig
from pymessl.separators import CueModes, derive_observation
from pymessl.separators.cues.ipd import gaussian_delay_posterior
from pymessl.separators.initialization import build_pair_params
from pymessl.visualization import MaskPlotObserver, plot_ll_trace, plot_masks, plot_pair_params


matplotlib.use("Agg")


def test_plot_masks_returns_figure() -> None:
    mask = np.random.default_rng(0).dirichlet(np.ones(2), size=(16, 20))
    fig = plot_masks(mask, title="demo")
    assert len(fig.axes) == 2
    plt.close(fig)


def test_plot_ll_trace_returns_figure() -> None:
    fig = plot_ll_trace(np.cumsum(np.ones((3, 5)), axis=1))
    assert len(fig.axes[0].lines) == 3
    plt.close(fig)


def test_plot_pair_params_draws_ild_panel() -> None:
    rng = np.random.default_rng(1)
    mixture = rng.standard_normal((9, 6, 2)) + 1j * rng.standard_normal((9, 6, 2))
    obs = derive_observation(mixture, (0, 1), TAU)
    params = build_pair_params(
        obs,
        (0, 1),
        n_sources=2,
        config=MesslConfig(),
        modes=CueModes.from_codes(),
        p_tau_i=gaussian_delay_posterior(TAU, [-2.0, 3.0]),
    )
    fig = plot_pair_params(params, TAU)
    assert len(fig.axes) == 2
    plt.close(fig)


class _EngineView:
    def __init__(self) -> None:
        self.global_log_posterior = np.log(np.full((8, 10, 2, 3), 0.5))


def test_mask_plot_observer_saves_one_file_per_repetition(tmp_path: Path) -> None:
    observer = MaskPlotObserver(tmp_path)
    engine = _EngineView()
    observer(0, engine)
    observer(1, engine)
    assert [path.name for path in observer.saved] == [
        "posterior-rep01.png",
        "posterior-rep02.png",
    ]
    assert all(path.exists() for path in observer.saved)
