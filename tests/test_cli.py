from pathlib import Path

import matplotlib
import numpy as np
import soundfile as sf

from pymessl.cli import main


matplotlib.use("Agg")


def test_list_separators(capsys) -> None:
    main(["--list-separators"])
    names = capsys.readouterr().out.split()
    assert names == ["Messl", "MultichannelMessl"]


def test_separate_writes_masks(tmp_path: Path) -> None:
    rng = np.random.default_rng(0)
    n = 8000
    sources = rng.standard_normal((2, n + 8))
    audio = np.stack(
        [
            sources[0, 4 : 4 + n] + 0.6 * sources[1, 4 : 4 + n],
            0.8 * sources[0, 3 : 3 + n] + 0.8 * sources[1, 6 : 6 + n],
            0.6 * sources[0, 2 : 2 + n] + sources[1, 7 : 7 + n],
        ],
        axis=1,
    )
    wav = tmp_path / "mix.wav"
    sf.write(wav, 0.1 * audio, 16000)

    out_dir = tmp_path / "out"
    main(
        [
            "separate",
            str(wav),
            "--n-sources",
            "2",
            "--fft-size",
            "256",
            "--hop-size",
            "128",
            "--tau-max",
            "3",
            "--set",
            "run.n_rep=2",
            "--set",
            "run.init_rep=1",
            "--output-dir",
            str(out_dir),
            "--plot",
        ]
    )
    with np.load(out_dir / "masks.npz") as data:
        assert data["posterior"].shape[0] == 2
        assert data["posterior"].shape[1] == 129
        assert data["hard_mask"].shape[2:] == (3, 2)
        assert data["per_mic_tdoa"].shape == (3, 2)
    assert (out_dir / "config.yaml").exists()
    assert (out_dir / "masks.png").exists()
    assert (out_dir / "ll_trace.png").exists()
