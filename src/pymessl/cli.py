from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import soundfile as sf

from .configs import load_config, save_config
from .io import load_source_priors, save_output
from .separators import MultichannelMessl
from .separators import __all__ as separator_exports
from .signal import STFTPlan, multichannel_stft
from .visualization import plot_ll_trace, plot_masks

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pymessl",
        description="Multichannel MESSL spatial source separation",
    )
    parser.add_argument(
        "--list-separators",
        action="store_true",
        help="Print available separator names and exit",
    )
    sub = parser.add_subparsers(dest="command")

    sep = sub.add_parser("separate", help="Estimate time-frequency masks of a WAV mixture.")
    sep.add_argument("input_wav", type=Path, help="Path to a multichannel mixture WAV.")
    sep.add_argument("--n-sources", type=int, required=True, help="Number of sources.")
    sep.add_argument("--config", type=Path, default=None, help="YAML config file.")
    sep.add_argument(
        "--set",
        action="append",
        default=[],
        help="Config override in dotlist form, e.g. run.n_rep=8.",
    )
    sep.add_argument(
        "--tau-max",
        type=int,
        default=16,
        help="Largest candidate delay in samples; the grid is -tau_max..tau_max.",
    )
    sep.add_argument("--source-priors", type=Path, default=None, help="GMM .npz file.")
    sep.add_argument("--fft-size", type=int, default=1024, help="STFT FFT size.")
    sep.add_argument("--hop-size", type=int, default=256, help="STFT hop size.")
    sep.add_argument("--window", type=str, default="hann", help="STFT window name.")
    sep.add_argument(
        "--output-dir",
        type=Path,
        default=Path("outputs"),
        help="Directory for masks.npz, the resolved config and plots.",
    )
    sep.add_argument("--plot", action="store_true", help="Save mask and trace plots.")
    sep.add_argument("--log-level", type=str, default="INFO", help="Logging level.")
    return parser


def _separate(args: argparse.Namespace) -> Path:
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = load_config(args.config, overrides=args.set)
    if cfg.run.nfft is None:
        cfg.run.nfft = args.fft_size

    audio, sample_rate = sf.read(args.input_wav, always_2d=True)
    cfg.extended.sr = int(sample_rate)
    plan = STFTPlan(fft_size=args.fft_size, hop_size=args.hop_size, window=args.window)
    mixture = multichannel_stft(np.asarray(audio), plan, int(sample_rate))
    LOGGER.info("mixture STFT shape %s", mixture.shape)

    priors = load_source_priors(args.source_priors) if args.source_priors else None
    tau = np.arange(-args.tau_max, args.tau_max + 1, dtype=np.float64)

    separator = MultichannelMessl(
        args.n_sources, tau, config=cfg, source_priors=priors
    )
    output = separator(mixture)

    output_dir = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    path = save_output(output_dir / "masks.npz", output)
    save_config(output_dir / "config.yaml", cfg)
    print(f"Saved masks: {path}")

    if args.plot:
        fig = plot_masks(output.mask, title=args.input_wav.name)
        fig.savefig(output_dir / "masks.png")
        plt.close(fig)
        fig = plot_ll_trace(output.ll_history)
        fig.savefig(output_dir / "ll_trace.png")
        plt.close(fig)
        print(f"Saved plots under: {output_dir}")
    return path


def main(argv: Sequence[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.list_separators:
        names = sorted(
            name for name in separator_exports if name.endswith("Messl")
        )
        for name in names:
            print(name)
        return
    if args.command == "separate":
        _separate(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
