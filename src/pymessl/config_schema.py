"""Typed OmegaConf schema for MESSL separation options."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from omegaconf import OmegaConf


@dataclass
class MultichannelConfig:
    """Pair selection and execution options."""

    ref_mic: int = 0
    use_consistent_tdoa: bool = False
    workers: int = 1


@dataclass
class InitConfig:
    """Initial parameter values.

    ``tau_pos_init`` lists one delay (samples) per source and
    ``p_tau_i_init`` one delay distribution per source. ``ild_init`` and
    ``ild_std_init`` are dB values: scalar, per source, or ``(n_freq,
    n_sources)``.
    """

    tau_pos_init: Any = None
    p_tau_i_init: Any = None
    sigma_init: float | None = None
    xi_init: float | None = None
    ild_init: Any = 0.0
    ild_std_init: Any = 10.0
    mask_hold: int = 0


@dataclass
class ModesConfig:
    """Cue-mode codes; ``modes`` overrides all six as ``[ipd ild sp xi sigma dct]``."""

    ipd: int = 1
    ild: int = -1
    sp: int = 0
    xi: int = -1
    sigma: int = -1
    dct: int = 0
    modes: list[int] | None = None


@dataclass
class ExtendedConfig:
    """Garbage source, ILD prior and repetition scheduling.

    ``sp_start_rep`` and ``tied_reps`` are zero-based repetition counts and
    default to half of ``run.n_rep``.
    """

    garbage_src: bool = False
    ild_prior_prec: float = 0.0
    sr: int = 16000
    sp_start_rep: int | None = None
    tied_reps: int | None = None


@dataclass
class MrfConfig:
    """MRF smoothing and hard-decoding options."""

    lbp_iter: int = 8
    hard_compat_exp: float = 0.0
    compat_exp_sched: list[float] = field(
        default_factory=lambda: [0.0, 0.0, 0.0, 0.0, 0.02, 0.02, 0.02, 0.02, 0.05]
    )
    compat_file: str = ""


@dataclass
class RunConfig:
    """EM loop options."""

    nfft: int | None = None
    n_rep: int = 16
    init_rep: int = 4
    vis: bool = False
    tol: float | None = None
    log_path: str | None = None


@dataclass
class MesslConfig:
    """Top-level MESSL configuration schema."""

    multichannel: MultichannelConfig = field(default_factory=MultichannelConfig)
    init: InitConfig = field(default_factory=InitConfig)
    modes: ModesConfig = field(default_factory=ModesConfig)
    extended: ExtendedConfig = field(default_factory=ExtendedConfig)
    mrf: MrfConfig = field(default_factory=MrfConfig)
    run: RunConfig = field(default_factory=RunConfig)


def parse_messl_config(data: Mapping[str, object] | None = None) -> MesslConfig:
    """Decode a mapping into :class:`MesslConfig`, rejecting unknown keys."""
    base = OmegaConf.structured(MesslConfig)
    loaded = OmegaConf.create(dict(data or {}))
    merged = OmegaConf.merge(base, loaded)
    decoded = OmegaConf.to_object(merged)
    if not isinstance(decoded, MesslConfig):
        raise TypeError("Failed to decode config as MesslConfig")
    return decoded


def messl_config_to_dict(config: MesslConfig) -> dict[str, Any]:
    """Convert :class:`MesslConfig` to a plain dictionary."""
    return asdict(config)
