"""Configuration file helpers for pymessl."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import yaml
from omegaconf import OmegaConf

from .config_schema import MesslConfig, messl_config_to_dict, parse_messl_config


def _as_str_key_dict(value: Any, *, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"Expected mapping in {context}, got {type(value)!r}")
    return {str(key): item for key, item in value.items()}


def load_yaml(
    path: str | Path,
    *,
    overrides: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Load a YAML file into a dictionary, with optional dotlist overrides."""
    override_list = [item for item in (overrides or []) if item]
    cfg = OmegaConf.load(Path(path))
    if override_list:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(override_list))
    loaded = OmegaConf.to_container(cfg, resolve=True)
    return _as_str_key_dict(loaded, context=str(path))


def load_config(
    path: str | Path | None = None,
    *,
    overrides: Iterable[str] | None = None,
) -> MesslConfig:
    """Build a :class:`MesslConfig` from an optional YAML file and overrides.

    Overrides use dotlist syntax, e.g. ``run.n_rep=8`` or
    ``modes.modes=[1,1,0,1,1,0]``.
    """
    override_list = [item for item in (overrides or []) if item]
    if path is None:
        cfg = OmegaConf.from_dotlist(override_list)
        data = _as_str_key_dict(
            OmegaConf.to_container(cfg, resolve=True), context="overrides"
        )
    else:
        data = load_yaml(path, overrides=override_list)
    return parse_messl_config(data)


def save_config(path: str | Path, config: MesslConfig) -> None:
    """Write a :class:`MesslConfig` to YAML."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(messl_config_to_dict(config), handle, sort_keys=False)
