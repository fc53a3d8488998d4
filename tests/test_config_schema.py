from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from pymessl import load_config, load_yaml, parse_messl_config, save_config


def test_parse_messl_config_applies_defaults() -> None:
    cfg = parse_messl_config({"multichannel": {"workers": 4}})
    assert cfg.multichannel.workers == 4
    assert cfg.multichannel.ref_mic == 0
    assert cfg.run.n_rep == 16
    assert cfg.run.init_rep == 4
    assert cfg.run.tol is None
    assert cfg.init.ild_std_init == 10.0
    assert cfg.mrf.compat_exp_sched == [0.0, 0.0, 0.0, 0.0, 0.02, 0.02, 0.02, 0.02, 0.05]
    assert cfg.modes.modes is None


def test_parse_messl_config_rejects_unknown_key() -> None:
    with pytest.raises(Exception):
        parse_messl_config({"run": {"unknown_field": 1}})


def test_load_config_with_dotlist_overrides() -> None:
    cfg = load_config(overrides=["run.n_rep=3", "modes.modes=[1,1,0,1,1,0]"])
    assert cfg.run.n_rep == 3
    assert cfg.modes.modes == [1, 1, 0, 1, 1, 0]


def test_load_yaml_merges_overrides(tmp_path: Path) -> None:
    path = tmp_path / "messl.yaml"
    path.write_text(yaml.safe_dump({"run": {"n_rep": 4}}), encoding="utf-8")
    data = load_yaml(path, overrides=["run.tol=0.1"])
    assert data == {"run": {"n_rep": 4, "tol": 0.1}}


def test_save_config_round_trip(tmp_path: Path) -> None:
    cfg = load_config(overrides=["extended.garbage_src=true", "init.ild_init=[1.0,-1.0]"])
    path = tmp_path / "out" / "config.yaml"
    save_config(path, cfg)
    assert load_config(path) == cfg
