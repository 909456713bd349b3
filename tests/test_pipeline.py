from __future__ import annotations

import json

import pytest

from backpropnets.training import pipelines


def test_builtin_presets_have_all_sections():
    available = pipelines.presets()
    assert {"xor", "four-bit-xor", "hamming"} <= set(available)
    for cfg in available.values():
        assert {"data", "model", "train"} <= set(cfg)


def test_hamming_preset_matches_reference_run():
    cfg = pipelines.load_preset("hamming")
    assert cfg["model"]["hidden"] == [20, 20]
    assert cfg["model"]["activations"] == ["relu", "sigmoid", "sigmoid"]
    train = cfg["train"]
    assert (train["batch_size"], train["epochs"], train["test_every"]) == (128, 15000, 10)
    assert (train["lr"], train["workers"]) == (0.5, 4)


def test_load_preset_returns_a_copy():
    cfg = pipelines.load_preset("xor")
    cfg["train"]["epochs"] = 1
    assert pipelines.load_preset("xor")["train"]["epochs"] != 1


def test_unknown_preset():
    with pytest.raises(KeyError):
        pipelines.load_preset("does-not-exist")


def test_file_presets_override_builtins(tmp_path, monkeypatch):
    preset = pipelines.load_preset("xor")
    preset["train"]["epochs"] = 7
    (tmp_path / "xor.json").write_text(json.dumps(preset))
    (tmp_path / "notes.txt").write_text("ignored")
    monkeypatch.setattr(pipelines, "_PRESET_DIR", tmp_path)
    monkeypatch.setattr(pipelines, "_FILE_PRESETS_CACHE", None)
    assert pipelines.load_preset("xor")["train"]["epochs"] == 7
    assert "xor" in pipelines.presets()


def test_file_preset_missing_sections(tmp_path, monkeypatch):
    (tmp_path / "broken.json").write_text(json.dumps({"data": {}}))
    monkeypatch.setattr(pipelines, "_PRESET_DIR", tmp_path)
    monkeypatch.setattr(pipelines, "_FILE_PRESETS_CACHE", None)
    with pytest.raises(KeyError):
        pipelines.presets()


def test_read_config_file_yaml(tmp_path):
    path = tmp_path / "override.yaml"
    path.write_text("train:\n  epochs: 3\n  workers: 2\n")
    assert pipelines.read_config_file(path) == {"train": {"epochs": 3, "workers": 2}}


def test_read_config_file_rejects_unknown_suffix(tmp_path):
    path = tmp_path / "override.toml"
    path.write_text("")
    with pytest.raises(ValueError):
        pipelines.read_config_file(path)


def test_build_network_defaults_to_sigmoid():
    net = pipelines.build_network({"hidden": [3]}, d_in=2, d_out=1, seed=0)
    assert net.describe().activations == ["sigmoid", "sigmoid"]
    assert net.layer_dims == [2, 3, 1]
