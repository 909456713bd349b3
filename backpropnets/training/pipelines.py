"""Pipeline assembly: config dict -> dataset, network, trainer and run artifacts."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping, Sequence

from .. import model_io
from ..core.network import Network
from ..core.types import RunResult
from ..data import get_dataset
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, MetricsCapture
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from ..utils import get_logger
from .trainer import Trainer, TrainerConfig

logger = get_logger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor": {
        "data": {"name": "xor", "options": {}},
        "model": {
            "d_in": 2,
            "d_out": 1,
            "hidden": [2],
            "activations": ["sigmoid", "sigmoid"],
        },
        "train": {
            "batch_size": 4,
            "epochs": 100000,
            "test_every": 1000,
            "lr": 1.0,
            "workers": 1,
            "seed": 0,
            "run_dir": "runs/xor",
            "enable_plots": False,
        },
    },
    "four-bit-xor": {
        "data": {"name": "four_bit_xor", "options": {}},
        "model": {
            "d_in": 4,
            "d_out": 1,
            "hidden": [16, 16],
            "activations": ["relu", "relu", "sigmoid"],
        },
        "train": {
            "batch_size": 4,
            "epochs": 10000,
            "test_every": 100,
            "lr": 0.01,
            "workers": 4,
            "seed": 0,
            "run_dir": "runs/four-bit-xor",
            "enable_plots": False,
        },
    },
    "hamming": {
        "data": {"name": "hamming", "options": {"test_size": 48, "seed": 0}},
        "model": {
            "d_in": 11,
            "d_out": 4,
            "hidden": [20, 20],
            "activations": ["relu", "sigmoid", "sigmoid"],
        },
        "train": {
            "batch_size": 128,
            "epochs": 15000,
            "test_every": 10,
            "lr": 0.5,
            "workers": 4,
            "seed": 0,
            "run_dir": "runs/hamming",
            "enable_plots": False,
            "save_model": True,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    """Decode a JSON or YAML config file into a mapping."""

    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load YAML configs") from exc
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in (_FILE_PRESETS_CACHE or {}).items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def build_network(model_cfg: Mapping[str, object], d_in: int, d_out: int, seed: int | None) -> Network:
    hidden = [int(h) for h in model_cfg.get("hidden", [])]  # type: ignore[union-attr]
    activations = model_cfg.get("activations")
    if activations is None:
        activations = ["sigmoid"] * (len(hidden) + 1)
    init_range = model_cfg.get("init_range", (-1.0, 1.0))
    low, high = (float(v) for v in init_range)  # type: ignore[union-attr]
    return Network(
        int(model_cfg.get("d_in", d_in)),
        int(model_cfg.get("d_out", d_out)),
        hidden,
        list(activations),  # type: ignore[arg-type]
        seed=seed,
        init_range=(low, high),
    )


def build_trainer_config(train_cfg: Mapping[str, object]) -> TrainerConfig:
    seed = train_cfg.get("seed")
    return TrainerConfig(
        batch_size=int(train_cfg.get("batch_size", 1)),
        epochs=int(train_cfg.get("epochs", 1)),
        test_every=int(train_cfg.get("test_every", 1)),
        learning_rate=float(train_cfg.get("lr", 0.1)),
        worker_count=int(train_cfg.get("workers", 1)),
        seed=int(seed) if seed is not None else None,
        loss=str(train_cfg.get("loss", "mse")),
    )


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Train one network as described by ``config`` and write its artifacts."""

    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    dataset = get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    trainer_config = build_trainer_config(train_cfg)

    d_in = int(model_cfg.get("d_in", dataset.d_in))
    d_out = int(model_cfg.get("d_out", dataset.d_out))
    if d_in != dataset.d_in:
        raise ValueError(f"Configured d_in={d_in} but dataset {dataset.name} has {dataset.d_in}")
    if d_out != dataset.d_out:
        raise ValueError(f"Configured d_out={d_out} but dataset {dataset.name} has {dataset.d_out}")
    network = build_network(model_cfg, d_in, d_out, trainer_config.seed)

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=network.layer_dims,
        activations=[layer.activation.name for layer in network.layers],
        config=trainer_config,
        param_count=network.parameter_count(),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="test", seed=trainer_config.seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="test")
    capture = MetricsCapture()
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = Trainer(network, trainer_config)
    trainer.train(
        dataset.train_inputs,
        dataset.train_labels,
        dataset.test_inputs,
        dataset.test_labels,
        sinks=[jsonl, csv_sink, capture, plots],
    )
    plots.close()

    final = network.evaluate(dataset.test_inputs, dataset.test_labels).as_dict()

    model_path = ""
    if bool(train_cfg.get("save_model", False)):
        model_path = str(model_io.save(run_dir / "model.npz", network))

    safe_config = json.loads(json.dumps(config))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset=dataset,
        network=network,
        trainer=trainer_config,
        model_path=model_path,
    )
    summary_path = write_summary(
        capture.history,
        run_dir / "summary.json",
        target_loss=float(train_cfg.get("target_loss", 0.05)),
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    logger.info("Run artifacts written to %s", run_dir)
    return RunResult(
        epochs=trainer_config.epochs,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=str(summary_path),
        model_path=model_path,
        final=final,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: Sequence[int],
    activations: Sequence[str],
    config: TrainerConfig,
    param_count: int,
) -> None:
    print("=== backpropnets run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Dimensions    : {list(dims)}")
    print(f"Activations   : {list(activations)}")
    print(f"Loss          : {config.loss}")
    print(f"Batch / epochs: {config.batch_size} / {config.epochs}")
    print(f"Learning rate : {config.learning_rate}")
    print(f"Workers       : {config.worker_count}")
    print(f"Parameters    : {param_count}")
    print("========================")


__all__ = ["build_network", "build_trainer_config", "load_preset", "presets", "read_config_file", "run_pipeline"]
