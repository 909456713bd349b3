from pathlib import Path

from backpropnets.training import pipelines


def test_summary_outputs_are_deterministic(tmp_path):
    config = {
        "data": {"name": "hamming", "options": {"test_size": 48, "seed": 3}},
        "model": {
            "d_in": 11,
            "d_out": 4,
            "hidden": [8],
            "activations": ["relu", "sigmoid"],
        },
        "train": {
            "batch_size": 128,
            "epochs": 3,
            "test_every": 1,
            "lr": 0.5,
            "workers": 4,
            "seed": 55,
            "run_dir": str(tmp_path / "run_a"),
            "enable_plots": False,
        },
    }

    first = pipelines.run_pipeline(config)
    summary_a = Path(first.summary_path).read_bytes()
    metrics_a = Path(first.metrics_path).read_bytes()

    config["train"]["run_dir"] = str(tmp_path / "run_b")
    second = pipelines.run_pipeline(config)
    summary_b = Path(second.summary_path).read_bytes()
    metrics_b = Path(second.metrics_path).read_bytes()

    assert metrics_a == metrics_b
    assert summary_a == summary_b
