import csv
import json
import logging

import pytest

from backpropnets.core.types import TrainingReport
from backpropnets.core.network import Network
from backpropnets.data import get_dataset
from backpropnets.reporting import CsvSink, JsonlSink, MetricsCapture, PlotAdapter, write_manifest, write_summary
from backpropnets.reporting.summary import summarize_reports
from backpropnets.training.trainer import TrainerConfig
from backpropnets.utils import get_logger


def _report(epoch, loss, accuracy=None, bit_accuracy=0.5):
    if accuracy is None:
        accuracy = 1.0 - loss
    return TrainingReport(
        epoch=epoch, loss=loss, accuracy=accuracy, metrics={"bit_accuracy": bit_accuracy}
    )


def test_jsonl_sink_records(tmp_path):
    sink = JsonlSink(tmp_path / "metrics.jsonl", seed=3, sha="abc")
    sink(_report(10, 0.25))
    sink.on_epoch(20, {"loss": 0.125, "accuracy": 1.0})
    lines = [json.loads(line) for line in sink.path.read_text().splitlines()]
    assert lines[0] == {
        "epoch": 10,
        "split": "test",
        "seed": 3,
        "sha": "abc",
        "loss": 0.25,
        "accuracy": 0.75,
        "bit_accuracy": 0.5,
    }
    assert lines[1]["epoch"] == 20


def test_csv_sink_has_header_once(tmp_path):
    sink = CsvSink(tmp_path / "metrics.csv")
    sink(_report(1, 0.5))
    sink(_report(2, 0.4))
    with sink.path.open() as handle:
        rows = list(csv.DictReader(handle))
    assert [r["epoch"] for r in rows] == ["1", "2"]
    assert set(rows[0]) == {"accuracy", "bit_accuracy", "epoch", "loss", "split"}


def test_metrics_capture_keeps_history():
    capture = MetricsCapture()
    capture.on_report(_report(1, 0.5))
    capture.on_report(_report(2, 0.25))
    assert [r.epoch for r in capture.history] == [1, 2]
    assert capture.last["loss"] == 0.25


def test_summary_tracks_convergence_landmarks(tmp_path):
    reports = [
        _report(10, 0.30, accuracy=0.25, bit_accuracy=0.6),
        _report(20, 0.04, accuracy=0.75, bit_accuracy=0.9),
        _report(30, 0.01, accuracy=1.0, bit_accuracy=1.0),
        _report(40, 0.02, accuracy=1.0, bit_accuracy=1.0),
    ]
    out = write_summary(reports, tmp_path / "summary.json", target_loss=0.05)
    summary = json.loads(open(out).read())
    assert summary["reports"] == 4
    assert summary["converged_epoch"] == 20
    assert summary["solved_epoch"] == 30
    assert summary["best"]["epoch"] == 30
    assert summary["best"]["loss"] == pytest.approx(0.01)
    assert summary["final"] == {"epoch": 40, "loss": 0.02, "accuracy": 1.0, "bit_accuracy": 1.0}
    assert summary["loss_improvement"] == pytest.approx(0.28)


def test_summary_of_unconverged_run():
    summary = summarize_reports([_report(5, 0.4, accuracy=0.0)], target_loss=0.1)
    assert summary["converged_epoch"] is None
    assert summary["solved_epoch"] is None
    assert summary["final"]["bit_accuracy"] == 0.5


def test_summary_ties_pick_earliest_best():
    summary = summarize_reports([_report(1, 0.2), _report(2, 0.2)])
    assert summary["best"]["epoch"] == 1


def test_summary_without_reports():
    summary = summarize_reports([])
    assert summary["reports"] == 0
    assert summary["final"] is None
    assert summary["best"] is None
    assert summary["loss_improvement"] == 0.0


def test_manifest_describes_run(tmp_path):
    dataset = get_dataset("xor")
    network = Network(2, 1, [3], ["tanh", "sigmoid"], seed=0)
    config = TrainerConfig(batch_size=4, epochs=2, worker_count=2, seed=5)
    path = write_manifest(
        tmp_path / "manifest.json",
        config={"note": "unit"},
        dataset=dataset,
        network=network,
        trainer=config,
    )
    manifest = json.loads(open(path).read())
    assert manifest["config"] == {"note": "unit"}
    assert manifest["dataset"]["d_in"] == 2
    assert manifest["dataset"]["provenance"]["type"] == "truth_table"
    assert manifest["model"]["parameters"] == network.parameter_count()
    assert manifest["trainer"]["worker_count"] == 2
    assert manifest["trainer"]["loss"] == "mse"
    assert manifest["model_file"] is None


def test_plot_adapter_headless(tmp_path):
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    adapter(_report(1, 1.0))
    adapter(_report(2, 0.5))
    path = adapter.close()
    assert path == tmp_path / "loss.png"
    assert path.exists()


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    adapter = PlotAdapter(tmp_path / "off")
    adapter(_report(1, 1.0))
    assert adapter.close() is None
    assert not (tmp_path / "off").exists()


def test_loggers_live_under_package_namespace(caplog):
    logger = get_logger("unit.reporting")
    assert logger.name == "backpropnets.unit.reporting"
    with caplog.at_level(logging.INFO, logger="backpropnets"):
        logger.info("hello %s", "there")
    assert "hello there" in caplog.text
