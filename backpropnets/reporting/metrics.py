"""Report sinks writing training reports to disk."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Mapping

from ..core.types import TrainingReport
from .artifacts import git_sha


class JsonlSink:
    """Append-only JSONL writer, one record per report."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "test",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split
        self.seed = seed
        self.sha = sha or git_sha()

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record = {
            "epoch": int(epoch),
            "split": self.split,
            "seed": self.seed,
            "sha": self.sha,
        }
        record.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    def on_report(self, report: TrainingReport) -> None:
        self.on_epoch(report.epoch, report.as_dict())

    __call__ = on_report


class CsvSink:
    """Write reports to CSV with a stable, sorted column order."""

    def __init__(self, path: str | Path, *, split: str = "test") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row = {"epoch": int(epoch), "split": self.split}
        row.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row.keys()))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)

    def on_report(self, report: TrainingReport) -> None:
        self.on_epoch(report.epoch, report.as_dict())

    __call__ = on_report


class MetricsCapture:
    """In-memory sink keeping every report and the latest metrics."""

    def __init__(self) -> None:
        self.history: list[TrainingReport] = []
        self.last: Mapping[str, float] = {}

    def on_report(self, report: TrainingReport) -> None:
        self.history.append(report)
        self.last = report.as_dict()


__all__ = ["CsvSink", "JsonlSink", "MetricsCapture"]
