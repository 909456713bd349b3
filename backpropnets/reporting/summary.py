"""Run summaries computed from the evaluation report stream."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Sequence

from ..core.types import TrainingReport

SUMMARY_VERSION = 2


def _point(report: TrainingReport) -> Dict[str, float]:
    return {
        "epoch": report.epoch,
        "loss": float(report.loss),
        "accuracy": float(report.accuracy),
        "bit_accuracy": float(report.metrics.get("bit_accuracy", report.accuracy)),
    }


def _first_epoch(reports: Sequence[TrainingReport], predicate) -> Optional[int]:
    for report in reports:
        if predicate(report):
            return report.epoch
    return None


def summarize_reports(
    reports: Sequence[TrainingReport], *, target_loss: float = 0.05
) -> Dict[str, object]:
    """Condense a run's reports into convergence landmarks.

    ``best`` is the lowest-loss report (earliest on ties), ``converged_epoch``
    the first report whose loss is below ``target_loss`` and ``solved_epoch``
    the first report where every test row was classified correctly.
    """

    summary: Dict[str, object] = {
        "version": SUMMARY_VERSION,
        "reports": len(reports),
        "target_loss": float(target_loss),
        "final": None,
        "best": None,
        "converged_epoch": None,
        "solved_epoch": None,
        "loss_improvement": 0.0,
    }
    if not reports:
        return summary

    best = min(reports, key=lambda r: (r.loss, r.epoch))
    summary.update(
        final=_point(reports[-1]),
        best=_point(best),
        converged_epoch=_first_epoch(reports, lambda r: r.loss < target_loss),
        solved_epoch=_first_epoch(reports, lambda r: r.accuracy >= 1.0),
        loss_improvement=float(reports[0].loss - reports[-1].loss),
    )
    return summary


def write_summary(
    reports: Sequence[TrainingReport],
    out_summary_json: str | Path,
    *,
    target_loss: float = 0.05,
) -> str:
    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    summary = summarize_reports(reports, target_loss=target_loss)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["SUMMARY_VERSION", "summarize_reports", "write_summary"]
