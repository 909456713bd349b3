from __future__ import annotations

import argparse
import csv
import json
import sys
import time
from pathlib import Path
from statistics import mean, pstdev


def _fmt_mu_sigma(vals):
    mu = mean(vals)
    sd = pstdev(vals) if len(vals) > 1 else 0.0
    return f"{mu:.4f} ± {sd:.4f}"


def _run_once(dataset, workers: int, seed: int, epochs: int, batch: int, lr: float) -> dict:
    from backpropnets.core.network import Network
    from backpropnets.training.trainer import Trainer, TrainerConfig

    net = Network(dataset.d_in, dataset.d_out, [20, 20], ["relu", "sigmoid", "sigmoid"], seed=seed)
    config = TrainerConfig(
        batch_size=batch,
        epochs=epochs,
        test_every=epochs,
        learning_rate=lr,
        worker_count=workers,
        seed=seed,
    )
    start = time.perf_counter()
    reports = Trainer(net, config).train(
        dataset.train_inputs, dataset.train_labels, dataset.test_inputs, dataset.test_labels
    )
    elapsed = time.perf_counter() - start
    final = reports[-1]
    return {
        "seconds": elapsed,
        "final_loss": float(final.loss),
        "final_acc": float(final.accuracy),
    }


def main():
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))

    from backpropnets.data import get_dataset

    ap = argparse.ArgumentParser()
    ap.add_argument("--workers", nargs="+", type=int, default=[1, 2, 4])
    ap.add_argument("--seeds", nargs="+", type=int, default=[123, 124, 125])
    ap.add_argument("--epochs", type=int, default=20)
    ap.add_argument("--lr", type=float, default=0.5)
    ap.add_argument("--batch", type=int, default=128)
    ap.add_argument("--out", type=str, default=".artifacts/bench")
    args = ap.parse_args()

    dataset = get_dataset("hamming")
    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    runs = []
    for workers in args.workers:
        for s in args.seeds:
            r = _run_once(dataset, workers, s, args.epochs, args.batch, args.lr)
            runs.append({"workers": workers, "seed": s, **r})
    (out / "results.jsonl").write_text(
        "\n".join(json.dumps(x) for x in runs), encoding="utf-8"
    )

    agg = {}
    for workers in args.workers:
        secs = [r["seconds"] for r in runs if r["workers"] == workers]
        losses = [r["final_loss"] for r in runs if r["workers"] == workers]
        agg[workers] = {
            "n": len(secs),
            "seconds": secs,
            "seconds_mu": mean(secs),
            "losses": losses,
            "final_loss_mu": mean(losses),
        }
    base = agg[args.workers[0]]["seconds_mu"]
    for workers in args.workers:
        mu = agg[workers]["seconds_mu"]
        agg[workers]["speedup"] = base / mu if mu > 0 else 0.0

    csv_path = out / "bench_micro.csv"
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["workers", "seeds", "epochs", "seconds_mu", "final_loss_mu", "speedup"])
        for workers in args.workers:
            a = agg[workers]
            w.writerow(
                [
                    workers,
                    a["n"],
                    args.epochs,
                    f"{a['seconds_mu']:.4f}",
                    f"{a['final_loss_mu']:.4f}",
                    f"{a['speedup']:.2f}",
                ]
            )

    md_path = out / "bench_micro.md"
    lines = []
    lines.append("### Micro-Benchmark: gradient workers on Hamming(11,4)")
    lines.append("")
    lines.append(
        f"- Seeds: `{args.seeds}`; Epochs: `{args.epochs}`; "
        f"LR: `{args.lr}`; Batch: `{args.batch}`"
    )
    lines.append("")
    lines.append("| Workers | Seconds (μ±σ) | Final Loss (μ±σ) | Speedup | Seeds |")
    lines.append("|---:|---:|---:|---:|---:|")
    for workers in args.workers:
        a = agg[workers]
        lines.append(
            f"| {workers} | {_fmt_mu_sigma(a['seconds'])} | {_fmt_mu_sigma(a['losses'])} | "
            f"{a['speedup']:.2f}x | {a['n']} |"
        )
    md_path.write_text("\n".join(lines), encoding="utf-8")
    print("Wrote:", csv_path, md_path)


if __name__ == "__main__":
    main()
