import subprocess, sys
from pathlib import Path

def test_bench_micro_runs_quickly(tmp_path):
    out = tmp_path / "bench"
    out.mkdir(parents=True, exist_ok=True)
    script = Path(__file__).resolve().parents[2] / "scripts" / "bench_micro.py"
    subprocess.check_call([sys.executable, str(script), "--workers", "1", "2", "--seeds", "123", "--epochs", "2", "--out", str(out)])
    md = (out / "bench_micro.md").read_text(encoding="utf-8")
    assert "| 1 |" in md and "| 2 |" in md
    assert (out / "bench_micro.csv").exists()
