from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest


_ROOT = Path(__file__).resolve().parents[1]


@pytest.mark.parametrize(
    "example",
    sorted((_ROOT / "examples").glob("*/*_example.py")),
    ids=lambda p: p.parent.name,
)
def test_example_runs(example: Path) -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(_ROOT / "python"), env.get("PYTHONPATH")) if p
    )
    res = subprocess.run(
        [sys.executable, str(example)],
        cwd=str(_ROOT),
        env=env,
        capture_output=True,
        text=True,
        timeout=120,
    )
    assert res.returncode == 0, (
        f"{example} exited with {res.returncode}\n"
        f"--- stdout ---\n{res.stdout[-4000:]}\n"
        f"--- stderr ---\n{res.stderr[-4000:]}"
    )
    assert "Example completed successfully!" in res.stdout
