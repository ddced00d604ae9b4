from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "python"))

_RESOLVE_PATH = ROOT / "benchmarks" / "resolve.py"
_RESOLVE_SPEC = importlib.util.spec_from_file_location("_lazykit_bench_resolve", _RESOLVE_PATH)
if _RESOLVE_SPEC is None or _RESOLVE_SPEC.loader is None:  # pragma: no cover
    raise RuntimeError("Unable to load the resolve benchmark")
resolve = importlib.util.module_from_spec(_RESOLVE_SPEC)
sys.modules[_RESOLVE_SPEC.name] = resolve
_RESOLVE_SPEC.loader.exec_module(resolve)

lazykit = importlib.import_module("lazykit")


@pytest.mark.parametrize(
    "percentile, expected",
    [(0.0, 1.0), (1.0, 4.0), (0.5, 2.5), (0.95, 3.85)],
)
def test_percentile(percentile: float, expected: float) -> None:
    assert resolve._percentile([1.0, 2.0, 3.0, 4.0], percentile) == pytest.approx(expected)


def test_percentile_rejects_empty_input() -> None:
    with pytest.raises(ValueError):
        resolve._percentile([], 0.5)


def test_build_activators_stacks_decorators() -> None:
    activators = resolve.build_activators(depth=5, width=3)
    container = lazykit.lazy(activators)

    assert len(lazykit.chains(activators)["root"]) == 6
    assert container.root == 5
    assert [container.leaf0, container.leaf1, container.leaf2] == [5, 6, 7]


def test_main_reports_timings(capsys: pytest.CaptureFixture[str]) -> None:
    assert resolve.main(["--iterations", "3", "--warmup", "1", "--depth", "2", "--width", "2"]) == 0
    out = capsys.readouterr().out
    assert "depth: 2 width: 2 threadsafe: False" in out
    assert "first read median:" in out
    assert "cached read p95:" in out


def test_main_rejects_bad_iterations() -> None:
    with pytest.raises(SystemExit):
        resolve.main(["--iterations", "0"])
