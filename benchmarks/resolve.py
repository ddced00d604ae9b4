#!/usr/bin/env python3
from __future__ import annotations

import argparse
import math
import statistics
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "python"))

from lazykit import lazy, rollup  # noqa: E402


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        raise ValueError("no values to summarize")
    if percentile <= 0.0:
        return sorted_values[0]
    if percentile >= 1.0:
        return sorted_values[-1]
    index = (len(sorted_values) - 1) * percentile
    low = int(math.floor(index))
    high = int(math.ceil(index))
    if low == high:
        return sorted_values[low]
    weight = index - low
    return sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight


def build_activators(depth: int, width: int) -> dict:
    """A ``root`` key decorated ``depth`` times and ``width`` keys reading it."""
    maps = [{"root": lambda _: 0}]
    for _ in range(depth):
        maps.append({"root": lambda c: c.root + 1})
    maps.append({f"leaf{i}": (lambda c, i=i: c.root + i) for i in range(width)})
    return rollup(*maps)


def _time_reads(container, names: list[str]) -> float:
    start = time.perf_counter()
    for name in names:
        getattr(container, name)
    end = time.perf_counter()
    return (end - start) * 1000.0


def _summary(label: str, samples: list[float]) -> list[str]:
    samples = sorted(samples)
    return [
        f"{label} mean: {statistics.fmean(samples):.4f} ms",
        f"{label} median: {statistics.median(samples):.4f} ms",
        f"{label} p95: {_percentile(samples, 0.95):.4f} ms",
        f"{label} stdev: {statistics.pstdev(samples):.4f} ms",
    ]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Benchmark first and cached reads through a decoration chain.",
    )
    parser.add_argument("--iterations", type=int, default=200)
    parser.add_argument("--warmup", type=int, default=20)
    parser.add_argument("--depth", type=int, default=16, help="decorators stacked on root")
    parser.add_argument("--width", type=int, default=64, help="keys that read root")
    parser.add_argument("--threadsafe", action="store_true", help="lock each property")
    args = parser.parse_args(argv)

    if args.iterations <= 0:
        parser.error("--iterations must be positive")
    if args.warmup < 0:
        parser.error("--warmup cannot be negative")
    if args.depth < 0 or args.width < 0:
        parser.error("--depth and --width cannot be negative")

    activators = build_activators(args.depth, args.width)
    names = list(activators)

    for _ in range(args.warmup):
        _time_reads(lazy(activators, threadsafe=args.threadsafe), names)

    cold: list[float] = []
    warm: list[float] = []
    for _ in range(args.iterations):
        container = lazy(activators, threadsafe=args.threadsafe)
        cold.append(_time_reads(container, names))
        warm.append(_time_reads(container, names))

    print(f"depth: {args.depth} width: {args.width} threadsafe: {args.threadsafe}")
    print(f"warmup: {args.warmup} iterations: {args.iterations}")
    for line in _summary("first read", cold) + _summary("cached read", warm):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
