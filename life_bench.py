#!/usr/bin/env python3
"""
Profiling harness for the toroidal Life engine.

Runs tick() + text rendering headlessly under cProfile, then prints a
ranked breakdown of where time is spent.

Usage:
  python3 life_bench.py                  # 500 frames, summary
  python3 life_bench.py -n 1000          # 1000 frames
  python3 life_bench.py --pattern acorn  # different seed
  python3 life_bench.py --line-timing    # per-frame component timing
  python3 life_bench.py --dump prof.out  # dump cProfile binary for snakeviz etc.
"""

from __future__ import annotations

import argparse
import cProfile
import pstats
import time
from io import StringIO

import numpy as np

from life import Universe, half_block_lines
from life_rle import DEMO_OFFSET, PATTERNS, Shape


def seeded_universe(pattern: str, rows: int, cols: int) -> Universe:
    """A universe with ``pattern`` placed like the viewer would place it."""
    universe = Universe(rows, cols)
    shape = Shape.named(pattern)
    if pattern == "demo":
        x, y = DEMO_OFFSET
    else:
        pw, ph = shape.bounds()
        x, y = (cols - pw) // 2, (rows - ph) // 2
    universe.seed(shape.shifted(x, y).alive_cells)
    return universe


def time_frame(universe: Universe) -> dict[str, float]:
    """Advance one frame, timing each component. Returns component → seconds."""
    timings: dict[str, float] = {}

    t0 = time.perf_counter()
    universe.tick()
    timings["tick()"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    _ = universe.render()
    timings["render()"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    _ = half_block_lines(universe.grid)
    timings["half_block_lines"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    _ = universe.sparkline()
    timings["sparkline"] = time.perf_counter() - t0

    return timings


def run_benchmark(
    n_frames: int,
    rows: int = 100,
    cols: int = 100,
    pattern: str = "demo",
    line_timing: bool = False,
    dump_path: str | None = None,
) -> None:
    """Run the benchmark for n_frames and report results."""

    universe = seeded_universe(pattern, rows, cols)

    print(f"Universe: {universe.height}x{universe.width}  "
          f"Pattern: {pattern} ({universe.population()} cells)  "
          f"Frames: {n_frames}")
    print()

    # ── Per-frame component timing ─────────────────────────────────
    if line_timing:
        component_times: dict[str, list[float]] = {}
        total_times: list[float] = []

        for frame in range(n_frames):
            frame_t0 = time.perf_counter()
            for k, v in time_frame(universe).items():
                component_times.setdefault(k, []).append(v)
            total_times.append(time.perf_counter() - frame_t0)

            if (frame + 1) % 100 == 0:
                avg_ms = sum(total_times[-100:]) / 100 * 1000
                print(f"  frame {frame + 1}/{n_frames}  "
                      f"avg {avg_ms:.2f}ms/frame  "
                      f"pop {universe.population():,}")

        print()
        print("=== Per-Frame Component Breakdown (ms) ===")
        print(f"{'Component':<25} {'Mean':>8} {'P50':>8} {'P95':>8} {'P99':>8} {'Max':>8}")
        print("-" * 73)

        def stats_line(name: str, data: list[float]) -> str:
            arr = np.array(data) * 1000  # to ms
            return (f"{name:<25} {arr.mean():8.2f} {np.median(arr):8.2f} "
                    f"{np.percentile(arr, 95):8.2f} {np.percentile(arr, 99):8.2f} "
                    f"{arr.max():8.2f}")

        for k in sorted(component_times.keys()):
            print(stats_line(k, component_times[k]))
        print(stats_line("TOTAL", total_times))

        if universe.cycle_period:
            print(f"\nSettled into a period-{universe.cycle_period} cycle "
                  f"by gen {universe.generation:,}")
        return

    # ── cProfile run ───────────────────────────────────────────────
    def profiled_run() -> None:
        for _ in range(n_frames):
            universe.tick()
            universe.render()

    profiler = cProfile.Profile()
    wall_t0 = time.perf_counter()
    profiler.runctx("profiled_run()", globals(), locals())
    wall_dt = time.perf_counter() - wall_t0

    print(f"Wall time: {wall_dt:.2f}s  ({wall_dt / n_frames * 1000:.2f}ms/frame)")
    print(f"Generations/s: {n_frames / wall_dt:.1f}")
    print()

    if dump_path:
        profiler.dump_stats(dump_path)
        print(f"Profile data saved to: {dump_path}")
        print(f"  View with: python3 -m pstats {dump_path}")
        print()

    buf = StringIO()
    ps = pstats.Stats(profiler, stream=buf)
    ps.sort_stats("cumulative")
    ps.print_stats(25)
    print(buf.getvalue())


def main() -> None:
    parser = argparse.ArgumentParser(description="Profile the toroidal Life engine")
    parser.add_argument("-n", "--frames", type=int, default=500,
                        help="Number of generations to simulate (default: 500)")
    parser.add_argument("--rows", type=int, default=100,
                        help="Universe height (default: 100)")
    parser.add_argument("--cols", type=int, default=100,
                        help="Universe width (default: 100)")
    parser.add_argument("--pattern", choices=sorted(PATTERNS), default="demo",
                        help="Seed pattern (default: demo)")
    parser.add_argument("--line-timing", action="store_true",
                        help="Per-frame component timing instead of cProfile")
    parser.add_argument("--dump", type=str, default=None,
                        help="Dump cProfile binary to this path")
    args = parser.parse_args()

    run_benchmark(
        n_frames=args.frames,
        rows=args.rows,
        cols=args.cols,
        pattern=args.pattern,
        line_timing=args.line_timing,
        dump_path=args.dump,
    )


if __name__ == "__main__":
    main()
