#!/usr/bin/env python3
"""
  L I F E  on a torus
  Conway's Game of Life on a fixed-size grid whose edges wrap around,
  seeded from run-length encoded patterns.

  The universe never grows: a glider leaving the right edge re-enters on
  the left, one leaving the bottom re-enters at the top. Patterns are
  given in bare RLE (``bo$2bo$3o``) and placed at an (x, y) offset, also
  wrapped into range.

  Usage:
    python3 life.py                              # curses viewer, demo pattern
    python3 life.py --pattern glider --center    # library pattern, centred
    python3 life.py --rle '3o' --x 4 --y 4       # raw RLE
    python3 life.py --frames 20                  # print 20 generations, no curses

  Controls (viewer):
    q         quit               SPACE     pause / resume
    n         single step        r         reseed
    c         clear              +/-       speed

  Stats are logged to life_stats.csv beside this script unless --no-log.
"""

from __future__ import annotations

import argparse
import curses
import sys
import time
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Sequence
from enum import IntEnum
from pathlib import Path
from typing import IO, ClassVar, TextIO, overload

import numpy as np
from numpy.typing import NDArray

from life_rle import DEMO_OFFSET, PATTERNS, MalformedPattern, Shape, shift_cells

# ── Defaults ────────────────────────────────────────────────────────────
DEFAULT_HEIGHT: int = 100
DEFAULT_WIDTH: int = 100
DEFAULT_DELAY_MS: float = 50.0

# Longest period the cycle detector looks for
CYCLE_WINDOW: int = 30

# ── Glyphs ──────────────────────────────────────────────────────────────
ALIVE_GLYPH = "\u25fc"  # ◼
DEAD_GLYPH = " "

UPPER_HALF = "\u2580"  # ▀  top pixel alive
LOWER_HALF = "\u2584"  # ▄  bottom pixel alive
FULL_BLOCK = "\u2588"  # █  both alive
HALF_BLOCKS: NDArray = np.array([" ", UPPER_HALF, LOWER_HALF, FULL_BLOCK])

SPARKS = "▁▂▃▄▅▆▇█"

LOG_PATH = Path(__file__).resolve().parent / "life_stats.csv"


class Cell(IntEnum):
    DEAD = 0
    ALIVE = 1


class InvalidDimensions(ValueError):
    """A universe dimension is negative."""


def _check_dimension(name: str, value: int) -> None:
    if value < 0:
        raise InvalidDimensions(f"{name} must be >= 0, got {value}")


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes engine telemetry to CSV for post-hoc inspection."""

    HEADER: ClassVar[str] = "gen,time_s,population,cycle_period,width,height,event\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(
        self,
        gen: int,
        pop: int,
        cycle: int,
        width: int,
        height: int,
        event: str = "",
    ) -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        self._fh.write(f"{gen},{t:.1f},{pop},{cycle},{width},{height},{event}\n")
        # Flush on events or periodically
        if event or gen % 50 == 0:
            try:
                self._fh.flush()
            except OSError:
                pass

    def log_universe(self, universe: Universe, event: str = "") -> None:
        self.log(
            gen=universe.generation,
            pop=universe.population(),
            cycle=universe.cycle_period,
            width=universe.width,
            height=universe.height,
            event=event,
        )

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Cell enumeration
# ═══════════════════════════════════════════════════════════════════════

class CellView(Sequence):
    """Read-only row-major view of one generation's cells.

    Iterating twice walks the cells twice; nothing is copied up front.
    The view is bound to the store it was taken from, so a later tick
    (which swaps in a new store) does not change what it yields.
    """

    def __init__(self, flat: NDArray[np.int8]) -> None:
        self._flat = flat.view()
        self._flat.flags.writeable = False

    def __len__(self) -> int:
        return self._flat.shape[0]

    @overload
    def __getitem__(self, index: int) -> Cell: ...

    @overload
    def __getitem__(self, index: slice) -> list[Cell]: ...

    def __getitem__(self, index: int | slice) -> Cell | list[Cell]:
        if isinstance(index, slice):
            return [Cell(int(v)) for v in self._flat[index]]
        return Cell(int(self._flat[index]))

    def __iter__(self) -> Iterator[Cell]:
        for v in self._flat:
            yield Cell(int(v))

    def __repr__(self) -> str:
        return f"CellView({len(self)} cells)"


# ═══════════════════════════════════════════════════════════════════════
#  The universe
# ═══════════════════════════════════════════════════════════════════════

class Universe:
    """
    A toroidal Game of Life grid of fixed size.

    Cells live in an int8 array of shape (height, width), so cell
    ``(row, column)`` is at linear index ``row * width + column``.
    Changing a dimension throws the store away: every cell is dead
    afterwards. Seeding only ever turns cells on.
    """

    def __init__(self, height: int = DEFAULT_HEIGHT, width: int = DEFAULT_WIDTH) -> None:
        _check_dimension("height", height)
        _check_dimension("width", width)
        self._height: int = height
        self._width: int = width
        self.grid: NDArray[np.int8] = np.zeros((height, width), dtype=np.int8)

        self.generation: int = 0

        # Population tracking
        self.pop_history: deque[int] = deque(maxlen=500)
        self.hash_history: deque[int] = deque(maxlen=CYCLE_WINDOW + 1)
        self.cycle_period: int = 0    # detected cycle period (0 = none)
        self._cached_pop: int = 0

        self._reset_history()

    @property
    def height(self) -> int:
        return self._height

    @property
    def width(self) -> int:
        return self._width

    # ── Dimensions ──────────────────────────────────────────────────

    def resize_width(self, width: int) -> None:
        """Set the width and clear the universe."""
        _check_dimension("width", width)
        self._width = width
        self._reallocate()

    def resize_height(self, height: int) -> None:
        """Set the height and clear the universe."""
        _check_dimension("height", height)
        self._height = height
        self._reallocate()

    set_width = resize_width
    set_height = resize_height

    def _reallocate(self) -> None:
        self.grid = np.zeros((self._height, self._width), dtype=np.int8)
        self.generation = 0
        self.pop_history.clear()
        self._reset_history()

    def clear(self) -> None:
        self.grid[:] = 0
        self.generation = 0
        self.pop_history.clear()
        self._reset_history()

    def _reset_history(self) -> None:
        """Restart cycle detection from the current state."""
        self._cached_pop = int(self.grid.sum())
        self.cycle_period = 0
        self.hash_history.clear()
        self.hash_history.append(hash(self.grid.tobytes()))

    # ── Seeding ─────────────────────────────────────────────────────

    def seed(self, cells: Iterable[tuple[int, int]]) -> None:
        """Turn on every ``(x, y)`` given, wrapping x by width and y by height."""
        if self.grid.size == 0:
            return
        coords = np.array(list(cells), dtype=np.int64).reshape(-1, 2)
        if coords.shape[0] == 0:
            return
        rows = coords[:, 1] % self._height
        cols = coords[:, 0] % self._width
        self.grid[rows, cols] = 1
        self._reset_history()

    def seed_from_pattern(self, rle_text: str, x_offset: int = 0, y_offset: int = 0) -> None:
        """Decode ``rle_text`` and seed it with its top-left at the offset.

        Raises MalformedPattern before touching the grid.
        """
        shape = Shape.from_rle(rle_text)
        self.seed(shift_cells(shape.alive_cells, x_offset, y_offset))

    # ── Simulation ──────────────────────────────────────────────────

    def get_index(self, row: int, column: int) -> int:
        return row * self._width + column

    def cell(self, row: int, column: int) -> Cell:
        return Cell(int(self.grid[row, column]))

    def live_neighbor_count(self, row: int, column: int) -> int:
        """Count the live neighbours of one cell.

        Offsets along each axis are ``(dim - 1, 0, 1)``. On an axis of
        size 1 that is ``(0, 0, 1)``, so the lone row or column is read
        again for each zero offset paired with a non-zero one.
        """
        flat = self.grid.reshape(-1)
        count = 0
        for delta_row in (self._height - 1, 0, 1):
            for delta_col in (self._width - 1, 0, 1):
                if delta_row == 0 and delta_col == 0:
                    continue
                neighbor_row = (row + delta_row) % self._height
                neighbor_col = (column + delta_col) % self._width
                count += int(flat[self.get_index(neighbor_row, neighbor_col)])
        return count

    def live_neighbor_counts(self) -> NDArray[np.int16]:
        """Neighbour counts for the whole grid, same offsets as live_neighbor_count."""
        g = self.grid.astype(np.int16)
        n = np.zeros_like(g)
        if g.size == 0:
            return n
        for delta_row in (self._height - 1, 0, 1):
            for delta_col in (self._width - 1, 0, 1):
                if delta_row == 0 and delta_col == 0:
                    continue
                n += np.roll(g, (-delta_row, -delta_col), axis=(0, 1))
        return n

    def tick(self) -> str:
        """Advance one generation. Returns event string (empty if none)."""
        self.generation += 1
        if self.grid.size == 0:
            self.pop_history.append(0)
            return ""

        n = self.live_neighbor_counts()

        # Zero-copy bool view of the int8 grid
        alive = self.grid.view(np.bool_)
        n_is_3 = n == 3
        birth = ~alive & n_is_3
        survive = alive & (n_is_3 | (n == 2))

        nxt = (birth | survive).astype(np.int8)
        assert nxt.shape == self.grid.shape
        self.grid = nxt

        pop = int(nxt.sum())
        self._cached_pop = pop
        self.pop_history.append(pop)

        return self._detect_cycle()

    def _detect_cycle(self) -> str:
        previous = self.cycle_period
        self.hash_history.append(hash(self.grid.tobytes()))
        self.cycle_period = 0
        hh_len = len(self.hash_history)
        latest = self.hash_history[-1]
        for period in range(1, min(CYCLE_WINDOW + 1, hh_len)):
            if self.hash_history[-(period + 1)] == latest:
                self.cycle_period = period
                break
        if self.cycle_period and not previous:
            return f"cycle(period={self.cycle_period})"
        return ""

    # ── Inspection ──────────────────────────────────────────────────

    def enumerate_cells(self) -> CellView:
        return CellView(self.grid.reshape(-1))

    def population(self) -> int:
        return self._cached_pop

    def sparkline(self, width: int = 24) -> str:
        ph_len = len(self.pop_history)
        if ph_len < 2:
            return ""
        start = max(0, ph_len - width)
        window = [self.pop_history[i] for i in range(start, ph_len)]
        lo, hi = min(window), max(window)
        n_sparks = len(SPARKS) - 1
        mid_spark = SPARKS[len(SPARKS) // 2]
        if hi == lo:
            return mid_spark * len(window)
        return "".join(SPARKS[int((v - lo) / (hi - lo) * n_sparks)] for v in window)

    def render(self) -> str:
        return render_cells(self.enumerate_cells(), self._width)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return (
            f"Universe(height={self._height}, width={self._width}, "
            f"generation={self.generation}, population={self._cached_pop})"
        )


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def render_cells(
    cells: Iterable[Cell],
    width: int,
    alive: str = ALIVE_GLYPH,
    dead: str = DEAD_GLYPH,
) -> str:
    """Lay out a row-major cell sequence as lines of ``width`` glyphs."""
    if width <= 0:
        return ""
    glyphs = [alive if c else dead for c in cells]
    return "\n".join(
        "".join(glyphs[i : i + width]) for i in range(0, len(glyphs), width)
    )


def half_block_lines(grid: NDArray[np.int8]) -> list[str]:
    """Pack two grid rows into each text line using half-block characters."""
    rows, cols = grid.shape
    if rows % 2:
        grid = np.vstack([grid, np.zeros((1, cols), dtype=grid.dtype)])
    codes = grid[0::2].astype(np.intp) + 2 * grid[1::2].astype(np.intp)
    return ["".join(line) for line in HALF_BLOCKS[codes]]


def render_curses(stdscr: curses.window, universe: Universe, paused: bool) -> None:
    max_y, max_x = stdscr.getmaxyx()
    for y, line in enumerate(half_block_lines(universe.grid)[: max_y - 1]):
        try:
            stdscr.addstr(y, 0, line[: max_x - 1])
        except curses.error:
            pass

    # ── Status bar ──────────────────────────────────────────────────
    state = "paused" if paused else "running"
    cycle = f"  cycle {universe.cycle_period}" if universe.cycle_period else ""
    left = (
        f"  gen {universe.generation:,}  pop {universe.population():,}"
        f"  {universe.sparkline()}{cycle}"
    )
    right = f"{universe.width}x{universe.height} {state}  q spc n r c +/-  "
    gap = max(1, max_x - len(left) - len(right) - 1)
    status = (left + " " * gap + right)[: max_x - 1]
    try:
        stdscr.addstr(max_y - 1, 0, status, curses.A_DIM)
    except curses.error:
        pass


# ═══════════════════════════════════════════════════════════════════════
#  Driver loops
# ═══════════════════════════════════════════════════════════════════════

def _log_frame(logger: StatsLogger | None, universe: Universe, event: str) -> None:
    if logger is not None and (event or universe.generation % 10 == 0):
        logger.log_universe(universe, event)


def run_headless(
    universe: Universe,
    frames: int,
    out: TextIO,
    logger: StatsLogger | None = None,
) -> None:
    """Render then tick ``frames`` times, writing each generation to ``out``."""
    for _ in range(frames):
        out.write(f"-- gen {universe.generation}  pop {universe.population()} --\n")
        out.write(universe.render())
        out.write("\n")
        event = universe.tick()
        _log_frame(logger, universe, event)


def run_curses(
    stdscr: curses.window,
    universe: Universe,
    reseed: Callable[[Universe], None],
    delay: float = DEFAULT_DELAY_MS,
    logger: StatsLogger | None = None,
) -> None:
    curses.curs_set(0)
    stdscr.nodelay(True)
    stdscr.timeout(0)

    paused = False
    while True:
        # ── Input ──────────────────────────────────────────────────
        try:
            key = stdscr.getch()
        except curses.error:
            key = -1

        step_once = False
        if key in (ord("q"), ord("Q")):
            break
        elif key == ord(" "):
            paused = not paused
        elif key in (ord("n"), ord("N")):
            step_once = True
        elif key in (ord("+"), ord("=")):
            delay = max(10, delay - 10)
        elif key in (ord("-"), ord("_")):
            delay = min(500, delay + 10)
        elif key in (ord("r"), ord("R")):
            universe.clear()
            reseed(universe)
            _log_frame(logger, universe, "seed")
        elif key in (ord("c"), ord("C")):
            universe.clear()
            _log_frame(logger, universe, "clear")

        # ── Render, then simulate ──────────────────────────────────
        stdscr.erase()
        render_curses(stdscr, universe, paused)
        stdscr.refresh()

        if not paused or step_once:
            event = universe.tick()
            _log_frame(logger, universe, event)

        time.sleep(delay / 1000.0)


# ═══════════════════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Game of Life on a torus, seeded from RLE")
    ap.add_argument("--rows", type=int, default=DEFAULT_HEIGHT,
                    help=f"Universe height (default {DEFAULT_HEIGHT})")
    ap.add_argument("--cols", type=int, default=DEFAULT_WIDTH,
                    help=f"Universe width (default {DEFAULT_WIDTH})")
    source = ap.add_mutually_exclusive_group()
    source.add_argument("--pattern", choices=sorted(PATTERNS), default="demo",
                        help="Named pattern from the library (default demo)")
    source.add_argument("--rle", type=str, default=None,
                        help="Raw RLE body, e.g. 'bo$2bo$3o'")
    ap.add_argument("--x", type=int, default=None, help="Column offset of the pattern")
    ap.add_argument("--y", type=int, default=None, help="Row offset of the pattern")
    ap.add_argument("--center", action="store_true",
                    help="Centre the pattern when no offset is given")
    ap.add_argument("--frames", type=int, default=None,
                    help="Print this many generations to stdout instead of the viewer")
    ap.add_argument("--delay", type=float, default=DEFAULT_DELAY_MS,
                    help=f"Viewer frame delay in ms (default {DEFAULT_DELAY_MS:g})")
    ap.add_argument("--log", type=Path, default=LOG_PATH,
                    help="Telemetry CSV path")
    ap.add_argument("--no-log", action="store_true", help="Disable telemetry")
    return ap


def resolve_offset(
    args: argparse.Namespace, shape: Shape, height: int, width: int
) -> tuple[int, int]:
    if args.x is not None or args.y is not None:
        return args.x or 0, args.y or 0
    if args.center:
        pw, ph = shape.bounds()
        return (width - pw) // 2, (height - ph) // 2
    if args.rle is None and args.pattern == "demo":
        return DEMO_OFFSET
    return 0, 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        universe = Universe(args.rows, args.cols)
    except InvalidDimensions as exc:
        parser.error(str(exc))

    rle_text = args.rle if args.rle is not None else PATTERNS[args.pattern]
    try:
        shape = Shape.from_rle(rle_text)
    except MalformedPattern as exc:
        parser.error(f"invalid RLE pattern: {exc}")
    x, y = resolve_offset(args, shape, universe.height, universe.width)

    def reseed(u: Universe) -> None:
        u.seed(shape.shifted(x, y).alive_cells)

    reseed(universe)

    logger: StatsLogger | None = None
    if not args.no_log:
        logger = StatsLogger(args.log)
        logger.open()
        logger.log_universe(universe, "seed")

    try:
        if args.frames is not None:
            run_headless(universe, args.frames, sys.stdout, logger)
        else:
            curses.wrapper(run_curses, universe, reseed, args.delay, logger)
    except KeyboardInterrupt:
        pass
    finally:
        if logger is not None:
            logger.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
