#!/usr/bin/env python3
"""
  /\\  A S C I I   F O R E S T  /\\
  A tiny forest that grows in your terminal.

  Every tree starts as a lone trunk, sprouts a first pair of branches,
  and then keeps stacking canopy rings just above the trunk, each ring
  the same width as the last or one notch wider. Older rings get pushed
  up, so the silhouette is a slightly ragged cone. Trees lower and further
  right on the screen stand in front of the ones behind them.

  Trees sprout at random, grow on their own, and the tall ones fall over
  now and then, so the forest never fills up.

  Controls:
    q                   quit
    SPACE / g / ENTER   grow once
    a                   add a random tree
    r                   let the old trees fall
    s                   stop the animation
    l                   resume the animation

  Run with --print to dump plain text snapshots instead of opening curses.
  Stats are logged to forest_stats.csv beside this script.
"""

from __future__ import annotations

import argparse
import curses
import random
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, ClassVar, Protocol

import numpy as np
from numpy.typing import NDArray

# ── Glyphs ──────────────────────────────────────────────────────────────
TRUNK = "|"
LEFT_LEAF = "/"
RIGHT_LEAF = "\\"
EMPTY_SPOT = " "

# ── Front-end defaults ──────────────────────────────────────────────────
FRAME_TIMEOUT_MS = 300  # curses getch timeout between animation frames
INITIAL_TREES = 5
SPAWN_EVERY = 6         # frames between spontaneous new trees
CULL_EVERY = 30         # frames between die-offs
WINDOW_MARGIN = 10      # cells between the terminal edge and the forest box
BORDER = 1              # the box drawn around the forest window

PRINT_COLS = 80
PRINT_ROWS = 40
PRINT_FRAMES = 10
PRINT_DELAY = 1.0

HELP = (
    "q: quit, g/enter/space: grow once, a: add trees, r: remove trees, "
    "s: stop animation, l: resume animation"
)

LOG_PATH = Path(__file__).resolve().parent / "forest_stats.csv"


# ═══════════════════════════════════════════════════════════════════════
#  Randomness
# ═══════════════════════════════════════════════════════════════════════

class RandomSource:
    """The one place the forest draws random numbers from.

    Wraps a private ``random.Random`` so a seed pins a whole run, and so
    tests can swap in a scripted source with the same two methods.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def uniform_int(self, low: int, high: int) -> int:
        """Uniform integer in ``[low, high]``, both ends inclusive."""
        return self._rng.randint(low, high)

    def coin_flip(self) -> int:
        return self._rng.randint(0, 1)


# ═══════════════════════════════════════════════════════════════════════
#  Trees
# ═══════════════════════════════════════════════════════════════════════

def balanced_ring(half_width: int) -> str:
    """A canopy ring: ``half_width`` left leaves then as many right leaves."""
    return LEFT_LEAF * half_width + RIGHT_LEAF * half_width


@dataclass
class Tree:
    """A single tree: a trunk ring followed by canopy rings, newest first.

    ``rings[0]`` is always the trunk. ``rings[1]`` is the ring grown most
    recently; the higher the index, the older (and higher up) the ring.
    """

    height: int = 0
    rings: list[str] = field(default_factory=lambda: [TRUNK])
    x: int = 0
    y: int = 0

    @property
    def anchor(self) -> tuple[int, int]:
        return self.x, self.y

    def check(self) -> None:
        assert self.height >= 0, f"negative tree height {self.height}"
        assert self.rings, "tree has lost its trunk"

    def canopy_width(self) -> int:
        return max(len(ring) for ring in self.rings)

    def silhouette(self) -> list[tuple[int, str]]:
        """(row offset, ring) pairs from the top of the tree down to the trunk.

        The trunk sits on the anchor row (offset 0); the ring ``k`` slots
        above it is drawn ``k`` rows higher.
        """
        self.check()
        top = len(self.rings) - 1
        return [(-k, self.rings[k]) for k in range(top, -1, -1)]

    def spans(self) -> list[tuple[int, int, str]]:
        """Absolute (row, start column, ring) placements, centered on x."""
        return [
            (self.y + offset, self.x - len(ring) // 2, ring)
            for offset, ring in self.silhouette()
        ]

    def to_text(self) -> str:
        width = self.canopy_width()
        return "\n".join(ring.center(width) for _, ring in self.silhouette())


class GrowthEngine:
    """Advances trees one growth step at a time."""

    def __init__(self, rng: RandomSource | None = None) -> None:
        self.rng = rng if rng is not None else RandomSource()

    def grow(self, tree: Tree) -> None:
        tree.check()
        if tree.height == 0:
            tree.rings = [TRUNK]
        elif tree.height == 1:
            tree.rings[0] += TRUNK
            tree.rings.append(balanced_ring(1))
        elif tree.height == 2:
            tree.rings.insert(1, balanced_ring(2))
        else:
            previous = len(tree.rings[1]) // 2
            tree.rings.insert(1, balanced_ring(previous + self.rng.coin_flip()))
        tree.height += 1


# ═══════════════════════════════════════════════════════════════════════
#  Drawing surfaces
# ═══════════════════════════════════════════════════════════════════════

class Surface(Protocol):
    """Anything the compositor can paint onto."""

    def write_at(self, row: int, col: int, text: str) -> None: ...


class CharBuffer:
    """A fixed rows x cols character grid, blank until painted."""

    def __init__(self, rows: int, cols: int) -> None:
        self.rows = rows
        self.cols = cols
        self.cells: NDArray[np.str_] = np.full((rows, cols), EMPTY_SPOT, dtype="<U1")

    def write_at(self, row: int, col: int, text: str) -> None:
        self.cells[row, col : col + len(text)] = list(text)

    def row_text(self, row: int) -> str:
        return "".join(self.cells[row].tolist())

    def to_text(self) -> str:
        return "\n".join(self.row_text(r) for r in range(self.rows))

    def framed(self) -> str:
        """The grid inside a ``-`` and ``|`` frame, for human eyes."""
        sep = "-" * (self.cols + 2)
        body = [f"|{self.row_text(r)}|" for r in range(self.rows)]
        return "\n".join([sep, *body, sep])

    def coverage(self) -> float:
        """Fraction of cells holding something other than background."""
        if self.cells.size == 0:
            return 0.0
        return float((self.cells != EMPTY_SPOT).mean())


class CursesSurface:
    """Live display adapter around a curses window."""

    def __init__(self, window: curses.window) -> None:
        self.window = window
        self._row = 0
        self._col = 0

    def set_cursor(self, row: int, col: int) -> None:
        self._row, self._col = row, col

    def write(self, text: str) -> None:
        try:
            self.window.addstr(self._row, self._col, text)
        except curses.error:
            # Writing the bottom-right cell moves the cursor off-window
            pass
        self._col += len(text)

    def write_at(self, row: int, col: int, text: str) -> None:
        self.set_cursor(row, col)
        self.write(text)

    def clear(self) -> None:
        self.window.clear()

    def refresh(self) -> None:
        self.window.refresh()


# ═══════════════════════════════════════════════════════════════════════
#  Compositing
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Viewport:
    """Drawable area in cells; ``border`` cells are reserved for a frame."""

    width: int
    height: int
    border: int = 0

    @classmethod
    def for_window(cls, cols: int, rows: int, border: int = 0) -> Viewport:
        return cls(width=cols - border * 2, height=rows - border * 2, border=border)

    def contains_anchor(self, x: int, y: int) -> bool:
        return 0 <= x <= self.width and 0 <= y <= self.height


def depth_key(tree: Tree, viewport: Viewport) -> int:
    """Row-major position; bigger keys are nearer the viewer."""
    return tree.y * viewport.width + tree.x


def clip_span(
    row: int, col: int, text: str, viewport: Viewport
) -> tuple[int, int, str] | None:
    """Cut a ring down to the part that lands inside the viewport.

    Returns ``None`` when nothing of it is visible.
    """
    if not 0 <= row < viewport.height:
        return None
    if col < 0:
        text = text[-col:]
        col = 0
    text = text[: max(0, viewport.width - col)]
    if not text:
        return None
    return row, col, text


class Compositor:
    """Painter's algorithm over the whole population."""

    def paint_order(self, population: list[Tree], viewport: Viewport) -> list[Tree]:
        # sorted() is stable, so equal keys keep insertion order
        return sorted(population, key=lambda t: depth_key(t, viewport))

    def paint(
        self,
        population: list[Tree],
        target: Surface,
        viewport: Viewport,
        inset: int = 0,
    ) -> int:
        """Paint every tree into ``target``. Returns the number of writes."""
        writes = 0
        for tree in self.paint_order(population, viewport):
            for row, col, ring in tree.spans():
                clipped = clip_span(row, col, ring, viewport)
                if clipped is None:
                    continue
                r, c, text = clipped
                target.write_at(r + inset, c + inset, text)
                writes += 1
        return writes


# ═══════════════════════════════════════════════════════════════════════
#  The forest
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ForestStats:
    trees: int
    tallest: int
    mean_height: float
    coverage: float


class Forest:
    """
    A population of trees living in a fixed viewport.

    The forest owns its trees outright: callers should not hang on to a
    Tree across ``cull()``.
    """

    def __init__(
        self,
        width: int,
        height: int,
        border: int = 0,
        rng: RandomSource | None = None,
    ) -> None:
        self.viewport = Viewport(width, height, border)
        self.rng = rng if rng is not None else RandomSource()
        self.engine = GrowthEngine(self.rng)
        self.compositor = Compositor()
        self.population: list[Tree] = []

    @classmethod
    def for_window(
        cls, cols: int, rows: int, border: int = 0, rng: RandomSource | None = None
    ) -> Forest:
        """A forest filling a window whose outer ``border`` cells are taken."""
        vp = Viewport.for_window(cols, rows, border)
        return cls(vp.width, vp.height, border, rng)

    @property
    def width(self) -> int:
        return self.viewport.width

    @property
    def height(self) -> int:
        return self.viewport.height

    # ── Population ──────────────────────────────────────────────────

    def place(self, tree: Tree, x: int, y: int) -> bool:
        if not self.viewport.contains_anchor(x, y):
            return False
        tree.x, tree.y = x, y
        self.population.append(tree)
        return True

    def spawn_random(self) -> Tree:
        size = self.rng.uniform_int(0, 4)
        x = self.rng.uniform_int(0, self.width)
        y = self.rng.uniform_int(0, self.height)
        tree = Tree()
        for _ in range(size):
            self.engine.grow(tree)
        self.place(tree, x, y)
        return tree

    def spawn_middle(self) -> Tree:
        tree = Tree()
        self.place(tree, self.width // 2, self.height // 2)
        return tree

    def advance(self) -> None:
        for tree in self.population:
            self.engine.grow(tree)

    def cull(self) -> int:
        """Let tall trees fall. Nothing at height 3 or below ever does."""
        before = len(self.population)
        self.population = [
            t for t in self.population
            if not (t.height > 3 and t.height > self.rng.uniform_int(0, 19))
        ]
        return before - len(self.population)

    def tick(self, frame: int) -> str:
        """One unattended animation frame. Returns event string (empty if none)."""
        events: list[str] = []
        if self.rng.uniform_int(0, 9) > 5:
            self.advance()
            events.append("grow")
        if frame % CULL_EVERY == 0:
            events.append(f"cull:{self.cull()}")
        if frame % SPAWN_EVERY == 0:
            self.spawn_random()
            events.append("spawn")
        return "+".join(events)

    # ── Rendering ───────────────────────────────────────────────────

    def render(self) -> CharBuffer:
        buf = CharBuffer(self.height, self.width)
        self.compositor.paint(self.population, buf, self.viewport)
        return buf

    def snapshot(self) -> str:
        return self.render().framed()

    def render_to(self, surface: Surface) -> int:
        return self.compositor.paint(
            self.population, surface, self.viewport, inset=self.viewport.border
        )

    def stats(self) -> ForestStats:
        heights = np.array([t.height for t in self.population], dtype=np.int32)
        if heights.size == 0:
            return ForestStats(trees=0, tallest=0, mean_height=0.0, coverage=0.0)
        return ForestStats(
            trees=int(heights.size),
            tallest=int(heights.max()),
            mean_height=float(heights.mean()),
            coverage=self.render().coverage(),
        )


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes forest telemetry to CSV for post-hoc tuning."""

    HEADER: ClassVar[str] = "frame,time_s,trees,tallest,mean_height,coverage,event\n"

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

    def log(self, frame: int, stats: ForestStats, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        self._fh.write(
            f"{frame},{t:.1f},{stats.trees},{stats.tallest},"
            f"{stats.mean_height:.2f},{stats.coverage:.3f},{event}\n"
        )
        # Flush on events or periodically
        if event or frame % 50 == 0:
            try:
                self._fh.flush()
            except OSError:
                pass

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Front-ends
# ═══════════════════════════════════════════════════════════════════════

def print_frames(
    forest: Forest,
    frames: int = PRINT_FRAMES,
    delay: float = PRINT_DELAY,
    out: IO[str] | None = None,
) -> None:
    """Print a framed snapshot, grow, repeat."""
    out = out if out is not None else sys.stdout
    for _ in range(frames):
        out.write(forest.snapshot() + "\n")
        out.flush()
        forest.advance()
        if delay > 0:
            time.sleep(delay)


def _new_forest(window: curses.window, args: argparse.Namespace, rng: RandomSource) -> Forest:
    rows, cols = window.getmaxyx()
    forest = Forest.for_window(cols, rows, border=BORDER, rng=rng)
    if args.middle:
        forest.spawn_middle()
    else:
        for _ in range(args.trees):
            forest.spawn_random()
    return forest


def _make_windows(
    stdscr: curses.window, margin: int
) -> tuple[curses.window, curses.window]:
    lines, cols = stdscr.getmaxyx()
    rows = max(3, lines - margin * 2)
    width = max(3, cols - margin * 2)
    window = curses.newwin(rows, width, margin, margin)
    window.keypad(True)
    help_row = max(0, min(lines - 1, lines - margin // 2))
    help_window = curses.newwin(1, max(1, cols - margin - 1), help_row, margin + 1)
    try:
        help_window.addstr(0, 0, HELP[: max(0, cols - margin - 2)])
    except curses.error:
        pass
    help_window.refresh()
    return window, help_window


def main(stdscr: curses.window, args: argparse.Namespace) -> None:
    curses.curs_set(0)
    curses.noecho()

    rng = RandomSource(args.seed)
    window, help_window = _make_windows(stdscr, args.margin)
    window.timeout(args.timeout)
    forest = _new_forest(window, args, rng)
    surface = CursesSurface(window)

    logger = StatsLogger(args.log)
    logger.open()

    frame = 0
    try:
        while True:
            # ── Render ─────────────────────────────────────────────
            surface.clear()
            window.box(ord("|"), ord("-"))
            forest.render_to(surface)
            surface.refresh()

            # ── Input ──────────────────────────────────────────────
            try:
                key = window.getch()
            except curses.error:
                key = -1

            event = ""
            if key in (ord("q"), ord("Q")):
                break
            elif key in (ord(" "), ord("g"), ord("G"), 10, 13, curses.KEY_ENTER):
                forest.advance()
                event = "grow"
            elif key in (ord("a"), ord("A")):
                forest.spawn_random()
                event = "spawn"
            elif key in (ord("r"), ord("R")):
                event = f"cull:{forest.cull()}"
            elif key in (ord("s"), ord("S")):
                window.timeout(-1)
            elif key in (ord("l"), ord("L")):
                window.timeout(args.timeout)
            elif key == curses.KEY_RESIZE:
                stdscr.clear()
                stdscr.refresh()
                window, help_window = _make_windows(stdscr, args.margin)
                window.timeout(args.timeout)
                forest = _new_forest(window, args, rng)
                surface = CursesSurface(window)
                event = "resize"
            elif key == -1:
                frame += 1
                event = forest.tick(frame)

            # ── Log ────────────────────────────────────────────────
            if event or frame % 10 == 0:
                logger.log(frame, forest.stats(), event)
    finally:
        logger.close()


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{text!r} is not an integer") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"{value} must be positive")
    return value


def build_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Grow an ASCII forest in your terminal")
    parser.add_argument("--print", dest="print_mode", action="store_true",
                        help="Print text snapshots instead of running curses")
    parser.add_argument("--cols", type=_positive_int, default=PRINT_COLS,
                        help=f"Print mode forest width (default: {PRINT_COLS})")
    parser.add_argument("--rows", type=_positive_int, default=PRINT_ROWS,
                        help=f"Print mode forest height (default: {PRINT_ROWS})")
    parser.add_argument("--frames", type=_positive_int, default=PRINT_FRAMES,
                        help=f"Print mode snapshot count (default: {PRINT_FRAMES})")
    parser.add_argument("--delay", type=float, default=PRINT_DELAY,
                        help=f"Print mode seconds between snapshots (default: {PRINT_DELAY})")
    parser.add_argument("--trees", type=int, default=INITIAL_TREES,
                        help=f"Trees to start with (default: {INITIAL_TREES})")
    parser.add_argument("--middle", action="store_true",
                        help="Start from one seedling in the middle")
    parser.add_argument("--timeout", type=_positive_int, default=FRAME_TIMEOUT_MS,
                        help=f"Milliseconds per animation frame (default: {FRAME_TIMEOUT_MS})")
    parser.add_argument("--margin", type=int, default=WINDOW_MARGIN,
                        help=f"Cells around the forest window (default: {WINDOW_MARGIN})")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for a reproducible forest")
    parser.add_argument("--log", type=Path, default=LOG_PATH,
                        help="Where to write the stats CSV")
    return parser


def cli(argv: list[str] | None = None) -> int:
    args = build_argparser().parse_args(argv)
    if args.print_mode:
        forest = Forest(args.cols, args.rows, rng=RandomSource(args.seed))
        if args.middle:
            forest.spawn_middle()
        else:
            for _ in range(args.trees):
                forest.spawn_random()
        print_frames(forest, args.frames, args.delay)
        return 0
    try:
        curses.wrapper(main, args)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(cli())
