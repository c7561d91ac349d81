"""
Tests for the pieces around the core: stats logging, print mode, the
command line, the curses surface adapter and the bench harness.
"""

import curses
import io

import pytest

import forest_bench
from forest import (
    CursesSurface,
    Forest,
    ForestStats,
    RandomSource,
    StatsLogger,
    Tree,
    build_argparser,
    cli,
    print_frames,
)


class TestStatsLogger:
    def test_header_and_row(self, tmp_path) -> None:
        path = tmp_path / "stats.csv"
        logger = StatsLogger(path)
        logger.open()
        logger.log(3, ForestStats(trees=2, tallest=5, mean_height=3.5, coverage=0.125), "grow")
        logger.close()
        lines = path.read_text().splitlines()
        assert lines[0] == "frame,time_s,trees,tallest,mean_height,coverage,event"
        fields = lines[1].split(",")
        assert fields[0] == "3"
        assert fields[2:] == ["2", "5", "3.50", "0.125", "grow"]

    def test_unwritable_path_disables_logging(self, tmp_path) -> None:
        logger = StatsLogger(tmp_path)  # a directory cannot be opened for writing
        logger.open()
        logger.log(1, ForestStats(0, 0, 0.0, 0.0))
        logger.close()

    def test_close_twice(self, tmp_path) -> None:
        logger = StatsLogger(tmp_path / "s.csv")
        logger.open()
        logger.close()
        logger.close()


class TestPrintFrames:
    def test_one_snapshot_per_frame(self) -> None:
        forest = Forest(6, 3, rng=RandomSource(0))
        forest.place(Tree(), 3, 2)
        out = io.StringIO()
        print_frames(forest, frames=2, delay=0, out=out)
        text = out.getvalue()
        assert text.count("-" * 8) == 4
        assert forest.population[0].height == 2


class TestCommandLine:
    def test_defaults(self) -> None:
        args = build_argparser().parse_args([])
        assert args.print_mode is False
        assert args.cols == 80
        assert args.rows == 40
        assert args.seed is None

    def test_rejects_zero_size(self) -> None:
        with pytest.raises(SystemExit):
            build_argparser().parse_args(["--cols", "0"])

    def test_rejects_non_integer(self) -> None:
        with pytest.raises(SystemExit):
            build_argparser().parse_args(["--rows", "tall"])

    def test_print_mode(self, capsys) -> None:
        code = cli(["--print", "--cols", "12", "--rows", "6", "--frames", "1",
                    "--delay", "0", "--seed", "3"])
        assert code == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "-" * 14
        assert lines[-1] == "-" * 14
        assert len(lines) == 8
        assert all(line.startswith("|") and line.endswith("|") for line in lines[1:-1])

    def test_print_mode_middle(self, capsys) -> None:
        cli(["--print", "--middle", "--cols", "5", "--rows", "3", "--frames", "1",
             "--delay", "0"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[2] == "|  |  |"


class FlakyWindow:
    """Curses window stand-in whose last column refuses writes."""

    def __init__(self, cols: int) -> None:
        self.cols = cols
        self.written: list[tuple[int, int, str]] = []
        self.cleared = 0
        self.refreshed = 0

    def addstr(self, row: int, col: int, text: str) -> None:
        if col + len(text) >= self.cols:
            raise curses.error("addwstr() returned ERR")
        self.written.append((row, col, text))

    def clear(self) -> None:
        self.cleared += 1

    def refresh(self) -> None:
        self.refreshed += 1


class TestCursesSurface:
    def test_write_at_positions_cursor(self) -> None:
        window = FlakyWindow(20)
        surface = CursesSurface(window)
        surface.write_at(2, 3, "/\\")
        surface.write("|")
        assert window.written == [(2, 3, "/\\"), (2, 5, "|")]

    def test_edge_errors_are_swallowed(self) -> None:
        window = FlakyWindow(5)
        CursesSurface(window).write_at(0, 3, "//\\\\")
        assert window.written == []

    def test_clear_and_refresh_pass_through(self) -> None:
        window = FlakyWindow(5)
        surface = CursesSurface(window)
        surface.clear()
        surface.refresh()
        assert (window.cleared, window.refreshed) == (1, 1)

    def test_forest_renders_through_curses(self) -> None:
        window = FlakyWindow(40)
        forest = Forest.for_window(12, 12, border=1)
        forest.place(Tree(height=2, rings=["||", "/\\"]), 5, 5)
        forest.render_to(CursesSurface(window))
        assert window.written == [(5, 5, "/\\"), (6, 5, "||")]


class TestBench:
    def test_frame_timings(self) -> None:
        forest = Forest.for_window(30, 12, border=1, rng=RandomSource(1))
        for _ in range(3):
            forest.spawn_random()
        window = forest_bench.FakeWindow(12, 30)
        timings = forest_bench.simulate_frame(forest, CursesSurface(window), 6)
        assert {"tick", "render_to", "snapshot", "_writes"} <= set(timings)
        assert window._calls == int(timings["_writes"])

    def test_line_timing_run(self, capsys) -> None:
        forest_bench.run_benchmark(20, cols=40, rows=15, line_timing=True, seed=5)
        out = capsys.readouterr().out
        assert "Per-Frame Component Breakdown" in out
        assert "TOTAL" in out

    def test_profiled_run(self, capsys) -> None:
        forest_bench.main(["-n", "10", "--cols", "30", "--rows", "10", "--seed", "1"])
        assert "Wall time" in capsys.readouterr().out
