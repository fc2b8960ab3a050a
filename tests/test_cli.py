"""Tests for quarry._cli — argument parsing and command dispatch."""

from __future__ import annotations

import json
from pathlib import Path

import duckdb
import pytest
from conftest import query_node

from quarry._cli import _build_parser, format_result, main
from quarry.canvas.model import Result
from quarry.canvas.state import CanvasState


def _write_canvas(path: Path, *nodes: tuple[str, str]) -> Path:
    canvas = CanvasState(id="cli", name="CLI")
    for node_id, sql in nodes:
        canvas.add_node(query_node(node_id, sql))
    path.write_text(json.dumps(canvas.to_dict()))
    return path


class TestBuildParser:
    """_build_parser — CLI argument parsing."""

    def test_relay_default_args(self) -> None:
        args = _build_parser().parse_args(["relay"])
        assert args.command == "relay"
        assert args.root == "."
        assert args.host is None
        assert args.port is None
        assert args.room is None

    def test_relay_flags(self) -> None:
        args = _build_parser().parse_args(
            ["relay", "proj/", "--host", "0.0.0.0", "--port", "9000", "--room", "lobby"],
        )
        assert args.root == "proj/"
        assert args.host == "0.0.0.0"
        assert args.port == 9000
        assert args.room == "lobby"

    def test_run_default_args(self) -> None:
        args = _build_parser().parse_args(["run", "canvas.json"])
        assert args.command == "run"
        assert args.canvas == "canvas.json"
        assert args.nodes == []
        assert args.sample_data is None
        assert args.cascade is None
        assert args.load == []
        assert args.save is None

    def test_run_all_flags(self) -> None:
        args = _build_parser().parse_args([
            "run", "canvas.json", "sql-1", "sql-2",
            "--database", "data.duckdb",
            "--sample-data", "--cascade",
            "--load", "a.csv", "--load", "b.parquet",
            "--save", "out.json",
        ])
        assert args.nodes == ["sql-1", "sql-2"]
        assert args.database == "data.duckdb"
        assert args.sample_data is True
        assert args.cascade is True
        assert args.load == ["a.csv", "b.parquet"]
        assert args.save == "out.json"

    def test_no_command_returns_none(self) -> None:
        assert _build_parser().parse_args([]).command is None


class TestFormatResult:
    def test_aligned_table(self) -> None:
        text = format_result(Result.of(["name", "n"], [["alpha", 1], ["b", None]]))
        assert text.splitlines() == [
            "name   n   ",
            "-----  ----",
            "alpha  1   ",
            "b      NULL",
        ]

    def test_truncated(self) -> None:
        result = Result.of(["i"], [[i] for i in range(30)])
        text = format_result(result, limit=5)
        assert text.splitlines()[-1] == "... 25 more rows"
        assert "29" not in text


class TestMain:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "relay" in capsys.readouterr().out

    def test_run_with_references(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        canvas_path = _write_canvas(
            tmp_path / "canvas.json",
            ("sql-1", "SELECT * FROM customers"),
            ("sql-2", "SELECT count(*) AS n FROM {{sql-1}}"),
        )
        saved = tmp_path / "saved.json"

        with pytest.raises(SystemExit) as exc_info:
            main([
                "run", str(canvas_path), "--root", str(tmp_path),
                "--sample-data", "--save", str(saved),
            ])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "== sql-1 (10 rows)" in out
        assert "== sql-2 (1 row)" in out
        nodes = {n["id"]: n for n in json.loads(saved.read_text())["nodes"]}
        assert nodes["sql-2"]["data"]["results"]["rows"] == [[10]]

    def test_failed_cell_exit_code(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        canvas_path = _write_canvas(tmp_path / "canvas.json", ("sql-1", "SELECT * FROM missing"))
        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(canvas_path), "--root", str(tmp_path)])
        assert exc_info.value.code == 1
        assert "== sql-1 failed" in capsys.readouterr().out

    def test_selected_nodes_only(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        canvas_path = _write_canvas(
            tmp_path / "canvas.json",
            ("sql-1", "SELECT 1 AS one"),
            ("sql-2", "SELECT * FROM missing"),
        )
        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(canvas_path), "sql-1", "--root", str(tmp_path)])
        assert exc_info.value.code == 0
        assert "sql-2" not in capsys.readouterr().out

    def test_unreadable_canvas(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(tmp_path / "nope.json"), "--root", str(tmp_path)])
        assert exc_info.value.code == 1
        assert "Cannot read canvas" in capsys.readouterr().err

    def test_cascade_failure_exit_code(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        canvas_path = _write_canvas(
            tmp_path / "canvas.json",
            ("sql-1", "SELECT 1 AS one"),
            ("sql-2", "SELECT nope FROM {{sql-1}}"),
        )
        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(canvas_path), "sql-1", "--root", str(tmp_path), "--cascade"])
        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "== sql-1 (1 row)" in out
        assert "== sql-2 failed" in out

    def test_load_attaches_database(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        database = tmp_path / "shop.duckdb"
        conn = duckdb.connect(str(database))
        try:
            conn.execute("CREATE TABLE orders AS SELECT * FROM range(4) t(id)")
        finally:
            conn.close()
        canvas_path = _write_canvas(
            tmp_path / "canvas.json",
            ("sql-1", "SELECT count(*) AS n FROM orders"),
            ("sql-2", "SELECT n * 2 AS doubled FROM {{sql-1}}"),
        )

        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(canvas_path), "--root", str(tmp_path), "--load", str(database)])

        assert exc_info.value.code == 0
        captured = capsys.readouterr()
        assert "== sql-2 (1 row)" in captured.out
        assert "8" in captured.out.split("== sql-2")[1]
        assert "orders" in captured.err
