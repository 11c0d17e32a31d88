import json
import os
import subprocess
import sys
from pathlib import Path

from cli import main

REPO_ROOT = Path(__file__).resolve().parent.parent


def _run_cli(args, cwd: Path = REPO_ROOT):
    env = os.environ.copy()
    pythonpath = env.get("PYTHONPATH", "")
    src = str(REPO_ROOT / "src")
    env["PYTHONPATH"] = src + (os.pathsep + pythonpath if pythonpath else "")
    result = subprocess.run(
        [sys.executable, "-m", "cli", *args],
        cwd=cwd,
        env=env,
        check=False,
        capture_output=True,
        text=True,
    )
    return result


def test_cli_prints_scope_tree():
    result = _run_cli(["analyze", "tests/cases/scope_tracer_demo.js"])

    assert result.returncode == 0, result.stderr
    lines = result.stdout.splitlines()
    assert lines[0].startswith("# ") and lines[0].endswith("scope_tracer_demo.js")
    assert lines[1:] == [
        "global [S0] global: outer",
        "  outer [S1] function: a",
        "    if-block [S2] block: b",
        "      for-loop [S3] loop: i, c",
    ]


def test_cli_writes_json(tmp_path):
    output_path = tmp_path / "report" / "hello.json"
    result = _run_cli(["analyze", "tests/cases/hello.js", "--json", "--out", str(output_path)])

    assert result.returncode == 0, result.stderr
    assert result.stdout == ""
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["sourceName"].endswith("hello.js")
    assert payload["tree"]["root"]["declarations"][0]["id"] == "S0:hello"
    assert {occ["name"] for occ in payload["occurrences"]} == {"console", "name", "hello"}


def test_cli_reports_unresolved_as_info():
    result = _run_cli(["analyze", "tests/cases/hello.js"])

    assert result.returncode == 0, result.stderr
    assert "INFO" in result.stderr
    assert "unresolved identifier 'console'" in result.stderr


def test_cli_strict_mode_fails_on_unresolved():
    result = _run_cli(["analyze", "tests/cases/hello.js", "--strict"])

    assert result.returncode == 1
    assert "WARNING" in result.stderr
    assert "unresolved identifier 'console'" in result.stderr


def test_cli_parse_error_exit_code():
    result = _run_cli(["analyze", "tests/cases/unbalanced.js", "tests/cases/hello.js"])

    assert result.returncode == 1
    assert "ERROR" in result.stderr
    assert "unbalanced.js:5:" in result.stderr
    # The well-formed file is still reported.
    assert "global [S0] global: hello" in result.stdout


def test_cli_missing_file(tmp_path):
    result = _run_cli(["analyze", str(tmp_path / "absent.js")])

    assert result.returncode == 1
    assert "Input file not found" in result.stderr


def test_main_dumps_tokens(tmp_path, capsys):
    source_path = tmp_path / "tiny.js"
    source_path.write_text("let x = 1;", encoding="utf-8")

    exit_code = main(["tokens", str(source_path)])

    assert exit_code == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "0-3\tkeyword\t'let'"
    assert lines[-1] == "10-10\tend\t''"


def test_main_without_command_prints_help(capsys):
    assert main([]) == 1
    assert "scopetrace" in capsys.readouterr().out
