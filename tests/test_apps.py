"""Compile the programs in apps/ and run them under node."""

import subprocess
from pathlib import Path

import pytest

from conftest import compile_clover


def test_app(app: Path, compiled: Path, run_main):
    """An app passes when main() returns without dying."""
    try:
        result = run_main(compiled)
    except subprocess.TimeoutExpired:
        pytest.fail("App timed out after 10 seconds")
    if result.returncode != 0:
        output = (result.stdout + result.stderr).strip()
        pytest.fail(f"App failed with exit code {result.returncode}:\n{output}")


def test_compilation_is_deterministic(app: Path):
    source = app.read_text()
    assert compile_clover(source) == compile_clover(source)


def test_die_exits_nonzero(tmp_path: Path, run_main):
    module = tmp_path / "die.js"
    module.write_text(compile_clover('fn main() { __die("boom"); }\n'))
    result = run_main(module)
    assert result.returncode != 0
    assert "boom" in result.stderr


def test_write_goes_to_stdout(tmp_path: Path, run_main):
    module = tmp_path / "write.js"
    module.write_text(compile_clover('fn main() { __write("hi\\n"); }\n'))
    result = run_main(module)
    assert result.returncode == 0
    assert result.stdout == "hi\n"


def test_read_file(tmp_path: Path, run_main):
    data = tmp_path / "data.txt"
    data.write_text("payload")
    source = (
        "fn main() {\n"
        '  if (__read_file("' + str(data) + '") != "payload") {\n'
        '    __die("read_file");\n'
        "  }\n"
        "}\n"
    )
    module = tmp_path / "read.js"
    module.write_text(compile_clover(source))
    result = run_main(module)
    assert result.returncode == 0, result.stderr
