"""CLI tests for the clover entry point.

Test cases live in cli/*.tests files. Format:

    === test name
    args: --stop-at parse
    source code here
    (stdin for the compiler)
    ---
    exit: 0
    stderr: error: some message
    stdout-contains: module.exports
    stdout-empty: true
    stderr-empty: true
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion directives in the expected section:
    exit:             exact exit code
    stderr:           exact stderr content (trailing newline stripped)
    stderr-contains:  stderr must contain substring
    stderr-empty:     stderr must be empty
    stdout-contains:  stdout must contain substring
    stdout-empty:     stdout must be empty
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest

CLI_DIR = Path(__file__).parent / "cli"
ROOT_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            result.append((test_name, _parse_spec(input_lines, expected_lines)))
        else:
            i += 1
    return result


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    spec: dict = {
        "args": [],
        "stdin": None,
        "stdin_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        spec["args"] = args_str.split() if args_str else []
        body_start = 1

    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("stdin-bytes:"):
        spec["stdin_bytes"] = bytes.fromhex(remaining[0][len("stdin-bytes:") :].strip())
    else:
        spec["stdin"] = "\n".join(remaining)

    for line in expected_lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith("exit:"):
            spec["assertions"].append(("exit", int(line[5:].strip())))
        elif line.startswith("stderr:"):
            spec["assertions"].append(("stderr", line[7:].strip()))
        elif line.startswith("stderr-contains:"):
            spec["assertions"].append(("stderr-contains", line[16:].strip()))
        elif line.startswith("stderr-empty:"):
            spec["assertions"].append(("stderr-empty", None))
        elif line.startswith("stdout-contains:"):
            spec["assertions"].append(("stdout-contains", line[16:].strip()))
        elif line.startswith("stdout-empty:"):
            spec["assertions"].append(("stdout-empty", None))
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, spec in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def run_cli(args: list[str], stdin: bytes = b"") -> subprocess.CompletedProcess[bytes]:
    """Run the clover CLI as a subprocess from the repository root."""
    return subprocess.run(
        [sys.executable, "-m", "clover", *args],
        input=stdin,
        capture_output=True,
        cwd=ROOT_DIR,
    )


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}"
                f"\nstderr: {result.stderr.decode(errors='replace')}"
            )
        elif kind == "stderr":
            actual = result.stderr.decode(errors="replace").rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            actual = result.stderr.decode(errors="replace")
            assert value in actual, (
                f"expected stderr to contain {value!r}, got {actual!r}"
            )
        elif kind == "stderr-empty":
            assert result.stderr == b"", f"expected empty stderr, got {result.stderr!r}"
        elif kind == "stdout-contains":
            actual = result.stdout.decode(errors="replace")
            assert value in actual, (
                f"expected stdout to contain {value!r}, got {actual!r}"
            )
        elif kind == "stdout-empty":
            assert result.stdout == b"", (
                f"expected empty stdout, got {result.stdout[:200]!r}"
            )


def pytest_generate_tests(metafunc):
    if "cli_spec" in metafunc.fixturenames:
        tests = discover_cli_tests()
        params = [pytest.param(spec, id=test_id) for test_id, spec in tests]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict) -> None:
    """Run a single CLI test case from a .tests file."""
    if cli_spec["stdin_bytes"] is not None:
        stdin = cli_spec["stdin_bytes"]
    else:
        stdin = (cli_spec["stdin"] or "").encode()
    result = run_cli(cli_spec["args"], stdin)
    check_assertions(result, cli_spec["assertions"])


# ---------------------------------------------------------------------------
# File arguments
# ---------------------------------------------------------------------------


def test_input_file_and_output_file(tmp_path: Path):
    source = tmp_path / "main.clv"
    source.write_text('fn main() { __write("hi"); }\n')
    target = tmp_path / "main.js"
    result = run_cli([str(source), "-o", str(target)])
    assert result.returncode == 0, result.stderr
    assert result.stdout == b""
    assert "module.exports.main = __main;" in target.read_text()


def test_failed_compile_leaves_no_output_file(tmp_path: Path):
    source = tmp_path / "bad.clv"
    source.write_text("fn main() { return missing; }\n")
    target = tmp_path / "bad.js"
    result = run_cli([str(source), "-o", str(target)])
    assert result.returncode == 1
    assert not target.exists()


def test_missing_input_file(tmp_path: Path):
    missing = tmp_path / "nope.clv"
    result = run_cli([str(missing)])
    assert result.returncode == 1
    assert result.stderr.decode() == f"error: cannot open '{missing}'\n"


def test_stop_at_parse_is_json():
    result = run_cli(["--stop-at", "parse"], b"struct P { x: i32 }\n")
    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data["kind"] == "Module"
    assert data["decls"][0]["kind"] == "StructDecl"
    assert data["decls"][0]["name"] == "P"


def test_stop_at_resolve_is_json():
    result = run_cli(
        ["--stop-at", "resolve"], b"fn f(): bool { let b = true; return b; }\n"
    )
    assert result.returncode == 0
    data = json.loads(result.stdout)
    assert data["functions"]["f"]["return"] == "bool"
    assert data["functions"]["f"]["locals"] == {"b": "bool"}
