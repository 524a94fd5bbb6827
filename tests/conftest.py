"""Pytest configuration: import path and the node-backed app pipeline."""

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).parent.parent
APPS_DIR = Path(__file__).parent / "apps"

sys.path.insert(0, str(ROOT_DIR))


class CompileError(Exception):
    """Raised when the clover CLI rejects an app."""


def discover_apps() -> list[Path]:
    """Find all *.clv programs under apps/."""
    return sorted(APPS_DIR.glob("*.clv"))


def pytest_generate_tests(metafunc):
    """Parametrize app tests over every program in apps/."""
    if "app" in metafunc.fixturenames:
        params = [pytest.param(app, id=app.stem) for app in discover_apps()]
        metafunc.parametrize("app", params)


def compile_clover(source: str) -> str:
    """Compile source through the CLI; returns the generated JavaScript."""
    result = subprocess.run(
        [sys.executable, "-m", "clover"],
        input=source,
        capture_output=True,
        text=True,
        cwd=ROOT_DIR,
    )
    if result.returncode != 0:
        raise CompileError(result.stderr.strip())
    return result.stdout


@pytest.fixture
def node() -> str:
    """Path to node, skipping the test when it is not installed."""
    path = shutil.which("node")
    if path is None:
        pytest.skip("node is not installed")
    return path


@pytest.fixture
def compiled(app: Path, tmp_path: Path) -> Path:
    """Compile an app to a CommonJS module in tmp_path."""
    output_path = tmp_path / f"{app.stem}.js"
    output_path.write_text(compile_clover(app.read_text()))
    return output_path


@pytest.fixture
def run_main(node: str):
    """Return a callable that loads a compiled module and calls its main()."""

    def run(module_path: Path) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [node, "-e", "require(process.argv[1]).main()", str(module_path)],
            capture_output=True,
            text=True,
            timeout=10,
        )

    return run
