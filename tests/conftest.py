"""
Pytest configuration and shared fixtures for all tests.
"""

import io
import logging
import shutil
import sys
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest
from rich.console import Console

# Add src directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trialrun.core.runner import Runner
from trialrun.handlers.logging_handler import LoggingHandler
from trialrun.utils.config_manager import ConfigManager
from trialrun.utils.reporter import Reporter


@pytest.fixture(scope="session")
def test_logger() -> logging.Logger:
    """Create a test logger with appropriate configuration."""
    log_handler = LoggingHandler("DEBUG")
    return log_handler.install()


@pytest.fixture(scope="session")
def suite_data_dir() -> Path:
    """Path to the test definition files used by integration tests."""
    return Path(__file__).parent / "integration" / "suite_data"


@pytest.fixture(scope="session")
def definitions_dir() -> Path:
    """Path to trialrun's own definition files for the assertion DSL."""
    return Path(__file__).parent / "definitions"


@pytest.fixture
def runner(tmp_path: Path) -> Runner:
    """A runner rooted in an empty temporary directory, without a reporter."""
    return Runner(ConfigManager(tmp_path), root_directory=tmp_path)


@pytest.fixture
def make_test(runner: Runner) -> Callable:
    """Register a test with the runner fixture."""
    def factory(name: str = "a test", callback: Callable = None):
        return runner.define(name, callback)
    return factory


@pytest.fixture
def copy_suite(suite_data_dir: Path, tmp_path: Path) -> Callable:
    """Copy one of the suite data directories into the temporary root."""
    def copy(name: str) -> Path:
        target = tmp_path / name
        shutil.copytree(suite_data_dir / name, target)
        return target
    return copy


@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(console_output: io.StringIO) -> Console:
    """A plain, wide console writing into a buffer."""
    return Console(file=console_output, force_terminal=False, color_system=None, width=120, highlight=False)


@pytest.fixture
def reporter(console: Console) -> Reporter:
    return Reporter(console, live=False)


@pytest.fixture
def mock_coverage() -> MagicMock:
    """A stand-in for coverage.Coverage."""
    cov = MagicMock()
    cov.get_data.return_value.measured_files.return_value = []
    return cov
