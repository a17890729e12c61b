"""
Unit tests for the command-line entry point.
"""

import logging
import textwrap

import pytest

from trialrun import __version__
from trialrun.cli import build_parser, main


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write(path, source):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source), encoding="utf-8")


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.paths == []
        assert args.coverage is False
        assert args.random is False
        assert args.suite is None

    def test_short_flags(self):
        args = build_parser().parse_args(["-c", "-r", "-s", "unit", "tests/one.py"])

        assert args.coverage is True
        assert args.random is True
        assert args.suite == "unit"
        assert args.paths == ["tests/one.py"]

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exit_info:
            build_parser().parse_args(["--version"])

        assert exit_info.value.code == 0
        assert capsys.readouterr().out == f"Trialrun\nVersion {__version__}\n"


class TestMain:

    def test_passing_run(self, project, console, console_output):
        write(project / "tests" / "ok.py", "test('ok', lambda t: t.is_(2).equal(2))\n")

        assert main([], console=console) == 0
        assert "1 / 1 tests passed successfully." in console_output.getvalue()

    def test_failing_run(self, project, console, console_output):
        write(project / "tests" / "bad.py", "test('bad', lambda t: t.is_(2).equal(3))\n")

        assert main([], console=console) == 1
        assert "FAILED - bad" in console_output.getvalue()

    def test_paths_argument(self, project, console, console_output):
        write(project / "checks" / "one.py", "test('one', lambda t: t.pass_())\n")
        write(project / "checks" / "two.py", "test('two', lambda t: t.fail())\n")

        assert main(["checks/one.py"], console=console) == 0

    def test_suite_from_config(self, project, console, console_output):
        write(project / ".trialrun.yml", """
            suites:
              fast: checks/fast
              slow: checks/slow
        """)
        write(project / "checks" / "fast" / "one.py", "test('fast', lambda t: t.pass_())\n")
        write(project / "checks" / "slow" / "one.py", "test('slow', lambda t: t.fail())\n")

        assert main(["-s", "fast"], console=console) == 0
        assert "suite Fast" in console_output.getvalue()

    def test_unknown_suite(self, project, console, console_output):
        assert main(["--suite", "nope"], console=console) == 1
        assert "The suite nope is not defined" in console_output.getvalue()

    def test_no_tests(self, project, console, console_output):
        assert main([], console=console) == 1
        assert "No tests could be found." in console_output.getvalue()

    def test_bad_config(self, project, console, console_output):
        write(project / ".trialrun.yml", "random: maybe\n")

        assert main([], console=console) == 1
        assert "'random' must be true or false" in console_output.getvalue()

    def test_definition_error(self, project, console, console_output):
        write(project / "tests" / "broken.py", "import trialrun_no_such_module\n")

        assert main([], console=console) == 1
        assert "Could not load" in console_output.getvalue()

    def test_log_file(self, project, console):
        write(project / "tests" / "ok.py", "test('ok', lambda t: t.pass_())\n")

        assert main(["--log-level", "INFO", "--log-file", "logs/run.log"], console=console) == 0

        log = (project / "logs" / "run.log").read_text(encoding="utf-8")
        assert "trialrun.runner - INFO - Running 1 tests in suite tests" in log

    def test_log_handlers_are_removed_after_the_run(self, project, console):
        write(project / "tests" / "ok.py", "test('ok', lambda t: t.pass_())\n")

        main(["--log-file", "run.log"], console=console)
        main(["--log-file", "run.log"], console=console)

        assert logging.getLogger("trialrun").handlers == []
