"""
Coverage Recorder for trialrun.

Line execution data comes from coverage.py, which is started and stopped
around each test callback. A line only counts as covered when it was executed
and lies inside a function or method some test claimed with ``covers()``.
"""

import ast
import glob
import inspect
import logging
import pkgutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import coverage

from .config_manager import ConfigurationError


# Line statuses fed into record_execution
USED = 1
NOT_USED = -1


class CoverageRecorder:
    """
    Collects line coverage for the files selected by include/exclude globs.
    """

    def __init__(self, root_directory: Union[str, Path, None] = None,
                 include: Optional[List[str]] = None,
                 exclude: Optional[List[str]] = None,
                 cov: Optional[coverage.Coverage] = None):
        """
        Args:
            root_directory: Directory globs and reported file names are relative to
            include: Glob patterns of files to report on
            exclude: Glob patterns removed from the included files
            cov: The coverage.py instance to drive; one is created if omitted
        """
        self.root_directory = Path(root_directory or Path.cwd()).resolve()
        self.include = list(include or [])
        self.exclude = list(exclude or [])
        self.logger = logging.getLogger('trialrun.coverage_recorder')

        self._coverage = cov if cov is not None else coverage.Coverage(data_file=None)
        self._recording = False

        # file -> lines inside functions claimed by covers()
        self.covered: Dict[str, Set[int]] = {}
        # file -> {line: USED | NOT_USED}
        self.executions: Dict[str, Dict[int, int]] = {}

    # Claims

    def add_covered(self, target: Any, method: Optional[str] = None):
        """
        Mark the source lines of a function or method as covered by a test.

        Args:
            target: A function, a class, or a dotted "module.Class::method" name
            method: An optional method name on ``target``

        Raises:
            ConfigurationError: If a named target cannot be resolved
        """
        function = self.resolve(target, method)

        try:
            lines, start = inspect.getsourcelines(function)
            filename = inspect.getsourcefile(function)
        except (TypeError, OSError) as e:
            self.logger.warning(f"Cannot read source for coverage target {target!r}: {e}")
            return

        if filename is None:
            return

        claimed = self.covered.setdefault(str(Path(filename).resolve()), set())
        claimed.update(range(start, start + len(lines)))

    @staticmethod
    def resolve(target: Any, method: Optional[str] = None) -> Any:
        if isinstance(target, str):
            if method is None and '::' in target:
                target, method = target.split('::', 1)
            try:
                target = pkgutil.resolve_name(target)
            except (ImportError, AttributeError, ValueError) as e:
                raise ConfigurationError(f'Cannot resolve coverage target "{target}": {e}')

        if method:
            try:
                target = getattr(target, method)
            except AttributeError:
                raise ConfigurationError(f'{target!r} has no method "{method}"')

        return target

    # Recording

    def begin_recording(self):
        if not self._recording:
            self._coverage.start()
            self._recording = True

    def end_recording(self):
        if self._recording:
            self._coverage.stop()
            self._recording = False

    def record_execution(self, filename: str, lines: Dict[int, int]):
        """
        Record the status of each executable line of a file.

        A line recorded as used stays used if the file is recorded again.
        """
        statuses = self.executions.setdefault(str(filename), {})
        for line, status in lines.items():
            if statuses.get(line) != USED:
                statuses[line] = status

    def collect(self):
        """Feed the data gathered by coverage.py into record_execution."""
        self.end_recording()

        included = self._matching(self.include) - self._matching(self.exclude)
        data = self._coverage.get_data()

        for measured in data.measured_files():
            filename = str(Path(measured).resolve())
            if filename not in included:
                continue

            _, statements, _, missing, _ = self._coverage.analysis2(measured)
            missing = set(missing)
            self.record_execution(filename, {
                line: NOT_USED if line in missing else USED for line in statements
            })

        self.logger.info(f"Collected coverage for {len(self.executions)} file(s)")

    def _matching(self, patterns: List[str]) -> Set[str]:
        files = set()
        for pattern in patterns:
            for match in glob.glob(str(self.root_directory / pattern), recursive=True):
                files.add(str(Path(match).resolve()))
        return files

    # Reporting

    def report(self) -> Dict[str, Dict[str, Dict[str, int]]]:
        """
        Summarise coverage per class and per file.

        Only files containing a claimed function are reported. A file which
        defines a class is reported under its first class.

        Returns:
            Dict: {"classes": {name: {"covered", "total"}}, "files": {...}}
        """
        processed = {'classes': {}, 'files': {}}

        for filename, lines in sorted(self.executions.items()):
            claimed = self.covered.get(filename)
            if claimed is None:
                continue

            summary = {
                'covered': sum(1 for line, status in lines.items() if status == USED and line in claimed),
                'total': len(lines),
            }

            class_name = self.class_for_file(filename)
            if class_name:
                processed['classes'][class_name] = summary
            else:
                processed['files'][self._relative(filename)] = summary

        return processed

    def class_for_file(self, filename: str) -> Optional[str]:
        """Return the dotted name of the first top-level class in a file."""
        try:
            tree = ast.parse(Path(filename).read_text(encoding='utf-8'))
        except (OSError, SyntaxError, ValueError) as e:
            self.logger.debug(f"Cannot parse {filename}: {e}")
            return None

        for node in tree.body:
            if isinstance(node, ast.ClassDef):
                return f"{self._module_name(filename)}.{node.name}"

        return None

    def _relative(self, filename: str) -> str:
        try:
            return Path(filename).relative_to(self.root_directory).as_posix()
        except ValueError:
            return filename

    def _module_name(self, filename: str) -> str:
        parts = list(Path(self._relative(filename)).with_suffix('').parts)
        if parts and parts[0] == 'src':
            parts = parts[1:]
        if parts and parts[-1] == '__init__':
            parts = parts[:-1]
        return '.'.join(parts)
