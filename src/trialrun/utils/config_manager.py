"""
Configuration Manager for trialrun.

Options are built from three layers: built-in defaults, an optional YAML or
JSON configuration file, and command-line arguments. Later layers win. String
values may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.
"""

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..handlers.error_handler import TrialRunError


class ConfigurationError(TrialRunError):
    """Custom exception for configuration errors."""
    pass


class ConfigManager:
    """
    Runner options with dotted-path access.

    ``get('coverage.include')`` walks nested mappings; a missing key returns
    the default instead of raising.
    """

    CONFIG_FILE_NAMES = ('.trialrun.yml', '.trialrun.yaml', '.trialrun.json')

    DEFAULTS = {
        'shuffle': False,
        'random': False,
        'suite': None,
        'paths': [],
        'suites': {
            'tests': 'tests',
        },
        'coverage': {
            'enable': False,
            'include': ['src/**/*.py'],
            'exclude': [],
        },
        'logging': {
            'level': 'WARNING',
            'file': None,
        },
    }

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, root_directory: Optional[Union[str, Path]] = None,
                 options: Optional[Dict[str, Any]] = None):
        """
        Initialize the configuration manager.

        Args:
            root_directory: Directory searched for a configuration file and
                against which relative paths are resolved
            options: Overrides merged over the defaults
        """
        self.logger = logging.getLogger('trialrun.config_manager')
        self.root_directory = Path(root_directory) if root_directory else Path.cwd()
        self.config_file: Optional[Path] = None

        self._options = copy.deepcopy(self.DEFAULTS)
        if options:
            self._options = self._merge(self._options, options)
        self._normalize()

    def load(self, config_source: Optional[str] = None, cli_args: Any = None) -> 'ConfigManager':
        """
        Load options from the configuration file and command-line arguments.

        Args:
            config_source: Path to a YAML/JSON configuration file; when omitted
                the root directory is searched for ``.trialrun.yml``
            cli_args: Parsed ``argparse`` namespace

        Returns:
            ConfigManager: self, for chaining

        Raises:
            ConfigurationError: If the file cannot be read or the options are invalid
        """
        try:
            path = self._find_config_file(config_source)
            if path is not None:
                file_options = self._load_config_file(path)
                if not isinstance(file_options, dict):
                    raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

                self._options = self._merge(self._options, file_options)
                self.config_file = path
                self.logger.info(f"Loaded configuration from: {path}")

            self._options = self._substitute_environment_variables(self._options)

            if cli_args is not None:
                self._apply_cli_arguments(cli_args)

            self._normalize()
            return self

        except ConfigurationError:
            raise
        except Exception as e:
            error_msg = f"Failed to load configuration: {str(e)}"
            self.logger.error(error_msg)
            raise ConfigurationError(error_msg)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get an option by dotted path.

        Args:
            key: Option path, e.g. ``coverage.enable``
            default: Returned when the path does not exist
        """
        value = self._options
        for part in key.split('.'):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def set(self, key: str, value: Any):
        """Set an option by dotted path, creating intermediate mappings."""
        parts = key.split('.')
        target = self._options
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = value

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._options)

    def _find_config_file(self, config_source: Optional[str]) -> Optional[Path]:
        if config_source:
            path = Path(config_source)
            if not path.is_absolute():
                path = self.root_directory / path
            return path

        for name in self.CONFIG_FILE_NAMES:
            path = self.root_directory / name
            if path.is_file():
                return path

        return None

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """
        Load configuration from JSON or YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Dict: Configuration data

        Raises:
            ConfigurationError: If file loading fails
        """
        path = Path(config_path)

        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        if not path.is_file():
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()

            if path.suffix.lower() == '.json':
                return json.loads(content)

            # Anything else is read as YAML, which also accepts JSON documents
            return yaml.safe_load(content) or {}

        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file: {str(e)}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {str(e)}")
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file: {str(e)}")

    def _merge(self, base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        merged = copy.deepcopy(base)
        for key, value in overrides.items():
            if key == 'suites':
                # A configured suite map replaces the default suites entirely
                merged[key] = copy.deepcopy(value)
            elif isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged

    def _substitute_environment_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Substitute environment variables in configuration values.

        Args:
            config: Configuration dictionary

        Returns:
            Dict: Configuration with environment variables substituted
        """
        def substitute_value(value):
            if isinstance(value, str):
                for match in self.ENV_VAR_PATTERN.findall(value):
                    if ':-' in match:
                        var_name, default_value = match.split(':-', 1)
                    else:
                        var_name, default_value = match, None

                    env_value = os.environ.get(var_name.strip(), default_value)

                    if env_value is None:
                        self.logger.warning(f"Environment variable not found: {var_name}")
                        continue

                    value = value.replace(f"${{{match}}}", str(env_value))

                return value
            elif isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [substitute_value(item) for item in value]
            else:
                return value

        return substitute_value(config)

    def _apply_cli_arguments(self, args: Any):
        if getattr(args, 'random', False):
            self.set('random', True)

        if getattr(args, 'suite', None):
            self.set('suite', args.suite)

        if getattr(args, 'coverage', False):
            self.set('coverage.enable', True)

        if getattr(args, 'paths', None):
            self.set('paths', list(args.paths))

        if getattr(args, 'log_level', None):
            self.set('logging.level', args.log_level)

        if getattr(args, 'log_file', None):
            self.set('logging.file', args.log_file)

    def _normalize(self):
        """Validate option types and turn single paths/globs into lists."""
        suites = self.get('suites')
        if not isinstance(suites, dict):
            raise ConfigurationError("'suites' must map suite names to paths")

        normalized = {}
        for name, paths in suites.items():
            paths = self._as_list(paths, f"suites.{name}")
            if not paths:
                raise ConfigurationError(f"Suite '{name}' does not list any paths")
            normalized[str(name)] = paths
        self.set('suites', normalized)

        for key in ('shuffle', 'random', 'coverage.enable'):
            if not isinstance(self.get(key), bool):
                raise ConfigurationError(f"'{key}' must be true or false")

        for key in ('coverage.include', 'coverage.exclude', 'paths'):
            self.set(key, self._as_list(self.get(key), key))

    @staticmethod
    def _as_list(value: Any, key: str) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
            return list(value)
        raise ConfigurationError(f"'{key}' must be a path or a list of paths")
