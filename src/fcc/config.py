"""Configuration for consistency checks.

A configuration file is plain TOML data. Loading it resolves every path against the
directory containing the file and turns the include/exclude pattern lists into the
predicates the check engine consumes, so the engine only ever sees a CheckConfig.
"""
import fnmatch
import glob
import logging
import os
import tomllib
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, NamedTuple

from .utils.processor import HASH_ALGORITHMS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = 'fcc.config.toml'
DEFAULT_HASH_ALGORITHM = 'md5'

CONFIG_TEMPLATE = '''\
# File consistency checker configuration.
#
# Each table under [checking_maps] is one task. Files matched by `base` are hashed and
# compared with the files at the same relative path under every `correspond` directory.
# Relative paths are resolved against the directory containing this file.
#
# [checking_maps.docs]
# base = "docs/**/*.md"
# include = ["*"]
# exclude = ["drafts/*"]
#
# [checking_maps.docs.correspond]
# site = "site/content/docs"

# output = "."
# hash_algorithm = "md5"

[checking_maps]
'''


class ConfigLoadError(Exception):
    """The configuration file is missing, unreadable or malformed."""


class CheckMapItem(NamedTuple):
    """One task: a set of base files and the directories expected to mirror them.

    Attributes:
        base: Glob pattern selecting the base files
        correspond: Label to directory holding the corresponding copies
        include_fn: Predicate over a base-relative path deciding whether it is checked
        exclude_fn: Optional predicate applied after include_fn; matching paths are dropped
    """
    base: str
    correspond: dict[str, Path]
    include_fn: Callable[[str], bool]
    exclude_fn: Callable[[str], bool] | None = None


class CheckConfig(NamedTuple):
    checking_maps: dict[str, CheckMapItem]
    output: Path | None = None
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM


class Settings:
    """Read-only view of a TOML configuration file.

    Supports dot notation for nested keys, e.g. settings.get('checking_maps.docs.base').
    """

    def __init__(self, config_path: Path):
        """Load settings from config_path.

        Raises:
            ConfigLoadError: The file cannot be read or is not valid TOML
        """
        self._config_path = config_path

        try:
            with open(config_path, 'rb') as f:
                self._settings: dict[str, Any] = tomllib.load(f)
        except FileNotFoundError as e:
            raise ConfigLoadError(f"Config file not found: {config_path}") from e
        except OSError as e:
            raise ConfigLoadError(f"Failed to read config file {config_path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigLoadError(f"Malformed config file {config_path}: {e}") from e

    @property
    def config_path(self) -> Path:
        return self._config_path

    def get(self, key: str, default=None):
        """Get a setting value by dotted key, or default if any part of the path is missing."""
        value = self._settings

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value


def match_any(patterns: Sequence[str]) -> Callable[[str], bool]:
    """Build a predicate telling whether a relative path matches one of patterns.

    Patterns use fnmatch syntax and are matched case-sensitively against the whole
    forward-slash path; `*` also matches `/`.
    """
    patterns = tuple(patterns)

    def predicate(relative_path: str) -> bool:
        return any(fnmatch.fnmatchcase(relative_path, pattern) for pattern in patterns)

    return predicate


def load_config(config_path: str | os.PathLike) -> CheckConfig:
    """Load and validate a configuration file.

    Raises:
        ConfigLoadError: The file is missing or does not describe a valid configuration
    """
    config_path = Path(config_path).absolute()
    settings = Settings(config_path)
    config_dir = config_path.parent

    checking_maps = settings.get('checking_maps')
    if not isinstance(checking_maps, dict):
        raise ConfigLoadError(f"{config_path}: 'checking_maps' table is required")

    items = {}
    for task_name, table in checking_maps.items():
        where = f"{config_path}: task {task_name!r}"
        if not isinstance(table, dict):
            raise ConfigLoadError(f"{where} must be a table")
        items[task_name] = _load_check_map_item(table, where, config_dir)

    output = settings.get('output')
    if output is None:
        output_dir = config_dir
    elif isinstance(output, str):
        output_dir = config_dir / output
    else:
        raise ConfigLoadError(f"{config_path}: 'output' must be a string")

    hash_algorithm = settings.get('hash_algorithm', DEFAULT_HASH_ALGORITHM)
    if hash_algorithm not in HASH_ALGORITHMS:
        raise ConfigLoadError(
            f"{config_path}: unsupported hash_algorithm {hash_algorithm!r}, "
            f"expected one of {', '.join(sorted(HASH_ALGORITHMS))}")

    logger.info(f"Loaded {len(items)} task(s) from {config_path}")
    return CheckConfig(items, output_dir, hash_algorithm)


def _load_check_map_item(table: dict[str, Any], where: str, config_dir: Path) -> CheckMapItem:
    # task names may contain dots, so the table is read directly rather than through Settings.get
    base = table.get('base')
    if not isinstance(base, str) or not base:
        raise ConfigLoadError(f"{where} needs a non-empty string 'base'")

    correspond = table.get('correspond', {})
    if not isinstance(correspond, dict):
        raise ConfigLoadError(f"{where}: 'correspond' must be a table")
    for label, directory in correspond.items():
        if not isinstance(directory, str):
            raise ConfigLoadError(f"{where}: correspond entry {label!r} must be a string")

    include = _load_patterns(table.get('include', ['*']), where, 'include')
    exclude = _load_patterns(table.get('exclude', []), where, 'exclude')

    return CheckMapItem(
        base=os.path.join(glob.escape(str(config_dir)), base),
        correspond={label: config_dir / directory for label, directory in correspond.items()},
        include_fn=match_any(include),
        exclude_fn=match_any(exclude) if exclude else None)


def _load_patterns(value, where: str, key: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(pattern, str) for pattern in value):
        return value
    raise ConfigLoadError(f"{where}: '{key}' must be a string or a list of strings")


def init_config(config_path: str | os.PathLike) -> Path:
    """Write a starter configuration file.

    Raises:
        FileExistsError: A file already exists at config_path
    """
    config_path = Path(config_path).absolute()
    with open(config_path, 'x') as f:
        f.write(CONFIG_TEMPLATE)
    logger.info(f"Created config file: {config_path}")
    return config_path
