import contextlib
import logging
import re
from asyncio import TaskGroup
from pathlib import Path, PurePath
from typing import AsyncIterator, NamedTuple, TypedDict

from ..config import CheckConfig, CheckMapItem, DEFAULT_HASH_ALGORITHM
from ..utils.processor import Processor
from ..utils.throttler import Throttler

logger = logging.getLogger(__name__)

_GLOB_MAGIC = re.compile(r'[*?[]')
# glob.escape output: a single magic character wrapped in brackets
_GLOB_ESCAPED = re.compile(r'\[([*?[])\]')


class BaseOutput(TypedDict):
    hash: str


class CorrespondOutput(TypedDict):
    hash: str
    baseHash: str


class CheckMapItemFileOutput(TypedDict):
    base: BaseOutput
    correspond: dict[str, CorrespondOutput | None]


CheckMapItemOutput = dict[str, CheckMapItemFileOutput]
CheckOutput = dict[str, CheckMapItemOutput]


class CheckError(Exception):
    """A task could not be evaluated; the whole run is aborted."""

    def __init__(self, task: str, message: str):
        super().__init__(f"task {task!r}: {message}")
        self.task = task


class EnumerationError(CheckError):
    """The base pattern of a task cannot be expanded."""


class HashError(CheckError):
    """A base or corresponding file could not be read."""

    def __init__(self, task: str, path: Path, cause: OSError):
        super().__init__(task, f"cannot hash {path}: {cause.strerror or cause}")
        self.path = path


class CheckArgs(NamedTuple):
    """Arguments for check operations."""
    processor: Processor  # File processing backend for hashing and filesystem access
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM


def split_base_pattern(base: str) -> tuple[Path, str]:
    """Split a base pattern into the directory it is rooted at and the glob below it.

    The root is made of the leading components without glob characters. Characters
    escaped the way glob.escape does it count as literal. A pattern without any glob
    characters names a directory whose files are all selected.

    Examples:
        >>> split_base_pattern('/src/docs/**/*.md')
        (PosixPath('/src/docs'), '**/*.md')
        >>> split_base_pattern('/src/docs')
        (PosixPath('/src/docs'), '**/*')

    Raises:
        ValueError: The pattern is empty or climbs out of its root with '..'
    """
    if not base:
        raise ValueError("empty base pattern")

    parts = PurePath(base).parts
    for i, part in enumerate(parts):
        if _GLOB_MAGIC.search(_GLOB_ESCAPED.sub('', part)):
            root_parts = parts[:i]
            remainder = parts[i:]
            break
    else:
        root_parts = parts
        remainder = ('**', '*')

    root = Path(*(_GLOB_ESCAPED.sub(r'\1', part) for part in root_parts)) if root_parts else Path('.')

    if '..' in remainder:
        raise ValueError(f"'..' is not allowed after the first glob component: {base}")

    return root, '/'.join(remainder)


async def enumerate_base_files(task: str, item: CheckMapItem, processor: Processor) -> list[str]:
    """List the base files of a task, relative to the base root, after filtering.

    A root directory that does not exist yields no files.

    Raises:
        EnumerationError: The pattern is invalid or its root is not a directory
    """
    try:
        root, pattern = split_base_pattern(item.base)
    except ValueError as e:
        raise EnumerationError(task, str(e)) from e

    if not await processor.exists(root):
        logger.warning(f"Task {task}: base directory does not exist: {root}")
        return []

    try:
        candidates = await processor.glob(root, pattern)
    except NotADirectoryError as e:
        raise EnumerationError(task, f"base root is not a directory: {root}") from e

    files = []
    for relative_path in candidates:
        if not item.include_fn(relative_path):
            continue
        if item.exclude_fn is not None and item.exclude_fn(relative_path):
            continue
        files.append(relative_path)

    logger.info(f"Task {task}: {len(files)} of {len(candidates)} file(s) selected under {root}")
    return files


async def evaluate_check_map(task: str, item: CheckMapItem, args: CheckArgs) -> CheckMapItemOutput:
    """Hash every base file of a task and its counterpart in each correspond directory.

    Every configured label appears for every base file: the value is None when the
    corresponding file does not exist, otherwise the corresponding hash together with
    the base hash.

    Raises:
        EnumerationError: The base pattern cannot be expanded
        HashError: An existing base or corresponding file cannot be read
    """
    base_files = await enumerate_base_files(task, item, args.processor)
    root, _ = split_base_pattern(item.base)
    concurrency = args.processor.concurrency * 2

    base_hashes: dict[str, str] = {}

    async def hash_base(relative_path: str):
        base_hashes[relative_path] = await _digest(task, root / relative_path, args)

    async with _fail_fast() as tg:
        throttler = Throttler(tg, concurrency)
        for relative_path in base_files:
            await throttler.schedule(hash_base(relative_path))

    correspond: dict[tuple[str, str], CorrespondOutput | None] = {}

    async def hash_correspond(label: str, directory: Path, relative_path: str):
        path = directory / relative_path
        if not await args.processor.exists(path):
            correspond[relative_path, label] = None
            return

        correspond[relative_path, label] = {
            'hash': await _digest(task, path, args),
            'baseHash': base_hashes[relative_path],
        }

    async with _fail_fast() as tg:
        throttler = Throttler(tg, concurrency)
        for label, directory in item.correspond.items():
            for relative_path in base_files:
                await throttler.schedule(hash_correspond(label, directory, relative_path))

    labels = sorted(item.correspond)
    result: CheckMapItemOutput = {}
    for relative_path in sorted(base_files):
        result[relative_path] = {
            'base': {'hash': base_hashes[relative_path]},
            'correspond': {label: correspond[relative_path, label] for label in labels},
        }

    return result


async def _digest(task: str, path: Path, args: CheckArgs) -> str:
    try:
        return await args.processor.digest(path, args.hash_algorithm)
    except OSError as e:
        raise HashError(task, path, e) from e


async def do_check(config: CheckConfig, args: CheckArgs) -> CheckOutput:
    """Evaluate every task of config concurrently and assemble the report.

    The first failing task cancels the others and its error is raised as is, so no
    partial report is ever produced.
    """
    results: CheckOutput = {}

    async def run_task(task: str, item: CheckMapItem):
        logger.info(f"Starting task: {task}")
        results[task] = await evaluate_check_map(task, item, args)
        logger.info(f"Completed task: {task} ({len(results[task])} file(s))")

    async with _fail_fast() as tg:
        for task, item in config.checking_maps.items():
            tg.create_task(run_task(task, item), name=task)

    return {task: results[task] for task in sorted(results)}


@contextlib.asynccontextmanager
async def _fail_fast() -> AsyncIterator[TaskGroup]:
    """TaskGroup raising the first error of its tasks rather than an ExceptionGroup."""
    try:
        async with TaskGroup() as tg:
            yield tg
    except ExceptionGroup as eg:
        raise _first_error(eg)


def _first_error(error: BaseException) -> BaseException:
    while isinstance(error, BaseExceptionGroup):
        error = error.exceptions[0]
    return error
