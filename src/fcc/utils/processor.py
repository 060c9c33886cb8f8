import asyncio
import errno
import glob
import hashlib
import logging
import multiprocessing
import os
import pathlib
from multiprocessing.pool import Pool
from typing import Awaitable

logger = logging.getLogger(__name__)

# shake_* digests need an explicit length and cannot be used for file fingerprints
HASH_ALGORITHMS = frozenset(
    name for name in hashlib.algorithms_guaranteed if not name.startswith('shake_'))


def compute_digest_for_path(path: pathlib.Path, algorithm: str) -> str:
    with open(path, "rb") as f:
        # noinspection PyTypeChecker
        return hashlib.file_digest(f, algorithm).hexdigest()


def check_path_exists(path: pathlib.Path) -> bool:
    return path.exists()


def expand_glob(root: pathlib.Path, pattern: str) -> list[str]:
    """Expand pattern under root, keeping regular files only.

    Returned paths are relative to root and use forward slashes.

    :raise NotADirectoryError: root exists but is not a directory."""
    if not os.path.isdir(root):
        raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), str(root))

    matches = []
    for match in glob.glob(pattern, root_dir=root, recursive=True):
        if os.path.isfile(os.path.join(root, match)):
            matches.append(pathlib.PurePath(match).as_posix())
    matches.sort()
    return matches


class Processor:
    def __init__(self, concurrency: int | None = None):
        if concurrency is None:
            concurrency = multiprocessing.cpu_count()

        self._concurrency = concurrency
        self._pool: Pool = Pool(self._concurrency)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self._pool.close()

    @property
    def concurrency(self):
        return self._concurrency

    def digest(self, path: pathlib.Path, algorithm: str = 'md5') -> Awaitable[str]:
        """Compute the hex digest of a file's content.

        :raise OSError: the file cannot be opened or read."""
        if algorithm not in HASH_ALGORITHMS:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")

        logger.info(f"Starting hash computation for: {path}")

        async def log_and_compute():
            result = await self._evaluate(compute_digest_for_path, path, algorithm)
            logger.info(f"Completed hash computation for: {path}")
            return result

        return log_and_compute()

    def exists(self, path: pathlib.Path) -> Awaitable[bool]:
        async def evaluate():
            return await self._evaluate(check_path_exists, path)

        return evaluate()

    def glob(self, root: pathlib.Path, pattern: str) -> Awaitable[list[str]]:
        logger.info(f"Expanding {pattern} under: {root}")

        async def log_and_expand():
            result = await self._evaluate(expand_glob, root, pattern)
            logger.info(f"Expanded {pattern} under {root}: {len(result)} file(s)")
            return result

        return log_and_expand()

    def _evaluate(self, func, *args):
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        self._pool.apply_async(func, args=args,
                               callback=lambda v: self._settle(loop, future, result=v),
                               error_callback=lambda e: self._settle(loop, future, error=e))

        return future

    @staticmethod
    def _settle(loop: asyncio.AbstractEventLoop, future: asyncio.Future, result=None,
                error: BaseException | None = None):
        """Hand a pool result back to the event loop.

        Runs on the pool's result thread. Work still queued when a run fails fast
        may finish after its future was cancelled or its loop was closed."""
        def settle():
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        try:
            loop.call_soon_threadsafe(settle)
        except RuntimeError:
            logger.debug("Dropped pool result: event loop is closed")
