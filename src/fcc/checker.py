import asyncio
import logging
from pathlib import Path
from typing import NamedTuple

from .config import CheckConfig
from .commands.check import CheckArgs, CheckOutput, do_check
from .report.store import ReportStore
from .utils.processor import Processor

logger = logging.getLogger(__name__)


class CheckResult(NamedTuple):
    previous: CheckOutput | None  # report stored before this run, if any could be read
    current: CheckOutput


class Checker:
    """Workflow layer running consistency checks for one configuration.

    Checker ties the asynchronous check engine to the report stored in the configured
    output directory:
    - run(): compute a fresh report without touching the stored one
    - check(): load the stored report, compute a fresh one and store it in its place

    Contrast with do_check(), which only evaluates the tasks and knows nothing about
    persistence.
    """

    def __init__(self, processor: Processor, config: CheckConfig):
        """Initialize checker.

        Args:
            processor: File processing backend for hashing and filesystem access
            config: Resolved configuration; output defaults to the working directory
        """
        self._processor = processor
        self._config = config
        self._store = ReportStore(config.output if config.output is not None else Path.cwd())

    @property
    def store(self) -> ReportStore:
        return self._store

    def run(self) -> CheckOutput:
        """Evaluate every task and return the report.

        Raises:
            CheckError: A task failed; no report is produced
        """
        return asyncio.run(do_check(
            self._config,
            CheckArgs(self._processor, self._config.hash_algorithm)
        ))

    def check(self) -> CheckResult:
        """Run the check and replace the stored report with the result.

        The previous report is read before the run. If the run fails, the stored
        report is left untouched.

        Raises:
            CheckError: A task failed
            ReportWriteError: The new report could not be stored
        """
        previous = self._store.load()
        if previous is None:
            logger.info(f"No previous report at {self._store.report_path}")

        current = self.run()
        self._store.save(current)
        return CheckResult(previous, current)
