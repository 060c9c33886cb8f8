"""Persistence of check reports."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from ..commands.check import CheckOutput

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILENAME = 'fcc.output.json'


class ReportReadError(Exception):
    """The stored report cannot be read or does not have the expected shape."""


class ReportWriteError(Exception):
    """The new report cannot be persisted."""


class ReportStore:
    """Reads and writes the report of the last check in an output directory.

    The report is stored as pretty-printed JSON with sorted keys so that it can be
    diffed and committed alongside the files it describes. There is no locking; one
    writer per output directory is assumed.
    """

    def __init__(self, output_dir: Path, filename: str = DEFAULT_OUTPUT_FILENAME) -> None:
        self.output_dir: Path = output_dir
        self.report_path: Path = output_dir / filename

    def load(self) -> CheckOutput | None:
        """Load the previous report.

        Returns:
            The stored report, or None if there is none or it cannot be read. A report
            that cannot be read is logged and otherwise ignored.
        """
        if not self.report_path.exists():
            return None

        try:
            return self.read()
        except ReportReadError as e:
            logger.warning(f"Ignoring previous report: {e}")
            return None

    def read(self) -> CheckOutput:
        """Read the stored report.

        Raises:
            ReportReadError: The file is missing, unreadable, not JSON, or not a report
        """
        try:
            with open(self.report_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ReportReadError(f"cannot read {self.report_path}: {e}") from e

        _validate_report(data, self.report_path)
        return data

    def save(self, report: CheckOutput) -> None:
        """Replace the stored report with report.

        The file is written next to its destination and renamed over it, so an
        interrupted write leaves the previous report in place.

        Raises:
            ReportWriteError: The output directory or the report file cannot be written
        """
        content = json.dumps(report, indent=2, sort_keys=True, ensure_ascii=False) + '\n'

        temp_path = self.report_path.with_name(f'.{self.report_path.name}.tmp')
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    f.write(content)
                os.replace(temp_path, self.report_path)
            except BaseException:
                temp_path.unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ReportWriteError(f"cannot write {self.report_path}: {e}") from e

        logger.info(f"Saved report: {self.report_path}")


def _validate_report(data: Any, report_path: Path) -> None:
    def fail(where: str, expected: str):
        raise ReportReadError(f"{report_path}: {where} is not {expected}")

    if not isinstance(data, dict):
        fail("the top level", "an object")

    for task, files in data.items():
        if not isinstance(files, dict):
            fail(f"task {task!r}", "an object")

        for relative_path, entry in files.items():
            where = f"{task}/{relative_path}"
            if not isinstance(entry, dict):
                fail(where, "an object")

            base = entry.get('base')
            if not isinstance(base, dict) or not isinstance(base.get('hash'), str):
                fail(f"{where} base", "an object with a hash")

            correspond = entry.get('correspond')
            if not isinstance(correspond, dict):
                fail(f"{where} correspond", "an object")

            for label, value in correspond.items():
                if value is None:
                    continue
                if not isinstance(value, dict) or not isinstance(value.get('hash'), str) or \
                        not isinstance(value.get('baseHash'), str):
                    fail(f"{where} correspond {label!r}", "null or an object with hash and baseHash")
