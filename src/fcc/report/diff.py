"""Comparison helpers for reports.

These sit outside the check itself: the engine only produces reports, while drift and
run-to-run changes are derived from them here for display.
"""
from enum import StrEnum
from typing import NamedTuple

from ..commands.check import CheckMapItemFileOutput, CheckOutput


class DriftType(StrEnum):
    MISMATCH = 'mismatch'
    MISSING = 'missing'


class Drift(NamedTuple):
    """A corresponding file that does not match its base file."""
    task: str
    path: str
    label: str
    type: DriftType

    def description(self) -> str:
        if self.type == DriftType.MISSING:
            return f"{self.task}: {self.path}: missing in {self.label}"
        return f"{self.task}: {self.path}: {self.label} differs from base"


class ChangeType(StrEnum):
    ADDED = 'added'
    REMOVED = 'removed'
    MODIFIED = 'modified'


class ReportChange(NamedTuple):
    """A file entry that differs between two reports.

    Attributes:
        task: Task the entry belongs to
        path: Base-relative path of the entry
        type: Whether the entry appeared, disappeared or changed
        fields: For modified entries, the parts that changed: 'base' or 'correspond.<label>'
    """
    task: str
    path: str
    type: ChangeType
    fields: tuple[str, ...] = ()

    def description(self) -> str:
        if self.type == ChangeType.MODIFIED:
            return f"{self.task}: {self.path}: modified ({', '.join(self.fields)})"
        return f"{self.task}: {self.path}: {self.type}"


def find_drift(report: CheckOutput) -> list[Drift]:
    """List every corresponding file that is missing or whose hash differs from its base."""
    drifts = []
    for task in sorted(report):
        files = report[task]
        for path in sorted(files):
            correspond = files[path]['correspond']
            for label in sorted(correspond):
                value = correspond[label]
                if value is None:
                    drifts.append(Drift(task, path, label, DriftType.MISSING))
                elif value['hash'] != value['baseHash']:
                    drifts.append(Drift(task, path, label, DriftType.MISMATCH))
    return drifts


def compare_reports(previous: CheckOutput | None, current: CheckOutput) -> list[ReportChange]:
    """List the entries that were added, removed or modified since the previous report.

    With no previous report every current entry counts as added.
    """
    if previous is None:
        previous = {}

    changes = []
    for task in sorted(previous.keys() | current.keys()):
        before = previous.get(task, {})
        after = current.get(task, {})

        for path in sorted(before.keys() | after.keys()):
            if path not in before:
                changes.append(ReportChange(task, path, ChangeType.ADDED))
            elif path not in after:
                changes.append(ReportChange(task, path, ChangeType.REMOVED))
            else:
                fields = _changed_fields(before[path], after[path])
                if fields:
                    changes.append(ReportChange(task, path, ChangeType.MODIFIED, fields))

    return changes


def _changed_fields(before: CheckMapItemFileOutput, after: CheckMapItemFileOutput) -> tuple[str, ...]:
    fields = []
    if before['base'] != after['base']:
        fields.append('base')

    correspond_before = before['correspond']
    correspond_after = after['correspond']
    for label in sorted(correspond_before.keys() | correspond_after.keys()):
        # a label absent from one report differs from one recorded as missing (None)
        if label not in correspond_before or label not in correspond_after or \
                correspond_before[label] != correspond_after[label]:
            fields.append(f'correspond.{label}')

    return tuple(fields)
