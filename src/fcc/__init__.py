__version__ = '0.1.0'

from .checker import Checker, CheckResult
from .config import CheckConfig, CheckMapItem, ConfigLoadError, load_config, init_config
from .commands.check import CheckError, EnumerationError, HashError, CheckOutput
from .report.store import ReportStore, ReportReadError, ReportWriteError
from .report.diff import Drift, DriftType, ReportChange, ChangeType, find_drift, compare_reports
from .utils.processor import Processor
