import argparse
import logging
import sys
import textwrap
from functools import wraps

from . import __version__, Checker, Processor
from .config import DEFAULT_CONFIG_FILENAME, ConfigLoadError, load_config, init_config
from .commands.check import CheckError
from .report.diff import compare_reports, find_drift
from .report.store import ReportWriteError


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def needs_processor(func):
    """Decorator for commands that hash files.

    The decorated function will receive (processor, args).
    The wrapper function takes (args) and creates the Processor around the call.
    """
    @wraps(func)
    def wrapper(args):
        with Processor(args.concurrency) as processor:
            return func(processor, args)
    return wrapper


def fcc_main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog='fcc',
        description='Verify that files and their copies in other directories keep identical content, using '
                    'content hashes.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              fcc init
              fcc check --config path/to/fcc.config.toml
            ''').strip()
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}')
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Show a summary per task and the changes since the previous report')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file for operation logging. If not provided, logs go to stderr when '
             '--log-level is given and only warnings are shown otherwise.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when --log-file is provided.')
    subparsers = parser.add_subparsers(
        dest='command',
        title='Commands',
        description='Available commands',
        help='Use "fcc COMMAND --help" for command-specific help',
        required=True
    )

    parser_init = subparsers.add_parser(
        'init',
        help='Create a configuration file if it does not already exist',
        description='Writes a starter configuration file. Fails if the file already exists.')
    parser_init.add_argument(
        '-c', '--config',
        metavar='PATH',
        default=DEFAULT_CONFIG_FILENAME,
        help=f'Path of the configuration file to create (default: {DEFAULT_CONFIG_FILENAME})')
    parser_init.set_defaults(method=_init)

    parser_check = subparsers.add_parser(
        'check',
        help='Verify the consistency of files',
        description='Hashes the base files of every task and their counterparts in each correspond directory, '
                    'then replaces the stored report in the output directory with the new one.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              fcc check
              fcc check -c docs/fcc.config.toml --strict

            Every file that is missing or different in a correspond directory is printed.
            The report is written to fcc.output.json in the output directory.
            ''').strip())
    parser_check.add_argument(
        '-c', '--config',
        metavar='PATH',
        default=DEFAULT_CONFIG_FILENAME,
        help=f'Path of the configuration file (default: {DEFAULT_CONFIG_FILENAME})')
    parser_check.add_argument(
        '--concurrency',
        type=_positive_int,
        metavar='N',
        help='Number of worker processes used for hashing (default: number of CPUs)')
    parser_check.add_argument(
        '--strict',
        action='store_true',
        help='Exit with status 1 when any file is missing or different in a correspond directory')
    parser_check.set_defaults(method=_check)

    args = parser.parse_args(argv)

    # Configure logging from CLI argument if provided
    if args.log_file:
        # Determine log level: use --log-level if provided, otherwise default to INFO
        log_level = args.log_level
        if log_level is None:
            log_level = 'INFO'

        logging.basicConfig(
            filename=args.log_file,
            level=getattr(logging, log_level),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    elif args.log_level is not None:
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    try:
        status = args.method(args)
    except (ConfigLoadError, CheckError, ReportWriteError, OSError) as e:
        print(f"fcc: error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(status)


def _init(args) -> int:
    config_path = init_config(args.config)
    if args.verbose:
        print(f"Created {config_path}")
    return 0


@needs_processor
def _check(processor: Processor, args) -> int:
    config = load_config(args.config)
    result = Checker(processor, config).check()

    if args.verbose:
        for task in sorted(result.current):
            print(f"{task}: {len(result.current[task])} file(s) checked")
        for change in compare_reports(result.previous, result.current):
            print(f"changed: {change.description()}")

    drifts = find_drift(result.current)
    for drift in drifts:
        print(drift.description())

    if drifts and args.strict:
        return 1
    return 0


if __name__ == '__main__':
    fcc_main()
