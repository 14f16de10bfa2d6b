"""
Command-line interface for the BambooHR timesheet client.

This module provides the CLI using argparse and wires configuration,
credentials and the timesheet operations together.
"""

import argparse
import sys
from datetime import date
from typing import Dict, List, Optional

from .catalog import Catalog
from .config import Config, load_config
from .date_utils import expand_date_range, parse_date
from .entries import TimesheetClient
from .errors import BambooError, NetworkError
from .http_client import format_network_error
from .logging_utils import setup_logging, get_logger, log_section, log_error
from .models import TimesheetDay


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--org',
        metavar='NAME',
        help='BambooHR organization (overrides BAMBOO_ORGANIZATION)'
    )
    common.add_argument(
        '--env-file',
        metavar='PATH',
        help='Load settings from this .env file'
    )
    common.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging (debug level)'
    )

    parser = argparse.ArgumentParser(
        prog='bamboo_timesheet',
        description='Manage BambooHR timesheet entries from the command line',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List the tasks you can book on
  python -m bamboo_timesheet tasks --org acme

  # Show this period's timesheet
  python -m bamboo_timesheet show --from 2024-01-01 --to 2024-01-07

  # Book 8 hours per working day for a week
  python -m bamboo_timesheet add --task Development --from 2024-01-01 --to 2024-01-07

  # Delete entries by id
  python -m bamboo_timesheet delete 1234 1235
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    subparsers.add_parser('tasks', parents=[common], help='List bookable tasks and projects')

    show_parser = subparsers.add_parser('show', parents=[common], help='Show timesheet entries')
    show_parser.add_argument('--from', dest='start', metavar='DATE', help='First day to show')
    show_parser.add_argument('--to', dest='end', metavar='DATE', help='Last day to show')

    add_parser = subparsers.add_parser('add', parents=[common], help='Add entries for a date range')
    add_parser.add_argument('--task', required=True, metavar='NAME', help='Task or project name')
    add_parser.add_argument('--from', dest='start', default='today', metavar='DATE',
                            help='First day (YYYY-MM-DD, today, yesterday, +N/-N; default: today)')
    add_parser.add_argument('--to', dest='end', metavar='DATE', help='Last day (default: same as --from)')
    add_parser.add_argument('--hours', type=float, metavar='H', help='Hours per day (default: configured)')
    add_parser.add_argument('--note', default='', help='Note for every entry')
    weekend_group = add_parser.add_mutually_exclusive_group()
    weekend_group.add_argument('--weekends', dest='include_weekends', action='store_true', default=None,
                               help='Include Saturdays and Sundays')
    weekend_group.add_argument('--no-weekends', dest='include_weekends', action='store_false',
                               help='Skip Saturdays and Sundays')
    add_parser.add_argument('--dry-run', action='store_true',
                            help='Show the days that would be booked without contacting BambooHR')

    delete_parser = subparsers.add_parser('delete', parents=[common], help='Delete entries by id')
    delete_parser.add_argument('ids', type=int, nargs='+', metavar='ID', help='Entry ids')

    return parser


def build_config(args: argparse.Namespace) -> Config:
    """
    Load configuration and apply command-line overrides.

    Raises:
        ValueError: If the resulting configuration is invalid
    """
    config = load_config(getattr(args, 'env_file', None))
    if getattr(args, 'org', None):
        config.organization = args.org
    config.verbose = getattr(args, 'verbose', False)
    config.validate()
    return config


def format_tasks(catalog: Catalog) -> str:
    lines = []
    for name, entry in catalog.items():
        if entry.parent:
            lines.append(f"{name}  [{entry.parent.name}]")
        else:
            lines.append(name)
    return "\n".join(lines)


def format_timesheet(days: Dict[date, TimesheetDay]) -> str:
    """Render timesheet days as plain text, one block per day."""
    if not days:
        return "No timesheet entries."

    lines = []
    total = 0.0
    for day, record in days.items():
        total += record.total_hours
        lines.append(f"{day.isoformat()} {day:%a}  {record.total_hours:5.2f}h")
        for entry in record.entries:
            label = entry.project_name or ""
            if entry.task_name:
                label = f"{label} / {entry.task_name}" if label else entry.task_name
            note = f"  ({entry.note})" if entry.note else ""
            lines.append(f"    #{entry.id}  {entry.hours:5.2f}h  {label}{note}")
    lines.append(f"Total: {total:.2f}h")
    return "\n".join(lines)


def filter_days(days: Dict[date, TimesheetDay], start: Optional[date],
                end: Optional[date]) -> Dict[date, TimesheetDay]:
    return {
        day: record for day, record in days.items()
        if (start is None or day >= start) and (end is None or day <= end)
    }


def cmd_tasks(args: argparse.Namespace, config: Config) -> int:
    with TimesheetClient(config) as client:
        catalog = client.tasks()
    print(format_tasks(catalog))
    return 0


def cmd_show(args: argparse.Namespace, config: Config) -> int:
    start = parse_date(args.start) if args.start else None
    end = parse_date(args.end) if args.end else None

    with TimesheetClient(config) as client:
        days = client.fetch_timesheet()
    print(format_timesheet(filter_days(days, start, end)))
    return 0


def cmd_add(args: argparse.Namespace, config: Config) -> int:
    """
    Execute the add command.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    logger = get_logger()
    start = parse_date(args.start)
    end = parse_date(args.end) if args.end else start
    include_weekends = config.include_weekends if args.include_weekends is None else args.include_weekends
    hours = config.default_hours if args.hours is None else args.hours

    if not (0 < hours <= 24):
        log_error(f"Hours must be between 0 and 24, got: {hours}", logger)
        return 1

    days: List[date] = expand_date_range(start, end, include_weekends)
    if not days:
        log_error("No days to book in the given range", logger)
        return 1

    if args.dry_run:
        log_section("Dry Run", logger)
        for day in days:
            logger.info(f"  {day.isoformat()} {day:%a}: {hours:g}h on '{args.task}'")
        logger.info("No entries submitted.")
        return 0

    with TimesheetClient(config) as client:
        entry = client.find_task(args.task)
        client.submit(entry, days, hours, args.note)
    return 0


def cmd_delete(args: argparse.Namespace, config: Config) -> int:
    with TimesheetClient(config) as client:
        client.delete(args.ids)
    return 0


COMMANDS = {
    'tasks': cmd_tasks,
    'show': cmd_show,
    'add': cmd_add,
    'delete': cmd_delete,
}


def main(argv=None):
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=getattr(args, 'verbose', False))
    logger = get_logger()

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = build_config(args)
    except ValueError as e:
        log_error(f"Configuration error: {e}", logger)
        return 1

    try:
        return COMMANDS[args.command](args, config)
    except KeyboardInterrupt:
        logger.warning("Operation cancelled by user")
        return 130
    except NetworkError as e:
        log_error(format_network_error(config.host, str(e)), logger)
        return 1
    except BambooError as e:
        log_error(str(e), logger)
        return 1


if __name__ == '__main__':
    sys.exit(main())
