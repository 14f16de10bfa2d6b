"""
BambooHR Timesheet - batch time entry for BambooHR.

This package logs in to a BambooHR organization the way the web
application does, keeps the session alive, and creates or deletes
timesheet entries for whole date ranges in one request.
"""

__version__ = '1.0.0'

from .config import Config, load_config
from .date_utils import expand_date_range
from .entries import TimesheetClient, build_hour_entries
from .errors import (
    AuthError,
    BambooError,
    DateRangeError,
    NetworkError,
    RequestError,
    ScrapeError,
    SessionExpiredError,
    TaskNotFoundError,
    UnauthorizedError,
)
from .catalog import flatten_catalog
from .session import SessionContext, SessionManager

__all__ = [
    'Config',
    'load_config',
    'expand_date_range',
    'TimesheetClient',
    'build_hour_entries',
    'flatten_catalog',
    'SessionContext',
    'SessionManager',
    'AuthError',
    'BambooError',
    'DateRangeError',
    'NetworkError',
    'RequestError',
    'ScrapeError',
    'SessionExpiredError',
    'TaskNotFoundError',
    'UnauthorizedError',
]
