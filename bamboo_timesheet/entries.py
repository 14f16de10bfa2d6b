"""
Timesheet entry operations.

Creates, deletes and fetches hour entries. Multi-day submissions are
sent as a single batch; the platform applies or rejects the batch as a
whole and nothing is retried entry by entry.
"""

from concurrent.futures import Future
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import requests

from .catalog import Catalog, find_catalog_entry
from .config import Config
from .date_utils import expand_date_range
from .errors import BambooError, ScrapeError
from .http_client import build_request, check_response
from .logging_utils import get_logger, log_step, log_success
from .models import CatalogEntry, HourEntry, TimesheetDay, parse_timesheet
from .session import SessionManager, requires_session


ENTRIES_ENDPOINT = 'timesheet/hour/entries'
TIMESHEET_ENDPOINT = 'timesheet/{timesheet_id}'


def build_hour_entries(entry: CatalogEntry, days: Sequence[date], hours: float,
                       note: str, employee_id: int) -> List[HourEntry]:
    """
    Build one new HourEntry per day, in the order given.

    Entries of a task carry the task id and its project's id; entries of
    a task-less project carry only the project id. dailyEntryId numbers
    the entries 1..n within the batch.

    Args:
        entry: Catalog entry being booked
        days: Days to book, already resolved and ordered
        hours: Hours per day
        note: Note attached to every entry
        employee_id: Employee the entries belong to

    Returns:
        List of entries ready to submit
    """
    return [
        HourEntry(
            id=None,
            date=day,
            hours=hours,
            note=note,
            employee_id=employee_id,
            task_id=entry.task_id,
            project_id=entry.project_id,
            daily_entry_id=index,
        )
        for index, day in enumerate(days, 1)
    ]


def _decode_timesheet(response: requests.Response) -> Dict[date, TimesheetDay]:
    try:
        data = response.json()
    except ValueError as e:
        raise ScrapeError(f"Timesheet response is not JSON: {e}") from e
    return parse_timesheet(data)


class TimesheetClient:
    """
    High level timesheet operations on top of a SessionManager.

    Example:
        >>> with TimesheetClient(config) as client:
        ...     client.submit_range("Development", date(2024, 1, 1), date(2024, 1, 5))
    """

    def __init__(self, config: Config, session_manager: Optional[SessionManager] = None):
        self.config = config
        self.session_manager = session_manager if session_manager is not None else SessionManager(config)
        self.logger = get_logger()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.session_manager.close()

    @requires_session
    def tasks(self) -> Catalog:
        """Return the task catalog of the current session."""
        return self.session_manager.catalog

    @requires_session
    def find_task(self, name: str) -> CatalogEntry:
        """
        Raises:
            TaskNotFoundError: If the name matches no catalog entry
        """
        return find_catalog_entry(self.session_manager.catalog, name)

    def submit(self, entry: CatalogEntry, days: Sequence[date], hours: float,
               note: str = "") -> List[HourEntry]:
        """
        Create one entry per day in a single batch request.

        Returns:
            The entries that were sent

        Raises:
            RequestError: If the batch is rejected (nothing is retried)
        """
        if not days:
            self.logger.info("No days to submit")
            return []

        self.session_manager.ensure_session()
        employee_id = self.session_manager.user.employee_id
        hour_entries = build_hour_entries(entry, days, hours, note, employee_id)
        payload = {'hours': [hour_entry.to_payload() for hour_entry in hour_entries]}

        log_step(f"Submitting {len(hour_entries)} entr{'y' if len(hour_entries) == 1 else 'ies'} "
                 f"for '{entry.label()}' ({hours:g}h each)", self.logger)
        self.session_manager.send(
            lambda context: build_request(context, ENTRIES_ENDPOINT, 'POST', body=payload, accept_json=True)
        )
        log_success(f"Submitted {len(hour_entries)} entries", self.logger)
        return hour_entries

    def submit_range(self, task_name: str, start: date, end: Optional[date] = None,
                     hours: Optional[float] = None, note: str = "",
                     include_weekends: Optional[bool] = None) -> List[HourEntry]:
        """
        Book a task on every day of a date range.

        Args:
            task_name: Catalog name of the task or project
            start: First day
            end: Last day (defaults to start)
            hours: Hours per day (defaults to config.default_hours)
            note: Note for every entry
            include_weekends: Overrides config.include_weekends

        Returns:
            The entries that were sent
        """
        if include_weekends is None:
            include_weekends = self.config.include_weekends
        if hours is None:
            hours = self.config.default_hours

        days = expand_date_range(start, end or start, include_weekends)
        entry = self.find_task(task_name)
        return self.submit(entry, days, hours, note)

    def delete(self, ids: Iterable[int]):
        """
        Delete entries by id in a single batch request.

        Raises:
            RequestError: If the batch is rejected
        """
        ids = list(ids)
        if not ids:
            self.logger.info("No entries to delete")
            return

        log_step(f"Deleting {len(ids)} entr{'y' if len(ids) == 1 else 'ies'}", self.logger)
        self.session_manager.send(
            lambda context: build_request(context, ENTRIES_ENDPOINT, 'DELETE',
                                          body={'entries': ids}, accept_json=True)
        )
        log_success(f"Deleted {len(ids)} entries", self.logger)

    def _timesheet_request(self, context):
        endpoint = TIMESHEET_ENDPOINT.format(timesheet_id=context.meta.timesheet_id)
        return build_request(context, endpoint, accept_json=True)

    def fetch_timesheet(self) -> Dict[date, TimesheetDay]:
        """
        Fetch the current timesheet.

        Returns:
            Days keyed by date, in ascending order
        """
        response = self.session_manager.send(self._timesheet_request)
        return _decode_timesheet(response)

    @requires_session
    def fetch_timesheet_async(self, callback: Callable[[Dict[date, TimesheetDay]], Any],
                              errback: Optional[Callable[[BaseException], Any]] = None) -> Future:
        """
        Fetch the timesheet on a worker thread.

        The session is ensured before returning; `callback` receives the
        decoded days, `errback` any error (including a 401, which is not
        retried in this mode).
        """
        def _on_response(response: requests.Response):
            try:
                days = _decode_timesheet(check_response(response))
            except BambooError as e:
                if errback is not None:
                    errback(e)
                else:
                    self.logger.error(f"Background timesheet fetch failed: {e}")
                return
            callback(days)

        spec = self._timesheet_request(self.session_manager.context)
        return self.session_manager.http.send_async(spec, _on_response, errback)
