"""
Data models for the BambooHR timesheet client.

This module defines the typed records decoded from BambooHR pages and
endpoints: the session user, the time tracking metadata with its
project/task catalog, catalog entries, and timesheet days and entries.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .errors import ScrapeError


def _require(data: Dict[str, Any], key: str, what: str) -> Any:
    if key not in data or data[key] is None:
        raise ScrapeError(f"{what} is missing required field '{key}'")
    return data[key]


def _collection(value: Any) -> List[Dict[str, Any]]:
    """
    Normalize a BambooHR collection into a list of objects.

    Collections arrive as {"byId": {...}, "allIds": [...]}; an empty
    collection has "byId" set to [] instead of {}. Plain lists are
    accepted as well.
    """
    if not value:
        return []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    if not isinstance(value, dict):
        return []

    by_id = value.get('byId', value)
    if not isinstance(by_id, dict):
        return []

    all_ids = value.get('allIds')
    if isinstance(all_ids, list) and all_ids:
        ordered = [by_id.get(str(item_id), by_id.get(item_id)) for item_id in all_ids]
        return [item for item in ordered if isinstance(item, dict)]
    return [item for item in by_id.values() if isinstance(item, dict)]


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ScrapeError(f"Invalid date value: {value!r}")


@dataclass
class SessionUser:
    """
    Profile of the logged-in user.

    Attributes:
        employee_id: Employee identifier used on hour entries
        display_name: Name shown in the UI
    """
    employee_id: int
    display_name: str = ""

    @classmethod
    def from_json(cls, data: Any) -> 'SessionUser':
        """
        Decode the SESSION_USER object embedded in the landing page.

        Raises:
            ScrapeError: If the value is not an object or lacks an employee id
        """
        if not isinstance(data, dict):
            raise ScrapeError("SESSION_USER is not an object")

        employee_id = _require(data, 'employeeId', 'SESSION_USER')
        display_name = (
            data.get('displayName')
            or data.get('preferredFullName')
            or data.get('name')
            or f"{data.get('firstName', '')} {data.get('lastName', '')}".strip()
        )
        return cls(employee_id=employee_id, display_name=display_name)


@dataclass
class Task:
    """A billable task belonging to a project."""
    id: int
    name: str
    project_id: Optional[int] = None


@dataclass
class Project:
    """
    A billable project.

    Attributes:
        id: Project identifier
        name: Project name
        tasks: Tasks under the project (empty when the project is booked directly)
    """
    id: int
    name: str
    tasks: List[Task] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'Project':
        project_id = _require(data, 'id', 'Project')
        project = cls(id=project_id, name=str(_require(data, 'name', 'Project')))
        for task_data in _collection(data.get('tasks')):
            project.tasks.append(Task(
                id=_require(task_data, 'id', 'Task'),
                name=str(_require(task_data, 'name', 'Task')),
                project_id=project_id,
            ))
        return project


@dataclass
class TimeTrackingMeta:
    """
    Organization-wide time tracking configuration.

    Attributes:
        timesheet_id: Identifier of the current timesheet
        projects: Projects with their tasks, in platform order
    """
    timesheet_id: int
    projects: List[Project] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> 'TimeTrackingMeta':
        """
        Decode the window.time_tracking object embedded in the landing page.

        Raises:
            ScrapeError: If the value is not an object or lacks a timesheet id
        """
        if not isinstance(data, dict):
            raise ScrapeError("window.time_tracking is not an object")

        timesheet_id = data.get('timesheetId')
        if timesheet_id is None and isinstance(data.get('timesheet'), dict):
            timesheet_id = data['timesheet'].get('id')
        if timesheet_id is None:
            raise ScrapeError("window.time_tracking is missing required field 'timesheetId'")

        projects = [Project.from_json(item) for item in _collection(data.get('projectsWithTasks'))]
        return cls(timesheet_id=timesheet_id, projects=projects)


@dataclass(frozen=True)
class ParentRef:
    """Reference to the project a catalog entry belongs to."""
    id: int
    name: str


@dataclass(frozen=True)
class CatalogEntry:
    """
    A selectable unit of work.

    Attributes:
        name: Display name (task name, or project name for task-less projects)
        id: Task id, or project id when there is no parent
        parent: Owning project, None for task-less projects
    """
    name: str
    id: int
    parent: Optional[ParentRef] = None

    @property
    def project_id(self) -> int:
        return self.parent.id if self.parent else self.id

    @property
    def task_id(self) -> Optional[int]:
        return self.id if self.parent else None

    def label(self) -> str:
        """Name with its project prefix, for listings."""
        if self.parent:
            return f"{self.parent.name} / {self.name}"
        return self.name


@dataclass
class HourEntry:
    """
    One time entry.

    Attributes:
        id: Server id (None for entries being created)
        date: Day the hours are booked on
        hours: Number of hours
        note: Free-text note
        employee_id: Employee the entry belongs to
        task_id: Task id (None when booked directly on a project)
        project_id: Project id
        daily_entry_id: 1-based position within a submit batch
        project_name: Project name as reported by the timesheet endpoint
        task_name: Task name as reported by the timesheet endpoint
    """
    id: Optional[int]
    date: date
    hours: float
    note: str = ""
    employee_id: Optional[int] = None
    task_id: Optional[int] = None
    project_id: Optional[int] = None
    daily_entry_id: Optional[int] = None
    project_name: Optional[str] = None
    task_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize the entry the way the batch create endpoint expects it."""
        return {
            'id': self.id,
            'dailyEntryId': self.daily_entry_id,
            'employeeId': self.employee_id,
            'date': self.date.isoformat(),
            'hours': self.hours,
            'note': self.note,
            'projectId': self.project_id,
            'taskId': self.task_id,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any], day: Optional[date] = None) -> 'HourEntry':
        entry_date = _parse_date(data['date']) if data.get('date') else day
        return cls(
            id=data.get('id'),
            date=entry_date,
            hours=float(data.get('hours') or 0),
            note=data.get('note') or "",
            employee_id=data.get('employeeId'),
            task_id=data.get('taskId'),
            project_id=data.get('projectId'),
            daily_entry_id=data.get('dailyEntryId'),
            project_name=data.get('projectName'),
            task_name=data.get('taskName'),
        )


@dataclass
class TimesheetDay:
    """
    One calendar day of a timesheet.

    Attributes:
        date: The day
        total_hours: Aggregate hours reported by the server
        entries: Individual hour entries
    """
    date: date
    total_hours: float = 0.0
    entries: List[HourEntry] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any], key: Optional[str] = None) -> 'TimesheetDay':
        day = _parse_date(data.get('date') or key)
        entries = [HourEntry.from_json(item, day) for item in data.get('hourEntries') or []]
        total = data.get('totalHours')
        if total is None:
            total = sum(entry.hours for entry in entries)
        return cls(date=day, total_hours=float(total), entries=entries)


def parse_timesheet(data: Any) -> Dict[date, TimesheetDay]:
    """
    Decode a timesheet response into days keyed by date.

    The daily details are read from "timesheet.dailyDetails" or a top
    level "dailyDetails" mapping of ISO date to day object.

    Raises:
        ScrapeError: If the response carries no daily details
    """
    if not isinstance(data, dict):
        raise ScrapeError("Timesheet response is not an object")

    details = data.get('dailyDetails')
    if details is None and isinstance(data.get('timesheet'), dict):
        details = data['timesheet'].get('dailyDetails')
    if details is None:
        raise ScrapeError("Timesheet response is missing 'dailyDetails'")
    if isinstance(details, list):
        # Empty mappings are serialized as []
        details = {}

    days = {}
    for key, day_data in details.items():
        day = TimesheetDay.from_json(day_data, key)
        days[day.date] = day
    return dict(sorted(days.items()))
