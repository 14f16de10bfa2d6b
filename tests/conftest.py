"""Shared fixtures: a fake BambooHR server behind a mocked transport."""

import json
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from requests.cookies import RequestsCookieJar

from bamboo_timesheet.config import Config
from bamboo_timesheet.credentials import Credential
from bamboo_timesheet.session import SessionManager


HOST = 'acme.bamboohr.com'

LOGIN_HTML = """<html><head><script>
var CSRF_TOKEN = "tok-login";
</script></head><body>Welcome</body></html>"""

HOME_HTML = """<html><head><script>
var SESSION_USER={"employeeId": 42, "displayName": "Ada Lovelace", "prefs": {"a": "}"}};
window.time_tracking = {
  "timesheetId": 99,
  "projectsWithTasks": {
    "byId": {
      "1": {"id": 1, "name": "Internal", "tasks": {"byId": [], "allIds": []}},
      "2": {"id": 2, "name": "Client", "tasks": {
        "byId": {"21": {"id": 21, "name": "Dev"}, "22": {"id": 22, "name": "QA"}},
        "allIds": [21, 22]}}
    },
    "allIds": [1, 2]
  }
};
</script></head><body></body></html>"""

TIMESHEET_JSON = {
    "timesheet": {
        "id": 99,
        "dailyDetails": {
            "2024-01-02": {
                "date": "2024-01-02",
                "totalHours": 8,
                "hourEntries": [
                    {"id": 501, "date": "2024-01-02", "hours": 6, "projectName": "Client",
                     "taskName": "Dev", "note": "sprint"},
                    {"id": 502, "date": "2024-01-02", "hours": 2, "projectName": "Internal",
                     "taskName": None, "note": ""},
                ],
            },
            "2024-01-01": {"date": "2024-01-01", "totalHours": 0, "hourEntries": []},
        },
    }
}


def make_response(status_code=200, text="", json_data=None, url=None):
    """Build a fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    response.url = url or f"https://{HOST}/"
    if json_data is not None:
        response.text = json.dumps(json_data)
        response.json.return_value = json_data
    else:
        response.text = text
        response.json.side_effect = ValueError("No JSON object could be decoded")
    return response


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 1, 1, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeBamboo:
    """
    Routes RequestSpecs to canned responses.

    Status overrides are consumed per path, e.g.
    statuses={'auth/check_session?isOnboarding=false': [401]}.
    """

    def __init__(self, statuses=None):
        self.calls = []
        self.statuses = {path: list(codes) for path, codes in (statuses or {}).items()}
        self.check_token = 'tok-check'
        self.minutes_left = 30

    def path_of(self, spec):
        return spec.url.split(f"{HOST}/", 1)[1]

    def count(self, path, method=None):
        return sum(
            1 for spec in self.calls
            if self.path_of(spec) == path and (method is None or spec.method == method)
        )

    def __call__(self, spec):
        self.calls.append(spec)
        path = self.path_of(spec)

        queued = self.statuses.get(path)
        if queued:
            status = queued.pop(0)
            if status >= 400:
                return make_response(status, text="denied", url=spec.url)

        if path == 'login.php':
            return make_response(text=LOGIN_HTML, url=spec.url)
        if path == 'auth/trusted_browser':
            return make_response(text="", url=spec.url)
        if path == 'home':
            return make_response(text=HOME_HTML, url=spec.url)
        if path == 'auth/check_session?isOnboarding=false':
            return make_response(json_data={"SessionMinutesLeft": self.minutes_left,
                                            "CSRFToken": self.check_token}, url=spec.url)
        if path == 'timesheet/99':
            return make_response(json_data=TIMESHEET_JSON, url=spec.url)
        if path == 'timesheet/hour/entries':
            return make_response(json_data={"ok": True}, url=spec.url)
        return make_response(404, text="not found", url=spec.url)


@pytest.fixture
def config():
    return Config(organization='acme')


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def server():
    return FakeBamboo()


@pytest.fixture
def http(server):
    transport = MagicMock()
    transport.cookies = RequestsCookieJar()
    transport.send.side_effect = server
    return transport


@pytest.fixture
def credential_store():
    store = MagicMock()
    store.lookup.return_value = Credential(host=HOST, username='ada', resolve_secret=lambda: 's3cret')
    return store


@pytest.fixture
def manager(config, credential_store, http, clock):
    return SessionManager(config, credential_store=credential_store, http=http, clock=clock)
