"""
Tests for CLI argument parsing and command execution.

TimesheetClient is patched so no command touches the network.
"""

from argparse import Namespace
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from bamboo_timesheet.cli import (
    build_config,
    create_parser,
    filter_days,
    format_tasks,
    format_timesheet,
    main,
)
from bamboo_timesheet.config import Config
from bamboo_timesheet.errors import AuthError, NetworkError
from bamboo_timesheet.models import CatalogEntry, HourEntry, ParentRef, TimesheetDay


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.delenv('BAMBOO_ORGANIZATION', raising=False)
    monkeypatch.delenv('BAMBOO_INCLUDE_WEEKENDS', raising=False)
    monkeypatch.delenv('BAMBOO_DEFAULT_HOURS', raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def mock_client():
    with patch('bamboo_timesheet.cli.TimesheetClient') as client_class:
        client = MagicMock()
        client_class.return_value.__enter__.return_value = client
        yield client


class TestCreateParser:
    """Tests for create_parser function."""

    def test_parser_creation(self):
        parser = create_parser()
        assert parser.prog == 'bamboo_timesheet'

    def test_add_command(self):
        args = create_parser().parse_args([
            'add', '--task', 'Dev', '--from', '2024-01-01', '--to', '2024-01-05',
            '--hours', '6', '--note', 'sprint', '--org', 'acme',
        ])
        assert args.command == 'add'
        assert args.task == 'Dev'
        assert args.start == '2024-01-01'
        assert args.end == '2024-01-05'
        assert args.hours == 6.0
        assert args.note == 'sprint'
        assert args.org == 'acme'
        assert args.include_weekends is None

    def test_add_defaults(self):
        args = create_parser().parse_args(['add', '--task', 'Dev'])
        assert args.start == 'today'
        assert args.end is None
        assert args.hours is None
        assert args.dry_run is False

    def test_task_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['add'])

    def test_weekend_flags(self):
        parser = create_parser()
        assert parser.parse_args(['add', '--task', 'Dev', '--weekends']).include_weekends is True
        assert parser.parse_args(['add', '--task', 'Dev', '--no-weekends']).include_weekends is False

    def test_weekend_flags_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['add', '--task', 'Dev', '--weekends', '--no-weekends'])

    def test_delete_ids(self):
        args = create_parser().parse_args(['delete', '1', '2'])
        assert args.ids == [1, 2]

    def test_delete_requires_ids(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['delete'])

    def test_verbose_flag(self):
        args = create_parser().parse_args(['tasks', '-v'])
        assert args.verbose is True


class TestBuildConfig:
    """Tests for build_config function."""

    def test_org_override(self, monkeypatch):
        monkeypatch.setenv('BAMBOO_ORGANIZATION', 'fromenv')
        config = build_config(Namespace(org='acme', env_file=None, verbose=True))
        assert config.organization == 'acme'
        assert config.verbose is True

    def test_org_from_environment(self, monkeypatch):
        monkeypatch.setenv('BAMBOO_ORGANIZATION', 'fromenv')
        config = build_config(Namespace(org=None, env_file=None, verbose=False))
        assert config.organization == 'fromenv'

    def test_missing_org(self):
        with pytest.raises(ValueError, match="Organization is required"):
            build_config(Namespace(org=None, env_file=None, verbose=False))


class TestFormatting:

    def test_format_tasks(self):
        catalog = {
            'Vacation': CatalogEntry(name='Vacation', id=1),
            'Dev': CatalogEntry(name='Dev', id=21, parent=ParentRef(id=2, name='Client')),
        }
        assert format_tasks(catalog) == "Vacation\nDev  [Client]"

    def test_format_timesheet(self):
        day = date(2024, 1, 2)
        days = {day: TimesheetDay(date=day, total_hours=8, entries=[
            HourEntry(id=501, date=day, hours=8, note='sprint', project_name='Client', task_name='Dev'),
        ])}
        text = format_timesheet(days)
        assert "2024-01-02 Tue" in text
        assert "#501" in text
        assert "Client / Dev" in text
        assert "(sprint)" in text
        assert "Total: 8.00h" in text

    def test_format_empty(self):
        assert format_timesheet({}) == "No timesheet entries."

    def test_filter_days(self):
        days = {date(2024, 1, d): TimesheetDay(date=date(2024, 1, d)) for d in (1, 2, 3)}
        assert list(filter_days(days, date(2024, 1, 2), None)) == [date(2024, 1, 2), date(2024, 1, 3)]
        assert list(filter_days(days, None, date(2024, 1, 1))) == [date(2024, 1, 1)]


class TestMain:
    """Tests for the main entry point."""

    def test_no_command(self):
        assert main([]) == 1

    def test_missing_org(self, mock_client):
        assert main(['tasks']) == 1
        mock_client.tasks.assert_not_called()

    def test_tasks(self, mock_client, capsys):
        mock_client.tasks.return_value = {'Vacation': CatalogEntry(name='Vacation', id=1)}
        assert main(['tasks', '--org', 'acme']) == 0
        assert "Vacation" in capsys.readouterr().out

    def test_show(self, mock_client, capsys):
        day = date(2024, 1, 2)
        mock_client.fetch_timesheet.return_value = {day: TimesheetDay(date=day, total_hours=3)}
        assert main(['show', '--org', 'acme', '--from', '2024-01-01']) == 0
        assert "2024-01-02" in capsys.readouterr().out

    def test_add(self, mock_client):
        entry = CatalogEntry(name='Dev', id=21, parent=ParentRef(id=2, name='Client'))
        mock_client.find_task.return_value = entry

        code = main(['add', '--org', 'acme', '--task', 'Dev', '--from', '2024-01-01',
                     '--to', '2024-01-07', '--note', 'n'])

        assert code == 0
        mock_client.find_task.assert_called_once_with('Dev')
        submitted_entry, days, hours, note = mock_client.submit.call_args[0]
        assert submitted_entry is entry
        assert days == [date(2024, 1, d) for d in range(1, 6)]
        assert hours == 8.0
        assert note == 'n'

    def test_add_with_weekends(self, mock_client):
        main(['add', '--org', 'acme', '--task', 'Dev', '--from', '2024-01-06',
              '--to', '2024-01-07', '--weekends', '--hours', '2'])
        _, days, hours, _ = mock_client.submit.call_args[0]
        assert days == [date(2024, 1, 6), date(2024, 1, 7)]
        assert hours == 2.0

    def test_add_weekend_only_range(self, mock_client):
        assert main(['add', '--org', 'acme', '--task', 'Dev', '--from', '2024-01-06',
                     '--to', '2024-01-07']) == 1
        mock_client.submit.assert_not_called()

    def test_add_dry_run(self, mock_client):
        assert main(['add', '--org', 'acme', '--task', 'Dev', '--from', '2024-01-01', '--dry-run']) == 0
        mock_client.submit.assert_not_called()
        mock_client.find_task.assert_not_called()

    def test_add_invalid_hours(self, mock_client):
        assert main(['add', '--org', 'acme', '--task', 'Dev', '--hours', '30']) == 1
        mock_client.submit.assert_not_called()

    def test_add_invalid_date(self, mock_client):
        assert main(['add', '--org', 'acme', '--task', 'Dev', '--from', 'someday']) == 1

    def test_delete(self, mock_client):
        assert main(['delete', '--org', 'acme', '501', '502']) == 0
        mock_client.delete.assert_called_once_with([501, 502])

    def test_auth_error(self, mock_client):
        mock_client.tasks.side_effect = AuthError("No credentials found for acme.bamboohr.com")
        assert main(['tasks', '--org', 'acme']) == 1

    def test_network_error(self, mock_client):
        mock_client.delete.side_effect = NetworkError("Connection refused")
        assert main(['delete', '--org', 'acme', '1']) == 1

    def test_keyboard_interrupt(self, mock_client):
        mock_client.fetch_timesheet.side_effect = KeyboardInterrupt
        assert main(['show', '--org', 'acme']) == 130
