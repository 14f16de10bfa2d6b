"""Tests for configuration loading and validation."""

from unittest.mock import patch

import pytest

from bamboo_timesheet.config import Config, load_config


ENV_VARS = (
    'BAMBOO_ORGANIZATION',
    'BAMBOO_INCLUDE_WEEKENDS',
    'BAMBOO_DEFAULT_HOURS',
    'BAMBOO_TIMEZONE',
    'BAMBOO_TIMEOUT',
    'BAMBOO_AUTHINFO',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestConfig:
    """Tests for the Config dataclass."""

    def test_host(self):
        config = Config(organization='acme')
        assert config.host == 'acme.bamboohr.com'

    def test_defaults(self):
        config = Config(organization='acme')
        assert config.include_weekends is False
        assert config.default_hours == 8.0
        assert config.timeout is None

    def test_valid(self):
        Config(organization='my-company').validate()

    def test_missing_organization(self):
        with pytest.raises(ValueError, match="Organization is required"):
            Config().validate()

    def test_invalid_organization(self):
        with pytest.raises(ValueError, match="Invalid organization"):
            Config(organization='acme.evil.com/').validate()

    def test_invalid_hours(self):
        with pytest.raises(ValueError, match="Default hours"):
            Config(organization='acme', default_hours=0).validate()

    def test_invalid_timeout(self):
        with pytest.raises(ValueError, match="Timeout"):
            Config(organization='acme', timeout=-1).validate()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self):
        config = load_config()
        assert config.organization is None
        assert config.include_weekends is False
        assert config.default_hours == 8.0
        assert config.timezone == 'UTC'

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv('BAMBOO_ORGANIZATION', 'acme')
        monkeypatch.setenv('BAMBOO_INCLUDE_WEEKENDS', 'yes')
        monkeypatch.setenv('BAMBOO_DEFAULT_HOURS', '7.5')
        monkeypatch.setenv('BAMBOO_TIMEZONE', 'Europe/Berlin')
        monkeypatch.setenv('BAMBOO_TIMEOUT', '20')
        monkeypatch.setenv('BAMBOO_AUTHINFO', '~/.authinfo.gpg')

        config = load_config()
        assert config.organization == 'acme'
        assert config.include_weekends is True
        assert config.default_hours == 7.5
        assert config.timezone == 'Europe/Berlin'
        assert config.timeout == 20.0
        assert config.authinfo_path == '~/.authinfo.gpg'

    def test_invalid_boolean(self, monkeypatch):
        monkeypatch.setenv('BAMBOO_INCLUDE_WEEKENDS', 'sometimes')
        with pytest.raises(ValueError, match="BAMBOO_INCLUDE_WEEKENDS"):
            load_config()

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv('BAMBOO_DEFAULT_HOURS', 'eight')
        with pytest.raises(ValueError, match="BAMBOO_DEFAULT_HOURS"):
            load_config()

    @patch('bamboo_timesheet.config.load_dotenv')
    def test_explicit_env_file(self, mock_load_dotenv):
        load_config('custom.env')
        mock_load_dotenv.assert_called_once_with('custom.env')

    @patch('bamboo_timesheet.config.load_dotenv')
    def test_local_env_file(self, mock_load_dotenv, tmp_path):
        (tmp_path / '.env').write_text("BAMBOO_ORGANIZATION=acme\n")
        load_config()
        mock_load_dotenv.assert_called_once_with('.env')

    @patch('bamboo_timesheet.config.load_dotenv')
    def test_no_env_file(self, mock_load_dotenv):
        load_config()
        mock_load_dotenv.assert_not_called()
