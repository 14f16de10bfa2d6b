"""
Configuration for the BambooHR timesheet client.

This module centralizes the values the client needs: the organization
(which determines the host), the weekend flag, default hours, and
transport settings. Values can be loaded from the environment or an
optional .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DOMAIN = "bamboohr.com"
DEFAULT_HOURS = 8.0
DEFAULT_TIMEZONE = "UTC"

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off', '')


@dataclass
class Config:
    """
    Application configuration.

    Attributes:
        organization: BambooHR subdomain (e.g. "acme" for acme.bamboohr.com)
        include_weekends: Whether multi-day submissions include Saturday/Sunday
        default_hours: Hours used when the caller gives none
        timezone: Timezone name sent with the login form
        timeout: Request timeout in seconds (None waits indefinitely)
        authinfo_path: Path to an authinfo/netrc credentials file
        verbose: Whether to enable verbose logging
    """
    organization: Optional[str] = None
    include_weekends: bool = False
    default_hours: float = DEFAULT_HOURS
    timezone: str = DEFAULT_TIMEZONE
    timeout: Optional[float] = None
    authinfo_path: Optional[str] = None
    verbose: bool = False

    @property
    def host(self) -> str:
        return f"{self.organization}.{DEFAULT_DOMAIN}"

    def validate(self):
        """
        Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.organization or not self.organization.strip():
            raise ValueError("Organization is required (set BAMBOO_ORGANIZATION or use --org)")

        if not all(part.isalnum() for part in self.organization.split('-')):
            raise ValueError(f"Invalid organization name: '{self.organization}'")

        if not (0 < self.default_hours <= 24):
            raise ValueError(f"Default hours must be between 0 and 24, got: {self.default_hours}")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got: {self.timeout}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got: '{value}'")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: '{value}'")


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Build a Config from environment variables.

    An explicit env_file, or a .env file in the working directory, is
    loaded first; variables already set in the environment win.

    Raises:
        ValueError: If a variable holds an unparsable value
    """
    if env_file is not None:
        load_dotenv(env_file)
    elif Path('.env').exists():
        load_dotenv('.env')

    return Config(
        organization=os.getenv('BAMBOO_ORGANIZATION'),
        include_weekends=_env_bool('BAMBOO_INCLUDE_WEEKENDS', False),
        default_hours=_env_float('BAMBOO_DEFAULT_HOURS', DEFAULT_HOURS),
        timezone=os.getenv('BAMBOO_TIMEZONE', DEFAULT_TIMEZONE),
        timeout=_env_float('BAMBOO_TIMEOUT', None),
        authinfo_path=os.getenv('BAMBOO_AUTHINFO'),
    )
