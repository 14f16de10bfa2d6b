"""
Credential lookup for BambooHR hosts.

Credentials come from an external store and are read-only to the
client. Secrets are resolved lazily, the first time they are needed.
"""

import netrc
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .logging_utils import get_logger


DEFAULT_AUTHINFO_FILES = ('~/.authinfo', '~/.netrc')

# authinfo spells some keys differently from netrc
AUTHINFO_KEY_ALIASES = {'host': 'machine', 'user': 'login'}


def parse_authinfo(text: str) -> List[Dict[str, str]]:
    """
    Parse authinfo text into one dict per entry.

    Entries are `key value` token pairs; each `machine` (or `default`)
    token starts a new entry. Keys other than machine/login/password,
    such as `port`, are kept but play no part in the lookup.

    Raises:
        ValueError: If the text cannot be tokenized or a key has no value
    """
    entries: List[Dict[str, str]] = []
    current: Optional[Dict[str, str]] = None
    tokens = shlex.split(text, comments=True)
    index = 0
    while index < len(tokens):
        key = tokens[index]
        if key == 'default':
            current = {'default': ''}
            entries.append(current)
            index += 1
            continue
        if index + 1 >= len(tokens):
            raise ValueError(f"Missing value for {key!r}")
        key = AUTHINFO_KEY_ALIASES.get(key, key)
        value = tokens[index + 1]
        if key == 'machine' or current is None:
            current = {}
            entries.append(current)
        current[key] = value
        index += 2
    return entries


def _authinfo_authenticators(path: Path, host: str) -> Optional[Tuple[str, str]]:
    fallback = None
    for entry in parse_authinfo(path.read_text()):
        if 'login' not in entry or 'password' not in entry:
            continue
        if entry.get('machine') == host:
            return entry['login'], entry['password']
        if 'default' in entry and fallback is None:
            fallback = (entry['login'], entry['password'])
    return fallback


def _netrc_authenticators(path: Path, host: str) -> Optional[Tuple[str, str]]:
    authenticators = netrc.netrc(str(path)).authenticators(host)
    if authenticators is None:
        return None
    login, _account, password = authenticators
    return login, password


def _read_authenticators(path: Path, host: str) -> Optional[Tuple[str, str]]:
    if path.name == '.netrc':
        return _netrc_authenticators(path, host)
    return _authinfo_authenticators(path, host)


@dataclass
class Credential:
    """
    Username and secret for one host.

    Attributes:
        host: Host the credential applies to
        username: Login name
    """
    host: str
    username: str
    resolve_secret: Callable[[], str] = field(repr=False)
    _secret: Optional[str] = field(default=None, init=False, repr=False)

    @property
    def secret(self) -> str:
        if self._secret is None:
            self._secret = self.resolve_secret()
        return self._secret


class NetrcCredentialStore:
    """
    Looks credentials up in an authinfo or netrc file.

    A file named `.netrc` is read with the stdlib netrc parser; any other
    file is read as authinfo, which also accepts keys like `port`.
    Without an explicit path, ~/.authinfo then ~/.netrc are tried.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self.logger = get_logger()

    def _candidates(self) -> List[Path]:
        if self.path:
            return [Path(self.path).expanduser()]
        return [Path(candidate).expanduser() for candidate in DEFAULT_AUTHINFO_FILES]

    def lookup(self, host: str) -> Optional[Credential]:
        for path in self._candidates():
            if not path.exists():
                continue
            try:
                authenticators = _read_authenticators(path, host)
            except (netrc.NetrcParseError, ValueError) as e:
                self.logger.warning(f"Ignoring unreadable credentials file {path}: {e}")
                continue

            if authenticators is None:
                continue

            login, _password = authenticators
            self.logger.debug(f"Using credentials for {host} from {path}")
            # Re-read on demand so the secret is not held before it is needed
            return Credential(
                host=host,
                username=login,
                resolve_secret=lambda p=path: _read_authenticators(p, host)[1],
            )
        return None


class EnvCredentialStore:
    """Reads credentials from BAMBOO_USERNAME / BAMBOO_PASSWORD."""

    def __init__(self, username_var: str = 'BAMBOO_USERNAME', password_var: str = 'BAMBOO_PASSWORD'):
        self.username_var = username_var
        self.password_var = password_var

    def lookup(self, host: str) -> Optional[Credential]:
        username = os.getenv(self.username_var)
        if not username or self.password_var not in os.environ:
            return None
        return Credential(
            host=host,
            username=username,
            resolve_secret=lambda: os.environ.get(self.password_var, ""),
        )


class ChainCredentialStore:
    """Returns the first credential found in a list of stores."""

    def __init__(self, *stores):
        self.stores = stores

    def lookup(self, host: str) -> Optional[Credential]:
        for store in self.stores:
            credential = store.lookup(host)
            if credential is not None:
                return credential
        return None


def default_credential_store(authinfo_path: Optional[str] = None) -> ChainCredentialStore:
    """Environment variables first, then the authinfo/netrc file."""
    return ChainCredentialStore(EnvCredentialStore(), NetrcCredentialStore(authinfo_path))
