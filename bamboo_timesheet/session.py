"""
Session management for BambooHR.

The platform has no token API: a session is established by posting the
login form, marking the browser as trusted, and scraping the landing
page. The session then lives for a number of minutes reported by the
session-check endpoint, which also hands out a fresh CSRF token.
"""

import functools
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlencode

import requests
from requests.cookies import RequestsCookieJar

from .catalog import Catalog, flatten_catalog
from .config import Config
from .credentials import Credential, default_credential_store
from .errors import AuthError, ScrapeError, UnauthorizedError
from .http_client import HttpClient, RequestSpec, build_request, check_response, needs_trusted_browser
from .logging_utils import get_logger, log_step, log_success
from .models import SessionUser, TimeTrackingMeta
from .scraper import find_json, find_string


LOGIN_ENDPOINT = 'login.php'
TRUSTED_BROWSER_ENDPOINT = 'auth/trusted_browser'
HOME_ENDPOINT = 'home'
CHECK_SESSION_ENDPOINT = 'auth/check_session?isOnboarding=false'

LOGIN_REDIRECT = '/home'

CSRF_TOKEN_MARKER = 'CSRF_TOKEN = "'
SESSION_USER_MARKER = 'SESSION_USER='
TIME_TRACKING_MARKER = 'window.time_tracking = '

FORM_HEADERS = {'Content-Type': 'application/x-www-form-urlencoded'}


class LoginStage(Enum):
    """Stages of the login pipeline, in order."""
    NEED_LOGIN = 'need_login'
    NEED_TRUSTED_BROWSER_CHECK = 'need_trusted_browser_check'
    NEED_PROFILE_SCRAPE = 'need_profile_scrape'
    READY = 'ready'


@dataclass
class SessionContext:
    """
    Authentication state for one host.

    Only SessionManager writes to it; everything else reads it for the
    duration of a single call.

    Attributes:
        host: Organization host (e.g. acme.bamboohr.com)
        cookies: Cookie store shared with the HTTP session
        csrf_token: Most recently observed CSRF token
        expires_at: Moment the session stops being valid
        user: Logged-in user profile
        meta: Time tracking metadata
        catalog: Flattened task catalog derived from meta
        stage: Position in the login pipeline
    """
    host: str
    cookies: RequestsCookieJar = field(default_factory=RequestsCookieJar, repr=False)
    csrf_token: Optional[str] = field(default=None, repr=False)
    expires_at: Optional[datetime] = None
    user: Optional[SessionUser] = None
    meta: Optional[TimeTrackingMeta] = None
    catalog: Catalog = field(default_factory=dict, repr=False)
    stage: LoginStage = LoginStage.NEED_LOGIN

    @property
    def base_url(self) -> str:
        return f"https://{self.host}/"

    def is_valid(self, now: datetime) -> bool:
        return self.expires_at is not None and now < self.expires_at

    def invalidate(self):
        """Forget the token and expiry; cookies are kept."""
        self.csrf_token = None
        self.expires_at = None
        self.stage = LoginStage.NEED_LOGIN


class SessionManager:
    """
    Owns the SessionContext and keeps it logged in.

    Args:
        config: Application configuration (organization, timezone, timeout)
        credential_store: Object with lookup(host) -> Credential or None
        http: HTTP transport (created from config when omitted)
        clock: Callable returning the current datetime
    """

    def __init__(self, config: Config, credential_store=None,
                 http: Optional[HttpClient] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.logger = get_logger()
        self.http = http if http is not None else HttpClient(timeout=config.timeout)
        self.credentials = (
            credential_store if credential_store is not None
            else default_credential_store(config.authinfo_path)
        )
        self.clock = clock or datetime.now
        self.context = SessionContext(host=config.host, cookies=self.http.cookies)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.http.close()

    @property
    def user(self) -> Optional[SessionUser]:
        return self.context.user

    @property
    def meta(self) -> Optional[TimeTrackingMeta]:
        return self.context.meta

    @property
    def catalog(self) -> Catalog:
        return self.context.catalog

    def is_active(self) -> bool:
        return self.context.is_valid(self.clock())

    def invalidate(self):
        self.context.invalidate()

    def ensure_session(self) -> SessionContext:
        """
        Make sure the session is present and unexpired.

        Logs in (and renews the expiry) only when needed; calling it on an
        active session does nothing.

        Returns:
            The active SessionContext

        Raises:
            AuthError: If no credential is available
            ScrapeError: If the landing page layout is not recognized
            UnauthorizedError: If the server rejects the fresh session
        """
        if self.is_active():
            return self.context

        self.login()
        self.check_session()
        return self.context

    # ------------------------------------------------------------------
    # Login pipeline
    # ------------------------------------------------------------------

    def login(self):
        """
        Run the full login pipeline.

        Stages run strictly in order: login form, trusted-browser check,
        landing page scrape.

        Raises:
            AuthError: If no credential exists for the host (no request is made)
            ScrapeError: If an expected marker is missing
            RequestError: If a step answers with a non-2xx status
        """
        credential = self.credentials.lookup(self.context.host)
        if credential is None:
            raise AuthError(f"No credentials found for {self.context.host}")

        log_step(f"Logging in to {self.context.host} as {credential.username}", self.logger)
        self.context.invalidate()

        stages = {
            LoginStage.NEED_LOGIN: lambda: self._submit_login_form(credential),
            LoginStage.NEED_TRUSTED_BROWSER_CHECK: self._check_trusted_browser,
            LoginStage.NEED_PROFILE_SCRAPE: self._load_profile,
        }
        while self.context.stage is not LoginStage.READY:
            stage = self.context.stage
            self.logger.debug(f"Login stage: {stage.value}")
            try:
                self.context.stage = stages[stage]()
            except Exception:
                self.context.stage = LoginStage.NEED_LOGIN
                raise

        log_success(f"Logged in as {self.context.user.display_name or self.context.user.employee_id}",
                    self.logger)

    def _submit_login_form(self, credential: Credential) -> LoginStage:
        form = urlencode({
            'tz': self.config.timezone,
            'r': LOGIN_REDIRECT,
            'username': credential.username,
            'password': credential.secret,
            'login': 'Log in',
            'CSRFToken': '',
        })
        spec = build_request(self.context, LOGIN_ENDPOINT, 'POST', body=form,
                             extra_headers=FORM_HEADERS, auth_required=False)
        response = check_response(self.http.send(spec))

        self.context.csrf_token = find_string(CSRF_TOKEN_MARKER, response.text)
        return LoginStage.NEED_TRUSTED_BROWSER_CHECK

    def _check_trusted_browser(self) -> LoginStage:
        if needs_trusted_browser(self.context.cookies, self.context.host):
            self.logger.debug("Trusted browser cookie missing or expired, marking browser as trusted")
            spec = build_request(self.context, TRUSTED_BROWSER_ENDPOINT, 'POST')
            check_response(self.http.send(spec))
        return LoginStage.NEED_PROFILE_SCRAPE

    def _load_profile(self) -> LoginStage:
        spec = build_request(self.context, HOME_ENDPOINT)
        body = check_response(self.http.send(spec)).text

        user = SessionUser.from_json(find_json(SESSION_USER_MARKER, body))
        meta = TimeTrackingMeta.from_json(find_json(TIME_TRACKING_MARKER, body))

        self.context.user = user
        self.context.meta = meta
        self.context.catalog = flatten_catalog(meta)
        self.logger.debug(
            f"Loaded profile for employee {user.employee_id}: "
            f"timesheet {meta.timesheet_id}, {len(self.context.catalog)} catalog entries"
        )
        return LoginStage.READY

    # ------------------------------------------------------------------
    # Renewal
    # ------------------------------------------------------------------

    def check_session(self, retry: bool = True):
        """
        Renew the session expiry and CSRF token.

        A 401 triggers one fresh login followed by one more check.

        Raises:
            UnauthorizedError: If the check is still rejected after logging in
            ScrapeError: If the response is not the expected JSON
        """
        spec = build_request(self.context, CHECK_SESSION_ENDPOINT, accept_json=True)
        response = self.http.send(spec)

        if response.status_code == 401:
            if not retry:
                raise UnauthorizedError(
                    f"Session check rejected for {self.context.host} after logging in",
                    401, response.text or "",
                )
            self.logger.info("Session rejected by server, logging in again")
            self.invalidate()
            self.login()
            self.check_session(retry=False)
            return

        check_response(response)
        try:
            data = response.json()
            minutes = float(data['SessionMinutesLeft'])
        except (ValueError, KeyError, TypeError) as e:
            raise ScrapeError(f"Unexpected session check response: {e}") from e

        self.context.expires_at = self.clock() + timedelta(minutes=minutes)
        token = data.get('CSRFToken')
        if token:
            self.context.csrf_token = token
        self.context.stage = LoginStage.READY
        self.logger.debug(f"Session valid until {self.context.expires_at:%H:%M:%S}")

    # ------------------------------------------------------------------
    # Guarded requests
    # ------------------------------------------------------------------

    def send(self, build: Callable[[SessionContext], RequestSpec]) -> requests.Response:
        """
        Send a session-dependent request.

        `build` composes the request from the current context. It is
        called again after a re-login so the retried request carries the
        new token and cookies. A second 401 is surfaced.

        Raises:
            UnauthorizedError: If the request is rejected after re-login
            RequestError: On any other non-2xx status
            NetworkError: If the transport fails
        """
        self.ensure_session()
        response = self.http.send(build(self.context))

        if response.status_code == 401:
            self.logger.info("Request rejected with 401, renewing session")
            self.invalidate()
            self.ensure_session()
            response = self.http.send(build(self.context))

        return check_response(response)


def requires_session(method):
    """
    Decorator for methods of objects exposing `session_manager`.

    Ensures the session is active before the method body runs.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        self.session_manager.ensure_session()
        return method(self, *args, **kwargs)
    return wrapper
