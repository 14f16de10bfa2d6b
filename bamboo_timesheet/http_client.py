"""
Request building and transport for BambooHR endpoints.

This module composes authenticated requests (Referer, CSRF token,
cookie header, content negotiation) and executes them over a
requests.Session, either blocking or with a completion callback.
"""

import json
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union
from urllib.parse import quote, urljoin

import requests
from requests.cookies import RequestsCookieJar
from requests.structures import CaseInsensitiveDict

from .errors import NetworkError, RequestError, UnauthorizedError
from .logging_utils import get_logger

if TYPE_CHECKING:
    from .session import SessionContext


MUTATING_METHODS = ('PUT', 'POST', 'DELETE')
JSON_CONTENT_TYPE = 'application/json;charset=UTF-8'
JSON_ACCEPT = 'application/json, text/plain, */*'
TRUSTED_BROWSER_COOKIE = 'trusted_browser'


@dataclass
class RequestSpec:
    """
    A fully composed HTTP request.

    Attributes:
        method: HTTP verb
        url: Absolute URL
        headers: Final header set
        body: Encoded body (None for no body)
    """
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None


def parent_domain(host: str) -> Optional[str]:
    """Return the domain one level above host ("acme.bamboohr.com" -> "bamboohr.com")."""
    parts = host.split('.', 1)
    if len(parts) < 2 or '.' not in parts[1]:
        return None
    return parts[1]


def _scoped_cookies(jar: RequestsCookieJar, host: str, now: Optional[float] = None):
    """Split the unexpired cookies of `jar` into (host cookies, parent-domain cookies)."""
    now = time.time() if now is None else now
    domain = parent_domain(host)
    host_cookies = {}
    domain_cookies = {}

    for cookie in jar:
        if cookie.is_expired(now):
            continue
        cookie_domain = (cookie.domain or '').lstrip('.')
        if cookie_domain == host:
            host_cookies[cookie.name] = cookie.value
        elif domain and cookie_domain == domain:
            domain_cookies[cookie.name] = cookie.value

    return host_cookies, domain_cookies


def build_cookie_header(jar: RequestsCookieJar, host: str, now: Optional[float] = None) -> Optional[str]:
    """
    Assemble the Cookie header for host.

    Cookies scoped to the exact host and to its parent domain are merged
    by name; host cookies win on collision. Expired cookies are skipped.

    Returns:
        "name=value; name=value" (URL-encoded), or None if there are no cookies

    Examples:
        host cookie X=A and domain cookie X=B give "X=A"
    """
    host_cookies, domain_cookies = _scoped_cookies(jar, host, now)
    merged = dict(domain_cookies)
    merged.update(host_cookies)
    if not merged:
        return None
    return '; '.join(
        f"{quote(name, safe='')}={quote(value or '', safe='')}" for name, value in merged.items()
    )


def needs_trusted_browser(jar: RequestsCookieJar, host: str, now: Optional[float] = None) -> bool:
    """Return True if the trusted-browser cookie for host is absent or expired."""
    host_cookies, domain_cookies = _scoped_cookies(jar, host, now)
    return TRUSTED_BROWSER_COOKIE not in host_cookies and TRUSTED_BROWSER_COOKIE not in domain_cookies


def encode_body(body: Any) -> Optional[Union[str, bytes]]:
    if body is None or isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


def build_request(
    context: 'SessionContext',
    endpoint: str,
    method: str = 'GET',
    body: Any = None,
    extra_headers: Optional[Dict[str, str]] = None,
    auth_required: bool = True,
    accept_json: bool = False,
) -> RequestSpec:
    """
    Compose a request for a BambooHR endpoint.

    Args:
        context: Session context providing base URL, CSRF token and cookies
        endpoint: Path relative to the organization URL (e.g. "timesheet/123")
        method: HTTP verb
        body: str/bytes sent verbatim, anything else JSON-encoded
        extra_headers: Headers merged last (last write wins)
        auth_required: Add the CSRF token and Cookie header
        accept_json: Ask for a JSON response

    Returns:
        The composed RequestSpec
    """
    method = method.upper()
    url = urljoin(context.base_url, endpoint)
    headers = CaseInsensitiveDict({'Referer': url})

    if auth_required:
        if context.csrf_token:
            headers['X-CSRF-TOKEN'] = context.csrf_token
        cookie_header = build_cookie_header(context.cookies, context.host)
        if cookie_header:
            headers['Cookie'] = cookie_header

    if method in MUTATING_METHODS:
        headers['Content-Type'] = JSON_CONTENT_TYPE

    if accept_json:
        headers['Accept'] = JSON_ACCEPT

    if extra_headers:
        headers.update(extra_headers)

    return RequestSpec(method=method, url=url, headers=dict(headers), body=encode_body(body))


def check_response(response: requests.Response) -> requests.Response:
    """
    Raise for non-2xx responses.

    Raises:
        UnauthorizedError: On 401
        RequestError: On any other non-2xx status
    """
    status = response.status_code
    if 200 <= status < 300:
        return response

    text = response.text or ""
    if status == 401:
        raise UnauthorizedError(f"HTTP 401: not authorized for {response.url}", status, text)
    raise RequestError(f"HTTP {status}: {response.reason or 'request failed'}", status, text)


class HttpClient:
    """
    Executes RequestSpecs over a requests.Session.

    The session's cookie jar is the cookie store: cookies set by responses
    (including redirects) are captured there and read back by
    build_cookie_header().
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None, max_workers: int = 4):
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.max_workers = max_workers
        self.logger = get_logger()
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def cookies(self) -> RequestsCookieJar:
        return self.session.cookies

    def send(self, spec: RequestSpec) -> requests.Response:
        """
        Execute a request and wait for the response.

        Raises:
            NetworkError: If the transport fails
        """
        self.logger.debug(f"{spec.method} {spec.url}")
        try:
            response = self.session.request(
                spec.method,
                spec.url,
                headers=spec.headers,
                data=spec.body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"{spec.method} {spec.url} failed: {e}") from e

        self.logger.debug(f"{spec.method} {spec.url} -> HTTP {response.status_code}")
        return response

    def send_async(self, spec: RequestSpec,
                   callback: Callable[[requests.Response], Any],
                   errback: Optional[Callable[[BaseException], Any]] = None) -> Future:
        """
        Execute a request on a worker thread.

        `callback` receives the response; `errback` receives the exception
        if the request fails. Independent calls complete in any order.

        Returns:
            Future resolving to the response
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                                thread_name_prefix='bamboo-http')
        future = self._executor.submit(self.send, spec)

        def _deliver(done: Future):
            error = done.exception()
            if error is not None:
                if errback is not None:
                    errback(error)
                else:
                    self.logger.error(f"Background request {spec.method} {spec.url} failed: {error}")
                return
            try:
                callback(done.result())
            except Exception as e:
                if errback is not None:
                    errback(e)
                else:
                    self.logger.error(f"Callback for {spec.method} {spec.url} failed: {e}")

        future.add_done_callback(_deliver)
        return future

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.session.close()


NETWORK_HINT_INDICATORS = (
    'name resolution',
    'getaddrinfo',
    'nodename nor servname',
    'connection refused',
    'timed out',
    'timeout',
    'network is unreachable',
    'no route to host',
    'proxy',
    'tunnel',
    'ssl',
)


def is_vpn_proxy_error(message: str) -> bool:
    """Return True if a transport error looks like a VPN, proxy or DNS problem."""
    lowered = message.lower()
    return any(indicator in lowered for indicator in NETWORK_HINT_INDICATORS)


def format_network_error(host: str, message: str) -> str:
    """Format a transport failure with troubleshooting hints."""
    lines = [
        "NETWORK ERROR",
        "",
        f"Could not reach {host}",
        f"Error: {message}",
        "",
    ]
    if is_vpn_proxy_error(message):
        lines.extend([
            "This is often caused by:",
            "  - VPN/Proxy not connected or not authenticated",
            "  - DNS or firewall issues",
            "  - A wrong organization name",
        ])
    else:
        lines.extend([
            "Please check your internet connection and the organization name.",
        ])
    return "\n".join(lines)
