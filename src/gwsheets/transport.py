"""
HTTP transport for the REST calls.

A requests session does the wire work and backoff handles the retry policy,
so the client above only builds URLs and reads results.
"""
from dataclasses import dataclass, field
from typing import Any, Optional
import logging

import backoff
import requests

logger = logging.getLogger(__name__)

# statuses worth another try, everything else is final
RETRY_STATUSES = (429, 500, 502, 503, 504)

class _RetryableStatus(Exception):
    """Carries a throttled/server error response through the backoff loop."""
    def __init__(self, response: requests.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response

@dataclass
class HttpResponse:
    """What came back: parsed json if the body was json, otherwise raw text."""
    status: int
    json: Any = None
    raw: Optional[str] = None
    text: str = ""
    content: bytes = field(default=b"", repr=False)

class HttpTransport:
    """
    Sends requests with a timeout and, when asked, exponential backoff on
    throttling, server errors and dropped connections.  max_tries is the
    total number of sends per request whatever mix of failures happens.
    wait_gen and any extra keyword args go to backoff, so a test can make
    the waits instant.

    Connection and timeout errors that outlast the retries are raised as
    requests exceptions.  HTTP error statuses are returned, never raised,
    including the last one when the tries run out.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30,
                 max_tries: int = 5, wait_gen=backoff.expo, **wait_kwargs):
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.max_tries = max_tries
        self._wait_gen = wait_gen
        self._wait_kwargs = wait_kwargs

    @staticmethod
    def _log_backoff(details):
        logger.warning(f"retrying {details['target'].__name__} in {details['wait']:.1f}s "
                       f"(attempt {details['tries']}): {details['exception']}")

    def _send(self, method: str, url: str, retry: bool, **kwargs) -> requests.Response:
        if not retry:
            return self.session.request(method, url, **kwargs)

        @backoff.on_exception(self._wait_gen,
                              (_RetryableStatus, requests.ConnectionError, requests.Timeout),
                              max_tries=self.max_tries,
                              on_backoff=self._log_backoff,
                              **self._wait_kwargs)
        def send():
            r = self.session.request(method, url, **kwargs)
            if r.status_code in RETRY_STATUSES:
                raise _RetryableStatus(r)
            return r

        try:
            return send()
        except _RetryableStatus as e:
            return e.response

    def json(self, url: str, method: str = "GET", headers: Optional[dict] = None,
             bodyObj: Any = None, timeout: Optional[float] = None, retry: bool = True) -> HttpResponse:
        """
        Send bodyObj as JSON and decode the JSON reply.  A reply that isn't JSON
        comes back in raw instead.
        """
        kwargs = {"headers": headers or {}, "timeout": timeout or self.timeout}
        if bodyObj is not None:
            kwargs["json"] = bodyObj
        logger.debug(f"{method} {url}")
        r = self._send(method, url, retry, **kwargs)
        try:
            return HttpResponse(status=r.status_code, json=r.json(), text=r.text)
        except ValueError:
            return HttpResponse(status=r.status_code, raw=r.text or None, text=r.text)

    def fetch(self, url: str, method: str = "GET", headers: Optional[dict] = None,
              timeout: Optional[float] = None, retry: bool = True) -> HttpResponse:
        """Raw request for binary downloads, body left undecoded."""
        logger.debug(f"{method} {url}")
        r = self._send(method, url, retry, headers=headers or {}, timeout=timeout or self.timeout)
        return HttpResponse(status=r.status_code, text=r.text, content=r.content)
