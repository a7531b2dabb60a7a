# This file is part of bootmeta. See LICENSE file for license information.

"""Metadata service HTTP reads with bounded retries.

Every failed attempt is followed by a wait that starts at sec_between and
doubles after each failure, capped at max_sec_between when one is given.
A 503 answer waits for the server's Retry-After instead, but still counts
as an attempt.
"""

import logging
import time
from email.utils import parsedate_to_datetime
from typing import Any, Iterator, Mapping, NamedTuple, Optional

import requests
from requests import exceptions

from bootmeta import version

LOG = logging.getLogger(__name__)

USER_AGENT = "bootmeta/%s"


class UrlResponse(NamedTuple):
    url: str
    code: int
    contents: bytes


class UrlError(IOError):
    """A metadata request failed, after any retries."""

    def __init__(
        self,
        cause: Any,
        code: Optional[int] = None,
        headers: Optional[Mapping] = None,
        url: Optional[str] = None,
    ):
        super().__init__(str(cause))
        self.cause = cause
        self.code = code
        self.headers: Mapping = headers or {}
        self.url = url


def _get_retry_after(value: str) -> float:
    """Seconds to wait for a Retry-After value, in seconds or as a date.

    Unparseable values and dates in the past give 1 second.
    """
    try:
        wait = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            LOG.info("Ignoring unparseable Retry-After '%s'", value)
            return 1
        wait = when.timestamp() - time.time()
    if wait < 0:
        LOG.info("Ignoring Retry-After '%s' in the past", value)
        return 1
    return wait


def _backoff(sec_between, max_sec_between) -> Iterator[float]:
    delay = sec_between or 0
    while True:
        yield delay
        if max_sec_between is not None and delay > 0:
            delay = min(delay * 2, max_sec_between)


def readurl(
    url: str,
    *,
    timeout=None,
    retries=0,
    sec_between=1,
    max_sec_between=None,
    headers: Optional[Mapping] = None,
    session: Optional[requests.Session] = None,
) -> UrlResponse:
    """GET url, trying up to retries + 1 times.

    :param timeout: per attempt timeout in seconds.
    :param sec_between: wait before the first retry. None or 0 means no
        wait at all.
    :param max_sec_between: cap for the doubling wait. When None every
        retry waits sec_between.
    :raises UrlError: once the attempts are spent, or at once on a TLS
        failure.
    """
    req_args = {
        "url": url,
        "method": "GET",
        "headers": dict(headers or {}),
    }
    req_args["headers"].setdefault(
        "User-Agent", USER_AGENT % version.version_string()
    )
    if timeout is not None:
        req_args["timeout"] = max(float(timeout), 0)
    attempts = max(int(retries or 0), 0) + 1
    delays = _backoff(sec_between, max_sec_between)
    session = session or requests.Session()

    for attempt in range(1, attempts + 1):
        LOG.debug("[%s/%s] GET %s", attempt, attempts, url)
        try:
            response = session.request(**req_args)
            response.raise_for_status()
        except exceptions.SSLError as e:
            # retrying will not fix a certificate
            raise UrlError(e, url=url) from e
        except exceptions.HTTPError as e:
            error = UrlError(
                e,
                code=e.response.status_code,
                headers=e.response.headers,
                url=url,
            )
        except exceptions.RequestException as e:
            error = UrlError(e, url=url)
        else:
            LOG.debug(
                "Read %sb from %s (%s) on attempt %s",
                len(response.content),
                url,
                response.status_code,
                attempt,
            )
            return UrlResponse(url, response.status_code, response.content)

        if attempt == attempts:
            raise error from error.cause

        wait = next(delays)
        if error.code == 503:
            LOG.warning("%s is overloaded (503), retrying", url)
            wait = _get_retry_after(error.headers.get("Retry-After", "1"))
        LOG.debug("Attempt %s failed: %s", attempt, error)
        if wait > 0:
            LOG.debug("Waiting %s seconds before retrying", wait)
            time.sleep(wait)
