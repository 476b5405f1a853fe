#!/usr/bin/env python3
"""
Liveness checks for playlist stream URLs.

A probe only asks for the first KiB of the stream. Failures that prove the URL
is gone (connection refused, DNS failure, unreachable network, TLS/protocol
failure, HTTP 404/410) classify as DEAD. Timeouts, resets, dropped replies,
proxy errors, 403 and 5xx are UNKNOWN so a temporary outage never removes a
working channel.
"""

from __future__ import annotations

import socket
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Pattern

import requests
from urllib3.exceptions import MaxRetryError, NewConnectionError

from m3u_codec import ChannelEntry
from playlist_constants import (
    BROKEN_URL,
    DEFAULT_USER_AGENT,
    PROBE_RANGE,
    PROBE_TIMEOUT_SECONDS,
    PROBE_WORKERS,
    SKIP_LABEL_PATTERNS,
)

DEAD_STATUS_CODES = (404, 410)


class Liveness(Enum):
    ALIVE = "alive"
    DEAD = "dead"
    UNKNOWN = "unknown"


@dataclass
class ProbeResult:
    url: str
    liveness: Liveness
    detail: str
    elapsed_seconds: float


def classify_status(status_code: int) -> Liveness:
    if status_code in DEAD_STATUS_CODES:
        return Liveness.DEAD
    if status_code == 403 or status_code >= 500:
        return Liveness.UNKNOWN
    return Liveness.ALIVE


def _connection_failure_reason(exc: requests.exceptions.ConnectionError) -> object:
    """The urllib3/socket error requests wrapped, unpacked from MaxRetryError."""
    reason = exc.args[0] if exc.args else None
    if isinstance(reason, MaxRetryError):
        reason = reason.reason
    return reason


def classify_error(exc: requests.RequestException) -> Liveness:
    # ConnectTimeout is also a ConnectionError; timeouts must stay UNKNOWN.
    if isinstance(exc, requests.exceptions.Timeout):
        return Liveness.UNKNOWN
    if isinstance(exc, requests.exceptions.ProxyError):
        return Liveness.UNKNOWN
    if isinstance(exc, requests.exceptions.SSLError):
        return Liveness.DEAD
    if isinstance(exc, requests.exceptions.ConnectionError):
        # Refused, unresolvable or unreachable hosts never get a socket
        # (NewConnectionError). Resets and dropped replies are transient.
        reason = _connection_failure_reason(exc)
        if isinstance(reason, (NewConnectionError, ConnectionRefusedError, socket.gaierror)):
            return Liveness.DEAD
        return Liveness.UNKNOWN
    return Liveness.UNKNOWN


def probe_url(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = PROBE_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
) -> ProbeResult:
    started_at = time.time()
    http = session or requests
    headers = {"User-Agent": user_agent, "Range": PROBE_RANGE}

    try:
        response = http.get(url, headers=headers, timeout=timeout, stream=True, allow_redirects=True)
    except requests.RequestException as exc:
        return ProbeResult(
            url=url,
            liveness=classify_error(exc),
            detail=type(exc).__name__,
            elapsed_seconds=time.time() - started_at,
        )

    try:
        status_code = response.status_code
    finally:
        response.close()

    return ProbeResult(
        url=url,
        liveness=classify_status(status_code),
        detail=f"HTTP {status_code}",
        elapsed_seconds=time.time() - started_at,
    )


def should_skip(entry: ChannelEntry, skip_patterns: Iterable[Pattern] = SKIP_LABEL_PATTERNS) -> bool:
    """Placeholders and geo/schedule-restricted channels are never probed."""
    if entry.url == BROKEN_URL:
        return True
    labels = entry.labels
    if not labels:
        return False
    return any(pattern.search(labels) for pattern in skip_patterns)


def probe_many(
    urls: List[str],
    probe: Callable[[str], ProbeResult] = probe_url,
    workers: int = PROBE_WORKERS,
) -> Iterator[ProbeResult]:
    """Yield one result per URL, in completion order, from a bounded thread pool."""
    if not urls:
        return
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = [executor.submit(probe, url) for url in urls]
        for future in as_completed(futures):
            yield future.result()
