"""
app/connectors/base.py

Remote data source connectors.

A connector turns one remote collection into tabular records. This module
holds the contract plus the HTTP plumbing every REST-backed source shares:
request pacing, bounded retries on transient failures and JSON decoding.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import requests

from app.config import ExternalHTTPSettings
from app.domain.tabular import TabularRecord

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
_MAX_RETRY_AFTER_SECONDS = 30.0


class DataSourceConnectionError(RuntimeError):
    """
    Raised when a remote source is unreachable or returns no data.
    """


@dataclass(frozen=True)
class ConnectorFetchResult:
    """
    Records read from one remote collection.

    ``failed_records`` counts documents that could not be turned into rows.
    """

    source: str
    records: list[TabularRecord] = field(default_factory=list)
    failed_records: int = 0
    requests_sent: int = 0


class BaseConnector(ABC):
    """
    Contract for remote sources plus paced, retrying HTTP helpers.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._session = session or requests.Session()
        self._http = http_settings
        self._min_interval = (
            1.0 / http_settings.rate_limit_per_second if http_settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_sent_at = 0.0
        self.requests_sent = 0

    @abstractmethod
    def fetch_records(self) -> ConnectorFetchResult:
        """
        Read the remote collection.

        Raises
        ------
        DataSourceConnectionError
            When the source cannot be reached or holds no rows.
        """

    def get_json(self, url: str, *, params: dict[str, Any] | None = None) -> Any:
        response = self._send_with_retries("GET", url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise DataSourceConnectionError(f"{self.source}: response was not valid JSON.") from exc

    def _send_with_retries(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        attempts = self._http.max_retries + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            self._pace()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=self._http.timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
                delay = self._backoff_delay(attempt)
            else:
                if response.status_code < 400:
                    return response
                if response.status_code not in TRANSIENT_STATUS_CODES:
                    logger.error(
                        "Remote source rejected request source=%s status=%s url=%s",
                        self.source,
                        response.status_code,
                        url,
                    )
                    raise DataSourceConnectionError(
                        f"{self.source}: request rejected with status {response.status_code}."
                    )
                last_error = requests.HTTPError(
                    f"Transient HTTP status {response.status_code}", response=response
                )
                delay = self._retry_after(response) or self._backoff_delay(attempt)

            if attempt == attempts:
                break
            logger.warning(
                "Remote source retry source=%s attempt=%d/%d wait_seconds=%.2f error=%s",
                self.source,
                attempt,
                attempts,
                delay,
                last_error,
            )
            time.sleep(delay)

        logger.error("Remote source unreachable source=%s url=%s error=%s", self.source, url, last_error)
        raise DataSourceConnectionError(f"{self.source}: source unreachable after retries.") from last_error

    def _backoff_delay(self, attempt: int) -> float:
        return self._http.backoff_initial_seconds * (self._http.backoff_multiplier ** (attempt - 1))

    @staticmethod
    def _retry_after(response: requests.Response) -> float | None:
        raw = response.headers.get("Retry-After")
        if raw is None:
            return None
        try:
            return min(max(float(raw), 0.0), _MAX_RETRY_AFTER_SECONDS)
        except ValueError:
            return None

    def _pace(self) -> None:
        """Sleep just long enough to respect the configured request rate."""
        if self._min_interval > 0:
            wait = self._min_interval - (time.monotonic() - self._last_sent_at)
            if wait > 0:
                time.sleep(wait)
            self._last_sent_at = time.monotonic()
        self.requests_sent += 1
