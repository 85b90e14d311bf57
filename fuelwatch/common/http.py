"""HTTP client with retries, timeouts, and host-aware rate limiting."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable
from urllib.parse import urlparse

import requests
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from fuelwatch.common.constants import USER_AGENT
from fuelwatch.common.errors import SourceUnavailable
from fuelwatch.common.logging import log_event

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}
DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 30.0
    # Wall-clock budget for the whole download; None means per-read timeouts only.
    total: float | None = None


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    delay: float = 2.0


class HttpRequestError(SourceUnavailable):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RetryableHttpError(HttpRequestError):
    pass


class DownloadTimeoutError(RetryableHttpError):
    error_code = "HTTP_TIMEOUT"


class TokenBucket:
    def __init__(self, rate_per_sec: float, capacity: float | None = None) -> None:
        self.rate_per_sec = rate_per_sec
        self.capacity = capacity if capacity is not None else rate_per_sec
        self.tokens = self.capacity
        self.updated_at = time.monotonic()
        self.lock = threading.Lock()

    def acquire(self, tokens: float = 1.0) -> None:
        while True:
            with self.lock:
                now = time.monotonic()
                elapsed = now - self.updated_at
                self.tokens = min(self.capacity, self.tokens + elapsed * self.rate_per_sec)
                self.updated_at = now
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return
                deficit = tokens - self.tokens
                wait_for = max(deficit / self.rate_per_sec, 0.01)
            time.sleep(wait_for)


class HostRateLimiter:
    def __init__(self, default_rate_per_sec: float) -> None:
        self.default_rate_per_sec = default_rate_per_sec
        self.buckets: dict[str, TokenBucket] = {}
        self.lock = threading.Lock()

    def acquire(self, host: str, tokens: float = 1.0) -> None:
        with self.lock:
            bucket = self.buckets.get(host)
            if bucket is None:
                bucket = TokenBucket(rate_per_sec=self.default_rate_per_sec, capacity=max(1.0, self.default_rate_per_sec))
                self.buckets[host] = bucket
        bucket.acquire(tokens=tokens)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    log_event(
        logger,
        f"retrying request after failure: {exc}",
        level=logging.WARNING,
        event="HTTP_RETRY",
        status="retry",
        attempt=retry_state.attempt_number,
        error_code=getattr(exc, "error_code", None),
    )


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        user_agent: str = USER_AGENT,
        rate_limits: dict[str, float] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.user_agent = user_agent
        self.session = requests.Session()
        self.limiters = {
            source_type: HostRateLimiter(default_rate_per_sec=rate)
            for source_type, rate in (rate_limits or {}).items()
            if rate and rate > 0
        }
        self._sleep = sleep

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _host(self, url: str) -> str:
        return urlparse(url).netloc

    def _apply_rate_limit(self, url: str, source_type: str) -> None:
        limiter = self.limiters.get(source_type)
        if limiter is not None:
            limiter.acquire(self._host(url))

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": self.user_agent, "Accept": "application/json"}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status: {status}", status_code=status)
        if status >= 400:
            raise HttpRequestError(f"HTTP status: {status}", status_code=status)

    def _send(
        self,
        method: str,
        url: str,
        *,
        source_type: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        stream: bool = False,
    ) -> requests.Response:
        req_timeout = timeout or self.timeout
        read_timeout = req_timeout.read
        if req_timeout.total is not None:
            read_timeout = min(read_timeout, req_timeout.total)
        self._apply_rate_limit(url, source_type)

        try:
            return self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=self._headers(headers),
                timeout=(req_timeout.connect, read_timeout),
                stream=stream,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise RetryableHttpError(f"Transport failure for {url}: {exc}") from exc
        except requests.RequestException as exc:
            raise HttpRequestError(f"Request failed for {url}: {exc}") from exc

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        source_type: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        response = self._send(
            method,
            url,
            source_type=source_type,
            params=params,
            json_body=json_body,
            headers=headers,
            timeout=timeout,
        )
        self._raise_for_status_or_retry(response)

        try:
            return response.json()
        except ValueError as exc:
            raise HttpRequestError(f"Invalid JSON payload from {url}") from exc

    def _stream_body(
        self,
        url: str,
        *,
        source_type: str,
        timeout: TimeoutConfig,
        on_response: Callable[[requests.Response], None],
    ) -> bytes:
        response = self._send("GET", url, source_type=source_type, timeout=timeout, stream=True)
        on_response(response)
        try:
            self._raise_for_status_or_retry(response)

            content_type = (response.headers.get("Content-Type") or "").lower()
            if "json" not in content_type:
                raise HttpRequestError(f"Expected JSON, got {content_type or 'no content type'}")

            body = bytearray()
            try:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    body.extend(chunk)
            except requests.RequestException as exc:
                raise RetryableHttpError(f"Transport failure while reading {url}: {exc}") from exc
        finally:
            response.close()
        return bytes(body)

    def _stream_body_with_deadline(self, url: str, *, source_type: str, timeout: TimeoutConfig) -> bytes:
        """Run the download on a worker thread and abandon it once the total budget is spent.

        Per-read socket timeouts cannot catch a server that trickles bytes, so the
        caller waits on the worker instead and closes the response on expiry.
        """
        responses: list[requests.Response] = []
        outcome: dict[str, Any] = {}

        def _target() -> None:
            try:
                outcome["body"] = self._stream_body(
                    url,
                    source_type=source_type,
                    timeout=timeout,
                    on_response=responses.append,
                )
            except Exception as exc:
                outcome["error"] = exc

        worker = threading.Thread(target=_target, name="fuelwatch-download", daemon=True)
        worker.start()
        worker.join(timeout.total)
        if worker.is_alive():
            for response in responses:
                response.close()
            raise DownloadTimeoutError(f"Download from {url} exceeded {timeout.total}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["body"]

    def _download_json(self, url: str, *, source_type: str, timeout: TimeoutConfig | None = None) -> Any:
        req_timeout = timeout or self.timeout
        if req_timeout.total is None:
            body = self._stream_body(url, source_type=source_type, timeout=req_timeout, on_response=lambda _r: None)
        else:
            body = self._stream_body_with_deadline(url, source_type=source_type, timeout=req_timeout)

        try:
            return json.loads(body)
        except ValueError as exc:
            raise HttpRequestError(f"Invalid JSON payload from {url}") from exc

    def _with_retry(self, func: Callable[[], Any]) -> Any:
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_fixed(self.retry.delay),
            retry=retry_if_exception_type(RetryableHttpError),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        def _wrapped() -> Any:
            return func()

        return _wrapped()

    def request_json(
        self,
        method: str,
        url: str,
        *,
        source_type: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        return self._with_retry(
            lambda: self._request_json(
                method,
                url,
                source_type=source_type,
                params=params,
                json_body=json_body,
                headers=headers,
                timeout=timeout,
            )
        )

    def get_json(
        self,
        url: str,
        *,
        source_type: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        return self.request_json(
            "GET",
            url,
            source_type=source_type,
            params=params,
            headers=headers,
            timeout=timeout,
        )

    def put_json(
        self,
        url: str,
        *,
        source_type: str,
        json_body: Any,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        return self.request_json(
            "PUT",
            url,
            source_type=source_type,
            json_body=json_body,
            headers=headers,
            timeout=timeout,
        )

    def download_json(
        self,
        url: str,
        *,
        source_type: str = "feed",
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        """GET a JSON document that must declare a JSON content type."""
        return self._with_retry(lambda: self._download_json(url, source_type=source_type, timeout=timeout))
