"""
Rate-Limited Sender

The single point of contact with the Discord API. Retries throttled
(HTTP 429) calls after the server-supplied Retry-After interval.
"""

import math
import time
from typing import Any, Callable

import httpx
import structlog
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt

from relay.exceptions import HttpError, RateLimitExceeded

log = structlog.get_logger()

THROTTLED_STATUS = 429


def _is_throttled(response: httpx.Response) -> bool:
    return response.status_code == THROTTLED_STATUS


def retry_after_ms(response: httpx.Response, default_ms: int) -> float:
    """
    Backoff for a throttled response in milliseconds.

    Uses the Retry-After header (seconds); falls back to default_ms when
    the header is absent, unparsable, or negative.
    """
    header = response.headers.get("Retry-After")
    if header is None:
        return float(default_ms)
    try:
        seconds = float(header)
    except ValueError:
        return float(default_ms)
    if not math.isfinite(seconds) or seconds < 0:
        return float(default_ms)
    return seconds * 1000


class RateLimitedSender:
    """
    Executes HTTP requests with throttling retries.

    State per call: ATTEMPT -> DONE on success; ATTEMPT -> WAIT -> ATTEMPT
    on 429 while retries remain; RateLimitExceeded once they are spent;
    HttpError for any other failure status. Transport errors propagate
    unchanged.

    Usage:
        sender = RateLimitedSender(httpx.Client(base_url=...))
        response = sender.send("POST", "/channels/1/messages", json=payload)
    """

    def __init__(
        self,
        client: httpx.Client,
        *,
        max_retries: int = 3,
        default_retry_ms: int = 1000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._client = client
        self._max_retries = max_retries
        self._default_retry_ms = default_retry_ms
        self._sleep = sleep

    def _wait(self, retry_state: RetryCallState) -> float:
        response = retry_state.outcome.result()
        return retry_after_ms(response, self._default_retry_ms) / 1000

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        response = retry_state.outcome.result()
        log.warning(
            "rate_limited",
            url=str(response.request.url),
            retry_after_ms=retry_state.next_action.sleep * 1000,
            attempts_remaining=self._max_retries - retry_state.attempt_number,
        )

    def _exhausted(self, retry_state: RetryCallState) -> httpx.Response:
        response = retry_state.outcome.result()
        url = str(response.request.url)
        log.error("rate_limit_exceeded", url=url, attempts=retry_state.attempt_number)
        raise RateLimitExceeded(url=url, attempts=retry_state.attempt_number)

    def send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, waiting out throttling responses.

        Args:
            method: HTTP method
            url: URL or path relative to the client's base URL
            **kwargs: Passed to httpx.Client.request (json, data, files, params)

        Returns:
            The successful response

        Raises:
            RateLimitExceeded: If still throttled after max_retries retries
            HttpError: If the response has any other non-2xx status
        """
        retryer = Retrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=self._wait,
            retry=retry_if_result(_is_throttled),
            sleep=self._sleep,
            before_sleep=self._before_sleep,
            retry_error_callback=self._exhausted,
        )
        response = retryer(self._client.request, method, url, **kwargs)

        if not response.is_success:
            log.error(
                "http_request_failed",
                method=method,
                url=str(response.request.url),
                status=response.status_code,
            )
            raise HttpError(
                status=response.status_code,
                body=response.text,
                url=str(response.request.url),
            )

        return response
