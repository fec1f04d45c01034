# core/utils/http.py
import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from core.errors import UpstreamError
from core.utils.rate_limit import AdmissionQueue, RateLimiter

logger = logging.getLogger(__name__)

# Status codes worth another attempt; every other 4xx is the caller's fault
RETRYABLE_STATUS = {408, 425, 429}


class TransientFailure(Exception):
    pass


class PermanentFailure(Exception):
    pass


class CatalogueGateway:
    def __init__(self,
                 api_url: str,
                 api_key: Optional[str] = None,
                 min_interval: float = 1.0,
                 max_retries: int = 3,
                 backoff_base: float = 2.0,
                 timeout: float = 30.0,
                 session: Optional[requests.Session] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Serialized, rate-limited access to the catalogue GraphQL endpoint.

        Args:
            api_url: GraphQL endpoint
            api_key: Bearer token, if the service needs one
            min_interval: Minimum seconds between the start of two requests
            max_retries: Retries after the first attempt for transient failures
            backoff_base: Seconds to wait before the first retry, doubled for each further one
            timeout: Per-request HTTP timeout in seconds
            session: requests session to use (a new one if omitted)
            clock: Monotonic clock, injectable for tests
            sleep: Sleep function, injectable for tests
        """
        self.api_url = api_url
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.timeout = timeout
        self.sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        if api_key:
            self.session.headers.update({'Authorization': f'Bearer {api_key}'})

        self.rate_limiter = RateLimiter(min_interval=min_interval, clock=clock, sleep=sleep)
        self.admission = AdmissionQueue()
        self.last_attempts = 0

    def call(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run one GraphQL request, waiting for our turn and retrying transient failures.

        Args:
            query: GraphQL query document
            variables: Query variables

        Returns:
            The `data` member of the response

        Raises:
            UpstreamError: retries exhausted or the failure is not worth retrying
        """
        with self.admission:
            return self._call_with_retries(query, variables)

    def _call_with_retries(self, query: str, variables: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        descriptor = ' '.join(query.split())[:100]
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            self.last_attempts = attempt + 1
            self.rate_limiter.delay()
            logger.info(f"Catalogue API request (attempt {attempt + 1}/{attempts}): {descriptor} {variables or {}}")

            try:
                data = self._send(query, variables)
            except PermanentFailure as e:
                logger.error(f"Catalogue API request failed permanently on attempt {attempt + 1}: {e}")
                raise UpstreamError(f"Catalogue API rejected the request: {e}", attempts=attempt + 1) from e
            except TransientFailure as e:
                if attempt == self.max_retries:
                    logger.error(f"Catalogue API request failed (all retries exhausted): {descriptor}: {e}")
                    raise UpstreamError(
                        "Failed to fetch data from the catalogue API after multiple attempts",
                        attempts=attempt + 1
                    ) from e

                backoff = self.backoff_base * (2 ** attempt)
                logger.warning(
                    f"Catalogue API request failed (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {backoff:.1f} seconds: {e}"
                )
                self.sleep(backoff)
                continue

            logger.info(f"Catalogue API request successful (attempt {attempt + 1})")
            return data

        # max_retries < 0 leaves nothing to try
        raise UpstreamError("No attempts configured for the catalogue API", attempts=0)

    def _send(self, query: str, variables: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Issue the HTTP request and sort failures into transient and permanent"""
        try:
            response = self.session.post(
                self.api_url,
                json={'query': query, 'variables': variables or {}},
                timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientFailure(str(e)) from e
        except requests.RequestException as e:
            raise PermanentFailure(str(e)) from e

        status = response.status_code
        if status >= 500 or status in RETRYABLE_STATUS:
            raise TransientFailure(f"HTTP {status}")
        if status >= 400:
            raise PermanentFailure(f"HTTP {status}")

        try:
            payload = response.json()
        except ValueError as e:
            raise PermanentFailure(f"Malformed response body: {e}") from e

        if not isinstance(payload, dict):
            raise PermanentFailure("Malformed response body: expected a JSON object")
        if payload.get('errors'):
            messages = '; '.join(str(err.get('message', err)) if isinstance(err, dict) else str(err)
                                 for err in payload['errors'])
            raise PermanentFailure(f"GraphQL errors: {messages}")

        data = payload.get('data')
        if not isinstance(data, dict):
            raise PermanentFailure("Response has no data")
        return data
