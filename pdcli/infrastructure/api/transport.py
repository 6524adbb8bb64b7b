"""HTTP transport for the PagerDuty REST API.

Performs exactly one network call per descriptor over a shared
``httpx.AsyncClient`` and classifies the response. The transport never
raises for HTTP or network failures and never mutates shared state; the
classification is the sole input to the retry policy.
"""

import logging
import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx

from pdcli.domain.models.common import Credential
from pdcli.domain.models.outcome import Classification, RawOutcome
from pdcli.domain.models.request import HttpMethod, RequestDescriptor

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.pagerduty.com"
DEFAULT_TIMEOUT_S = 30.0
ACCEPT_HEADER = "application/vnd.pagerduty+json;version=2"
LEGACY_TOKEN_LENGTH = 20  # Classic REST API keys; anything else is an OAuth bearer token
# Delta-seconds: plain digits, optionally with a fraction (no signs, exponents, inf or nan)
DELTA_SECONDS_PATTERN = re.compile(r"^\d+(\.\d+)?$")


def auth_header(credential: Credential) -> str:
    """Builds the Authorization header value for a token."""
    if len(credential) == LEGACY_TOKEN_LENGTH:
        return f"Token token={credential}"
    return f"Bearer {credential}"


def parse_retry_after(headers: httpx.Headers, now: Optional[datetime] = None) -> Optional[float]:
    """Reads the server's retry hint in seconds.

    Accepts ``Retry-After`` as delta-seconds or an HTTP-date, falling back
    to PagerDuty's ``ratelimit-reset`` header. Anything else counts as no hint.
    """
    for name in ("retry-after", "ratelimit-reset"):
        value = headers.get(name)
        if not value:
            continue
        value = value.strip()
        if DELTA_SECONDS_PATTERN.match(value):
            return float(value)
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unparseable {name} header: {value!r}")
            continue
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        reference = now or datetime.now(timezone.utc)
        return max(0.0, (when - reference).total_seconds())
    return None


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def error_message(response: httpx.Response, payload: Any) -> str:
    """Combines the reason phrase with PagerDuty's error envelope, if any."""
    message = response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        error = payload["error"]
        detail = error.get("message")
        if detail:
            message = f"{message}: {detail}"
        errors = error.get("errors")
        if errors:
            message = f"{message} ({'; '.join(str(e) for e in errors)})"
    elif isinstance(payload, str) and payload.strip():
        message = f"{message}: {payload.strip()[:200]}"
    return message


def classify_status(status_code: int) -> Classification:
    if 200 <= status_code < 300:
        return Classification.SUCCESS
    if status_code == 429:
        return Classification.RATE_LIMITED
    if 500 <= status_code < 600:
        return Classification.SERVER_ERROR
    return Classification.CLIENT_ERROR


def create_client(
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = DEFAULT_TIMEOUT_S,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Creates the AsyncClient used by HttpTransport. ``transport`` is for tests."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout),
        headers={"Accept": ACCEPT_HEADER},
        transport=transport,
    )


class HttpTransport:
    """Executes Request Descriptors against the PagerDuty API."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    def _build_headers(self, descriptor: RequestDescriptor, credential: Credential) -> Dict[str, str]:
        headers = {"Authorization": auth_header(credential)}
        if descriptor.body is not None:
            headers["Content-Type"] = "application/json"
        return headers

    async def execute(self, descriptor: RequestDescriptor, credential: Credential) -> RawOutcome:
        """Performs one HTTP call and classifies the outcome."""
        method = descriptor.method.value if isinstance(descriptor.method, HttpMethod) else str(descriptor.method)
        start_time = time.perf_counter()
        try:
            response = await self.client.request(
                method,
                descriptor.endpoint,
                params=dict(descriptor.params) or None,
                json=descriptor.body,
                headers=self._build_headers(descriptor, credential),
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout calling {method} {descriptor.endpoint}: {type(e).__name__}")
            return RawOutcome(Classification.NETWORK_ERROR, message=f"Request timed out ({type(e).__name__})")
        except httpx.TransportError as e:
            logger.warning(f"Network error calling {method} {descriptor.endpoint}: {e}")
            return RawOutcome(Classification.NETWORK_ERROR, message=f"{type(e).__name__}: {e}")

        latency_ms = (time.perf_counter() - start_time) * 1000
        payload = _decode_body(response)
        classification = classify_status(response.status_code)
        logger.debug(
            f"{method} {descriptor.endpoint} -> {response.status_code} "
            f"({classification.value}) in {latency_ms:.2f}ms"
        )

        if classification is Classification.SUCCESS:
            return RawOutcome(classification, status_code=response.status_code, payload=payload)
        return RawOutcome(
            classification,
            status_code=response.status_code,
            payload=payload,
            message=error_message(response, payload),
            retry_after=parse_retry_after(response.headers) if classification is Classification.RATE_LIMITED else None,
        )
