"""Thin client for single (non-batched) PagerDuty API calls.

Used by the lookup service to resolve names and e-mails to IDs before a
batch runs. Follows PagerDuty's classic pagination (``limit``/``offset``/
``more``) and retries transient failures with the same RetryPolicy the
batch executor uses.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from pdcli.domain.errors import ApiRequestError
from pdcli.domain.models.common import Credential
from pdcli.domain.models.request import RequestDescriptor
from pdcli.infrastructure.api.transport import (
    DEFAULT_BASE_URL, DEFAULT_TIMEOUT_S, HttpTransport, create_client,
)
from pdcli.infrastructure.resilience.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

PAGE_LIMIT = 100


class PagerDutyClient:
    """Fetches collections from the API, following pagination."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_S,
        retry_policy: Optional[RetryPolicy] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.http_transport = http_transport

    async def _get(self, transport: HttpTransport, descriptor: RequestDescriptor, credential: Credential) -> Any:
        attempts = 0
        while True:
            attempts += 1
            raw = await transport.execute(descriptor, credential)
            if raw.is_success:
                return raw.payload
            decision = self.retry_policy.decide(raw.classification, attempts, raw.retry_after)
            if not decision.retry:
                raise ApiRequestError(descriptor.endpoint, raw.message, raw.status_code)
            logger.warning(
                f"Retrying GET {descriptor.endpoint} after {raw.classification.value} "
                f"(attempt {attempts}); waiting {decision.delay_seconds:.2f}s"
            )
            await asyncio.sleep(decision.delay_seconds)

    async def fetch_all(
        self,
        resource: str,
        credential: Credential,
        params: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Returns every object of a collection endpoint (e.g. 'users') matching ``params``.

        Raises:
            ApiRequestError: If a page cannot be fetched.
        """
        endpoint = f"/{resource.strip('/')}"
        items: List[Dict[str, Any]] = []
        offset = 0
        async with create_client(self.base_url, self.timeout, self.http_transport) as client:
            transport = HttpTransport(client)
            while True:
                page_params = dict(params or {})
                page_params.update({"limit": str(PAGE_LIMIT), "offset": str(offset)})
                payload = await self._get(transport, RequestDescriptor.get(endpoint, page_params), credential)
                if not isinstance(payload, dict):
                    raise ApiRequestError(endpoint, f"Unexpected response body: {payload!r}")
                page = payload.get(resource.strip("/").split("/")[-1], [])
                items.extend(page)
                if not payload.get("more") or not page:
                    break
                offset += len(page)
        logger.debug(f"Fetched {len(items)} object(s) from {endpoint} with params {params}")
        return items
