"""Core service mapping human-readable names and e-mails to PagerDuty IDs.

Each lookup is a single (paginated) query against the API, run before the
batch so the batch only ever deals with opaque IDs.
"""

import logging
from typing import Iterable, List, Optional

from pdcli.domain.models.common import Credential, PagerDutyID, RESOURCE_USERS
from pdcli.infrastructure.api.client import PagerDutyClient

logger = logging.getLogger(__name__)


def _dedup(ids: Iterable[str]) -> List[PagerDutyID]:
    seen = set()
    result = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            result.append(PagerDutyID(item))
    return result


class LookupService:
    """Resolves users and services to IDs."""

    def __init__(self, client: PagerDutyClient):
        self.client = client

    async def user_ids_for_emails(self, fragments: Iterable[str], credential: Credential) -> List[PagerDutyID]:
        """IDs of users whose e-mail contains any of the given fragments."""
        ids = []
        for fragment in fragments:
            users = await self.client.fetch_all(RESOURCE_USERS, credential, {"query": fragment})
            logger.debug(f"E-mail fragment '{fragment}' matched {len(users)} user(s)")
            ids.extend(u["id"] for u in users)
        return _dedup(ids)

    async def user_id_for_email(self, email: str, credential: Credential) -> Optional[PagerDutyID]:
        """ID of the user whose login e-mail is exactly ``email`` (case-insensitive)."""
        users = await self.client.fetch_all(RESOURCE_USERS, credential, {"query": email})
        wanted = email.strip().lower()
        for user in users:
            if str(user.get("email", "")).lower() == wanted:
                return PagerDutyID(user["id"])
        logger.info(f"No user with login e-mail '{email}'")
        return None

    async def ids_for_names(self, resource: str, names: Iterable[str], credential: Credential) -> List[PagerDutyID]:
        """IDs of objects in ``resource`` (e.g. 'services') whose names match the queries."""
        ids = []
        for name in names:
            found = await self.client.fetch_all(resource, credential, {"query": name})
            logger.debug(f"Query '{name}' matched {len(found)} {resource}")
            ids.extend(item["id"] for item in found)
        return _dedup(ids)
