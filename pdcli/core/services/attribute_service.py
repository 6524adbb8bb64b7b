"""Core service for setting one attribute on many PagerDuty objects.

Builds one PUT descriptor per object, runs them through the batch
executor and maps failed indices back to the objects that failed.
"""

import logging
from dataclasses import replace
from typing import Any, List, Optional, Sequence

from pdcli.core.services.batch_executor import BatchExecutor, BatchOptions
from pdcli.domain.interfaces.user_interface import UserInterface
from pdcli.domain.models.common import Credential, PagerDutyID
from pdcli.domain.models.request import RequestDescriptor
from pdcli.domain.models.result_set import ResultSet
from pdcli.utils.ids import put_body_for_set_attribute

logger = logging.getLogger(__name__)

# object type -> collection path
COLLECTIONS = {
    "user": "users",
    "service": "services",
}


class AttributeService:
    """Sets an attribute on a list of users or services via the batch executor."""

    def __init__(self, executor: BatchExecutor, ui: UserInterface):
        self.executor = executor
        self.ui = ui

    @staticmethod
    def build_requests(object_type: str, ids: Sequence[PagerDutyID], key: str, value: Optional[Any]) -> List[RequestDescriptor]:
        if object_type not in COLLECTIONS:
            raise ValueError(f"Unsupported object type '{object_type}'. Expected one of: {', '.join(COLLECTIONS)}")
        collection = COLLECTIONS[object_type]
        return [
            RequestDescriptor.put(f"/{collection}/{object_id}", put_body_for_set_attribute(object_type, object_id, key, value))
            for object_id in ids
        ]

    async def set_attribute(
        self,
        object_type: str,
        ids: Sequence[PagerDutyID],
        key: str,
        value: Optional[Any],
        credential: Credential,
        options: Optional[BatchOptions] = None,
    ) -> bool:
        """Sets ``key`` = ``value`` on every object and reports failures.

        Returns:
            True if every request succeeded and every returned object carries the new value.
        """
        requests = self.build_requests(object_type, ids, key, value)
        options = options or BatchOptions()
        if not options.description:
            options = replace(options, description=f"Setting {key} = '{value}' on {len(requests)} {COLLECTIONS[object_type]}")
        result = await self.executor.run(requests, credential, options)
        return self.report(object_type, ids, result, key, value)

    def report(self, object_type: str, ids: Sequence[PagerDutyID], result: ResultSet, key: str, value: Optional[Any]) -> bool:
        ok = True
        for index in result.failed_indices():
            ok = False
            self.ui.display_error(f"Failed to set {object_type} {ids[index]}: {result.formatted_error(index)}")

        for payload in result.successful_payloads():
            obj = payload.get(object_type) if isinstance(payload, dict) else None
            if not isinstance(obj, dict):
                continue
            if obj.get(key) != value:
                ok = False
                self.ui.display_error(f"Failed to set value on {object_type} {obj.get('id', '?')}")

        succeeded = result.success_count
        if ok:
            self.ui.display_info(f"Set {key} on {succeeded} {COLLECTIONS[object_type]}.")
        elif result.failure_count:
            self.ui.display_warning(f"{result.failure_count} of {len(result)} request(s) failed.")
        logger.info(f"Attribute '{key}' update on {object_type}s: {succeeded} ok, {result.failure_count} failed")
        return ok
