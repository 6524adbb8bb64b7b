"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), resolves the
objects to act on through the LookupService, and delegates the batched
work to the AttributeService. Returns exit codes; never exits itself.
"""

import logging
from typing import List, Optional, Sequence

from pdcli.core.services.attribute_service import AttributeService
from pdcli.core.services.batch_executor import BatchOptions
from pdcli.core.services.lookup_service import LookupService
from pdcli.domain.errors import PdcliError
from pdcli.domain.interfaces.user_interface import UserInterface
from pdcli.domain.models.common import Credential, PagerDutyID, RESOURCE_SERVICES
from pdcli.utils.ids import invalid_pagerduty_ids, split_dedup_and_flatten

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def _merge(current: List[PagerDutyID], extra: Sequence[str]) -> List[PagerDutyID]:
    return [PagerDutyID(i) for i in split_dedup_and_flatten([*current, *extra])]


def normalize_value(value: str) -> Optional[str]:
    """An empty or whitespace-only value clears the attribute."""
    return value if value.strip() else None


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        attribute_service: AttributeService,
        lookup_service: LookupService,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler with required services."""
        self.attribute_service = attribute_service
        self.lookup_service = lookup_service
        self.ui = ui

    def _validate_ids(self, ids: List[PagerDutyID], noun: str) -> bool:
        if not ids:
            self.ui.display_error(f"No {noun} IDs were found. Please try a different search.")
            return False
        invalid = invalid_pagerduty_ids(ids)
        if invalid:
            self.ui.display_error(f"Invalid {noun} IDs: {', '.join(invalid)}")
            return False
        return True

    async def handle_user_set(
        self,
        key: str,
        value: str,
        credential: Credential,
        emails: Optional[Sequence[str]] = None,
        exact_emails: Optional[Sequence[str]] = None,
        ids: Optional[Sequence[str]] = None,
        piped_ids: Optional[str] = None,
        options: Optional[BatchOptions] = None,
    ) -> int:
        """Handles 'user set'. Returns the process exit code."""
        if not (emails or exact_emails or ids or piped_ids is not None):
            self.ui.display_error("You must specify at least one of: --emails, --exact-emails, --ids, --pipe")
            return EXIT_FAILURE
        logger.info(f"Handling 'user set' for key '{key}'")

        user_ids: List[PagerDutyID] = []
        try:
            if emails:
                self.ui.display_info("Getting user IDs from PagerDuty...")
                user_ids = await self.lookup_service.user_ids_for_emails(emails, credential)
            for email in exact_emails or []:
                user_id = await self.lookup_service.user_id_for_email(email, credential)
                if user_id:
                    user_ids = _merge(user_ids, [user_id])
            if ids:
                user_ids = _merge(user_ids, ids)
            if piped_ids is not None:
                user_ids = [PagerDutyID(i) for i in split_dedup_and_flatten([piped_ids])]
        except PdcliError as e:
            logger.error(f"User lookup failed: {e}", exc_info=True)
            self.ui.display_error(f"User lookup failed: {e}")
            return EXIT_FAILURE

        if not self._validate_ids(user_ids, "user"):
            return EXIT_FAILURE
        return await self._set("user", user_ids, key, value, credential, options)

    async def handle_service_set(
        self,
        key: str,
        value: str,
        credential: Credential,
        name: Optional[str] = None,
        ids: Optional[Sequence[str]] = None,
        options: Optional[BatchOptions] = None,
    ) -> int:
        """Handles 'service set'. Returns the process exit code."""
        if not (name or ids):
            self.ui.display_error("You must specify at least one of: --name, --ids")
            return EXIT_FAILURE
        logger.info(f"Handling 'service set' for key '{key}'")

        service_ids: List[PagerDutyID] = []
        try:
            if name:
                self.ui.display_info("Getting service IDs from PagerDuty...")
                service_ids = await self.lookup_service.ids_for_names(RESOURCE_SERVICES, [name], credential)
                if not service_ids:
                    self.ui.display_warning(f"No services found matching '{name}'.")
        except PdcliError as e:
            logger.error(f"Service lookup failed: {e}", exc_info=True)
            self.ui.display_error(f"Service lookup failed: {e}")
            return EXIT_FAILURE
        if ids:
            service_ids = _merge(service_ids, ids)

        if not self._validate_ids(service_ids, "service"):
            return EXIT_FAILURE
        return await self._set("service", service_ids, key, value, credential, options)

    async def _set(
        self,
        object_type: str,
        object_ids: List[PagerDutyID],
        key: str,
        value: str,
        credential: Credential,
        options: Optional[BatchOptions],
    ) -> int:
        try:
            ok = await self.attribute_service.set_attribute(
                object_type, object_ids, key, normalize_value(value), credential, options,
            )
        except PdcliError as e:
            logger.error(f"Setting {key} on {object_type}s failed: {e}", exc_info=True)
            self.ui.display_error(f"Command failed: {e}")
            return EXIT_FAILURE
        return EXIT_OK if ok else EXIT_FAILURE
