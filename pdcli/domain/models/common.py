"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like credentials, endpoints and
PagerDuty IDs, ensuring consistency and type safety.
"""

from typing import NewType

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
Credential = NewType("Credential", str)      # Opaque API token (bearer or legacy key)
Endpoint = NewType("Endpoint", str)          # Resource path, e.g. '/users/PABC123'
PagerDutyID = NewType("PagerDutyID", str)    # Opaque object ID, e.g. 'PABC123'

# === Resource Types ===
RESOURCE_USERS = "users"
RESOURCE_SERVICES = "services"
