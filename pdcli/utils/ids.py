"""Helpers for handling PagerDuty IDs and attribute-setting request bodies."""

import re
from typing import Any, Dict, Iterable, List, Optional

# PagerDuty object IDs: upper-case alphanumerics starting with P, Q or R
PAGERDUTY_ID_PATTERN = re.compile(r"^[PQR][0-9A-Z]{6,13}$")


def split_dedup_and_flatten(values: Iterable[str]) -> List[str]:
    """Splits each value on commas and whitespace and de-duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        for token in re.split(r"[,\s]+", value or ""):
            if token and token not in seen:
                seen.add(token)
                result.append(token)
    return result


def invalid_pagerduty_ids(ids: Iterable[str]) -> List[str]:
    return [i for i in ids if not PAGERDUTY_ID_PATTERN.match(i)]


def put_body_for_set_attribute(object_type: str, object_id: str, key: str, value: Optional[Any]) -> Dict[str, Any]:
    """Body of a PUT that sets ``key`` to ``value`` on a single object."""
    return {
        object_type: {
            "id": object_id,
            "type": f"{object_type}_reference",
            key: value,
        }
    }
