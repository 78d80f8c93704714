"""
Opaque feed cursors.

A cursor carries the ids already returned in the current logical request. The
next page re-ranks with those ids excluded, so no page repeats an earlier item
even if scores moved in between.
"""

import base64
import json
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

CURSOR_VERSION = 1


def encode_cursor(returned_ids: List[str]) -> str:
    payload = json.dumps({"v": CURSOR_VERSION, "returned": returned_ids}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> List[str]:
    """Ids already returned; [] for no cursor or an unreadable one (first page)."""
    if not cursor:
        return []
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        returned = data["returned"]
        if data.get("v") != CURSOR_VERSION or not isinstance(returned, list):
            raise ValueError("unsupported cursor payload")
        return [str(i) for i in returned]
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("[ranking] CURSOR_INVALID error=%s restarting_from=first_page", e)
        return []
