from __future__ import annotations

import math
from datetime import datetime, timezone


def iso_z(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def page_count(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
