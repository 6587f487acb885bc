from datetime import datetime, timezone
from typing import Optional


def isoformat_utc(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. ``2024-05-01T10:00:00.000Z``."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
