"""Receipt number allocation"""

import secrets
from datetime import datetime, timezone

RECEIPT_PREFIX = "RCP"


def allocate_receipt_number(now: datetime | None = None) -> str:
    """
    Allocate a human-facing receipt number.

    Format: RCP-YYYYMMDD-HHMMSSmmm-XXXXXX (UTC, millisecond precision,
    six random hex digits). Numbers sort by allocation time; the random
    suffix keeps same-millisecond allocations apart, and the unique
    column on sale.receipt_number rejects the rare collision.
    """
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    stamp = now.strftime("%Y%m%d-%H%M%S") + f"{now.microsecond // 1000:03d}"
    return f"{RECEIPT_PREFIX}-{stamp}-{secrets.token_hex(3).upper()}"
