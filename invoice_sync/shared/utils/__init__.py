from invoice_sync.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_ms_utc,
    from_timestamp_utc,
    isoformat_z,
    parse_instant,
    utc_now,
)
from invoice_sync.shared.utils.email import extract_email
from invoice_sync.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
    "from_timestamp_ms_utc",
    "isoformat_z",
    "parse_instant",
    "extract_email",
]
