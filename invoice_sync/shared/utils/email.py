"""Email address helpers"""

import re

_ANGLE_ADDRESS = re.compile(r"<([^<>]+)>")


def extract_email(value: str | None) -> str:
    """
    Pull the bare address out of a header value.

    ``"Acme Billing <billing@acme.com>"`` -> ``"billing@acme.com"``.
    Values without angle brackets are returned trimmed. For multi-recipient
    headers only the first address is kept.
    """
    if not value:
        return ""
    match = _ANGLE_ADDRESS.search(value)
    if match:
        return match.group(1).strip()
    return value.split(",")[0].strip()
