"""Extraction of the customer portal link from the customer details field."""

import re
from functools import lru_cache

PORTAL_HOST_PREFIX = "fuse.portals."
PORTAL_PATH = "/dashboard/"

# Any tenant domain when none is configured
_ANY_TENANT = r"[^/\s\")]+"


@lru_cache(maxsize=8)
def portal_link_pattern(tenant: str | None = None) -> re.Pattern[str]:
    """Compile the portal link pattern for ``tenant`` (any tenant if empty).

    The link runs until the first ``"`` or ``)`` so it stops before the
    closing quote of an HTML attribute or the paren of a markdown link.
    """
    tenant_pattern = re.escape(tenant) if tenant else _ANY_TENANT
    return re.compile(
        rf"https://{re.escape(PORTAL_HOST_PREFIX)}{tenant_pattern}{re.escape(PORTAL_PATH)}[^\")]+",
        re.IGNORECASE,
    )


def extract_portal_link(customer_details: str | None, tenant: str | None = None) -> str | None:
    """Return the first customer portal link in ``customer_details``, if any."""
    if not customer_details:
        return None
    match = portal_link_pattern(tenant or None).search(customer_details)
    return match.group(0) if match else None
