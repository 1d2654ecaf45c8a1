"""
Guard against crawling private, loopback or cloud-metadata addresses.
"""

from __future__ import annotations

import ipaddress
from urllib.parse import urlparse

BLOCKED_HOSTNAMES = {
    "localhost",
    "localhost.localdomain",
    "metadata.google.internal",
    "metadata.azure.com",
}
BLOCKED_SUFFIXES = (".internal", ".local", ".localhost")


def is_private_url(url: str) -> bool:
    """
    Return True when `url` targets a host that must never be fetched.
    Unparseable URLs count as private.
    """

    try:
        hostname = (urlparse(url).hostname or "").strip().lower()
    except ValueError:
        return True
    if not hostname:
        return True
    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(BLOCKED_SUFFIXES):
        return True

    try:
        address = ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
        or address.is_multicast
    )
