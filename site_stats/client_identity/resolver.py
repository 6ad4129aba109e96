"""
Client IP resolution.

Proxy headers are preferred over the transport address, but only when they
carry a public IP address.
"""

import ipaddress
from typing import Mapping, Optional

from flask import request

FALLBACK_ADDRESS = "127.0.0.1"

# Checked in order; the transport address is tried last.
IP_HEADERS = ("CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP")


def is_public_ip(candidate: str) -> bool:
    """True for a syntactically valid address outside private and reserved ranges."""
    try:
        addr = ipaddress.ip_address(candidate)
    except ValueError:
        return False
    return not (
        addr.is_private
        or addr.is_reserved
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_multicast
        or addr.is_unspecified
    )


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    # Plain dicts are case sensitive, werkzeug headers are not
    lowered = name.lower()
    for key, val in headers.items():
        if key.lower() == lowered:
            return val
    return None


def resolve_client_ip(headers: Mapping[str, str], remote_addr: Optional[str]) -> str:
    """Pick the identifier for the requesting client.

    Args:
        headers: Request headers
        remote_addr: Transport level source address

    Returns:
        The first public address among the proxy headers and remote_addr,
        otherwise remote_addr as given (or 127.0.0.1 when it is missing).
    """
    candidates = []
    for name in IP_HEADERS:
        value = _header(headers, name)
        if not value:
            continue
        if name == "X-Forwarded-For":
            value = value.split(',')[0]
        candidates.append(value.strip())
    if remote_addr:
        candidates.append(remote_addr.strip())

    for candidate in candidates:
        if is_public_ip(candidate):
            return candidate

    return remote_addr or FALLBACK_ADDRESS


def get_client_ip() -> str:
    """Get client IP address for the current Flask request."""
    return resolve_client_ip(request.headers, request.remote_addr)
