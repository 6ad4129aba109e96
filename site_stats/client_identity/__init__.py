"""
Client identity resolution from request metadata.
"""

from .resolver import resolve_client_ip, get_client_ip, is_public_ip

__all__ = ["resolve_client_ip", "get_client_ip", "is_public_ip"]
