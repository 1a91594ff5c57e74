"""
Authorization header construction.

The credential is an opaque string supplied by the caller.
"""

from __future__ import annotations


def get_auth_header(
    api_key: str | None,
    *,
    header_name: str = "Authorization",
    scheme: str | None = "Bearer",
) -> dict[str, str]:
    """Build the authorization header for a credential.

    Args:
        api_key: The credential; no header is produced when empty
        header_name: Header to carry the credential
        scheme: Auth scheme prefix, or None to send the raw key

    Returns:
        Header dictionary (possibly empty)
    """
    if not api_key:
        return {}
    value = f"{scheme} {api_key}" if scheme else api_key
    return {header_name: value}
