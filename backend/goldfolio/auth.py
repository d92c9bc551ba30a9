"""Owner resolution for authenticated routes.

Credential checks and sessions live in front of this service. By the time a
request arrives here, the auth layer has put the account id in a header
(``X-User-Id`` unless configured otherwise); this module only reads it.
"""

from __future__ import annotations

from fastapi import Request

from .errors import AuthenticationRequired


def current_owner(request: Request) -> str:
    """FastAPI dependency returning the resolved owner id, or 401."""
    header = request.app.state.settings.owner_header
    owner_id = request.headers.get(header, "").strip()
    if not owner_id:
        raise AuthenticationRequired("Authentication required")
    return owner_id
