from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import PermissionDeniedError

_security = HTTPBearer(auto_error=False, description="Google OAuth access token for Calendar calls")


# PUBLIC_INTERFACE
async def get_google_access_token(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
) -> str:
    """
    Return the Google access token sent as `Authorization: Bearer <token>`.

    The OAuth consent flow runs in the UI client; this service only forwards the
    resulting token to Google.

    Raises:
        PermissionDeniedError if no bearer token was sent.
    """
    if creds is None or not creds.credentials:
        raise PermissionDeniedError("Google Calendar authorization required")
    return creds.credentials
