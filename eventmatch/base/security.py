from typing import Optional

from fastapi import Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from eventmatch.base.config import settings

# === API key header config ===
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Set by the upstream auth gateway once the session is verified
user_id_header = APIKeyHeader(name="X-User-Id", auto_error=False)


def verify_api_key(key: str = Security(api_key_header)):
    if settings.ENABLE_API_KEY_SECURITY and key != settings.API_KEY:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or missing API key")


def get_current_user_id(user_id: Optional[str] = Security(user_id_header)) -> str:
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user_id


def verify_cron_secret(authorization: Optional[str] = Header(None)):
    if settings.CRON_SECRET and authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def is_event_organizer(event, user_id: Optional[str]) -> bool:
    """Fails closed: an unknown event or anonymous caller is never the organizer."""
    if event is None or not user_id:
        return False
    return event.organizer_id == user_id
