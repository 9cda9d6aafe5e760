from __future__ import annotations

import logging

from fastapi import Header, HTTPException, status

from orgchart.models.auth import UserInfo

logger = logging.getLogger(__name__)


async def get_current_user(
    x_user_id: str | None = Header(None),
    x_user_name: str | None = Header(None),
    x_user_email: str | None = Header(None),
) -> UserInfo:
    """Principal forwarded by the authenticating proxy in front of the API."""
    if not x_user_id or not x_user_id.strip():
        logger.debug("Request without X-User-Id header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    return UserInfo(id=x_user_id.strip(), name=x_user_name, email=x_user_email)
