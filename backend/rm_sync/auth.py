"""Caller identity for the HTTP surface.

Sessions and OAuth live in the upstream gateway, which forwards the
authenticated user's ID in the ``X-User-Id`` header.
"""

from typing import Annotated, Optional

from fastapi import Header, HTTPException, status


async def get_current_user_id(x_user_id: Annotated[Optional[str], Header()] = None) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user",
        )
    return x_user_id.strip()
