"""Caller identity for the program routes.

Session issuance happens upstream; the gateway forwards the authenticated
user id in the X-User-Id header.
"""

from __future__ import annotations

import uuid

from fastapi import Header, HTTPException, status


def _parse_user_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user id",
        ) from None


async def get_optional_user_id(
    x_user_id: str | None = Header(default=None),
) -> uuid.UUID | None:
    """FastAPI dependency — user id if the caller is signed in, else None."""
    if not x_user_id:
        return None
    return _parse_user_id(x_user_id)


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> uuid.UUID:
    """FastAPI dependency — user id, raises 401 for anonymous callers."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return _parse_user_id(x_user_id)
