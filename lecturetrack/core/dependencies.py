"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from lecturetrack.core.context import set_user_id


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Acting user, as asserted by the upstream authentication layer.

    Raises:
        HTTPException(401): If the ``X-User-ID`` header is missing
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header",
        )

    set_user_id(user_id)
    return user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
