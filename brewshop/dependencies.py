# brewshop/dependencies.py
"""
Used by FastAPI for dependency injection - Database & Auth
It verifies who the user is and sets up the database session for the request
"""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from brewshop.agent import BaristaDeps
from brewshop.models import User
from brewshop.utils.db import get_session


# 1. Authentication
# The session layer in front of the API resolves the login and forwards the user id header.
# Tier and discounts are always derived from this user, never from the request body.
async def get_current_user(
    user_id: Annotated[Optional[int], Header()] = None,
    session: Session = Depends(get_session),
) -> User:
    if not user_id:
        raise HTTPException(status_code=401, detail="User ID is Missing")

    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid User ID")

    return user


# Same as above, but anonymous visitors are allowed (they get the lowest tier)
async def get_optional_user(
    user_id: Annotated[Optional[int], Header()] = None,
    session: Session = Depends(get_session),
) -> Optional[User]:
    if not user_id:
        return None
    return session.get(User, user_id)


# 2. Build the Agent Dependencies
async def get_barista_deps(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> BaristaDeps:
    return BaristaDeps(user_id=user.id, db=session)
