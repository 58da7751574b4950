"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.api import deps
from medsim.models.user import User
from medsim.schemas.auth import Token, UserRead
from medsim.services import audit_service
from medsim.services.auth_service import authenticate_user, create_access_token_for_user

router = APIRouter()


@router.post("/token", response_model=Token, summary="Obtain access token")
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> Token:
    """Validate username and PIN and issue a bearer token."""
    user = await authenticate_user(
        session, username=form_data.username, pin=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or PIN",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = await create_access_token_for_user(user)
    await audit_service.record_event(
        session,
        user_id=user.id,
        event_type="auth.login",
        entity_type="user",
        entity_id=user.id,
        description="Successful login",
        payload={"username": user.username, "role": user.role.value},
    )
    return Token(access_token=access_token)


@router.get("/me", response_model=UserRead, summary="Current user")
async def read_current_user(
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> UserRead:
    return UserRead.model_validate(current_user)
