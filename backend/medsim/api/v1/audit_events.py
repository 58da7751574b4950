"""Audit trail endpoints."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.api import deps
from medsim.models.user import User
from medsim.schemas.audit import AuditEventRead
from medsim.security.permissions import STAFF_ROLES, require_roles
from medsim.services import audit_service

router = APIRouter(prefix="/audit-events")


@router.get("", response_model=list[AuditEventRead], summary="List audit events")
async def list_audit_events(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    entity_type: Annotated[str | None, Query()] = None,
    entity_id: Annotated[str | None, Query()] = None,
    event_type: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 200,
) -> list[AuditEventRead]:
    require_roles(current_user, STAFF_ROLES)
    events = await audit_service.list_events(
        session,
        entity_type=entity_type,
        entity_id=entity_id,
        event_type=event_type,
        limit=limit,
    )
    return [AuditEventRead.model_validate(event) for event in events]
