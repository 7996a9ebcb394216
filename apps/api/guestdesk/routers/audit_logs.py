"""Audit log API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_db, require_roles
from guestdesk.db.enums import ROLES_CAN_MANAGE_RULES
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.common import PaginatedResponse
from guestdesk.schemas.logs import AuditLogRead
from guestdesk.services import audit_service
from guestdesk.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AuditLogRead])
def list_audit_logs(
    user_id: UUID | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = Query(None, max_length=200),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_RULES)),
    db: Session = Depends(get_db),
):
    """Audit trail newest first (manager/admin)."""
    items, total = audit_service.list_audit_logs(
        db,
        pagination,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        start=start,
        end=end,
        search=search,
    )
    return PaginatedResponse[AuditLogRead].build(items, total, pagination)
