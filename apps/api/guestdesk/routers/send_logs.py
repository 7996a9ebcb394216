"""Send log API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_current_session, get_db
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.common import PaginatedResponse
from guestdesk.schemas.logs import SendLogRead
from guestdesk.services import send_log_service
from guestdesk.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=PaginatedResponse[SendLogRead])
def list_send_logs(
    thread_id: UUID | None = None,
    user_id: UUID | None = None,
    channel: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = Query(None, max_length=200),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Outbound replies newest first."""
    items, total = send_log_service.list_send_logs(
        db,
        pagination,
        thread_id=thread_id,
        user_id=user_id,
        channel=channel,
        start=start,
        end=end,
        search=search,
    )
    return PaginatedResponse[SendLogRead].build(items, total, pagination)
