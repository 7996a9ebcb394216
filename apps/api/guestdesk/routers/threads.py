"""Thread API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_current_session, get_db, require_csrf_header
from guestdesk.core.errors import GuestDeskError, http_error
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.common import PaginatedResponse
from guestdesk.schemas.thread import (
    ThreadCreate,
    ThreadDetail,
    ThreadRead,
    ThreadStatusUpdate,
    ThreadSummary,
)
from guestdesk.services import classification_service, thread_service
from guestdesk.services.classification_service import ContextMessage
from guestdesk.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=PaginatedResponse[ThreadRead])
def list_threads(
    client_id: UUID | None = None,
    property_id: UUID | None = None,
    status: str | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List threads, most recent guest activity first."""
    items, total = thread_service.list_threads(
        db, pagination, client_id=client_id, property_id=property_id, status=status
    )
    return PaginatedResponse[ThreadRead].build(items, total, pagination)


@router.post(
    "",
    response_model=ThreadRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_thread(
    data: ThreadCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return thread_service.create_thread(
            db, data.client_id, data.property_id, data.guest_name, data.guest_email
        )
    except GuestDeskError as e:
        raise http_error(e)


@router.get("/{thread_id}", response_model=ThreadDetail)
def get_thread(
    thread_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Thread with its messages, oldest first."""
    try:
        thread = thread_service.get_thread(db, thread_id)
    except GuestDeskError as e:
        raise http_error(e)
    return thread


@router.patch(
    "/{thread_id}/status",
    response_model=ThreadRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_thread_status(
    thread_id: UUID,
    data: ThreadStatusUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Operator status change (pending/open/resolved/closed)."""
    try:
        return thread_service.set_status(db, thread_id, data.status, actor_id=session.user_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.get("/{thread_id}/summary", response_model=ThreadSummary)
async def get_thread_summary(
    thread_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Short AI summary of the conversation; a placeholder when AI is unavailable."""
    try:
        thread = thread_service.get_thread(db, thread_id)
    except GuestDeskError as e:
        raise http_error(e)
    messages = [
        ContextMessage(sender_type=m.sender_type, text=m.text) for m in thread.messages
    ]
    summary = await classification_service.summarize_thread(messages)
    return ThreadSummary(thread_id=thread.id, summary=summary)
