"""Message API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_current_session, get_db, require_csrf_header
from guestdesk.core.errors import GuestDeskError, http_error
from guestdesk.schemas.approval import ApprovalRead
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.thread import MessageCreate, MessageRead, ReviewRequest, SendReplyRequest
from guestdesk.services import approval_service, message_service

router = APIRouter()


@router.get("", response_model=list[MessageRead])
def list_messages(
    thread_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Messages of one thread (oldest first) or the latest across threads."""
    return message_service.list_messages(db, thread_id=thread_id)


@router.post(
    "",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_message(
    data: MessageCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Store a message; guest messages are classified in the background."""
    try:
        return message_service.create_message(
            db, data.thread_id, data.sender_type.value, data.text
        )
    except GuestDeskError as e:
        raise http_error(e)


@router.post(
    "/{message_id}/send",
    response_model=ApprovalRead,
    dependencies=[Depends(require_csrf_header)],
)
def send_reply(
    message_id: UUID,
    data: SendReplyRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Send an operator reply (approves the message's pending approval)."""
    try:
        return message_service.send_reply(db, message_id, data.final_reply, session.user_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.post(
    "/{message_id}/review",
    response_model=ApprovalRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def request_review(
    message_id: UUID,
    data: ReviewRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Manually escalate a guest message for review."""
    try:
        return approval_service.request_review(
            db, message_id, notes=data.notes, actor_id=session.user_id
        )
    except GuestDeskError as e:
        raise http_error(e)
