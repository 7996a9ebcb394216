"""Approval API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from guestdesk.core.errors import GuestDeskError, http_error
from guestdesk.db.enums import ROLES_CAN_MANAGE_RULES
from guestdesk.schemas.approval import (
    ApprovalDetail,
    BulkDecisionRequest,
    BulkDecisionResponse,
    DecisionRequest,
)
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.common import PaginatedResponse
from guestdesk.services import approval_service
from guestdesk.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=PaginatedResponse[ApprovalDetail])
def list_approvals(
    status: str | None = "pending",
    client_id: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List approvals (default: pending) newest first."""
    items, total = approval_service.list_approvals(
        db, pagination, status=status or None, client_id=client_id
    )
    return PaginatedResponse[ApprovalDetail].build(items, total, pagination)


@router.post(
    "/bulk",
    response_model=BulkDecisionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def bulk_decide(
    data: BulkDecisionRequest,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_RULES)),
    db: Session = Depends(get_db),
):
    """Approve or reject the pending approvals of many messages at once."""
    try:
        processed = approval_service.bulk_decide(
            db, data.message_ids, data.action, session.user_id, reason=data.reason
        )
    except GuestDeskError as e:
        raise http_error(e)
    return BulkDecisionResponse(processed=processed)


@router.get("/{approval_id}", response_model=ApprovalDetail)
def get_approval(
    approval_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return approval_service.get_approval(db, approval_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.post(
    "/{approval_id}/decision",
    response_model=ApprovalDetail,
    dependencies=[Depends(require_csrf_header)],
)
def decide(
    approval_id: UUID,
    data: DecisionRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Approve (records the send) or reject a pending approval."""
    try:
        return approval_service.decide(
            db,
            approval_id,
            data.action,
            reviewer_id=session.user_id,
            notes=data.notes,
            final_reply=data.final_reply,
        )
    except GuestDeskError as e:
        raise http_error(e)
