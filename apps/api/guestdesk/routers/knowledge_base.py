"""Knowledge base API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_current_session, get_db, require_csrf_header
from guestdesk.core.errors import GuestDeskError, http_error
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.knowledge_base import (
    KbEntryCreate,
    KbEntryRead,
    KbEntryUpdate,
    KbTagCount,
)
from guestdesk.services import knowledge_base_service

router = APIRouter()


@router.get("", response_model=list[KbEntryRead])
def list_entries(
    client_id: UUID | None = None,
    property_id: UUID | None = None,
    tag: str | None = None,
    search: str | None = Query(None, max_length=200),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return knowledge_base_service.list_entries(
        db, client_id=client_id, property_id=property_id, tag=tag, search=search
    )


@router.get("/tags", response_model=list[KbTagCount])
def list_tags(
    client_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return knowledge_base_service.tag_counts(db, client_id=client_id)


@router.post(
    "",
    response_model=KbEntryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_entry(
    data: KbEntryCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return knowledge_base_service.create_entry(db, data, actor_id=session.user_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.patch(
    "/{entry_id}",
    response_model=KbEntryRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_entry(
    entry_id: UUID,
    data: KbEntryUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return knowledge_base_service.update_entry(db, entry_id, data, actor_id=session.user_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_entry(
    entry_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        knowledge_base_service.delete_entry(db, entry_id, actor_id=session.user_id)
    except GuestDeskError as e:
        raise http_error(e)
