"""Auto-rule API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from guestdesk.core.errors import GuestDeskError, http_error
from guestdesk.db.enums import ROLES_CAN_MANAGE_RULES
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.rule import AutoRuleCreate, AutoRuleRead, AutoRuleUpdate
from guestdesk.services import rule_service

router = APIRouter()


@router.get("", response_model=list[AutoRuleRead])
def list_rules(
    client_id: UUID,
    property_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List a client's rules newest first."""
    return rule_service.list_rules(db, client_id, property_id)


@router.get("/{rule_id}", response_model=AutoRuleRead)
def get_rule(
    rule_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        return rule_service.get_rule(db, rule_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.post(
    "",
    response_model=AutoRuleRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_rule(
    client_id: UUID,
    data: AutoRuleCreate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_RULES)),
    db: Session = Depends(get_db),
):
    try:
        return rule_service.create_rule(db, client_id, data, actor_id=session.user_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.patch(
    "/{rule_id}",
    response_model=AutoRuleRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_rule(
    rule_id: UUID,
    data: AutoRuleUpdate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_RULES)),
    db: Session = Depends(get_db),
):
    try:
        return rule_service.update_rule(db, rule_id, data, actor_id=session.user_id)
    except GuestDeskError as e:
        raise http_error(e)


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_rule(
    rule_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_RULES)),
    db: Session = Depends(get_db),
):
    try:
        rule_service.delete_rule(db, rule_id, actor_id=session.user_id)
    except GuestDeskError as e:
        raise http_error(e)
