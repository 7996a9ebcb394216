"""Dashboard API endpoint."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from guestdesk.core.deps import get_current_session, get_db
from guestdesk.schemas.auth import UserSession
from guestdesk.schemas.dashboard import DashboardStats
from guestdesk.services import dashboard_service

router = APIRouter()


@router.get("", response_model=DashboardStats)
def get_dashboard(
    client_id: UUID | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return dashboard_service.get_stats(db, client_id=client_id)
