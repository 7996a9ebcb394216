"""FastAPI dependencies: database session, operator session and guards."""

from typing import Generator, Iterable

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from guestdesk.core.security import decode_session_token
from guestdesk.db.session import SessionLocal

COOKIE_NAME = "guestdesk_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed when the response is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Resolve the operator behind the session cookie.

    The cookie holds a JWT issued by the console login; the operator row
    must still exist, be active and carry the same token_version.

    Raises:
        HTTPException 401: missing, invalid or revoked session
    """
    from guestdesk.db.models import User
    from guestdesk.schemas.auth import TokenPayload

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        claims = TokenPayload.model_validate(decode_session_token(token))
    except Exception:
        raise _unauthorized("Invalid session") from None

    operator = db.get(User, claims.sub)
    if operator is None:
        raise _unauthorized("User not found")
    if not operator.is_active:
        raise _unauthorized("Account disabled")
    if operator.token_version != claims.token_version:
        raise _unauthorized("Session revoked")
    return operator


def get_current_session(request: Request, db: Session = Depends(get_db)):
    """
    Operator session used by every console endpoint.

    Raises:
        HTTPException 401: not authenticated
        HTTPException 403: role unknown to this deployment
    """
    from guestdesk.db.enums import Role
    from guestdesk.schemas.auth import UserSession

    operator = get_current_user(request, db)
    if not Role.has_value(operator.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{operator.role}'. Contact administrator.",
        )

    return UserSession(
        user_id=operator.id,
        role=Role(operator.role),
        email=operator.email,
        display_name=operator.name,
    )


def require_roles(allowed_roles: Iterable):
    """
    Guard factory returning the session when its role is allowed.

    Usage:
        session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_RULES))
    """
    allowed = frozenset(allowed_roles)

    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session

    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Reject state-changing requests that lack the console's CSRF header.

    Raises:
        HTTPException 403: header missing or wrong
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
