"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from guestdesk.core.config import settings
from guestdesk.db.session import engine

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Guest messages never leave the service
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from guestdesk.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="GuestDesk API",
    description="Guest messaging operations: classification, auto-rules and approvals",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
)

# ============================================================================
# Routers
# ============================================================================

from guestdesk.routers import (
    approvals,
    audit_logs,
    auto_rules,
    dashboard,
    knowledge_base,
    messages,
    metrics,
    send_logs,
    threads,
)

# Inbox
app.include_router(threads.router, prefix="/threads", tags=["threads"])
app.include_router(messages.router, prefix="/messages", tags=["messages"])

# Automation and review (rule writes and bulk decisions are Manager+)
app.include_router(auto_rules.router, prefix="/auto-rules", tags=["auto-rules"])
app.include_router(approvals.router, prefix="/approvals", tags=["approvals"])

# History
app.include_router(send_logs.router, prefix="/send-logs", tags=["send-logs"])
app.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit"])

# Knowledge base, dashboard and metrics
app.include_router(knowledge_base.router, prefix="/knowledge-base", tags=["knowledge-base"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
app.include_router(metrics.router, prefix="/metrics", tags=["dashboard"])


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
