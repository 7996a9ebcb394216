"""Enum definitions for application constants."""

from guestdesk.db.enums.audit import AuditAction
from guestdesk.db.enums.auth import Role
from guestdesk.db.enums.defaults import (
    DEFAULT_APPROVAL_STATUS,
    DEFAULT_JOB_STATUS,
    DEFAULT_RISK_MAX,
    DEFAULT_THREAD_STATUS,
)
from guestdesk.db.enums.jobs import JobStatus, JobType
from guestdesk.db.enums.messaging import (
    OPERATOR_THREAD_STATUSES,
    RISK_ORDER,
    MessageIntent,
    RiskLevel,
    SenderType,
    ThreadStatus,
    UrgencyLevel,
)
from guestdesk.db.enums.rules import ApprovalDecision, ApprovalStatus, RuleAction

# Roles allowed to maintain auto-rules and run bulk decisions
ROLES_CAN_MANAGE_RULES = frozenset({Role.MANAGER, Role.ADMIN})

__all__ = [
    "AuditAction",
    "ApprovalDecision",
    "ApprovalStatus",
    "DEFAULT_APPROVAL_STATUS",
    "DEFAULT_JOB_STATUS",
    "DEFAULT_RISK_MAX",
    "DEFAULT_THREAD_STATUS",
    "JobStatus",
    "JobType",
    "MessageIntent",
    "OPERATOR_THREAD_STATUSES",
    "RISK_ORDER",
    "ROLES_CAN_MANAGE_RULES",
    "RiskLevel",
    "Role",
    "RuleAction",
    "SenderType",
    "ThreadStatus",
    "UrgencyLevel",
]
