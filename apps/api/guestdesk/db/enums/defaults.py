"""Default enum values used by models and services."""

from guestdesk.db.enums.jobs import JobStatus
from guestdesk.db.enums.messaging import RiskLevel, ThreadStatus
from guestdesk.db.enums.rules import ApprovalStatus

DEFAULT_JOB_STATUS = JobStatus.PENDING
DEFAULT_THREAD_STATUS = ThreadStatus.PENDING
DEFAULT_APPROVAL_STATUS = ApprovalStatus.PENDING
DEFAULT_RISK_MAX = RiskLevel.LOW
