"""Auto-rule and approval enums."""

from enum import Enum


class RuleAction(str, Enum):
    """What a matched auto-rule prescribes."""

    QUEUE = "queue"
    TEMPLATE = "template"
    AUTO_SEND = "auto_send"


class ApprovalStatus(str, Enum):
    """Approval lifecycle: pending -> approved | rejected (both terminal)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    """Reviewer action on a pending approval."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> ApprovalStatus:
        if self is ApprovalDecision.APPROVE:
            return ApprovalStatus.APPROVED
        return ApprovalStatus.REJECTED
