"""Audit enums."""

from enum import Enum


class AuditAction(str, Enum):
    """
    Audit log actions.

    Approval decisions write exactly one entry each; bulk decisions
    write one summary entry for the batch.
    """

    MESSAGE_APPROVED_AND_SENT = "message_approved_and_sent"
    MESSAGE_REJECTED = "message_rejected"
    BULK_APPROVE = "bulk_approve"
    BULK_REJECT = "bulk_reject"
    REVIEW_REQUESTED = "review_requested"
    THREAD_STATUS_CHANGED = "thread_status_changed"
    AUTO_RULE_CREATED = "auto_rule_created"
    AUTO_RULE_UPDATED = "auto_rule_updated"
    AUTO_RULE_DELETED = "auto_rule_deleted"
    KB_ENTRY_CREATED = "kb_entry_created"
    KB_ENTRY_UPDATED = "kb_entry_updated"
    KB_ENTRY_DELETED = "kb_entry_deleted"
