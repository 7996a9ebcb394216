"""Guest messaging enums."""

from enum import Enum


class SenderType(str, Enum):
    """Who wrote a message."""

    GUEST = "guest"
    STAFF = "staff"


class ThreadStatus(str, Enum):
    """
    Conversation status shown to operators.

    SENT and DECLINED are written only by approval decisions;
    the rest are set by operators.
    """

    PENDING = "pending"
    OPEN = "open"
    RESOLVED = "resolved"
    CLOSED = "closed"
    SENT = "sent"
    DECLINED = "declined"


class RiskLevel(str, Enum):
    """Risk tiers, ordered low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class UrgencyLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class MessageIntent(str, Enum):
    """Intents the classifier is asked to choose from."""

    CHECKIN = "checkin"
    CHECKOUT = "checkout"
    QUESTION = "question"
    COMPLAINT = "complaint"
    CANCELLATION = "cancellation"
    BOOKING_INQUIRY = "booking_inquiry"
    MAINTENANCE = "maintenance"
    AMENITY_REQUEST = "amenity_request"
    OTHER = "other"


# Ascending order; index comparison drives risk ceilings
RISK_ORDER: tuple[str, ...] = tuple(level.value for level in RiskLevel)

OPERATOR_THREAD_STATUSES = frozenset(
    {
        ThreadStatus.PENDING.value,
        ThreadStatus.OPEN.value,
        ThreadStatus.RESOLVED.value,
        ThreadStatus.CLOSED.value,
    }
)
