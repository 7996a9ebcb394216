"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Operator roles with increasing privilege levels.

    - AGENT: Works the inbox, decides individual approvals
    - MANAGER: Maintains auto-rules, runs bulk decisions
    - ADMIN: Everything a manager can do plus user administration
    """

    AGENT = "agent"
    MANAGER = "manager"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
