"""
User roles enumeration.

Defines the role types for the flight club.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        BOARD: Board member, may charge flights and manage all accounts
        TREASURER: Manages accounting (payments, reversals, corrections)
        MEMBER: Regular club member (default role)
    """
    BOARD = "BOARD"
    TREASURER = "TREASURER"
    MEMBER = "MEMBER"
