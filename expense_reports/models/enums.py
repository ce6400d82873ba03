"""
Python enums matching the values stored in the database.
Names and values MUST match the column CHECK constraints exactly.
"""

from enum import Enum


class ReportStatus(str, Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Actor(str, Enum):
    """How a principal relates to one particular report."""
    OWNER = "owner"
    ADMIN = "admin"
    STRANGER = "stranger"


class Action(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"


class SaveStage(str, Enum):
    """Steps of a single save, for logging and failure reporting."""
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    PERSISTING = "PERSISTING"
    NOTIFY_PENDING = "NOTIFY_PENDING"
    DONE = "DONE"
    FAILED = "FAILED"
