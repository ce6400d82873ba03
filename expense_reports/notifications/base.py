"""
Abstract base class for submission notifiers.
"""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """
    Tells reviewers that a report was submitted or resubmitted.

    Implementations must raise NotificationError on failure and never let
    transport-specific exceptions escape; the workflow treats a
    NotificationError as a warning, anything else as a bug.
    """

    @property
    @abstractmethod
    def channel(self) -> str:
        """Short identifier for logs and metrics: 'email', 'log'."""
        ...

    @abstractmethod
    async def notify_submission(self, report_id: str) -> None:
        ...
