"""Notification channel port — abstract interface for outbound messages."""

from abc import ABC, abstractmethod


class NotificationPort(ABC):
    """Abstract interface for notification delivery adapters."""

    @abstractmethod
    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        metadata: dict | None = None,
    ) -> dict:
        """Deliver one message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
