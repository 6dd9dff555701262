"""Fake notifier — records messages in memory for test assertions."""

from uuid import uuid4

from marketplace.notifications.channel.port import NotificationPort


class FakeNotifier(NotificationPort):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        metadata: dict | None = None,
    ) -> dict:
        if not self.should_succeed:
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
            }

        message_id = f"msg-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "message_id": message_id,
                "recipient": recipient,
                "subject": subject,
                "body": body,
                "metadata": metadata or {},
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def messages_for(self, recipient: str) -> list[dict]:
        return [message for message in self.sent if message["recipient"] == recipient]

