"""In-memory mailbox standing in for the mail transport."""

from uuid import uuid4

from ticketing.channel.email_port import Attachment, EmailPort


class FakeEmailAdapter(EmailPort):
    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Mail transport unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Mail transport unavailable"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, to: str, subject: str, body: str, attachments: list[Attachment] | None = None) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        attachments = attachments or []
        message_id = f"mail-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "attachments": [a.filename for a in attachments],
                "attachment_bytes": sum(len(a.content) for a in attachments),
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent_emails.clear()
        self.configure()
