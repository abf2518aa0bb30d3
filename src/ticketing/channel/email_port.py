"""Email channel port: the mail transport is an external collaborator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str, attachments: list[Attachment] | None = None) -> dict:
        """Hand one message to the transport.

        Returns a dict with ``message_id``, ``status`` ("sent" or "failed")
        and, on failure, ``error``.
        """
        ...
