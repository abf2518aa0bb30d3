"""Email channel used for ticket delivery.

Defaults to the in-memory mailbox until a real transport is installed with
``set_email_channel``.
"""

from ticketing.channel.email_port import Attachment, EmailPort
from ticketing.channel.fake_email import FakeEmailAdapter

__all__ = ["Attachment", "EmailPort", "get_email_channel", "set_email_channel", "reset_channels"]

_email_channel: EmailPort | None = None


def get_email_channel() -> EmailPort:
    global _email_channel
    if _email_channel is None:
        _email_channel = FakeEmailAdapter()
    return _email_channel


def set_email_channel(channel: EmailPort) -> None:
    global _email_channel
    _email_channel = channel


def reset_channels() -> None:
    global _email_channel
    _email_channel = None
