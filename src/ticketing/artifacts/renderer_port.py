"""Artifact renderer port.

QR and PDF engines sit outside the context: they take plain data and give
back bytes. Callers own filenames and storage.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class TicketDocument:
    """Everything printed on one ticket."""

    token: str
    attendee_name: str
    attendee_email: str
    product_name: str
    category: str
    event_date: str | None
    event_time: str | None
    location: str | None
    unit_price: float
    locale: str
    qr_png: bytes


@dataclass(frozen=True)
class InvoiceDocument:
    invoice_number: str
    payment_id: str
    customer_name: str
    customer_email: str
    lines: list[dict]
    total: float
    refunded_amount: float
    currency: str
    locale: str
    issued_at: str


class ArtifactRenderer(ABC):
    @abstractmethod
    def render_qr(self, data: str, size: int = 300) -> bytes:
        """Encode ``data`` as a PNG QR code."""
        ...

    @abstractmethod
    def render_ticket_pdf(self, document: TicketDocument) -> bytes: ...

    @abstractmethod
    def render_invoice_pdf(self, document: InvoiceDocument) -> bytes: ...
