"""Ticket aggregate: one admission credential for one purchased seat.

State Machine:
    ISSUED → USED
    ISSUED → REFUNDED
    ISSUED → CANCELLED

All other statuses are terminal. The token is the only thing printed on the
QR code; it is random and unguessable, never derived from ids.
"""

import json
import secrets
from datetime import datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from ticketing.domain import ticketing
from ticketing.errors import InvalidStateError
from ticketing.payment.snapshot import SnapshotLine
from ticketing.ticket.events import TicketIssued, TicketStatusChanged
from ticketing.utils.query import fetch_all


class TicketStatus(Enum):
    ISSUED = "Issued"
    USED = "Used"
    REFUNDED = "Refunded"
    CANCELLED = "Cancelled"


_VALID_TRANSITIONS = {
    TicketStatus.ISSUED: {TicketStatus.USED, TicketStatus.REFUNDED, TicketStatus.CANCELLED},
    TicketStatus.USED: set(),
    TicketStatus.REFUNDED: set(),
    TicketStatus.CANCELLED: set(),
}

# Statuses that give the seat back to the stock counter
SEAT_RELEASING_STATUSES = {TicketStatus.REFUNDED, TicketStatus.CANCELLED}


def mint_token() -> str:
    return secrets.token_urlsafe(24)


def seat_key_for(payment_id: str, line_index: int, seat_index: int) -> str:
    return f"{payment_id}:{line_index}:{seat_index}"


def qr_filename_for(token: str) -> str:
    return f"qr_{token}.png"


def pdf_filename_for(token: str) -> str:
    return f"ticket_{token}.pdf"


@ticketing.aggregate
class Ticket:
    token = String(max_length=64, required=True, unique=True)
    seat_key = String(max_length=128, required=True, unique=True)
    product_snapshot = Text(required=True)  # JSON copy of the snapshot line
    status = String(choices=TicketStatus, default=TicketStatus.ISSUED.value)
    owner_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    product_id = Identifier(required=True)
    qr_filename = String(max_length=255)
    pdf_filename = String(max_length=255)
    issued_at = DateTime()
    used_at = DateTime()
    refunded_at = DateTime()
    cancelled_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def issue(
        cls,
        token: str,
        seat_key: str,
        line: SnapshotLine,
        owner_id: str,
        payment_id: str,
        qr_filename: str,
        pdf_filename: str,
        now: datetime,
    ):
        ticket = cls(
            token=token,
            seat_key=seat_key,
            product_snapshot=json.dumps(
                {
                    "product_id": line.product_id,
                    "product_name": line.product_name,
                    "category": line.category,
                    "unit_price": line.unit_price,
                    "discount_rate": line.discount_rate,
                    "discounted_price": line.discounted_price,
                    "places": line.places,
                    "event_date": line.event_date,
                    "event_time": line.event_time,
                    "location": line.location,
                }
            ),
            owner_id=owner_id,
            payment_id=payment_id,
            product_id=line.product_id,
            qr_filename=qr_filename,
            pdf_filename=pdf_filename,
            issued_at=now,
            updated_at=now,
        )
        ticket.raise_(
            TicketIssued(
                ticket_id=str(ticket.id),
                payment_id=payment_id,
                product_id=line.product_id,
                owner_id=owner_id,
                product_name=line.product_name,
                category=line.category,
                price=line.discounted_price,
                issued_at=now,
            )
        )
        return ticket

    @property
    def product(self) -> dict:
        return json.loads(self.product_snapshot)

    def change_status(self, target: TicketStatus, now: datetime) -> None:
        current = TicketStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidStateError(
                "status",
                f"Ticket already processed: cannot transition from {current.value} to {target.value}",
                current_status=current.value,
            )

        self.status = target.value
        if target == TicketStatus.USED:
            self.used_at = now
        elif target == TicketStatus.REFUNDED:
            self.refunded_at = now
        elif target == TicketStatus.CANCELLED:
            self.cancelled_at = now
        self.updated_at = now

        self.raise_(
            TicketStatusChanged(
                ticket_id=str(self.id),
                payment_id=str(self.payment_id),
                product_id=str(self.product_id),
                previous_status=current.value,
                new_status=target.value,
                price=self.product.get("discounted_price"),
                changed_at=now,
            )
        )

    def scan(self, now: datetime) -> None:
        self.change_status(TicketStatus.USED, now)


@ticketing.repository(part_of=Ticket)
class TicketRepository:
    def for_payment(self, payment_id: str) -> list[Ticket]:
        return fetch_all(self._dao.query.filter(payment_id=payment_id))

    def for_owner(self, owner_id: str) -> list[Ticket]:
        return fetch_all(self._dao.query.filter(owner_id=owner_id))

    def by_token(self, token: str) -> Ticket | None:
        results = self._dao.query.filter(token=token).all()
        return results.items[0] if results.items else None

    def token_exists(self, token: str) -> bool:
        return self._dao.query.filter(token=token).all().total > 0
