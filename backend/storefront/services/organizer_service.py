# Overview: Service-layer reporting for organizers; ticket sales rolled up from their events.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..schemas import Event


@dataclass(frozen=True)
class TicketSalesRow:
    event_id: int
    event_title: str
    ticket_id: int
    ticket_type: str
    price: Decimal
    quantity_total: int
    quantity_sold: int

    @property
    def available(self) -> int:
        return self.quantity_total - self.quantity_sold

    @property
    def revenue(self) -> Decimal:
        return self.price * self.quantity_sold

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "event_title": self.event_title,
            "ticket_id": self.ticket_id,
            "ticket_type": self.ticket_type,
            "price": str(self.price),
            "quantity_total": self.quantity_total,
            "quantity_sold": self.quantity_sold,
            "available": self.available,
            "revenue": str(self.revenue),
        }


def ticket_sales_summary(events: Iterable[Event]) -> dict:
    """
    Per-ticket-type sales for an organizer's events plus totals.

    Revenue is price x sold from the snapshot; refunds are not visible here.
    """
    rows = [
        TicketSalesRow(
            event_id=event.id,
            event_title=event.title,
            ticket_id=ticket.id,
            ticket_type=ticket.type,
            price=ticket.price,
            quantity_total=ticket.quantity_total,
            quantity_sold=ticket.quantity_sold,
        )
        for event in events
        for ticket in event.tickets
    ]
    return {
        "tickets": [row.to_dict() for row in rows],
        "totals": {
            "quantity_total": sum(row.quantity_total for row in rows),
            "quantity_sold": sum(row.quantity_sold for row in rows),
            "revenue": str(sum((row.revenue for row in rows), Decimal("0.00"))),
        },
    }
