# Overview: Service-layer cart ledger; soft-reserves ticket stock against remote availability snapshots.

"""
Cart / Ticket Reservation Ledger

In-memory, process-lifetime ledger of (ticket type, quantity) lines.

INVARIANTS:
- At most one line per ticket type id; re-adding increases the quantity
- For every line: 0 < quantity <= ticket.quantity_total - ticket.quantity_sold
  of the snapshot stored on the line, checked on every mutation
- Rejected operations leave the ledger exactly as it was
- Totals are recomputed from the lines on every call

SOFT CHECK: Availability comes from the last snapshot fetched from the API.
Checkout on the server is the final arbiter of stock.

CONCURRENCY: Mutations on the same ticket type are serialized by a striped
lock (a fixed pool indexed by ticket type id), so two rapid adds cannot lose
an update and the lock pool never grows. clear_cart takes every stripe, in
order, before emptying the ledger. Structural reads and writes of the ledger
go through a separate ledger lock, always taken after a stripe.

CAPABILITIES: Cart is the mutating handle; CartView is the read-only face
handed to everything that only needs lines and totals.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal

from ..schemas import TicketType
from ..validation import ConflictError, ValidationError, to_int, to_positive_int
from .notification_service import Notifier

logger = logging.getLogger(__name__)

# Size of the per-ticket-type lock pool
LOCK_STRIPES = 32


class AvailabilityError(ConflictError):
    """Requested quantity exceeds the remaining stock of a ticket type."""

    def __init__(self, ticket_type_id: int, available: int):
        super().__init__(f"Only {available} tickets available")
        self.ticket_type_id = ticket_type_id
        self.available = available


class CartLineNotFoundError(LookupError):
    """No cart line exists for the ticket type id."""

    def __init__(self, ticket_type_id: int):
        super().__init__(f"Ticket type {ticket_type_id} is not in the cart")
        self.ticket_type_id = ticket_type_id


@dataclass(frozen=True)
class CartLine:
    ticket_type_id: int
    ticket: TicketType
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.ticket.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "ticket_id": self.ticket_type_id,
            "ticket": self.ticket.to_dict(),
            "quantity": self.quantity,
            "subtotal": str(self.subtotal),
        }


class CartView:
    """Read-only face of the cart: lines and derived totals."""

    def __init__(self, cart: "Cart"):
        self._cart = cart

    def lines(self) -> list[CartLine]:
        return self._cart.lines()

    def get_line(self, ticket_type_id: int) -> CartLine | None:
        return self._cart.get_line(ticket_type_id)

    def total_items(self) -> int:
        return self._cart.total_items()

    def total_price(self) -> Decimal:
        return self._cart.total_price()

    def is_empty(self) -> bool:
        return self._cart.is_empty()

    def to_dict(self) -> dict:
        return self._cart.to_dict()


class Cart:
    def __init__(self, notifier: Notifier | None = None):
        self._lines: dict[int, CartLine] = {}
        self._ledger_lock = threading.Lock()
        self._type_locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))
        self._notifier = notifier or Notifier()
        self._view = CartView(self)

    def view(self) -> CartView:
        return self._view

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def lines(self) -> list[CartLine]:
        """Lines in insertion order."""
        with self._ledger_lock:
            return list(self._lines.values())

    def get_line(self, ticket_type_id: int) -> CartLine | None:
        with self._ledger_lock:
            return self._lines.get(ticket_type_id)

    def is_empty(self) -> bool:
        with self._ledger_lock:
            return not self._lines

    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines())

    def total_price(self) -> Decimal:
        return sum((line.subtotal for line in self.lines()), Decimal("0.00"))

    def to_dict(self) -> dict:
        lines = self.lines()
        return {
            "items": [line.to_dict() for line in lines],
            "total_items": sum(line.quantity for line in lines),
            "total_price": str(sum((line.subtotal for line in lines), Decimal("0.00"))),
        }

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _lock_for(self, ticket_type_id: int) -> threading.Lock:
        return self._type_locks[ticket_type_id % LOCK_STRIPES]

    def _store(self, line: CartLine) -> None:
        with self._ledger_lock:
            self._lines[line.ticket_type_id] = line

    def _discard(self, ticket_type_id: int) -> CartLine | None:
        with self._ledger_lock:
            return self._lines.pop(ticket_type_id, None)

    def _reject(self, ticket_type_id: int, available: int, requested: int) -> AvailabilityError:
        logger.info(
            "Rejected quantity %s for ticket type %s (available %s)",
            requested, ticket_type_id, available,
        )
        error = AvailabilityError(ticket_type_id, available)
        self._notifier.error(str(error))
        return error

    def add_to_cart(self, ticket: TicketType, quantity: int) -> CartLine:
        """
        Reserve `quantity` more tickets of `ticket`'s type.

        The stored snapshot is replaced by `ticket` on success, so later
        checks use the freshest availability seen.

        Raises:
            ValidationError: quantity is not a positive integer, or the
                ticket type is not on sale.
            AvailabilityError: existing + quantity exceeds availability.
        """
        quantity = to_positive_int(quantity, "quantity")
        if not ticket.is_active:
            self._notifier.error("This ticket type is not on sale")
            raise ValidationError("Ticket type is not on sale")

        with self._lock_for(ticket.id):
            existing = self.get_line(ticket.id)
            new_quantity = quantity + (existing.quantity if existing else 0)
            available = ticket.available
            if new_quantity > available:
                raise self._reject(ticket.id, available, new_quantity)

            line = CartLine(ticket_type_id=ticket.id, ticket=ticket, quantity=new_quantity)
            self._store(line)

        self._notifier.success("Ticket added to cart")
        return line

    def remove_from_cart(self, ticket_type_id: int) -> bool:
        """Remove a line. Returns True if one was removed; absent ids are a no-op."""
        ticket_type_id = to_int(ticket_type_id, "ticket_id")
        with self._lock_for(ticket_type_id):
            removed = self._discard(ticket_type_id)
        if removed is None:
            return False
        self._notifier.success("Ticket removed from cart")
        return True

    def update_quantity(self, ticket_type_id: int, quantity: int) -> CartLine | None:
        """
        Set a line's quantity, checked against the line's stored snapshot.

        A quantity <= 0 removes the line and returns None.

        Raises:
            CartLineNotFoundError: no line for ticket_type_id (quantity > 0).
            AvailabilityError: quantity exceeds availability.
        """
        ticket_type_id = to_int(ticket_type_id, "ticket_id")
        quantity = to_int(quantity, "quantity")
        if quantity <= 0:
            self.remove_from_cart(ticket_type_id)
            return None

        with self._lock_for(ticket_type_id):
            line = self.get_line(ticket_type_id)
            if line is None:
                raise CartLineNotFoundError(ticket_type_id)
            available = line.ticket.available
            if quantity > available:
                raise self._reject(ticket_type_id, available, quantity)

            updated = CartLine(ticket_type_id=ticket_type_id, ticket=line.ticket, quantity=quantity)
            self._store(updated)
        return updated

    def refresh_snapshot(self, ticket: TicketType) -> CartLine | None:
        """
        Replace a line's snapshot with fresher stock data.

        The quantity is clamped to the new availability; the line is dropped
        when nothing is left (or the type went off sale). Returns the line as
        it stands afterwards, or None if it was dropped.
        """
        with self._lock_for(ticket.id):
            line = self.get_line(ticket.id)
            if line is None:
                raise CartLineNotFoundError(ticket.id)

            available = ticket.available if ticket.is_active else 0
            if available <= 0:
                self._discard(ticket.id)
                self._notifier.info(f"{ticket.type or 'Ticket'} is no longer available and was removed")
                return None

            quantity = min(line.quantity, available)
            updated = CartLine(ticket_type_id=ticket.id, ticket=ticket, quantity=quantity)
            self._store(updated)

        if quantity < line.quantity:
            self._notifier.info(f"Only {available} tickets available; quantity adjusted")
        return updated

    def drop_unavailable(self, ticket_type_id: int, label: str | None = None) -> bool:
        """
        Remove a line whose ticket type or event no longer exists upstream.

        Emits an info notification instead of the removal success toast.
        """
        with self._lock_for(ticket_type_id):
            removed = self._discard(ticket_type_id)
        if removed is None:
            return False
        name = label or removed.ticket.type or "Ticket"
        logger.info("Dropped cart line for unavailable ticket type %s", ticket_type_id)
        self._notifier.info(f"{name} is no longer available and was removed")
        return True

    def clear_cart(self) -> None:
        for lock in self._type_locks:
            lock.acquire()
        try:
            with self._ledger_lock:
                self._lines.clear()
        finally:
            for lock in reversed(self._type_locks):
                lock.release()
