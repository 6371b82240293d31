# Overview: Service-layer checkout initiation; turns the cart into a summary for the signed-in user.

"""
Checkout initiation only. Submitting the order and taking payment belong to
the remote API, which re-validates stock and is the final arbiter.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..validation import ValidationError
from .cart_service import CartLine, CartView
from .session_service import AuthenticationRequiredError, SessionNotReadyError, SessionView


@dataclass(frozen=True)
class CheckoutSummary:
    user_id: int
    lines: tuple[CartLine, ...]
    total_items: int
    total_price: Decimal

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "items": [line.to_dict() for line in self.lines],
            "total_items": self.total_items,
            "total_price": str(self.total_price),
        }


def prepare_checkout(session: SessionView, cart: CartView) -> CheckoutSummary:
    """
    Build the checkout summary for the signed-in user.

    Raises:
        SessionNotReadyError: the session is still loading; whether anyone
            is signed in is not known yet.
        AuthenticationRequiredError: nobody is signed in.
        ValidationError: the cart is empty.
    """
    if session.loading:
        raise SessionNotReadyError()

    identity = session.identity
    if not session.is_authenticated or identity is None:
        raise AuthenticationRequiredError("Please sign in to check out.")

    lines = tuple(cart.lines())
    if not lines:
        raise ValidationError("Cart is empty")

    return CheckoutSummary(
        user_id=identity.id,
        lines=lines,
        total_items=sum(line.quantity for line in lines),
        total_price=sum((line.subtotal for line in lines), Decimal("0.00")),
    )
