# Overview: Application-root ownership of the session, cart and gateway; injected into the Flask app.

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from .services.cart_service import Cart, CartView
from .services.gateway_service import MarketplaceGateway
from .services.notification_service import Notifier
from .services.session_service import SessionStore, SessionView

EXTENSION_KEY = "storefront"


@dataclass
class StorefrontServices:
    """
    The stores one running client owns.

    Views get the read-only faces (session_view, cart_view) unless they are
    the cart or session views themselves.
    """
    session: SessionStore
    cart: Cart
    gateway: MarketplaceGateway
    notifier: Notifier

    @property
    def session_view(self) -> SessionView:
        return self.session.view()

    @property
    def cart_view(self) -> CartView:
        return self.cart.view()

    def close(self) -> None:
        """Release the gateway's HTTP connection pool."""
        self.gateway.close()


def init_services(app: Flask, services: StorefrontServices) -> None:
    app.extensions[EXTENSION_KEY] = services


def get_services() -> StorefrontServices:
    return current_app.extensions[EXTENSION_KEY]
