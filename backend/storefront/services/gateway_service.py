# Overview: Service-layer operations for the remote marketplace API; wraps HTTP calls and response parsing.

"""
Marketplace API Gateway

Typed request/response functions for the remote REST API:
- Auth: register, login, profile update
- Events: search, detail, organizer listing, create/update (with ticket types)
- Categories, orders, users (admin)

ERRORS: Transport failures and non-2xx responses raise GatewayError carrying
a human-readable message (the server's `message` when it sends one) and the
HTTP status. A 404 on an event detail raises EventNotFoundError. Malformed
bodies raise GatewayError too; callers never see half-parsed records.

AUTH: Mutations, orders and users send `Authorization: Bearer <token>`.
Event list/detail are unauthenticated reads.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, TypeVar

import httpx

from storefront.time_utils import to_utc_z

from ..schemas import Event, EventCategory, Identity, Order, SearchFilters
from ..validation import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GatewayError(Exception):
    """Raised when the remote API cannot fulfil a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class EventNotFoundError(GatewayError):
    """Raised when an event id does not exist on the remote API."""

    def __init__(self, event_id: int):
        super().__init__("Event not found", status_code=404)
        self.event_id = event_id


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, Decimal):
        return str(value)
    return value


def _form_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


class MarketplaceGateway:
    """
    HTTP client for the marketplace API.

    One instance is created by the application root and shared by the
    session store and the views. `transport` is for tests (httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        fallback_message: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> dict:
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise GatewayError(str(exc) or fallback_message) from exc

        if response.is_error:
            message = _error_message(response) or fallback_message
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, message)
            raise GatewayError(message, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise GatewayError("Unexpected response from the API", status_code=response.status_code) from exc
        if not isinstance(body, dict):
            raise GatewayError("Unexpected response from the API", status_code=response.status_code)
        return body

    @staticmethod
    def _parse(build: Callable[[], T], what: str) -> T:
        try:
            return build()
        except ValidationError as exc:
            logger.warning("Malformed %s in API response: %s", what, exc)
            raise GatewayError(f"Malformed {what} in API response") from exc

    @staticmethod
    def _list(body: dict, key: str) -> list:
        items = body.get(key) or []
        if not isinstance(items, list):
            raise GatewayError("Unexpected response from the API")
        return items

    @staticmethod
    def _event_request(fields: dict, tickets: Iterable[dict], image: tuple | None) -> dict:
        """
        JSON body, or form + file parts when an image is attached.

        `tickets` is omitted when there are none, so a partial update leaves
        the event's ticket types alone.
        """
        payload = {k: _jsonable(v) for k, v in fields.items()}
        rows = [{k: _jsonable(v) for k, v in t.items()} for t in tickets]
        if image is None:
            if rows:
                payload["tickets"] = rows
            return {"json": payload}

        form = {k: _form_value(v) for k, v in payload.items()}
        if rows:
            form["tickets"] = json.dumps(rows)
        return {"data": form, "files": {"image": image}}

    def _send_event(self, method: str, path: str, token: str, request_kwargs: dict, fallback: str) -> Event:
        body = self._request(method, path, token=token, fallback_message=fallback, **request_kwargs)
        if not isinstance(body.get("event"), dict):
            raise GatewayError("Unexpected response from the API")
        return self._parse(lambda: Event.from_dict(body["event"]), "event")

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def register(self, payload: dict) -> dict:
        """POST /auth/register -> {message, token, user} (raw body)."""
        return self._request(
            "POST", "/auth/register", json=payload, fallback_message="Registration failed"
        )

    def sign_in(self, email: str, password: str) -> dict:
        """POST /auth/login -> {message, token, user} (raw body)."""
        return self._request(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            fallback_message="Sign-in failed",
        )

    def update_profile(self, token: str, user_id: int, fields: dict) -> Identity:
        """PUT /auth/profile/{id} -> the updated user."""
        body = self._request(
            "PUT",
            f"/auth/profile/{user_id}",
            token=token,
            json=fields,
            fallback_message="Profile update failed",
        )
        if not isinstance(body.get("user"), dict):
            raise GatewayError("Unexpected response from the API")
        return self._parse(lambda: Identity.from_user(body["user"]), "user")

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def list_events(self, filters: SearchFilters | None = None, token: str | None = None) -> list[Event]:
        """GET /events with optional search filters."""
        params = filters.to_params() if filters else {}
        body = self._request(
            "GET", "/events", params=params, token=token, fallback_message="Failed to load events"
        )
        rows = self._list(body, "events")
        return self._parse(lambda: [Event.from_dict(row) for row in rows], "event")

    def get_event(self, event_id: int) -> Event:
        """GET /events/{id}; raises EventNotFoundError on 404."""
        try:
            body = self._request("GET", f"/events/{event_id}", fallback_message="Failed to load event")
        except GatewayError as exc:
            if exc.status_code == 404:
                raise EventNotFoundError(event_id) from exc
            raise
        if not isinstance(body.get("event"), dict):
            raise EventNotFoundError(event_id)
        return self._parse(lambda: Event.from_dict(body["event"]), "event")

    def list_organizer_events(self, token: str, organizer_id: int) -> list[Event]:
        """Events owned by one organizer (dashboard)."""
        return self.list_events(SearchFilters(organizer_id=organizer_id), token=token)

    def create_event(
        self,
        token: str,
        fields: dict,
        tickets: Iterable[dict] = (),
        image: tuple | None = None,
    ) -> Event:
        """
        POST /events -> the persisted event.

        `image` is an httpx file tuple (filename, bytes, content_type); when
        given, the request is sent as multipart with `tickets` JSON-encoded.
        """
        request_kwargs = self._event_request(fields, tickets, image)
        return self._send_event("POST", "/events", token, request_kwargs, "Failed to create event")

    def update_event(
        self,
        token: str,
        event_id: int,
        fields: dict,
        tickets: Iterable[dict] = (),
        image: tuple | None = None,
    ) -> Event:
        """PUT /events/{id} -> the persisted event."""
        request_kwargs = self._event_request(fields, tickets, image)
        return self._send_event("PUT", f"/events/{event_id}", token, request_kwargs, "Failed to update event")

    def list_categories(self) -> list[EventCategory]:
        body = self._request("GET", "/event_categories", fallback_message="Failed to load categories")
        rows = self._list(body, "data")
        return self._parse(lambda: [EventCategory.from_dict(row) for row in rows], "category")

    # -------------------------------------------------------------------------
    # Orders and users
    # -------------------------------------------------------------------------

    def list_orders(self, token: str) -> list[Order]:
        """GET /orders for the authenticated user."""
        body = self._request("GET", "/orders", token=token, fallback_message="Failed to load orders")
        rows = self._list(body, "orders")
        return self._parse(lambda: [Order.from_dict(row) for row in rows], "order")

    def list_users(self, token: str) -> list[Identity]:
        """GET /users (admin)."""
        body = self._request("GET", "/users", token=token, fallback_message="Failed to load users")
        rows = self._list(body, "users")
        return self._parse(lambda: [Identity.from_user(row) for row in rows], "user")
