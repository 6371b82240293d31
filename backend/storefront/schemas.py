# Overview: Typed records for marketplace API payloads (identity, events, tickets, orders).

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from storefront.time_utils import to_utc_z
from storefront.validation import (
    ValidationError,
    to_bool,
    to_datetime,
    to_int,
    to_non_negative_int,
)


def _to_int(value: Any, field_name: str) -> int:
    # The API serializes numeric columns as strings ("12") as often as ints
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return to_int(value, field_name)


def _to_optional_int(value: Any, field_name: str) -> int | None:
    if value is None or value == "":
        return None
    return _to_int(value, field_name)


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _to_amount(value: Any, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field_name} must be a non-negative number")
    return amount.quantize(Decimal("0.01"))


def _to_optional_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or value == "":
        return None
    return to_datetime(value, field_name)


def _require_mapping(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError(f"{what} must be an object")
    return data


# =============================================================================
# IDENTITY
# =============================================================================

@dataclass(frozen=True)
class RoleRef:
    id: int
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Identity:
    """
    The signed-in principal as known to this client.

    Replaced wholesale on login and profile update, never patched field by
    field. Timestamps are kept exactly as the API sent them.
    """
    id: int
    name: str | None
    email: str | None
    role_id: int
    role: RoleRef | None = None
    avatar_url: str | None = None
    phone: str | None = None
    bio: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_token_data(cls, data: Any) -> "Identity":
        """
        Build an Identity from the nested `data` object of a credential payload.

        The role relation is only derived when the payload carries `role_name`.
        """
        data = _require_mapping(data, "credential data")
        role_id = _to_int(data.get("role_id"), "role_id")
        role_name = _to_text(data.get("role_name"))
        return cls(
            id=_to_int(data.get("id"), "id"),
            name=_to_text(data.get("name")),
            email=_to_text(data.get("email")),
            role_id=role_id,
            role=RoleRef(id=role_id, name=role_name) if role_name else None,
            avatar_url=_to_text(data.get("avatar_url")),
            phone=_to_text(data.get("phone")),
            bio=_to_text(data.get("bio")),
            created_at=_to_text(data.get("created_at")),
            updated_at=_to_text(data.get("updated_at")),
        )

    @classmethod
    def from_user(cls, data: Any) -> "Identity":
        """Build an Identity from a `user` object returned by the API."""
        data = _require_mapping(data, "user")
        role_id = _to_int(data.get("role_id"), "role_id")
        role = None
        raw_role = data.get("role")
        if isinstance(raw_role, dict) and _to_text(raw_role.get("name")):
            role = RoleRef(
                id=_to_optional_int(raw_role.get("id"), "role.id") or role_id,
                name=_to_text(raw_role.get("name")),
            )
        elif _to_text(data.get("role_name")):
            role = RoleRef(id=role_id, name=_to_text(data.get("role_name")))
        return cls(
            id=_to_int(data.get("id"), "id"),
            name=_to_text(data.get("name")),
            email=_to_text(data.get("email")),
            role_id=role_id,
            role=role,
            avatar_url=_to_text(data.get("avatar_url")),
            phone=_to_text(data.get("phone")),
            bio=_to_text(data.get("bio")),
            created_at=_to_text(data.get("created_at")),
            updated_at=_to_text(data.get("updated_at")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role_id": self.role_id,
            "role": self.role.to_dict() if self.role else None,
            "avatar_url": self.avatar_url,
            "phone": self.phone,
            "bio": self.bio,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


# =============================================================================
# EVENTS AND TICKET TYPES
# =============================================================================

@dataclass(frozen=True)
class EventCategory:
    id: int
    name: str
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "EventCategory":
        data = _require_mapping(data, "category")
        return cls(
            id=_to_int(data.get("id"), "id"),
            name=_to_text(data.get("name")) or "",
            description=_to_text(data.get("description")),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class EventSummary:
    """The slice of an event a ticket snapshot carries for display."""
    id: int
    title: str
    start_datetime: datetime | None = None
    city: str | None = None
    image_url: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "start_datetime": to_utc_z(self.start_datetime),
            "city": self.city,
            "image_url": self.image_url,
        }


@dataclass(frozen=True)
class TicketType:
    """
    Read-only snapshot of a remote ticket type.

    Invariant: 0 <= quantity_sold <= quantity_total, price >= 0.
    """
    id: int
    event_id: int | None
    type: str
    price: Decimal
    quantity_total: int
    quantity_sold: int
    is_active: bool = True
    description: str | None = None
    sale_start: datetime | None = None
    sale_end: datetime | None = None
    event: EventSummary | None = None

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValidationError("price must be >= 0")
        if self.quantity_total < 0:
            raise ValidationError("quantity_total must be >= 0")
        if self.quantity_sold < 0:
            raise ValidationError("quantity_sold must be >= 0")
        if self.quantity_sold > self.quantity_total:
            raise ValidationError("quantity_sold cannot exceed quantity_total")

    @property
    def available(self) -> int:
        return self.quantity_total - self.quantity_sold

    @classmethod
    def from_dict(cls, data: Any, event: EventSummary | None = None) -> "TicketType":
        data = _require_mapping(data, "ticket")
        is_active = data.get("is_active")
        return cls(
            id=_to_int(data.get("id"), "id"),
            event_id=_to_optional_int(data.get("event_id"), "event_id"),
            type=_to_text(data.get("type")) or "",
            price=_to_amount(data.get("price", 0), "price"),
            quantity_total=to_non_negative_int(_to_int(data.get("quantity_total", 0), "quantity_total"), "quantity_total"),
            quantity_sold=to_non_negative_int(_to_int(data.get("quantity_sold", 0), "quantity_sold"), "quantity_sold"),
            is_active=True if is_active is None else to_bool(is_active, "is_active"),
            description=_to_text(data.get("description")),
            sale_start=_to_optional_datetime(data.get("sale_start"), "sale_start"),
            sale_end=_to_optional_datetime(data.get("sale_end"), "sale_end"),
            event=event,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "type": self.type,
            "description": self.description,
            "price": str(self.price),
            "quantity_total": self.quantity_total,
            "quantity_sold": self.quantity_sold,
            "available": self.available,
            "is_active": self.is_active,
            "sale_start": to_utc_z(self.sale_start),
            "sale_end": to_utc_z(self.sale_end),
            "event": self.event.to_dict() if self.event else None,
        }


@dataclass(frozen=True)
class Event:
    id: int
    organizer_id: int | None
    title: str
    start_datetime: datetime | None
    end_datetime: datetime | None
    status: str = "published"
    is_public: bool = True
    description: str | None = None
    location: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    image_url: str | None = None
    category_id: int | None = None
    category: EventCategory | None = None
    tickets: tuple[TicketType, ...] = ()
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "Event":
        data = _require_mapping(data, "event")
        event_id = _to_int(data.get("id"), "id")
        title = _to_text(data.get("title")) or ""
        start = _to_optional_datetime(data.get("start_datetime"), "start_datetime")
        summary = EventSummary(
            id=event_id,
            title=title,
            start_datetime=start,
            city=_to_text(data.get("city")),
            image_url=_to_text(data.get("image_url")),
        )

        raw_tickets = data.get("tickets") or []
        if not isinstance(raw_tickets, list):
            raise ValidationError("tickets must be a list")

        raw_category = data.get("category")
        is_public = data.get("is_public")
        return cls(
            id=event_id,
            organizer_id=_to_optional_int(data.get("organizer_id"), "organizer_id"),
            title=title,
            start_datetime=start,
            end_datetime=_to_optional_datetime(data.get("end_datetime"), "end_datetime"),
            status=_to_text(data.get("status")) or "published",
            is_public=True if is_public is None else to_bool(is_public, "is_public"),
            description=_to_text(data.get("description")),
            location=_to_text(data.get("location")),
            address=_to_text(data.get("address")),
            city=summary.city,
            country=_to_text(data.get("country")),
            image_url=summary.image_url,
            category_id=_to_optional_int(data.get("category_id"), "category_id"),
            category=EventCategory.from_dict(raw_category) if isinstance(raw_category, dict) else None,
            tickets=tuple(TicketType.from_dict(t, event=summary) for t in raw_tickets),
            created_at=_to_text(data.get("created_at")),
            updated_at=_to_text(data.get("updated_at")),
        )

    def find_ticket(self, ticket_id: int) -> TicketType | None:
        for ticket in self.tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organizer_id": self.organizer_id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "start_datetime": to_utc_z(self.start_datetime),
            "end_datetime": to_utc_z(self.end_datetime),
            "image_url": self.image_url,
            "is_public": self.is_public,
            "status": self.status,
            "category_id": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "tickets": [t.to_dict() for t in self.tickets],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


# =============================================================================
# ORDERS
# =============================================================================

@dataclass(frozen=True)
class OrderTicket:
    id: int
    order_id: int
    ticket_id: int
    quantity: int
    ticket_code: str
    status: str = "valid"
    ticket: TicketType | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "OrderTicket":
        data = _require_mapping(data, "order ticket")
        raw_ticket = data.get("ticket")
        return cls(
            id=_to_int(data.get("id"), "id"),
            order_id=_to_int(data.get("order_id"), "order_id"),
            ticket_id=_to_int(data.get("ticket_id"), "ticket_id"),
            quantity=_to_int(data.get("quantity"), "quantity"),
            ticket_code=_to_text(data.get("ticket_code")) or "",
            status=_to_text(data.get("status")) or "valid",
            ticket=TicketType.from_dict(raw_ticket) if isinstance(raw_ticket, dict) else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "ticket_id": self.ticket_id,
            "quantity": self.quantity,
            "ticket_code": self.ticket_code,
            "status": self.status,
            "ticket": self.ticket.to_dict() if self.ticket else None,
        }


@dataclass(frozen=True)
class Order:
    id: int
    user_id: int
    event_id: int | None
    total_amount: Decimal
    status: str
    order_datetime: datetime | None = None
    payment_method: str | None = None
    tickets: tuple[OrderTicket, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Any) -> "Order":
        data = _require_mapping(data, "order")
        raw_tickets = data.get("tickets") or []
        if not isinstance(raw_tickets, list):
            raise ValidationError("tickets must be a list")
        return cls(
            id=_to_int(data.get("id"), "id"),
            user_id=_to_int(data.get("user_id"), "user_id"),
            event_id=_to_optional_int(data.get("event_id"), "event_id"),
            total_amount=_to_amount(data.get("total_amount", 0), "total_amount"),
            status=_to_text(data.get("status")) or "pending",
            order_datetime=_to_optional_datetime(data.get("order_datetime"), "order_datetime"),
            payment_method=_to_text(data.get("payment_method")),
            tickets=tuple(OrderTicket.from_dict(t) for t in raw_tickets),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_id": self.event_id,
            "order_datetime": to_utc_z(self.order_datetime),
            "total_amount": str(self.total_amount),
            "status": self.status,
            "payment_method": self.payment_method,
            "tickets": [t.to_dict() for t in self.tickets],
        }


# =============================================================================
# SEARCH FILTERS
# =============================================================================

@dataclass(frozen=True)
class SearchFilters:
    query: str | None = None
    category: str | None = None
    city: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    is_free: bool | None = None
    organizer_id: int | None = None

    @classmethod
    def from_args(cls, args: Any) -> "SearchFilters":
        """Build filters from a query-string mapping; unknown keys are ignored."""
        is_free = args.get("is_free")
        organizer_id = args.get("organizer_id")
        date_from = _to_optional_datetime(args.get("date_from"), "date_from")
        date_to = _to_optional_datetime(args.get("date_to"), "date_to")
        if date_from is not None and date_to is not None and date_to < date_from:
            raise ValidationError("date_to must be after date_from")
        return cls(
            query=_to_text(args.get("query")),
            category=_to_text(args.get("category")),
            city=_to_text(args.get("city")),
            date_from=date_from,
            date_to=date_to,
            is_free=None if is_free in (None, "") else to_bool(is_free, "is_free"),
            organizer_id=None if organizer_id in (None, "") else to_int(organizer_id, "organizer_id"),
        )

    def to_params(self) -> dict[str, str]:
        """Query parameters for the events endpoint; unset filters are omitted."""
        params: dict[str, str] = {}
        if self.query:
            params["query"] = self.query
        if self.city:
            params["city"] = self.city
        if self.is_free is not None:
            params["is_free"] = "true" if self.is_free else "false"
        if self.date_from is not None:
            params["date_from"] = self.date_from.date().isoformat()
        if self.date_to is not None:
            params["date_to"] = self.date_to.date().isoformat()
        if self.category:
            params["category"] = self.category
        if self.organizer_id is not None:
            params["organizer_id"] = str(self.organizer_id)
        return params
