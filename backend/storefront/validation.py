from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from storefront.time_utils import parse_iso_datetime


# Maximum ticket price accepted from forms: 999,999.99
MAX_TICKET_PRICE = Decimal("999999.99")

EVENT_STATUSES = {"draft", "published", "cancelled"}


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., not enough tickets left)."""


def to_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    Accepts ints (not bools) and plain digit strings; rejects floats,
    decimals and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def to_positive_int(value: Any, field: str) -> int:
    number = to_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be > 0")
    return number


def to_non_negative_int(value: Any, field: str) -> int:
    number = to_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be >= 0")
    return number


def to_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise ValidationError(f"{field} must be a boolean")


def to_price(value: Any, field: str) -> Decimal:
    """Coerce a price to a 2-place Decimal, rejecting negatives and NaN."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_TICKET_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_TICKET_PRICE}")
    return amount.quantize(Decimal("0.01"))


def to_datetime(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        dt = parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    if dt is None:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    return dt


def to_text(value: Any, field: str) -> str:
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ValidationError(f"{field} must be a string")
    return str(value).strip()


@dataclass(frozen=True)
class FieldPolicy:
    """
    Central policy layer for outbound payloads:
    - fields: allowed field name -> coercer
    - required_on_create: fields required for create semantics
    - max_lengths: optional caps for text fields
    """
    fields: dict[str, Callable[[Any, str], Any]]
    required_on_create: frozenset[str] = frozenset()
    max_lengths: dict[str, int] | None = None


def validate_payload(*, payload: Any, policy: FieldPolicy, partial: bool) -> dict:
    """
    Validates + normalizes incoming JSON against a FieldPolicy.
    Returns a cleaned patch dict with only allowed fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for key in payload.keys():
        if key not in policy.fields:
            raise ValidationError(f"Field not allowed: {key}")

    patch: dict = {}
    max_lengths = policy.max_lengths or {}
    for key, raw in payload.items():
        if raw is None or raw == "":
            if key in policy.required_on_create:
                raise ValidationError(f"{key} cannot be blank")
            patch[key] = None
            continue

        value = policy.fields[key](raw, key)
        limit = max_lengths.get(key)
        if limit and isinstance(value, str) and len(value) > limit:
            raise ValidationError(f"{key} exceeds max length {limit}")
        patch[key] = value

    return patch


EVENT_POLICY = FieldPolicy(
    fields={
        "title": to_text,
        "description": to_text,
        "location": to_text,
        "address": to_text,
        "city": to_text,
        "country": to_text,
        "start_datetime": to_datetime,
        "end_datetime": to_datetime,
        "category_id": to_positive_int,
        "image_url": to_text,
        "is_public": to_bool,
        "status": to_text,
    },
    required_on_create=frozenset({"title", "start_datetime", "end_datetime"}),
    max_lengths={"title": 255, "location": 255, "address": 255, "city": 100, "country": 100, "image_url": 500},
)

TICKET_TYPE_POLICY = FieldPolicy(
    fields={
        "id": to_positive_int,
        "type": to_text,
        "description": to_text,
        "price": to_price,
        "quantity_total": to_non_negative_int,
        "quantity_sold": to_non_negative_int,
        "sale_start": to_datetime,
        "sale_end": to_datetime,
        "is_active": to_bool,
    },
    required_on_create=frozenset({"type", "price", "quantity_total"}),
    max_lengths={"type": 100},
)


def enforce_rules_event(patch: dict) -> None:
    """
    Business rules that are not captured by field coercion alone.
    Keep these small and centralized.
    """
    start = patch.get("start_datetime")
    end = patch.get("end_datetime")
    if start is not None and end is not None and end < start:
        raise ValidationError("end_datetime must be after start_datetime")

    status = patch.get("status")
    if status is not None and status not in EVENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(EVENT_STATUSES))}")


def enforce_rules_ticket_type(patch: dict) -> None:
    total = patch.get("quantity_total")
    sold = patch.get("quantity_sold")
    if total is not None and sold is not None and sold > total:
        raise ValidationError("quantity_sold cannot exceed quantity_total")

    start = patch.get("sale_start")
    end = patch.get("sale_end")
    if start is not None and end is not None and end < start:
        raise ValidationError("sale_end must be after sale_start")


def validate_ticket_types(raw: Any) -> list[dict]:
    """Validate the ticket-type array sent with an event create/update."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("tickets must be a list")

    cleaned = []
    for index, item in enumerate(raw):
        try:
            # Rows carrying an id update an existing ticket type; others create one
            partial = isinstance(item, dict) and item.get("id") is not None
            patch = validate_payload(payload=item, policy=TICKET_TYPE_POLICY, partial=partial)
            enforce_rules_ticket_type(patch)
        except ValidationError as e:
            raise ValidationError(f"tickets[{index}]: {e}")
        cleaned.append(patch)
    return cleaned
