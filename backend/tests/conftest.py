"""
Pytest fixtures for storefront tests.

Provides an in-memory client storage database, a fake marketplace API served
through httpx.MockTransport, credential builders and a test client.
"""

import base64
import json
import re
from copy import deepcopy
from decimal import Decimal

import httpx
import pytest

from storefront import create_app
from storefront.context import get_services
from storefront.schemas import TicketType
from storefront.services.gateway_service import MarketplaceGateway


API_BASE_URL = "http://marketplace.test/api"


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def make_token(data: dict | None = None, **claims) -> str:
    """Build an unsigned three-segment credential whose payload nests `data`."""
    payload = dict(claims)
    if data is not None:
        payload["data"] = data
    header = _b64url(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    return f"{header}.{body}.c2lnbmF0dXJl"


def user_data(user_id: int = 7, role_id: int = 1, **extra) -> dict:
    data = {
        "id": user_id,
        "name": f"User {user_id}",
        "email": f"user{user_id}@example.com",
        "role_id": role_id,
    }
    data.update(extra)
    return data


def make_ticket(ticket_id: int = 1, total: int = 10, sold: int = 0, price: str = "25.00", **extra) -> TicketType:
    fields = {"event_id": 1, "type": "General"}
    fields.update(extra)
    return TicketType(
        id=ticket_id,
        price=Decimal(price),
        quantity_total=total,
        quantity_sold=sold,
        **fields,
    )


# =============================================================================
# FAKE MARKETPLACE API
# =============================================================================

def event_row(event_id: int = 1, organizer_id: int = 20, tickets: list | None = None, **extra) -> dict:
    row = {
        "id": event_id,
        "organizer_id": organizer_id,
        "title": f"Event {event_id}",
        "city": "Paris",
        "start_datetime": "2026-12-01 19:00:00",
        "end_datetime": "2026-12-01 23:00:00",
        "status": "published",
        "is_public": 1,
        "tickets": tickets if tickets is not None else [
            {"id": event_id * 10 + 1, "event_id": event_id, "type": "General",
             "price": "25.00", "quantity_total": 10, "quantity_sold": 4, "is_active": 1},
        ],
    }
    row.update(extra)
    return row


class FakeMarketplace:
    """
    In-memory stand-in for the remote API.

    Routes are matched on (method, path). Every request is recorded in
    `requests` so tests can assert on headers, params and bodies.
    """

    def __init__(self):
        self.events: dict[int, dict] = {1: event_row(1), 2: event_row(2, organizer_id=30)}
        self.categories = [{"id": 1, "name": "Music"}, {"id": 2, "name": "Sports"}]
        self.users = [
            user_data(7, 1),
            user_data(20, 2),
            user_data(1, 3, role={"id": 3, "name": "admin"}),
        ]
        self.orders = [{
            "id": 100, "user_id": 7, "event_id": 1, "total_amount": "50.00",
            "status": "paid", "order_datetime": "2026-10-01T12:00:00Z",
            "tickets": [{"id": 1, "order_id": 100, "ticket_id": 11, "quantity": 2,
                         "ticket_code": "ABC123", "status": "valid"}],
        }]
        self.accounts = {"user7@example.com": ("secret", user_data(7, 1))}
        self.requests: list[httpx.Request] = []
        self.fail_with: tuple[int, dict] | None = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            status, body = self.fail_with
            return httpx.Response(status, json=body)

        path = request.url.path.removeprefix("/api")
        method = request.method

        if method == "POST" and path == "/auth/login":
            body = json.loads(request.content)
            account = self.accounts.get(body.get("email"))
            if account is None or account[0] != body.get("password"):
                return httpx.Response(401, json={"message": "Invalid email or password"})
            return httpx.Response(200, json={
                "message": "Login successful",
                "token": make_token(account[1]),
                "user": account[1],
            })

        if method == "POST" and path == "/auth/register":
            body = json.loads(request.content)
            user = user_data(50, 1, name=body["name"], email=body["email"])
            return httpx.Response(201, json={"message": "Registered", "token": make_token(user), "user": user})

        match = re.fullmatch(r"/auth/profile/(\d+)", path)
        if method == "PUT" and match:
            user_id = int(match.group(1))
            body = json.loads(request.content)
            user = dict(next(u for u in self.users if u["id"] == user_id))
            user.update(body)
            return httpx.Response(200, json={"user": user})

        if method == "GET" and path == "/events":
            rows = list(self.events.values())
            organizer_id = request.url.params.get("organizer_id")
            if organizer_id:
                rows = [r for r in rows if str(r["organizer_id"]) == organizer_id]
            city = request.url.params.get("city")
            if city:
                rows = [r for r in rows if r.get("city") == city]
            return httpx.Response(200, json={"events": deepcopy(rows)})

        match = re.fullmatch(r"/events/(\d+)", path)
        if match:
            event_id = int(match.group(1))
            if method == "GET":
                if event_id not in self.events:
                    return httpx.Response(404, json={"message": "Event not found"})
                return httpx.Response(200, json={"event": deepcopy(self.events[event_id])})
            if method == "PUT":
                fields = self._event_fields(request)
                self.events[event_id].update(fields)
                return httpx.Response(200, json={"event": deepcopy(self.events[event_id])})

        if method == "POST" and path == "/events":
            fields = self._event_fields(request)
            event_id = max(self.events) + 1
            row = event_row(event_id, organizer_id=20, tickets=[])
            row.update(fields)
            row["tickets"] = [
                dict(t, id=event_id * 10 + i + 1, event_id=event_id, quantity_sold=t.get("quantity_sold", 0))
                for i, t in enumerate(fields.get("tickets") or [])
            ]
            self.events[event_id] = row
            return httpx.Response(201, json={"event": deepcopy(row)})

        if method == "GET" and path == "/event_categories":
            return httpx.Response(200, json={"data": self.categories})

        if method == "GET" and path == "/orders":
            return httpx.Response(200, json={"orders": self.orders})

        if method == "GET" and path == "/users":
            return httpx.Response(200, json={"users": self.users})

        return httpx.Response(404, json={"message": "Not found"})

    @staticmethod
    def _event_fields(request: httpx.Request) -> dict:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            return json.loads(request.content)
        # Multipart: only the JSON-encoded tickets part matters to tests
        text = request.content.decode("latin-1")
        fields = {}
        for name, value in re.findall(r'name="([^"]+)"\r\n\r\n(.*?)\r\n--', text, re.S):
            fields[name] = json.loads(value) if name == "tickets" else value
        return fields

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def marketplace():
    return FakeMarketplace()


@pytest.fixture
def gateway(marketplace):
    gateway = MarketplaceGateway(API_BASE_URL, transport=httpx.MockTransport(marketplace.handle))
    yield gateway
    gateway.close()


@pytest.fixture
def raw_app(gateway):
    """Application whose session has not bootstrapped yet (still loading)."""
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SESSION_BOOTSTRAP_ON_START": False,
        },
        gateway=gateway,
    )
    with app.app_context():
        yield app


@pytest.fixture
def app(raw_app):
    """Application with a bootstrapped (ready, anonymous) session."""
    get_services().session.bootstrap()
    return raw_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


@pytest.fixture
def sign_in(services):
    """Adopt a credential for the given role; returns the Identity."""
    def _sign_in(user_id: int = 7, role_id: int = 1, **extra):
        identity = services.session.login(make_token(user_data(user_id, role_id, **extra)))
        assert identity is not None
        return identity
    return _sign_in
