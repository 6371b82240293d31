"""
Cart ledger tests.

Verifies:
- One line per ticket type; re-adding merges quantities
- Quantities never exceed the snapshot's availability
- Rejected operations leave the ledger untouched
- Totals are derived from the lines
- Notifications accompany user-visible outcomes
- Concurrent adds on one ticket type cannot oversell
"""

import random
import threading
from decimal import Decimal

import pytest

from storefront.services.cart_service import (
    LOCK_STRIPES,
    AvailabilityError,
    Cart,
    CartLineNotFoundError,
)
from storefront.services.notification_service import Notifier
from storefront.validation import ValidationError

from conftest import make_ticket


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def cart(notifier):
    return Cart(notifier)


def _levels(notifier):
    return [(n.level, n.message) for n in notifier.drain()]


class TestAddToCart:

    def test_new_line(self, cart, notifier):
        line = cart.add_to_cart(make_ticket(1, total=10), 2)

        assert line.quantity == 2
        assert cart.total_items() == 2
        assert _levels(notifier) == [("success", "Ticket added to cart")]

    def test_re_adding_merges_into_one_line(self, cart):
        cart.add_to_cart(make_ticket(1), 2)
        cart.add_to_cart(make_ticket(1), 3)

        assert len(cart.lines()) == 1
        assert cart.get_line(1).quantity == 5

    def test_fresh_snapshot_replaces_stored_one(self, cart):
        cart.add_to_cart(make_ticket(1, total=10, sold=0), 1)
        cart.add_to_cart(make_ticket(1, total=10, sold=6), 1)

        assert cart.get_line(1).ticket.quantity_sold == 6

    def test_exceeding_availability_is_rejected(self, cart, notifier):
        cart.add_to_cart(make_ticket(1, total=5, sold=2), 2)
        notifier.drain()

        with pytest.raises(AvailabilityError) as exc:
            cart.add_to_cart(make_ticket(1, total=5, sold=2), 2)

        assert exc.value.available == 3
        assert str(exc.value) == "Only 3 tickets available"
        assert cart.get_line(1).quantity == 2
        assert _levels(notifier) == [("error", "Only 3 tickets available")]

    def test_sold_out_rejects_first_add(self, cart):
        with pytest.raises(AvailabilityError):
            cart.add_to_cart(make_ticket(1, total=5, sold=5), 1)
        assert cart.is_empty()

    def test_exactly_available_is_accepted(self, cart):
        cart.add_to_cart(make_ticket(1, total=5, sold=2), 3)
        assert cart.get_line(1).quantity == 3

    @pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5, True])
    def test_invalid_quantity(self, cart, quantity):
        with pytest.raises(ValidationError):
            cart.add_to_cart(make_ticket(1), quantity)
        assert cart.is_empty()

    def test_inactive_ticket_type_is_rejected(self, cart, notifier):
        with pytest.raises(ValidationError):
            cart.add_to_cart(make_ticket(1, is_active=False), 1)
        assert cart.is_empty()
        assert _levels(notifier)[0][0] == "error"


class TestRemoveAndUpdate:

    def test_remove_existing_line(self, cart, notifier):
        cart.add_to_cart(make_ticket(1), 1)
        notifier.drain()

        assert cart.remove_from_cart(1) is True
        assert cart.is_empty()
        assert _levels(notifier) == [("success", "Ticket removed from cart")]

    def test_remove_absent_line_is_silent_no_op(self, cart, notifier):
        assert cart.remove_from_cart(99) is False
        assert notifier.pending() == []

    def test_update_sets_quantity(self, cart):
        cart.add_to_cart(make_ticket(1, total=10), 1)
        cart.update_quantity(1, 7)
        assert cart.get_line(1).quantity == 7

    def test_update_to_zero_removes(self, cart):
        cart.add_to_cart(make_ticket(1), 3)
        assert cart.update_quantity(1, 0) is None
        assert cart.get_line(1) is None

    def test_update_checks_stored_snapshot(self, cart, notifier):
        cart.add_to_cart(make_ticket(1, total=4, sold=0), 1)
        notifier.drain()

        with pytest.raises(AvailabilityError):
            cart.update_quantity(1, 5)
        assert cart.get_line(1).quantity == 1
        assert _levels(notifier) == [("error", "Only 4 tickets available")]

    def test_update_unknown_line(self, cart):
        with pytest.raises(CartLineNotFoundError):
            cart.update_quantity(42, 1)

    def test_clear(self, cart):
        cart.add_to_cart(make_ticket(1), 1)
        cart.add_to_cart(make_ticket(2), 1)
        cart.clear_cart()
        assert cart.is_empty()
        assert cart.total_items() == 0


class TestTotals:

    def test_totals_follow_lines(self, cart):
        cart.add_to_cart(make_ticket(1, price="25.00"), 2)
        cart.add_to_cart(make_ticket(2, price="10.50"), 3)

        assert cart.total_items() == 5
        assert cart.total_price() == Decimal("81.50")

        cart.update_quantity(2, 1)
        assert cart.total_price() == Decimal("60.50")

    def test_to_dict(self, cart):
        cart.add_to_cart(make_ticket(1, price="12.00"), 2)
        body = cart.to_dict()

        assert body["total_items"] == 2
        assert body["total_price"] == "24.00"
        assert body["items"][0]["ticket_id"] == 1
        assert body["items"][0]["subtotal"] == "24.00"

    def test_view_is_read_only(self, cart):
        view = cart.view()
        cart.add_to_cart(make_ticket(1), 1)

        assert view.total_items() == 1
        assert not hasattr(view, "add_to_cart")
        assert not hasattr(view, "clear_cart")


class TestRefreshSnapshot:

    def test_clamps_quantity(self, cart, notifier):
        cart.add_to_cart(make_ticket(1, total=10), 5)
        notifier.drain()

        line = cart.refresh_snapshot(make_ticket(1, total=10, sold=7))

        assert line.quantity == 3
        assert _levels(notifier)[0][0] == "info"

    def test_drops_sold_out_line(self, cart):
        cart.add_to_cart(make_ticket(1, total=10), 5)
        assert cart.refresh_snapshot(make_ticket(1, total=10, sold=10)) is None
        assert cart.is_empty()

    def test_keeps_quantity_when_still_available(self, cart, notifier):
        cart.add_to_cart(make_ticket(1, total=10), 2)
        notifier.drain()

        line = cart.refresh_snapshot(make_ticket(1, total=10, sold=3))
        assert line.quantity == 2
        assert notifier.pending() == []

    def test_absent_line(self, cart):
        with pytest.raises(CartLineNotFoundError):
            cart.refresh_snapshot(make_ticket(1))


class TestConcurrentAdds:

    def test_same_ticket_type_cannot_oversell(self, cart):
        ticket = make_ticket(1, total=10)
        accepted = []
        rejected = []
        barrier = threading.Barrier(20)

        def worker():
            barrier.wait()
            try:
                cart.add_to_cart(ticket, 1)
                accepted.append(1)
            except AvailabilityError:
                rejected.append(1)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(accepted) == 10
        assert len(rejected) == 10
        assert cart.get_line(1).quantity == 10

    def test_different_ticket_types_do_not_lose_lines(self, cart):
        threads = [
            threading.Thread(target=cart.add_to_cart, args=(make_ticket(i), 1))
            for i in range(1, 21)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cart.lines()) == 20
        assert cart.total_items() == 20


class TestLedgerInvariants:

    def test_ten_seven_scenario(self, cart):
        ticket = make_ticket(1, total=10, sold=7)
        cart.add_to_cart(ticket, 2)
        assert cart.get_line(1).quantity == 2

        with pytest.raises(AvailabilityError):
            cart.add_to_cart(ticket, 2)
        assert cart.get_line(1).quantity == 2

    def test_zero_update_empties_cart(self, cart):
        cart.add_to_cart(make_ticket(1), 2)
        cart.update_quantity(1, 0)
        assert cart.is_empty()
        assert cart.total_items() == 0

    def test_random_sequences_keep_invariants(self, cart):
        rng = random.Random(1234)
        tickets = {
            i: make_ticket(i, total=rng.randint(0, 8), sold=0, price=f"{rng.randint(1, 50)}.25")
            for i in range(1, 5)
        }

        for _ in range(300):
            ticket_id = rng.randint(1, 5)
            op = rng.choice(["add", "update", "remove"])
            try:
                if op == "add" and ticket_id in tickets:
                    cart.add_to_cart(tickets[ticket_id], rng.randint(1, 4))
                elif op == "update":
                    cart.update_quantity(ticket_id, rng.randint(-1, 9))
                else:
                    count = len(cart.lines())
                    removed = cart.remove_from_cart(ticket_id)
                    assert len(cart.lines()) == count - (1 if removed else 0)
            except (AvailabilityError, CartLineNotFoundError):
                pass

            lines = cart.lines()
            for line in lines:
                assert 0 < line.quantity <= line.ticket.available
            assert len({line.ticket_type_id for line in lines}) == len(lines)
            assert cart.total_items() == sum(line.quantity for line in lines)
            assert cart.total_price() == sum(
                (line.ticket.price * line.quantity for line in lines), Decimal("0")
            )


class TestLockStriping:

    def test_lock_pool_is_bounded(self, cart):
        for ticket_id in range(1, 200):
            cart.add_to_cart(make_ticket(ticket_id), 1)

        assert len(cart._type_locks) == LOCK_STRIPES
        assert cart._lock_for(1) is cart._lock_for(1 + LOCK_STRIPES)

    def test_clear_waits_for_in_flight_mutation(self, cart):
        cart.add_to_cart(make_ticket(1), 1)
        lock = cart._lock_for(1)
        lock.acquire()
        clearer = threading.Thread(target=cart.clear_cart)
        try:
            clearer.start()
            clearer.join(timeout=0.2)
            assert clearer.is_alive()
            assert cart.get_line(1) is not None
        finally:
            lock.release()
        clearer.join(timeout=5)

        assert not clearer.is_alive()
        assert cart.is_empty()

    def test_clear_racing_adds_leaves_consistent_ledger(self, cart):
        barrier = threading.Barrier(11)

        def adder(ticket_id):
            barrier.wait()
            cart.add_to_cart(make_ticket(ticket_id), 1)

        def clearer():
            barrier.wait()
            cart.clear_cart()

        threads = [threading.Thread(target=adder, args=(i,)) for i in range(1, 11)]
        threads.append(threading.Thread(target=clearer))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lines = cart.lines()
        assert cart.total_items() == len(lines)
        assert all(line.quantity == 1 for line in lines)


class TestDropUnavailable:

    def test_drops_with_info_notification(self, cart, notifier):
        cart.add_to_cart(make_ticket(1, type="VIP"), 2)
        notifier.drain()

        assert cart.drop_unavailable(1) is True
        assert cart.is_empty()
        assert _levels(notifier) == [("info", "VIP is no longer available and was removed")]

    def test_absent_line(self, cart, notifier):
        assert cart.drop_unavailable(5) is False
        assert notifier.pending() == []
