"""Tests for the LedgerStore."""

import threading
from decimal import Decimal

import pytest

from lightsplit.balances import compute_balances
from lightsplit.exceptions import (
    InvalidAmountError,
    InvalidMembersError,
    InvalidRoomError,
    PaymentNotFoundError,
    RoomNotFoundError,
)
from lightsplit.ledger import LedgerStore, normalize_members
from lightsplit.models import PaymentUpdate


@pytest.fixture
def store():
    """Create an in-memory ledger store."""
    return LedgerStore()


@pytest.fixture
def room(store):
    """Create a room with three members."""
    return store.create_room("Weekend trip", ["Alice", "Bob", "Carol"])


class TestNormalizeMembers:
    """Tests for normalize_members."""

    def test_strips_drops_blanks_and_dedupes(self):
        assert normalize_members([" Alice", "", "Bob ", "Alice", "  "]) == (
            "Alice",
            "Bob",
        )

    def test_rejects_non_string(self):
        with pytest.raises(InvalidMembersError):
            normalize_members(["Alice", 3])

    @pytest.mark.parametrize("members", ["AliceBob", 42, None])
    def test_rejects_non_list_members(self, members):
        """A bare string is not split into single-letter members."""
        with pytest.raises(InvalidMembersError):
            normalize_members(members)


class TestCreateRoom:
    """Tests for create_room."""

    def test_creates_room_with_ordered_members(self, store):
        room = store.create_room("Dinner", ["Carol", "Alice", "Bob"])

        assert room.title == "Dinner"
        assert room.members == ("Carol", "Alice", "Bob")
        assert room.id
        assert store.get_room(room.id).records == ()

    def test_requires_two_distinct_members(self, store):
        with pytest.raises(InvalidMembersError):
            store.create_room("Solo", ["Alice", "Alice", " "])

    def test_rejects_members_given_as_one_string(self, store):
        with pytest.raises(InvalidMembersError):
            store.create_room("Dinner", "AliceBob")
        assert store.list_rooms() == []

    def test_requires_title(self, store):
        with pytest.raises(InvalidRoomError):
            store.create_room("   ", ["Alice", "Bob"])

    def test_regenerates_colliding_ids(self):
        """A generated id that is already live is never reused."""
        ids = iter(["same", "same", "other"])
        store = LedgerStore(room_id_factory=lambda: next(ids))

        first = store.create_room("One", ["A", "B"])
        second = store.create_room("Two", ["A", "B"])

        assert (first.id, second.id) == ("same", "other")

    def test_default_ids_are_url_safe(self, store):
        room = store.create_room("Trip", ["A", "B"])

        assert all(c.isalnum() or c in "-_" for c in room.id)


class TestAddPayment:
    """Tests for add_payment."""

    def test_appends_record_with_assigned_fields(self, store, room):
        record = store.add_payment(room.id, "Alice", "30", "Groceries", room.members)

        assert record.id
        assert record.amount == Decimal("30.00")
        assert record.description == "Groceries"
        assert record.created_at is not None
        assert record.updated_at is None
        assert store.get_room(room.id).records == (record,)

    def test_involved_members_stored_in_room_order(self, store, room):
        record = store.add_payment(room.id, "Alice", "9", "", ["Carol", "Bob", "Carol"])

        assert record.involved_members == ("Bob", "Carol")

    def test_unknown_room(self, store):
        with pytest.raises(RoomNotFoundError):
            store.add_payment("nope", "Alice", "10", "", ["Alice"])

    @pytest.mark.parametrize("amount", ["0", "-1", "abc", None])
    def test_invalid_amount(self, store, room, amount):
        with pytest.raises(InvalidAmountError):
            store.add_payment(room.id, "Alice", amount, "", ["Alice"])

    def test_payer_must_be_member(self, store, room):
        with pytest.raises(InvalidMembersError):
            store.add_payment(room.id, "Mallory", "10", "", ["Alice"])

    def test_involved_must_be_members(self, store, room):
        with pytest.raises(InvalidMembersError):
            store.add_payment(room.id, "Alice", "10", "", ["Alice", "Mallory"])

    def test_involved_must_not_be_empty(self, store, room):
        with pytest.raises(InvalidMembersError):
            store.add_payment(room.id, "Alice", "10", "", [])

    def test_failed_write_leaves_room_unchanged(self, store, room):
        before = store.get_room(room.id)

        with pytest.raises(InvalidAmountError):
            store.add_payment(room.id, "Alice", "-5", "", ["Alice"])

        assert store.get_room(room.id) == before

    def test_each_mutation_bumps_version(self, store, room):
        v0 = store.get_room(room.id).version
        record = store.add_payment(room.id, "Alice", "10", "", ["Bob"])
        v1 = store.get_room(room.id).version
        store.delete_payment(room.id, record.id)
        v2 = store.get_room(room.id).version

        assert v0 < v1 < v2


class TestEditPayment:
    """Tests for edit_payment."""

    def test_preserves_id_position_and_created_at(self, store, room):
        first = store.add_payment(room.id, "Alice", "10", "a", ["Alice", "Bob"])
        middle = store.add_payment(room.id, "Bob", "20", "b", ["Bob"])
        last = store.add_payment(room.id, "Carol", "30", "c", ["Carol"])

        edited = store.edit_payment(
            room.id, middle.id, PaymentUpdate(amount="25.50", payer="Carol")
        )

        assert edited.id == middle.id
        assert edited.created_at == middle.created_at
        assert edited.updated_at is not None
        assert edited.amount == Decimal("25.50")
        assert edited.payer == "Carol"
        assert edited.description == "b"
        assert edited.involved_members == ("Bob",)
        ids = [r.id for r in store.get_room(room.id).records]
        assert ids == [first.id, middle.id, last.id]

    def test_unknown_record(self, store, room):
        with pytest.raises(PaymentNotFoundError):
            store.edit_payment(room.id, "missing", PaymentUpdate(amount="1"))

    def test_revalidates_merged_fields(self, store, room):
        record = store.add_payment(room.id, "Alice", "10", "", ["Alice"])

        with pytest.raises(InvalidAmountError):
            store.edit_payment(room.id, record.id, PaymentUpdate(amount="0"))
        with pytest.raises(InvalidMembersError):
            store.edit_payment(room.id, record.id, PaymentUpdate(involved_members=[]))
        with pytest.raises(InvalidMembersError):
            store.edit_payment(room.id, record.id, PaymentUpdate(payer="Mallory"))

        assert store.get_room(room.id).records == (record,)


class TestDeletePayment:
    """Tests for delete_payment."""

    def test_removes_record(self, store, room):
        keep = store.add_payment(room.id, "Alice", "10", "", ["Alice", "Bob"])
        gone = store.add_payment(room.id, "Bob", "5", "", ["Alice"])

        store.delete_payment(room.id, gone.id)

        assert store.get_room(room.id).records == (keep,)

    def test_unknown_record(self, store, room):
        with pytest.raises(PaymentNotFoundError):
            store.delete_payment(room.id, "missing")

    def test_delete_twice_fails(self, store, room):
        record = store.add_payment(room.id, "Alice", "10", "", ["Bob"])
        store.delete_payment(room.id, record.id)

        with pytest.raises(PaymentNotFoundError):
            store.delete_payment(room.id, record.id)


class TestMembersAndRooms:
    """Tests for add_member, delete_room and list_rooms."""

    def test_add_member_appends(self, store, room):
        store.add_payment(room.id, "Alice", "10", "", room.members)

        updated = store.add_member(room.id, " Dave ")

        assert updated.members == ("Alice", "Bob", "Carol", "Dave")
        assert store.get_room(room.id).room.members == updated.members
        assert len(store.get_room(room.id).records) == 1

    @pytest.mark.parametrize("name", ["Alice", "", "  "])
    def test_add_member_rejects_duplicates_and_blanks(self, store, room, name):
        with pytest.raises(InvalidMembersError):
            store.add_member(room.id, name)

    def test_delete_room(self, store, room):
        store.delete_room(room.id)

        with pytest.raises(RoomNotFoundError):
            store.get_room(room.id)
        with pytest.raises(RoomNotFoundError):
            store.add_payment(room.id, "Alice", "10", "", ["Alice"])

    def test_list_rooms(self, store, room):
        other = store.create_room("Other", ["X", "Y"])

        ids = [s.room.id for s in store.list_rooms()]

        assert set(ids) == {room.id, other.id}

    def test_listeners_notified_on_mutation(self, store, room):
        seen = []
        store.subscribe(seen.append)

        record = store.add_payment(room.id, "Alice", "10", "", ["Bob"])
        store.edit_payment(room.id, record.id, PaymentUpdate(description="x"))
        store.delete_payment(room.id, record.id)
        store.add_member(room.id, "Dave")

        assert seen == [room.id] * 4


class TestConcurrency:
    """Concurrent writers never lose or duplicate records."""

    def test_parallel_adds_to_one_room(self, store, room):
        def writer(payer):
            for _ in range(50):
                store.add_payment(room.id, payer, "1.00", "", room.members)

        threads = [
            threading.Thread(target=writer, args=(payer,))
            for payer in ["Alice", "Bob", "Carol"] * 3
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snapshot = store.get_room(room.id)
        assert len(snapshot.records) == 450
        assert len({r.id for r in snapshot.records}) == 450
        assert snapshot.version == 450
        balances = compute_balances(snapshot.room.members, snapshot.records)
        assert sum(balances.values()) == 0

    def test_rooms_are_independent(self, store):
        rooms = [store.create_room(f"Room {i}", ["A", "B"]) for i in range(4)]

        def writer(room_id):
            for _ in range(25):
                store.add_payment(room_id, "A", "2.00", "", ["B"])

        threads = [threading.Thread(target=writer, args=(r.id,)) for r in rooms]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for r in rooms:
            assert len(store.get_room(r.id).records) == 25
