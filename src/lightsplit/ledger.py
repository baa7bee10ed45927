"""In-memory ledger store for rooms and their payment records.

Each room sits behind its own lock; mutations of one room never wait on
another. After every mutation the room's snapshot is replaced by a new
immutable one, so readers can take the current snapshot without locking.
When a database is attached, every mutation is written through before the
new snapshot becomes visible.
"""

import logging
import secrets
import threading
import uuid
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .db import Database
from .exceptions import (
    InvalidMembersError,
    InvalidRoomError,
    PaymentNotFoundError,
    RoomNotFoundError,
)
from .models import PaymentRecord, PaymentUpdate, Room, RoomSnapshot
from .money import parse_amount

logger = logging.getLogger(__name__)

RoomListener = Callable[[str], None]


@dataclass
class _RoomEntry:
    """A live room: its current snapshot and the lock serializing its writers."""

    snapshot: RoomSnapshot
    lock: threading.Lock = field(default_factory=threading.Lock)


def normalize_members(members: Iterable[str]) -> tuple[str, ...]:
    """
    Strip member names, drop empty ones and collapse duplicates.

    The first occurrence of a name keeps its position.
    """
    if isinstance(members, str) or not isinstance(members, Iterable):
        raise InvalidMembersError(
            f"Members must be a list of names, got {members!r}"
        )

    seen: dict[str, None] = {}
    for name in members:
        if not isinstance(name, str):
            raise InvalidMembersError(f"Member name must be a string, got {name!r}")
        name = name.strip()
        if name:
            seen.setdefault(name, None)
    return tuple(seen)


def _validate_payer(room: Room, payer: Any) -> str:
    if not isinstance(payer, str) or payer.strip() not in room.members:
        raise InvalidMembersError(f"Payer {payer!r} is not a member of this room")
    return payer.strip()


def _validate_involved(room: Room, involved: Iterable[str]) -> tuple[str, ...]:
    """Check involved members against the room and return them in room order."""
    if isinstance(involved, str):
        involved = [involved]
    names = set(normalize_members(involved))
    if not names:
        raise InvalidMembersError("A payment must involve at least one member")

    unknown = names.difference(room.members)
    if unknown:
        raise InvalidMembersError(
            f"Not members of this room: {', '.join(sorted(unknown))}"
        )

    return tuple(m for m in room.members if m in names)


class LedgerStore:
    """Owns rooms and their ordered payment records."""

    def __init__(
        self,
        database: Database | None = None,
        room_id_factory: Callable[[], str] | None = None,
        room_id_bytes: int = 6,
    ):
        """Initialize the store, loading existing rooms from the database."""
        self.db = database
        self._new_room_id = room_id_factory or (
            lambda: secrets.token_urlsafe(room_id_bytes)
        )
        self._rooms: dict[str, _RoomEntry] = {}
        # Guards only insertion into and removal from self._rooms
        self._registry_lock = threading.Lock()
        self._listeners: list[RoomListener] = []

        if self.db is not None:
            self._load_from_database()

    def _load_from_database(self):
        """Rebuild live rooms from the attached database."""
        for room, records in self.db.get_all_rooms():
            self._rooms[room.id] = _RoomEntry(
                RoomSnapshot(room=room, records=tuple(records))
            )
        logger.info(f"Loaded {len(self._rooms)} room(s) from {self.db.db_path}")

    # ========================================================================
    # Internals
    # ========================================================================

    def subscribe(self, listener: RoomListener):
        """Register a callback run after every mutation with the room id."""
        self._listeners.append(listener)

    def _entry(self, room_id: str) -> _RoomEntry:
        entry = self._rooms.get(room_id)
        if entry is None:
            raise RoomNotFoundError(room_id)
        return entry

    @contextmanager
    def _locked(self, room_id: str) -> Iterator[_RoomEntry]:
        """Hold a room's writer lock; fails if the room vanished meanwhile."""
        entry = self._entry(room_id)
        with entry.lock:
            if self._rooms.get(room_id) is not entry:
                raise RoomNotFoundError(room_id)
            yield entry

    def _publish(
        self, entry: _RoomEntry, room: Room, records: tuple[PaymentRecord, ...]
    ):
        """Swap in the next snapshot and notify listeners."""
        entry.snapshot = RoomSnapshot(
            room=room, records=records, version=entry.snapshot.version + 1
        )
        for listener in self._listeners:
            listener(room.id)

    # ========================================================================
    # Room operations
    # ========================================================================

    def create_room(self, title: str, members: Iterable[str]) -> Room:
        """
        Create a room.

        Args:
            title: Room title (must not be blank)
            members: Member names; blanks are dropped and duplicates collapsed

        Returns:
            The created room

        Raises:
            InvalidRoomError: If the title is blank
            InvalidMembersError: If fewer than two distinct members remain
        """
        title = title.strip() if isinstance(title, str) else ""
        if not title:
            raise InvalidRoomError("Room title must not be empty")

        unique_members = normalize_members(members)
        if len(unique_members) < 2:
            raise InvalidMembersError(
                f"A room needs at least two distinct members, got {len(unique_members)}"
            )

        with self._registry_lock:
            room_id = self._new_room_id()
            while room_id in self._rooms:
                room_id = self._new_room_id()

            room = Room(
                id=room_id,
                title=title,
                members=unique_members,
                created_at=datetime.now(UTC),
            )
            if self.db is not None:
                self.db.save_room(room)
            self._rooms[room_id] = _RoomEntry(RoomSnapshot(room=room))

        logger.info(
            f"Created room {room_id} '{title}' with {len(unique_members)} members"
        )
        return room

    def get_room(self, room_id: str) -> RoomSnapshot:
        """Return the current snapshot of a room."""
        return self._entry(room_id).snapshot

    def list_rooms(self) -> list[RoomSnapshot]:
        """Return snapshots of all live rooms, oldest first."""
        snapshots = [entry.snapshot for entry in list(self._rooms.values())]
        return sorted(snapshots, key=lambda s: s.room.created_at)

    def add_member(self, room_id: str, name: str) -> Room:
        """Append a new member to a room; existing members are never removed."""
        with self._locked(room_id) as entry:
            room = entry.snapshot.room
            name = name.strip() if isinstance(name, str) else ""
            if not name:
                raise InvalidMembersError("Member name must not be empty")
            if name in room.members:
                raise InvalidMembersError(f"'{name}' is already a member of this room")

            updated = room.model_copy(update={"members": room.members + (name,)})
            if self.db is not None:
                self.db.save_room(updated)
            self._publish(entry, updated, entry.snapshot.records)

        logger.info(f"Added member '{name}' to room {room_id}")
        return updated

    def delete_room(self, room_id: str):
        """Remove a room and its records; its id becomes free again."""
        with self._locked(room_id):
            if self.db is not None:
                self.db.delete_room(room_id)
            with self._registry_lock:
                del self._rooms[room_id]
            for listener in self._listeners:
                listener(room_id)

        logger.info(f"Deleted room {room_id}")

    # ========================================================================
    # Payment operations
    # ========================================================================

    def add_payment(
        self,
        room_id: str,
        payer: str,
        amount: Any,
        description: str | None,
        involved_members: Iterable[str],
    ) -> PaymentRecord:
        """
        Validate and append a payment record.

        Raises:
            RoomNotFoundError: If the room doesn't exist
            InvalidAmountError: If the amount isn't a positive cent amount
            InvalidMembersError: If the payer or involved members are invalid
        """
        with self._locked(room_id) as entry:
            room = entry.snapshot.room
            records = entry.snapshot.records

            record_id = uuid.uuid4().hex[:12]
            while any(r.id == record_id for r in records):
                record_id = uuid.uuid4().hex[:12]

            record = PaymentRecord(
                id=record_id,
                payer=_validate_payer(room, payer),
                amount=parse_amount(amount),
                description=(description or "").strip(),
                involved_members=_validate_involved(room, involved_members),
                created_at=datetime.now(UTC),
            )

            if self.db is not None:
                self.db.insert_payment(room_id, record)
            self._publish(entry, room, records + (record,))

        logger.info(
            f"Room {room_id}: {record.payer} paid {record.amount} "
            f"for {len(record.involved_members)} member(s) (payment {record.id})"
        )
        return record

    def edit_payment(
        self, room_id: str, record_id: str, update: PaymentUpdate
    ) -> PaymentRecord:
        """
        Replace a payment record in place, keeping its id and position.

        Fields not set in ``update`` keep their current values; the merged
        record is validated as if it were new.

        Raises:
            RoomNotFoundError: If the room doesn't exist
            PaymentNotFoundError: If the record doesn't exist in the room
            InvalidAmountError: If the new amount is invalid
            InvalidMembersError: If the new payer or involved members are invalid
        """
        with self._locked(room_id) as entry:
            room = entry.snapshot.room
            records = list(entry.snapshot.records)

            index = next(
                (i for i, r in enumerate(records) if r.id == record_id), None
            )
            if index is None:
                raise PaymentNotFoundError(room_id, record_id)
            current = records[index]

            record = PaymentRecord(
                id=current.id,
                payer=_validate_payer(
                    room, current.payer if update.payer is None else update.payer
                ),
                amount=parse_amount(
                    current.amount if update.amount is None else update.amount
                ),
                description=(
                    current.description
                    if update.description is None
                    else update.description.strip()
                ),
                involved_members=_validate_involved(
                    room,
                    current.involved_members
                    if update.involved_members is None
                    else update.involved_members,
                ),
                created_at=current.created_at,
                updated_at=datetime.now(UTC),
            )
            records[index] = record

            if self.db is not None:
                self.db.update_payment(room_id, record)
            self._publish(entry, room, tuple(records))

        logger.info(f"Room {room_id}: edited payment {record_id}")
        return record

    def delete_payment(self, room_id: str, record_id: str):
        """
        Permanently remove a payment record.

        Raises:
            RoomNotFoundError: If the room doesn't exist
            PaymentNotFoundError: If the record doesn't exist in the room
        """
        with self._locked(room_id) as entry:
            records = entry.snapshot.records
            remaining = tuple(r for r in records if r.id != record_id)
            if len(remaining) == len(records):
                raise PaymentNotFoundError(room_id, record_id)

            if self.db is not None:
                self.db.delete_payment(room_id, record_id)
            self._publish(entry, entry.snapshot.room, remaining)

        logger.info(f"Room {room_id}: deleted payment {record_id}")
